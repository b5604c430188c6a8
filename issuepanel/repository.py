"""Repository layer: the sqlite-backed lookup services behind the issue panel."""

import uuid
from datetime import datetime
from typing import Any, Iterable, Optional

from issuepanel.database import get_database
from issuepanel.models import (
    ActionPlan,
    Characteristic,
    Comment,
    Component,
    FieldChange,
    Issue,
    IssueFilter,
    Rule,
    RuleKey,
    Severity,
    Snapshot,
    Status,
    User,
)


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    return value if isinstance(value, datetime) else datetime.fromisoformat(value)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def new_key() -> str:
    """Generate a key for a new issue or comment."""
    return str(uuid.uuid4())


class BaseRepository:
    """Holds the database handle shared by all repositories."""

    def __init__(self, db_path: Optional[str] = None) -> None:
        """Initialize repository with database connection.

        Args:
            db_path: Optional path to database file.
        """
        self.db = get_database(db_path)


class IssueRepository(BaseRepository):
    """Issue store and comment store."""

    UPDATABLE_FIELDS = {"assignee", "status", "resolution", "severity", "action_plan_key"}

    def get_by_key(self, key: str) -> Optional[Issue]:
        """Get an issue by key.

        Args:
            key: Key of the issue to retrieve.

        Returns:
            Issue if found, None otherwise.
        """
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM issues WHERE key = ?", (key,))
            row = cursor.fetchone()
            return self._row_to_issue(row) if row else None

    def insert(self, issue: Issue) -> Issue:
        """Store a new issue, generating its key when it has none."""
        if not issue.key:
            issue.key = new_key()

        with self.db.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO issues (key, component_key, project_key, rule_key, severity,
                                    status, resolution, message, line, assignee, reporter,
                                    action_plan_key, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
                (
                    issue.key,
                    issue.component_key,
                    issue.project_key,
                    str(issue.rule_key),
                    issue.severity.value,
                    issue.status.value,
                    issue.resolution,
                    issue.message,
                    issue.line,
                    issue.assignee,
                    issue.reporter,
                    issue.action_plan_key,
                    issue.created_at.isoformat(),
                    issue.updated_at.isoformat(),
                ),
            )
        return issue

    def update(self, key: str, **updates: Any) -> Optional[Issue]:
        """Update fields of an issue.

        Args:
            key: Key of the issue to update.
            **updates: assignee, status, resolution, severity or action_plan_key.

        Returns:
            Updated Issue if found, None otherwise.

        Raises:
            ValueError: If an unknown field is given.
        """
        update_fields: list[str] = []
        update_values: list[Any] = []
        for name, value in updates.items():
            if name not in self.UPDATABLE_FIELDS:
                raise ValueError(f"Cannot update field: {name}")
            if isinstance(value, (Severity, Status)):
                value = value.value
            update_fields.append(f"{name} = ?")
            update_values.append(value)

        if update_fields:
            update_fields.append("updated_at = ?")
            update_values.append(datetime.now().isoformat())
            update_values.append(key)
            with self.db.get_connection() as conn:
                conn.execute(
                    f"UPDATE issues SET {', '.join(update_fields)} WHERE key = ?",
                    update_values,
                )

        return self.get_by_key(key)

    def search(
        self,
        component_key: Optional[str] = None,
        severities: Optional[Iterable[str]] = None,
        statuses: Optional[Iterable[str]] = None,
        assignee: Optional[str] = None,
        created_after: Optional[datetime] = None,
        limit: Optional[int] = 100,
    ) -> list[Issue]:
        """Find issues matching every given criterion, most severe first.

        ``component_key`` matches the issue's component as well as its project,
        so a project key returns all issues of the project.
        """
        query = "SELECT * FROM issues WHERE 1=1"
        params: list[Any] = []

        if component_key:
            query += " AND (component_key = ? OR project_key = ?)"
            params.extend([component_key, component_key])

        severities = [s for s in (severities or []) if s]
        if severities:
            query += f" AND severity IN ({', '.join('?' for _ in severities)})"
            params.extend(Severity.from_string(s).value for s in severities)

        statuses = [s for s in (statuses or []) if s]
        if statuses:
            query += f" AND status IN ({', '.join('?' for _ in statuses)})"
            params.extend(Status.from_string(s).value for s in statuses)

        if assignee:
            query += " AND assignee = ?"
            params.append(assignee)

        if created_after:
            query += " AND created_at > ?"
            params.append(created_after.isoformat())

        query += " ORDER BY created_at DESC"
        if limit:
            query += " LIMIT ?"
            params.append(limit)

        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(query, params)
            issues = [self._row_to_issue(row) for row in cursor.fetchall()]

        issues.sort(key=lambda i: i.severity.to_int(), reverse=True)
        return issues

    def find_comments(self, issue_key: str) -> list[Comment]:
        """Get all comments for an issue.

        Args:
            issue_key: Key of the issue.

        Returns:
            List of Comment objects, in the order they were added.
        """
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM issue_comments
                WHERE issue_key = ?
                ORDER BY created_at ASC, seq ASC
            """,
                (issue_key,),
            )
            return [self._row_to_comment(row) for row in cursor.fetchall()]

    def find_comment(self, key: str) -> Optional[Comment]:
        """Get a comment by key, or None."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM issue_comments WHERE key = ?", (key,))
            row = cursor.fetchone()
            return self._row_to_comment(row) if row else None

    def insert_comment(self, issue_key: str, text: str, user_login: Optional[str]) -> Comment:
        """Add a comment to an issue.

        Args:
            issue_key: Key of the issue to comment on.
            text: Comment text.
            user_login: Author of the comment.

        Returns:
            Created Comment object.
        """
        comment = Comment(key=new_key(), issue_key=issue_key, user_login=user_login, text=text)
        comment.updated_at = comment.created_at

        with self.db.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO issue_comments (key, issue_key, user_login, text, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """,
                (
                    comment.key,
                    comment.issue_key,
                    comment.user_login,
                    comment.text,
                    comment.created_at.isoformat(),
                    comment.updated_at.isoformat(),
                ),
            )
        return comment

    def update_comment(self, key: str, text: str) -> Optional[Comment]:
        """Replace the text of a comment; returns the updated comment or None."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "UPDATE issue_comments SET text = ?, updated_at = ? WHERE key = ?",
                (text, datetime.now().isoformat(), key),
            )
            if cursor.rowcount == 0:
                return None
        return self.find_comment(key)

    def delete_comment(self, key: str) -> bool:
        """Delete a comment.

        Returns:
            True if comment was deleted, False if not found.
        """
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM issue_comments WHERE key = ?", (key,))
            return cursor.rowcount > 0

    def insert_changes(self, changes: Iterable[FieldChange]) -> None:
        """Append lines to issue changelogs."""
        with self.db.get_connection() as conn:
            for change in changes:
                cursor = conn.cursor()
                cursor.execute(
                    """
                    INSERT INTO issue_changes (issue_key, user_login, field_name,
                                               old_value, new_value, created_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                """,
                    (
                        change.issue_key,
                        change.user_login,
                        change.field_name,
                        change.old_value,
                        change.new_value,
                        change.created_at.isoformat(),
                    ),
                )
                change.id = cursor.lastrowid

    def find_changes(self, issue_key: str) -> list[FieldChange]:
        """Get the changelog of an issue, oldest first."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "SELECT * FROM issue_changes WHERE issue_key = ? ORDER BY created_at ASC, id ASC",
                (issue_key,),
            )
            return [
                FieldChange(
                    id=row["id"],
                    issue_key=row["issue_key"],
                    user_login=row["user_login"],
                    field_name=row["field_name"],
                    old_value=row["old_value"],
                    new_value=row["new_value"],
                    created_at=datetime.fromisoformat(row["created_at"]),
                )
                for row in cursor.fetchall()
            ]

    def _row_to_issue(self, row: Any) -> Issue:
        """Convert a database row to an Issue object."""
        return Issue(
            key=row["key"],
            component_key=row["component_key"],
            project_key=row["project_key"],
            rule_key=RuleKey.parse(row["rule_key"]),
            severity=Severity.from_string(row["severity"]),
            status=Status.from_string(row["status"]),
            resolution=row["resolution"],
            message=row["message"],
            line=row["line"],
            assignee=row["assignee"],
            reporter=row["reporter"],
            action_plan_key=row["action_plan_key"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )

    def _row_to_comment(self, row: Any) -> Comment:
        return Comment(
            key=row["key"],
            issue_key=row["issue_key"],
            user_login=row["user_login"],
            text=row["text"],
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )


class ComponentRepository(BaseRepository):
    """Component resolver and snapshot lookup."""

    def find_by_key(self, key: Optional[str]) -> Optional[Component]:
        if not key:
            return None
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM components WHERE key = ?", (key,))
            row = cursor.fetchone()
            return self._row_to_component(row) if row else None

    def find_by_id(self, component_id: int) -> Optional[Component]:
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM components WHERE id = ?", (component_id,))
            row = cursor.fetchone()
            return self._row_to_component(row) if row else None

    def insert(self, component: Component) -> Component:
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO components (key, name, qualifier, project_key) VALUES (?, ?, ?, ?)",
                (
                    component.key,
                    component.name,
                    component.qualifier,
                    component.project_key or component.key,
                ),
            )
            component.id = cursor.lastrowid
            component.project_key = component.project_key or component.key
        return component

    def last_snapshot(self, component_key: str) -> Optional[Snapshot]:
        """Get the latest snapshot of a component, or None if never analysed."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM snapshots
                WHERE component_key = ? AND islast = 1
                ORDER BY created_at DESC LIMIT 1
            """,
                (component_key,),
            )
            row = cursor.fetchone()
            return self._row_to_snapshot(row) if row else None

    def find_snapshot(self, snapshot_id: int) -> Optional[Snapshot]:
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM snapshots WHERE id = ?", (snapshot_id,))
            row = cursor.fetchone()
            return self._row_to_snapshot(row) if row else None

    def insert_snapshot(self, snapshot: Snapshot) -> Snapshot:
        """Store a snapshot; a last snapshot supersedes the previous last one."""
        dates = (list(snapshot.period_dates) + [None, None, None])[:3]
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            if snapshot.is_last:
                cursor.execute(
                    "UPDATE snapshots SET islast = 0 WHERE component_key = ?",
                    (snapshot.component_key,),
                )
            cursor.execute(
                """
                INSERT INTO snapshots (component_key, created_at, islast,
                                       period1_date, period2_date, period3_date)
                VALUES (?, ?, ?, ?, ?, ?)
            """,
                (
                    snapshot.component_key,
                    snapshot.created_at.isoformat(),
                    1 if snapshot.is_last else 0,
                    *[_iso(d) for d in dates],
                ),
            )
            snapshot.id = cursor.lastrowid
        return snapshot

    def _row_to_component(self, row: Any) -> Component:
        return Component(
            id=row["id"],
            key=row["key"],
            name=row["name"],
            qualifier=row["qualifier"],
            project_key=row["project_key"],
        )

    def _row_to_snapshot(self, row: Any) -> Snapshot:
        return Snapshot(
            id=row["id"],
            component_key=row["component_key"],
            created_at=datetime.fromisoformat(row["created_at"]),
            is_last=bool(row["islast"]),
            period_dates=[_parse_datetime(row[f"period{i}_date"]) for i in (1, 2, 3)],
        )


class RuleRepository(BaseRepository):
    """Rule repository."""

    def find_by_key(self, key: Optional[str]) -> Optional[Rule]:
        if not key:
            return None
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM rules WHERE key = ?", (key,))
            row = cursor.fetchone()
            if not row:
                return None
            return Rule(
                key=row["key"],
                name=row["name"],
                description=row["description"],
                debt_characteristic_key=row["characteristic_key"],
                debt_sub_characteristic_key=row["sub_characteristic_key"],
            )

    def insert(self, rule: Rule) -> Rule:
        RuleKey.parse(rule.key)
        with self.db.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO rules (key, name, description, characteristic_key, sub_characteristic_key)
                VALUES (?, ?, ?, ?, ?)
            """,
                (
                    rule.key,
                    rule.name,
                    rule.description,
                    rule.debt_characteristic_key,
                    rule.debt_sub_characteristic_key,
                ),
            )
        return rule


class CharacteristicRepository(BaseRepository):
    """Debt characteristic lookup."""

    def characteristic_by_key(self, key: Optional[str]) -> Optional[Characteristic]:
        if not key:
            return None
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM characteristics WHERE key = ?", (key,))
            row = cursor.fetchone()
            if not row:
                return None
            return Characteristic(key=row["key"], name=row["name"], parent_key=row["parent_key"])

    def insert(self, characteristic: Characteristic) -> Characteristic:
        with self.db.get_connection() as conn:
            conn.execute(
                "INSERT INTO characteristics (key, name, parent_key) VALUES (?, ?, ?)",
                (characteristic.key, characteristic.name, characteristic.parent_key),
            )
        return characteristic


class ActionPlanRepository(BaseRepository):
    """Action-plan store."""

    def find_by_key(self, key: Optional[str]) -> Optional[ActionPlan]:
        if not key:
            return None
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM action_plans WHERE key = ?", (key,))
            row = cursor.fetchone()
            return self._row_to_plan(row) if row else None

    def find_open_by_project(self, project_key: str) -> list[ActionPlan]:
        """Open plans of a project, soonest deadline first."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM action_plans
                WHERE project_key = ? AND status = 'OPEN'
                ORDER BY deadline IS NULL, deadline ASC, name ASC
            """,
                (project_key,),
            )
            return [self._row_to_plan(row) for row in cursor.fetchall()]

    def insert(self, plan: ActionPlan) -> ActionPlan:
        if not plan.key:
            plan.key = new_key()
        with self.db.get_connection() as conn:
            conn.execute(
                """
                INSERT INTO action_plans (key, name, project_key, status, deadline)
                VALUES (?, ?, ?, ?, ?)
            """,
                (plan.key, plan.name, plan.project_key, plan.status, _iso(plan.deadline)),
            )
        return plan

    def _row_to_plan(self, row: Any) -> ActionPlan:
        return ActionPlan(
            key=row["key"],
            name=row["name"],
            project_key=row["project_key"],
            status=row["status"],
            deadline=_parse_datetime(row["deadline"]),
        )


class UserRepository(BaseRepository):
    """User directory."""

    def find_by_login(self, login: Optional[str]) -> Optional[User]:
        if not login:
            return None
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM users WHERE login = ?", (login,))
            row = cursor.fetchone()
            return self._row_to_user(row) if row else None

    def find_active(self) -> list[User]:
        """Active users, ordered by name (used by the assign form)."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM users WHERE active = 1 ORDER BY name ASC, login ASC")
            return [self._row_to_user(row) for row in cursor.fetchall()]

    def insert(self, user: User) -> User:
        if not user.login:
            raise ValueError("Login is required")
        with self.db.get_connection() as conn:
            conn.execute(
                "INSERT INTO users (login, name, email, active) VALUES (?, ?, ?, ?)",
                (user.login, user.name or user.login, user.email, 1 if user.active else 0),
            )
        return user

    def _row_to_user(self, row: Any) -> User:
        return User(
            login=row["login"],
            name=row["name"],
            email=row["email"],
            active=bool(row["active"]),
        )


class FilterRepository(BaseRepository):
    """Saved issue filters and their favourites."""

    def find_by_id(self, filter_id: int) -> Optional[IssueFilter]:
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("SELECT * FROM issue_filters WHERE id = ?", (filter_id,))
            row = cursor.fetchone()
            return self._row_to_filter(row) if row else None

    def find_favourites(self, user_login: str) -> list[IssueFilter]:
        """Filters the user marked as favourite."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT f.* FROM issue_filters f
                JOIN issue_filter_favourites fav ON fav.filter_id = f.id
                WHERE fav.user_login = ?
                ORDER BY f.id ASC
            """,
                (user_login,),
            )
            return [self._row_to_filter(row) for row in cursor.fetchall()]

    def find_visible(self, user_login: str) -> list[IssueFilter]:
        """Filters owned by the user plus shared ones."""
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                """
                SELECT * FROM issue_filters
                WHERE user_login = ? OR shared = 1
                ORDER BY name ASC
            """,
                (user_login,),
            )
            return [self._row_to_filter(row) for row in cursor.fetchall()]

    def insert(self, issue_filter: IssueFilter) -> IssueFilter:
        if not issue_filter.name:
            raise ValueError("Filter name is required")
        with self.db.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                "INSERT INTO issue_filters (name, user_login, shared, query) VALUES (?, ?, ?, ?)",
                (
                    issue_filter.name,
                    issue_filter.user_login,
                    1 if issue_filter.shared else 0,
                    issue_filter.query,
                ),
            )
            issue_filter.id = cursor.lastrowid
        return issue_filter

    def add_favourite(self, filter_id: int, user_login: str) -> None:
        with self.db.get_connection() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO issue_filter_favourites (filter_id, user_login) VALUES (?, ?)",
                (filter_id, user_login),
            )

    def _row_to_filter(self, row: Any) -> IssueFilter:
        return IssueFilter(
            id=row["id"],
            name=row["name"],
            user_login=row["user_login"],
            shared=bool(row["shared"]),
            query=row["query"],
        )
