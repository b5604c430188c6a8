"""Data models and enums for the issue panel."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class Severity(Enum):
    """Severity levels for issues."""

    INFO = "INFO"
    MINOR = "MINOR"
    MAJOR = "MAJOR"
    CRITICAL = "CRITICAL"
    BLOCKER = "BLOCKER"

    @classmethod
    def from_string(cls, value: str) -> "Severity":
        """Create Severity from string value."""
        try:
            return cls(value.upper())
        except (ValueError, AttributeError):
            raise ValueError(
                f"Invalid severity: {value}. Must be one of: {', '.join([s.value for s in cls])}"
            ) from None

    def to_int(self) -> int:
        """Convert severity to integer for sorting (higher number = more severe)."""
        return list(Severity).index(self) + 1


class Status(Enum):
    """Workflow status of an issue."""

    OPEN = "OPEN"
    CONFIRMED = "CONFIRMED"
    REOPENED = "REOPENED"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"

    @classmethod
    def from_string(cls, value: str) -> "Status":
        """Create Status from string value."""
        try:
            return cls(value.upper())
        except (ValueError, AttributeError):
            raise ValueError(
                f"Invalid status: {value}. Must be one of: {', '.join([s.value for s in cls])}"
            ) from None

    @property
    def is_unresolved(self) -> bool:
        return self in (Status.OPEN, Status.CONFIRMED, Status.REOPENED)


@dataclass(frozen=True)
class RuleKey:
    """Identifies a rule inside a rule repository."""

    repository: str
    rule: str

    MANUAL_REPOSITORY = "manual"

    @classmethod
    def parse(cls, text: str) -> "RuleKey":
        """Parse the canonical ``repository:rule`` form."""
        repository, sep, rule = (text or "").partition(":")
        if not sep or not repository or not rule:
            raise ValueError(f"Invalid rule key: {text}")
        return cls(repository, rule)

    @property
    def is_manual(self) -> bool:
        return self.repository == self.MANUAL_REPOSITORY

    def __str__(self) -> str:
        return f"{self.repository}:{self.rule}"


@dataclass
class User:
    """A user known to the user directory."""

    login: str = field(default="")
    name: str = field(default="")
    email: Optional[str] = field(default=None)
    active: bool = field(default=True)

    def to_dict(self) -> dict[str, Any]:
        """Convert user to dictionary for JSON serialization."""
        return {
            "login": self.login,
            "name": self.name,
            "email": self.email,
            "active": self.active,
        }


@dataclass
class Characteristic:
    """A technical-debt characteristic or sub-characteristic."""

    key: str = field(default="")
    name: str = field(default="")
    parent_key: Optional[str] = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "name": self.name, "parent_key": self.parent_key}


@dataclass
class Rule:
    """A coding rule, optionally attached to debt characteristics."""

    key: str = field(default="")
    name: str = field(default="")
    description: Optional[str] = field(default=None)
    debt_characteristic_key: Optional[str] = field(default=None)
    debt_sub_characteristic_key: Optional[str] = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        """Convert rule to dictionary for JSON serialization."""
        return {
            "key": self.key,
            "name": self.name,
            "description": self.description,
            "debt_characteristic_key": self.debt_characteristic_key,
            "debt_sub_characteristic_key": self.debt_sub_characteristic_key,
        }


@dataclass
class ActionPlan:
    """A named remediation plan grouping issues of one project."""

    key: str = field(default="")
    name: str = field(default="")
    project_key: str = field(default="")
    status: str = field(default="OPEN")  # OPEN or CLOSED
    deadline: Optional[datetime] = field(default=None)

    @property
    def is_open(self) -> bool:
        return self.status == "OPEN"

    def to_dict(self) -> dict[str, Any]:
        return {
            "key": self.key,
            "name": self.name,
            "project_key": self.project_key,
            "status": self.status,
            "deadline": self.deadline.isoformat() if self.deadline else None,
        }


@dataclass
class Component:
    """A project, module, directory or file known to the server."""

    id: Optional[int] = field(default=None)
    key: str = field(default="")
    name: str = field(default="")
    qualifier: str = field(default="FIL")  # TRK, BRC, DIR, FIL
    project_key: Optional[str] = field(default=None)

    @property
    def is_project(self) -> bool:
        return self.qualifier == "TRK"

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "key": self.key,
            "name": self.name,
            "qualifier": self.qualifier,
            "project_key": self.project_key,
        }


@dataclass
class Snapshot:
    """A point-in-time analysis of a component."""

    id: Optional[int] = field(default=None)
    component_key: str = field(default="")
    created_at: datetime = field(default_factory=datetime.now)
    is_last: bool = field(default=True)
    period_dates: list[Optional[datetime]] = field(default_factory=lambda: [None, None, None])

    def period_date(self, index: int) -> Optional[datetime]:
        """Return the comparison date of period ``index`` (1-based), if any."""
        if 1 <= index <= len(self.period_dates):
            return self.period_dates[index - 1]
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "component_key": self.component_key,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "is_last": self.is_last,
            "period_dates": [d.isoformat() if d else None for d in self.period_dates],
        }


@dataclass
class Comment:
    """Represents a comment on an issue."""

    key: str = field(default="")
    issue_key: str = field(default="")
    user_login: Optional[str] = field(default=None)
    text: str = field(default="")
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        """Convert comment to dictionary for JSON serialization."""
        return {
            "key": self.key,
            "issue_key": self.issue_key,
            "user_login": self.user_login,
            "text": self.text,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


@dataclass
class FieldChange:
    """One line of an issue changelog."""

    id: Optional[int] = field(default=None)
    issue_key: str = field(default="")
    user_login: Optional[str] = field(default=None)
    field_name: str = field(default="")
    old_value: Optional[str] = field(default=None)
    new_value: Optional[str] = field(default=None)
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "issue_key": self.issue_key,
            "user_login": self.user_login,
            "field": self.field_name,
            "old_value": self.old_value,
            "new_value": self.new_value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@dataclass
class Issue:
    """Represents a code-quality issue raised on a component."""

    key: str = field(default="")
    component_key: str = field(default="")
    project_key: str = field(default="")
    rule_key: RuleKey = field(default_factory=lambda: RuleKey("manual", "unknown"))
    severity: Severity = field(default=Severity.MAJOR)
    status: Status = field(default=Status.OPEN)
    resolution: Optional[str] = field(default=None)
    message: Optional[str] = field(default=None)
    line: Optional[int] = field(default=None)
    assignee: Optional[str] = field(default=None)
    reporter: Optional[str] = field(default=None)
    action_plan_key: Optional[str] = field(default=None)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    @property
    def is_manual(self) -> bool:
        return self.reporter is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert issue to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "key": self.key,
            "component": self.component_key,
            "project": self.project_key,
            "rule": str(self.rule_key),
            "severity": self.severity.value,
            "status": self.status.value,
            "message": self.message,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
        if self.resolution:
            result["resolution"] = self.resolution
        if self.line is not None:
            result["line"] = self.line
        if self.assignee:
            result["assignee"] = self.assignee
        if self.reporter:
            result["reporter"] = self.reporter
        if self.action_plan_key:
            result["action_plan"] = self.action_plan_key
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Issue":
        """Create Issue from dictionary."""
        issue = cls()
        issue.key = data.get("key", "")
        issue.component_key = data.get("component", "")
        issue.project_key = data.get("project", "")
        if data.get("rule"):
            issue.rule_key = RuleKey.parse(data["rule"])

        if "severity" in data:
            issue.severity = Severity.from_string(data["severity"])

        if "status" in data:
            issue.status = Status.from_string(data["status"])

        issue.resolution = data.get("resolution")
        issue.message = data.get("message")
        issue.line = data.get("line")
        issue.assignee = data.get("assignee")
        issue.reporter = data.get("reporter")
        issue.action_plan_key = data.get("action_plan")

        for attr in ("created_at", "updated_at"):
            value = data.get(attr)
            if value:
                setattr(issue, attr, datetime.fromisoformat(value) if isinstance(value, str) else value)

        return issue


@dataclass
class IssueFilter:
    """A saved issue search, optionally marked as a favourite."""

    id: Optional[int] = field(default=None)
    name: str = field(default="")
    user_login: Optional[str] = field(default=None)
    shared: bool = field(default=False)
    query: str = field(default="")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "user_login": self.user_login,
            "shared": self.shared,
            "query": self.query,
        }


@dataclass
class IssueResult:
    """Outcome of an issue mutation.

    On success ``value`` carries the mutated object. On failure ``errors``
    lists the messages to show and ``http_status`` the status to answer with.
    """

    ok: bool = field(default=True)
    value: Any = field(default=None)
    errors: list[str] = field(default_factory=list)
    http_status: int = field(default=200)

    @classmethod
    def success(cls, value: Any = None) -> "IssueResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, errors: Any, http_status: int = 400) -> "IssueResult":
        if isinstance(errors, str):
            errors = [errors]
        return cls(ok=False, errors=list(errors), http_status=http_status)


@dataclass
class IssueViewModel:
    """Everything the issue templates need to render one issue."""

    issue: Issue
    project: Optional[Component] = field(default=None)
    component: Optional[Component] = field(default=None)
    rule: Optional[Rule] = field(default=None)
    action_plan: Optional[ActionPlan] = field(default=None)
    comments: list[Comment] = field(default_factory=list)
    users: dict[str, Optional[User]] = field(default_factory=dict)
    snapshot: Optional[Snapshot] = field(default=None)

    def user(self, login: Optional[str]) -> Optional[User]:
        """Return the resolved user for ``login``, or None."""
        if not login:
            return None
        return self.users.get(login)

    def to_dict(self) -> dict[str, Any]:
        """Convert view model to dictionary for JSON serialization."""
        return {
            "issue": self.issue.to_dict(),
            "project": self.project.to_dict() if self.project else None,
            "component": self.component.to_dict() if self.component else None,
            "rule": self.rule.to_dict() if self.rule else None,
            "action_plan": self.action_plan.to_dict() if self.action_plan else None,
            "comments": [c.to_dict() for c in self.comments],
            "users": {
                login: user.to_dict() if user else None for login, user in self.users.items()
            },
            "snapshot": self.snapshot.to_dict() if self.snapshot else None,
        }


@dataclass
class DashboardConfiguration:
    """Period and snapshot a dashboard widget is rendered for."""

    period_index: Optional[int] = field(default=None)
    snapshot: Optional[Snapshot] = field(default=None)

    @property
    def period_date(self) -> Optional[datetime]:
        """Start of the selected comparison period, if both period and snapshot are set."""
        if self.snapshot is None or not self.period_index:
            return None
        return self.snapshot.period_date(self.period_index)
