"""Issue mutations: comment, assign, transition, severity, plan and plugin actions."""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

from issuepanel.actions import ActionRegistry
from issuepanel.errors import ForbiddenError, NotFoundError
from issuepanel.models import (
    Comment,
    FieldChange,
    Issue,
    IssueResult,
    RuleKey,
    Severity,
    Status,
)
from issuepanel.repository import (
    ActionPlanRepository,
    ComponentRepository,
    IssueRepository,
    RuleRepository,
    UserRepository,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Transition:
    """A workflow move from one of ``from_statuses`` to ``to_status``."""

    key: str
    from_statuses: frozenset
    to_status: Status
    resolution: Optional[str] = None


_UNRESOLVED = frozenset({Status.OPEN, Status.CONFIRMED, Status.REOPENED})

TRANSITIONS: dict[str, Transition] = {
    t.key: t
    for t in (
        Transition("confirm", frozenset({Status.OPEN, Status.REOPENED}), Status.CONFIRMED),
        Transition("unconfirm", frozenset({Status.CONFIRMED}), Status.REOPENED),
        Transition("resolve", _UNRESOLVED, Status.RESOLVED, "FIXED"),
        Transition("falsepositive", _UNRESOLVED, Status.RESOLVED, "FALSE-POSITIVE"),
        Transition("reopen", frozenset({Status.RESOLVED}), Status.REOPENED),
    )
}


class IssueService:
    """Applies changes to issues and reports the outcome as an IssueResult.

    Lookups that the caller asked for by key (``get_issue_by_key``,
    ``find_comment``, ``delete_comment``) raise; every other operation
    returns a failed result carrying the errors and the HTTP status to
    answer with.
    """

    def __init__(
        self,
        issues: IssueRepository,
        users: UserRepository,
        action_plans: ActionPlanRepository,
        components: ComponentRepository,
        rules: RuleRepository,
        registry: Optional[ActionRegistry] = None,
    ) -> None:
        self.issues = issues
        self.users = users
        self.action_plans = action_plans
        self.components = components
        self.rules = rules
        self.registry = registry or ActionRegistry()

    def get_issue_by_key(self, issue_key: str) -> Issue:
        """Get an issue by key.

        Raises:
            NotFoundError: If the issue does not exist.
        """
        issue = self.issues.get_by_key(issue_key)
        if issue is None:
            raise NotFoundError.for_key("Issue", issue_key)
        return issue

    def available_transitions(self, issue: Issue) -> list[Transition]:
        return [t for t in TRANSITIONS.values() if issue.status in t.from_statuses]

    def add_comment(self, issue_key: str, text: Optional[str], login: Optional[str]) -> IssueResult:
        """Add a comment to an issue."""
        if not text or not text.strip():
            return IssueResult.failure("Comment text cannot be empty")

        issue = self.issues.get_by_key(issue_key)
        if issue is None:
            return self._missing(issue_key)

        comment = self.issues.insert_comment(issue.key, text.strip(), login)
        logger.info("Comment %s added to issue %s by %s", comment.key, issue.key, login)
        return IssueResult.success(comment)

    def assign(self, issue_key: str, assignee: Optional[str], login: Optional[str]) -> IssueResult:
        """Assign an issue; an empty assignee unassigns it."""
        issue = self.issues.get_by_key(issue_key)
        if issue is None:
            return self._missing(issue_key)

        assignee = (assignee or "").strip() or None
        if assignee:
            user = self.users.find_by_login(assignee)
            if user is None or not user.active:
                return IssueResult.failure(f"Unknown user: {assignee}")

        return self._apply(issue, login, assignee=assignee)

    def do_transition(
        self, issue_key: str, transition: Optional[str], login: Optional[str]
    ) -> IssueResult:
        """Move an issue through the workflow."""
        issue = self.issues.get_by_key(issue_key)
        if issue is None:
            return self._missing(issue_key)

        move = TRANSITIONS.get(transition or "")
        if move is None or issue.status not in move.from_statuses:
            return IssueResult.failure(
                f"Transition '{transition}' is not allowed from status {issue.status.value}"
            )

        return self._apply(issue, login, status=move.to_status, resolution=move.resolution)

    def set_severity(
        self, issue_key: str, severity: Optional[str], login: Optional[str]
    ) -> IssueResult:
        """Change the severity of an issue."""
        issue = self.issues.get_by_key(issue_key)
        if issue is None:
            return self._missing(issue_key)

        try:
            new_severity = Severity.from_string(severity or "")
        except ValueError as e:
            return IssueResult.failure(str(e))

        return self._apply(issue, login, severity=new_severity)

    def plan(self, issue_key: str, plan_key: Optional[str], login: Optional[str]) -> IssueResult:
        """Attach an issue to an action plan, or detach it when ``plan_key`` is empty."""
        issue = self.issues.get_by_key(issue_key)
        if issue is None:
            return self._missing(issue_key)

        if not plan_key:
            return self._apply(issue, login, action_plan_key=None)

        action_plan = self.action_plans.find_by_key(plan_key)
        if action_plan is None:
            return IssueResult.failure(f"Unknown action plan: {plan_key}")
        if action_plan.project_key != issue.project_key:
            return IssueResult.failure(
                f"Action plan {action_plan.name} does not belong to project {issue.project_key}"
            )
        if not action_plan.is_open:
            return IssueResult.failure(f"Action plan {action_plan.name} is closed")

        return self._apply(issue, login, action_plan_key=action_plan.key)

    def execute_action(self, issue_key: str, action_key: str, login: Optional[str]) -> IssueResult:
        """Run an action contributed by a plugin."""
        plugin_action = self.registry.get(action_key)
        if plugin_action is None:
            return IssueResult.failure(f"Unknown action: {action_key}")

        issue = self.issues.get_by_key(issue_key)
        if issue is None:
            return self._missing(issue_key)

        logger.info("Executing action %s on issue %s for %s", action_key, issue.key, login)
        return plugin_action.handler(self, issue, login)

    def create(self, params: Mapping[str, Any], login: Optional[str]) -> IssueResult:
        """Create a manual issue.

        ``params`` holds ``component`` (key or numeric id), ``rule`` (a manual
        rule key), and optionally ``message``, ``line`` and ``severity``.
        """
        errors: list[str] = []

        component_ref = str(params.get("component") or "").strip()
        component = None
        if component_ref.isdigit():
            component = self.components.find_by_id(int(component_ref))
        elif component_ref:
            component = self.components.find_by_key(component_ref)
        if component is None:
            errors.append(f"Unknown component: {component_ref}" if component_ref else "Component is required")

        rule_ref = str(params.get("rule") or "").strip()
        rule = self.rules.find_by_key(rule_ref) if rule_ref else None
        if rule is None:
            errors.append(f"Unknown rule: {rule_ref}" if rule_ref else "Rule is required")
        elif not RuleKey.parse(rule.key).is_manual:
            errors.append(f"Issues can only be created on manual rules: {rule.key}")

        severity = Severity.MAJOR
        if params.get("severity"):
            try:
                severity = Severity.from_string(params["severity"])
            except ValueError as e:
                errors.append(str(e))

        line = None
        if params.get("line") not in (None, ""):
            try:
                line = int(params["line"])
            except (TypeError, ValueError):
                line = 0
            if line <= 0:
                errors.append(f"Line must be a positive integer: {params['line']}")

        if errors:
            return IssueResult.failure(errors)

        assert component is not None and rule is not None
        issue = Issue(
            component_key=component.key,
            project_key=component.project_key or component.key,
            rule_key=RuleKey.parse(rule.key),
            severity=severity,
            message=(params.get("message") or "").strip() or None,
            line=line,
            reporter=login,
        )
        created = self.issues.insert(issue)
        logger.info("Manual issue %s created on %s by %s", created.key, component.key, login)
        return IssueResult.success(created)

    def find_comment(self, comment_key: str) -> Comment:
        """Get a comment by key.

        Raises:
            NotFoundError: If the comment does not exist.
        """
        comment = self.issues.find_comment(comment_key)
        if comment is None:
            raise NotFoundError.for_key("Comment", comment_key)
        return comment

    def edit_comment(self, comment_key: str, text: Optional[str], login: Optional[str]) -> IssueResult:
        """Replace the text of a comment written by ``login``."""
        comment = self.issues.find_comment(comment_key)
        if comment is None:
            return IssueResult.failure(f"Comment not found: {comment_key}", http_status=404)
        if comment.user_login != login:
            return IssueResult.failure("You can only edit your own comments", http_status=403)
        if not text or not text.strip():
            return IssueResult.failure("Comment text cannot be empty")

        updated = self.issues.update_comment(comment_key, text.strip())
        logger.info("Comment %s edited by %s", comment_key, login)
        return IssueResult.success(updated)

    def delete_comment(self, comment_key: str, login: Optional[str]) -> Comment:
        """Delete a comment written by ``login`` and return it.

        Raises:
            NotFoundError: If the comment does not exist.
            ForbiddenError: If ``login`` is not the author.
        """
        comment = self.find_comment(comment_key)
        if comment.user_login != login:
            raise ForbiddenError("You can only delete your own comments")

        self.issues.delete_comment(comment_key)
        logger.info("Comment %s deleted by %s", comment_key, login)
        return comment

    def changelog(self, issue: Issue) -> list[FieldChange]:
        return self.issues.find_changes(issue.key)

    def _apply(self, issue: Issue, login: Optional[str], **updates: Any) -> IssueResult:
        """Persist the changed fields of ``updates`` and record them in the changelog."""
        changes: list[FieldChange] = []
        changed: dict[str, Any] = {}
        for name, value in updates.items():
            old = getattr(issue, name)
            if _as_text(old) == _as_text(value):
                continue
            changed[name] = value
            changes.append(
                FieldChange(
                    issue_key=issue.key,
                    user_login=login,
                    field_name=name,
                    old_value=_as_text(old),
                    new_value=_as_text(value),
                )
            )

        if not changed:
            return IssueResult.success(issue)

        updated = self.issues.update(issue.key, **changed)
        self.issues.insert_changes(changes)
        logger.info(
            "Issue %s updated by %s: %s", issue.key, login, ", ".join(c.field_name for c in changes)
        )
        return IssueResult.success(updated)

    def _missing(self, issue_key: str) -> IssueResult:
        logger.warning("Issue not found: %s", issue_key)
        return IssueResult.failure(f"Issue not found: {issue_key}", http_status=404)


def _as_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (Severity, Status)):
        return value.value
    return str(value)
