"""Issue actions: the built-in set plus actions contributed by plugins."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional

from issuepanel.models import Issue, IssueResult

if TYPE_CHECKING:
    from issuepanel.service import IssueService

logger = logging.getLogger(__name__)

ActionHandler = Callable[["IssueService", Issue, Optional[str]], IssueResult]


class IssueAction(Enum):
    """Actions built into the issue panel."""

    COMMENT = "comment"
    ASSIGN = "assign"
    TRANSITION = "transition"
    SEVERITY = "severity"
    PLAN = "plan"
    UNPLAN = "unplan"

    @classmethod
    def lookup(cls, name: str) -> Optional["IssueAction"]:
        """Return the built-in action called ``name``, or None."""
        try:
            return cls(name)
        except ValueError:
            return None

    @property
    def has_form(self) -> bool:
        return self is not IssueAction.UNPLAN


@dataclass(frozen=True)
class PluginAction:
    key: str
    handler: ActionHandler
    label: str


class ActionRegistry:
    """Actions registered by plugins, looked up by key.

    Example:
        registry = ActionRegistry()

        @registry.register("link-to-jira", label="Link to JIRA")
        def link(service, issue, login):
            ...
    """

    def __init__(self) -> None:
        self._actions: dict[str, PluginAction] = {}

    def register(
        self, key: str, handler: Optional[ActionHandler] = None, label: Optional[str] = None
    ) -> Any:
        """Register ``handler`` under ``key``; without a handler, acts as a decorator.

        Raises:
            ValueError: If ``key`` is empty, names a built-in action or is taken.
        """
        if not key:
            raise ValueError("Action key is required")
        if IssueAction.lookup(key) is not None:
            raise ValueError(f"Action key is reserved: {key}")
        if key in self:
            raise ValueError(f"Action already registered: {key}")

        def decorator(func: ActionHandler) -> ActionHandler:
            self._actions[key] = PluginAction(key=key, handler=func, label=label or key)
            logger.debug("Registered issue action %s", key)
            return func

        if handler is not None:
            return decorator(handler)
        return decorator

    def get(self, key: str) -> Optional[PluginAction]:
        return self._actions.get(key)

    def keys(self) -> list[str]:
        return sorted(self._actions)

    def __contains__(self, key: object) -> bool:
        return key in self._actions


def dispatch_action(
    service: "IssueService",
    action: str,
    issue_key: str,
    params: Mapping[str, Any],
    login: Optional[str],
) -> IssueResult:
    """Execute ``action`` on an issue.

    Built-in actions read their arguments from ``params``; any other name is
    handed to the plugin registry through the service.
    """
    builtin = IssueAction.lookup(action)

    if builtin is IssueAction.COMMENT:
        return service.add_comment(issue_key, params.get("text"), login)
    if builtin is IssueAction.ASSIGN:
        assignee = login if params.get("me") == "true" else params.get("assignee")
        return service.assign(issue_key, assignee, login)
    if builtin is IssueAction.TRANSITION:
        return service.do_transition(issue_key, params.get("transition"), login)
    if builtin is IssueAction.SEVERITY:
        return service.set_severity(issue_key, params.get("severity"), login)
    if builtin is IssueAction.PLAN:
        return service.plan(issue_key, params.get("plan"), login)
    if builtin is IssueAction.UNPLAN:
        return service.plan(issue_key, None, login)

    return service.execute_action(issue_key, action, login)
