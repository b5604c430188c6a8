"""Assembles the view model rendered by the issue templates."""

import logging
from typing import Any, Callable, Optional

from issuepanel.errors import NotFoundError
from issuepanel.models import IssueViewModel, User

logger = logging.getLogger(__name__)


class IssueViewAssembler:
    """Collects an issue and everything shown next to it.

    Collaborators are passed in rather than looked up so the assembler can be
    exercised against fakes:

    - ``issues``: ``get_by_key(key)``
    - ``components``: ``find_by_key(key)`` and ``last_snapshot(component_key)``
    - ``rules``: ``find_by_key(key)``
    - ``action_plans``: ``find_by_key(key)``
    - ``comments``: ``find_comments(issue_key)``
    - ``users``: ``find_by_login(login)``

    Only the issue lookup is fatal. Any other lookup that comes back empty, or
    raises NotFoundError, leaves its field as None.
    """

    def __init__(
        self,
        issues: Any,
        components: Any,
        rules: Any,
        action_plans: Any,
        comments: Any,
        users: Any,
    ) -> None:
        self.issues = issues
        self.components = components
        self.rules = rules
        self.action_plans = action_plans
        self.comments = comments
        self.users = users

    def assemble(self, issue_key: str) -> IssueViewModel:
        """Build the view model of one issue.

        Raises:
            NotFoundError: If no issue has this key.
        """
        issue = self.issues.get_by_key(issue_key)
        if issue is None:
            raise NotFoundError.for_key("Issue", issue_key)

        view = IssueViewModel(issue=issue)
        view.project = _best_effort(self.components.find_by_key, issue.project_key)
        view.component = _best_effort(self.components.find_by_key, issue.component_key)
        view.rule = _best_effort(self.rules.find_by_key, str(issue.rule_key))
        if issue.action_plan_key:
            view.action_plan = _best_effort(self.action_plans.find_by_key, issue.action_plan_key)
        view.comments = list(self.comments.find_comments(issue_key))

        self._add_user(issue.assignee, view.users)
        self._add_user(issue.reporter, view.users)
        for comment in view.comments:
            self._add_user(comment.user_login, view.users)

        if view.component is not None:
            view.snapshot = _best_effort(self.components.last_snapshot, view.component.key)

        return view

    def _add_user(self, login: Optional[str], users_by_login: dict[str, Optional[User]]) -> None:
        if login and login not in users_by_login:
            users_by_login[login] = _best_effort(self.users.find_by_login, login)


def _best_effort(lookup: Callable[[Any], Any], key: Any) -> Any:
    try:
        found = lookup(key)
    except NotFoundError:
        found = None
    if found is None:
        logger.debug("%s(%r) found nothing", getattr(lookup, "__name__", "lookup"), key)
    return found
