"""Tests for built-in and plugin issue actions."""

from unittest.mock import MagicMock

import pytest

from issuepanel.actions import ActionRegistry, IssueAction, dispatch_action


class TestIssueAction:
    def test_lookup(self):
        assert IssueAction.lookup("assign") is IssueAction.ASSIGN
        assert IssueAction.lookup("link-to-jira") is None

    def test_has_form(self):
        assert IssueAction.COMMENT.has_form
        assert not IssueAction.UNPLAN.has_form


class TestActionRegistry:
    """Test plugin action registration."""

    def test_register_as_decorator(self):
        registry = ActionRegistry()

        @registry.register("link-to-jira", label="Link to JIRA")
        def link(service, issue, login):
            return None

        action = registry.get("link-to-jira")
        assert action.handler is link
        assert action.label == "Link to JIRA"
        assert "link-to-jira" in registry
        assert registry.keys() == ["link-to-jira"]

    def test_register_directly(self):
        registry = ActionRegistry()
        registry.register("b", lambda s, i, l: None)
        registry.register("a", lambda s, i, l: None)

        assert registry.keys() == ["a", "b"]
        assert registry.get("a").label == "a"

    def test_builtin_names_are_reserved(self):
        with pytest.raises(ValueError, match="Action key is reserved: comment"):
            ActionRegistry().register("comment", lambda s, i, l: None)

    def test_duplicate_key(self):
        registry = ActionRegistry()
        registry.register("tag", lambda s, i, l: None)

        with pytest.raises(ValueError, match="Action already registered: tag"):
            registry.register("tag", lambda s, i, l: None)

    def test_empty_key(self):
        with pytest.raises(ValueError, match="Action key is required"):
            ActionRegistry().register("", lambda s, i, l: None)

    def test_unknown_key(self):
        assert ActionRegistry().get("tag") is None


class TestDispatchAction:
    """Test routing of actions to service operations."""

    @pytest.fixture
    def service(self):
        return MagicMock()

    def test_comment(self, service):
        dispatch_action(service, "comment", "K", {"text": "hi"}, "bob")
        service.add_comment.assert_called_once_with("K", "hi", "bob")

    def test_assign(self, service):
        dispatch_action(service, "assign", "K", {"assignee": "carol"}, "bob")
        service.assign.assert_called_once_with("K", "carol", "bob")

    def test_assign_to_me(self, service):
        dispatch_action(service, "assign", "K", {"assignee": "carol", "me": "true"}, "bob")
        service.assign.assert_called_once_with("K", "bob", "bob")

    def test_transition(self, service):
        dispatch_action(service, "transition", "K", {"transition": "confirm"}, "bob")
        service.do_transition.assert_called_once_with("K", "confirm", "bob")

    def test_severity(self, service):
        dispatch_action(service, "severity", "K", {"severity": "MINOR"}, "bob")
        service.set_severity.assert_called_once_with("K", "MINOR", "bob")

    def test_plan_and_unplan(self, service):
        dispatch_action(service, "plan", "K", {"plan": "plan-v1"}, "bob")
        dispatch_action(service, "unplan", "K", {"plan": "plan-v1"}, "bob")

        assert service.plan.call_args_list[0].args == ("K", "plan-v1", "bob")
        assert service.plan.call_args_list[1].args == ("K", None, "bob")

    def test_other_names_go_to_plugins(self, service):
        result = dispatch_action(service, "link-to-jira", "K", {}, "bob")

        service.execute_action.assert_called_once_with("K", "link-to-jira", "bob")
        assert result is service.execute_action.return_value
