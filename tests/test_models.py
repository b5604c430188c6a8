"""Tests for data models."""

import json
from datetime import datetime

import pytest

from issuepanel.models import (
    Comment,
    DashboardConfiguration,
    Issue,
    IssueResult,
    IssueViewModel,
    RuleKey,
    Severity,
    Snapshot,
    Status,
    User,
)


class TestSeverity:
    """Test Severity enum."""

    def test_from_string_valid(self):
        assert Severity.from_string("info") == Severity.INFO
        assert Severity.from_string("Major") == Severity.MAJOR
        assert Severity.from_string("BLOCKER") == Severity.BLOCKER

    def test_from_string_invalid(self):
        with pytest.raises(ValueError, match="Invalid severity"):
            Severity.from_string("urgent")

    def test_to_int_orders_by_gravity(self):
        ordered = sorted(Severity, key=lambda s: s.to_int())
        assert ordered == [
            Severity.INFO,
            Severity.MINOR,
            Severity.MAJOR,
            Severity.CRITICAL,
            Severity.BLOCKER,
        ]


class TestStatus:
    """Test Status enum."""

    def test_from_string(self):
        assert Status.from_string("reopened") == Status.REOPENED

    def test_from_string_invalid(self):
        with pytest.raises(ValueError, match="Invalid status"):
            Status.from_string("in-progress")

    def test_is_unresolved(self):
        assert Status.OPEN.is_unresolved
        assert Status.CONFIRMED.is_unresolved
        assert not Status.RESOLVED.is_unresolved
        assert not Status.CLOSED.is_unresolved


class TestRuleKey:
    """Test RuleKey parsing and canonical form."""

    def test_str_is_canonical_form(self):
        assert str(RuleKey("squid", "S1166")) == "squid:S1166"

    def test_parse(self):
        key = RuleKey.parse("checkstyle:com.puppycrawl.MagicNumber")
        assert key.repository == "checkstyle"
        assert key.rule == "com.puppycrawl.MagicNumber"

    @pytest.mark.parametrize("text", ["", "squid", ":S1166", "squid:"])
    def test_parse_invalid(self, text):
        with pytest.raises(ValueError, match="Invalid rule key"):
            RuleKey.parse(text)

    def test_is_manual(self):
        assert RuleKey("manual", "bug").is_manual
        assert not RuleKey("squid", "S1166").is_manual


class TestIssue:
    """Test Issue model."""

    def test_defaults(self):
        issue = Issue()
        assert issue.severity == Severity.MAJOR
        assert issue.status == Status.OPEN
        assert issue.assignee is None
        assert not issue.is_manual

    def test_to_dict_omits_empty_optionals(self):
        issue = Issue(key="K1", component_key="c", project_key="p", rule_key=RuleKey("squid", "S1"))
        data = issue.to_dict()

        assert data["key"] == "K1"
        assert data["rule"] == "squid:S1"
        assert "assignee" not in data
        assert "action_plan" not in data
        json.dumps(data)

    def test_from_dict(self):
        issue = Issue.from_dict(
            {
                "key": "K2",
                "component": "p:Foo.java",
                "project": "p",
                "rule": "manual:bug",
                "severity": "critical",
                "status": "confirmed",
                "reporter": "bob",
                "created_at": "2014-05-01T10:00:00",
            }
        )

        assert issue.rule_key == RuleKey("manual", "bug")
        assert issue.severity == Severity.CRITICAL
        assert issue.status == Status.CONFIRMED
        assert issue.is_manual
        assert issue.created_at == datetime(2014, 5, 1, 10, 0)


class TestIssueResult:
    """Test IssueResult helpers."""

    def test_success(self):
        result = IssueResult.success("value")
        assert result.ok
        assert result.http_status == 200
        assert result.value == "value"

    def test_failure_wraps_single_message(self):
        result = IssueResult.failure("Bad severity")
        assert not result.ok
        assert result.errors == ["Bad severity"]
        assert result.http_status == 400


class TestIssueViewModel:
    """Test IssueViewModel."""

    def test_user_lookup(self):
        alice = User(login="alice", name="Alice")
        view = IssueViewModel(issue=Issue(key="K"), users={"alice": alice, "ghost": None})

        assert view.user("alice") is alice
        assert view.user("ghost") is None
        assert view.user(None) is None

    def test_to_dict(self):
        view = IssueViewModel(
            issue=Issue(key="K"),
            comments=[Comment(key="C1", issue_key="K", user_login="alice", text="hi")],
            users={"alice": User(login="alice", name="Alice"), "ghost": None},
        )
        data = view.to_dict()

        assert data["action_plan"] is None
        assert [c["key"] for c in data["comments"]] == ["C1"]
        assert data["users"]["ghost"] is None
        assert data["users"]["alice"]["name"] == "Alice"


class TestDashboardConfiguration:
    """Test period resolution of dashboard widgets."""

    def test_period_date(self):
        start = datetime(2014, 1, 1)
        snapshot = Snapshot(component_key="c", period_dates=[None, start, None])

        assert DashboardConfiguration(period_index=2, snapshot=snapshot).period_date == start
        assert DashboardConfiguration(period_index=1, snapshot=snapshot).period_date is None
        assert DashboardConfiguration(period_index=5, snapshot=snapshot).period_date is None

    def test_period_date_without_snapshot(self):
        assert DashboardConfiguration(period_index=1).period_date is None
