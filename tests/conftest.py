"""Shared fixtures: a temporary database seeded with a small project."""

import tempfile
from datetime import datetime, timedelta
from pathlib import Path
from types import SimpleNamespace

import pytest

from issuepanel.models import (
    ActionPlan,
    Characteristic,
    Component,
    Issue,
    Rule,
    RuleKey,
    Severity,
    Snapshot,
    User,
)
from issuepanel.repository import (
    ActionPlanRepository,
    CharacteristicRepository,
    ComponentRepository,
    FilterRepository,
    IssueRepository,
    RuleRepository,
    UserRepository,
)
from issuepanel.service import IssueService

PROJECT_KEY = "org.example:app"
FILE_KEY = "org.example:app:src/Main.java"
ISSUE_KEY = "ABCD-123"


@pytest.fixture
def temp_db():
    """Create a temporary database file path."""
    with tempfile.NamedTemporaryFile(suffix=".sqlite", delete=False) as f:
        path = Path(f.name)
    yield str(path)
    for suffix in ("", "-wal", "-shm"):
        Path(f"{path}{suffix}").unlink(missing_ok=True)


@pytest.fixture
def repos(temp_db):
    """All repositories over the temporary database."""
    return SimpleNamespace(
        issues=IssueRepository(temp_db),
        components=ComponentRepository(temp_db),
        rules=RuleRepository(temp_db),
        action_plans=ActionPlanRepository(temp_db),
        users=UserRepository(temp_db),
        characteristics=CharacteristicRepository(temp_db),
        filters=FilterRepository(temp_db),
    )


@pytest.fixture
def seeded(repos):
    """A project with one file, rules, users, action plans and issue ABCD-123.

    ABCD-123 is assigned to alice, reported by bob, planned in "v1.0" and has
    two comments, by alice then carol.
    """
    for login, name in (("alice", "Alice"), ("bob", "Bob"), ("carol", "Carol")):
        repos.users.insert(User(login=login, name=name, email=f"{login}@example.com"))
    repos.users.insert(User(login="dave", name="Dave", active=False))

    repos.characteristics.insert(Characteristic(key="RELIABILITY", name="Reliability"))
    repos.characteristics.insert(
        Characteristic(key="EXCEPTION_HANDLING", name="Exception handling", parent_key="RELIABILITY")
    )
    repos.rules.insert(
        Rule(
            key="squid:S1166",
            name="Exception handlers should preserve the original exception",
            description="Either log or rethrow the exception.",
            debt_characteristic_key="RELIABILITY",
            debt_sub_characteristic_key="EXCEPTION_HANDLING",
        )
    )
    repos.rules.insert(Rule(key="manual:bug", name="Bug"))

    project = repos.components.insert(Component(key=PROJECT_KEY, name="Example App", qualifier="TRK"))
    source_file = repos.components.insert(
        Component(key=FILE_KEY, name="Main.java", qualifier="FIL", project_key=PROJECT_KEY)
    )
    now = datetime.now()
    snapshot = repos.components.insert_snapshot(
        Snapshot(component_key=FILE_KEY, created_at=now, period_dates=[now - timedelta(days=30)])
    )

    plan = repos.action_plans.insert(
        ActionPlan(key="plan-v1", name="v1.0", project_key=PROJECT_KEY, deadline=now + timedelta(days=10))
    )
    closed_plan = repos.action_plans.insert(
        ActionPlan(key="plan-old", name="v0.9", project_key=PROJECT_KEY, status="CLOSED")
    )
    other_plan = repos.action_plans.insert(
        ActionPlan(key="plan-other", name="other", project_key="org.example:other")
    )

    issue = repos.issues.insert(
        Issue(
            key=ISSUE_KEY,
            component_key=FILE_KEY,
            project_key=PROJECT_KEY,
            rule_key=RuleKey("squid", "S1166"),
            severity=Severity.MAJOR,
            message="Either log or rethrow this exception",
            line=42,
            assignee="alice",
            reporter="bob",
            action_plan_key="plan-v1",
        )
    )
    repos.issues.insert_comment(ISSUE_KEY, "Looking into it", "alice")
    repos.issues.insert_comment(ISSUE_KEY, "Same in Other.java", "carol")

    return SimpleNamespace(
        project=project,
        file=source_file,
        snapshot=snapshot,
        plan=plan,
        closed_plan=closed_plan,
        other_plan=other_plan,
        issue=issue,
    )


@pytest.fixture
def service(repos):
    """An IssueService over the temporary database."""
    return IssueService(repos.issues, repos.users, repos.action_plans, repos.components, repos.rules)
