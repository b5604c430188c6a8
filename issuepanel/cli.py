"""Command-line interface for the issue panel."""

import argparse
import json
import logging
import sqlite3
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from issuepanel.assembler import IssueViewAssembler
from issuepanel.config import Config, configure_logging
from issuepanel.errors import IssuePanelError, ValidationError
from issuepanel.models import (
    ActionPlan,
    Characteristic,
    Component,
    Issue,
    IssueFilter,
    IssueViewModel,
    Rule,
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

logger = logging.getLogger(__name__)


def _date(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


class CLI:
    """Command-line interface handler."""

    def __init__(self, db_path: Optional[str] = None) -> None:
        """Initialize CLI with repositories.

        Args:
            db_path: Optional path to database file.
        """
        self.issues = IssueRepository(db_path)
        self.components = ComponentRepository(db_path)
        self.rules = RuleRepository(db_path)
        self.action_plans = ActionPlanRepository(db_path)
        self.users = UserRepository(db_path)
        self.characteristics = CharacteristicRepository(db_path)
        self.filters = FilterRepository(db_path)
        self.service = IssueService(
            self.issues, self.users, self.action_plans, self.components, self.rules
        )
        self.assembler = IssueViewAssembler(
            self.issues, self.components, self.rules, self.action_plans, self.issues, self.users
        )

    def format_output(self, data: Any, as_json: bool = False) -> str:
        """Format output for display.

        Args:
            data: IssueViewModel, dict or anything printable.
            as_json: If True, output as JSON.
        """
        if as_json:
            if isinstance(data, IssueViewModel):
                return json.dumps(data.to_dict(), indent=2)
            return json.dumps(data, indent=2)
        if isinstance(data, IssueViewModel):
            return self._format_view(data)
        if isinstance(data, dict):
            return "\n".join(f"{key}: {value}" for key, value in data.items())
        return str(data)

    def _format_view(self, view: IssueViewModel) -> str:
        issue = view.issue
        lines = [
            f"Issue {issue.key}",
            f"  Severity: {issue.severity.value}",
            f"  Status: {issue.status.value}" + (f" ({issue.resolution})" if issue.resolution else ""),
            f"  Rule: {view.rule.name if view.rule else issue.rule_key}",
            f"  Component: {view.component.name if view.component else issue.component_key}",
            f"  Project: {view.project.name if view.project else issue.project_key}",
        ]
        if issue.message:
            lines.append(f"  Message: {issue.message}")
        if issue.line:
            lines.append(f"  Line: {issue.line}")
        if issue.assignee:
            lines.append(f"  Assignee: {self._user_name(view, issue.assignee)}")
        if issue.reporter:
            lines.append(f"  Reporter: {self._user_name(view, issue.reporter)}")
        if view.action_plan:
            lines.append(f"  Action plan: {view.action_plan.name}")
        if view.snapshot:
            lines.append(f"  Analysed: {view.snapshot.created_at.strftime('%Y-%m-%d %H:%M')}")
        if view.comments:
            lines.append("  Comments:")
            for comment in view.comments:
                author = self._user_name(view, comment.user_login)
                lines.append(f"    [{comment.created_at.strftime('%Y-%m-%d %H:%M')}] {author}: {comment.text}")
        return "\n".join(lines)

    @staticmethod
    def _user_name(view: IssueViewModel, login: Optional[str]) -> str:
        user = view.user(login)
        return user.name if user else (login or "Unknown")

    def show_issue(self, issue_key: str, as_json: bool = False) -> str:
        """Show an issue with its comments and related objects."""
        return self.format_output(self.assembler.assemble(issue_key), as_json)

    def add_comment(self, issue_key: str, text: str, login: Optional[str], as_json: bool = False) -> str:
        """Add a comment and show the refreshed issue."""
        result = self.service.add_comment(issue_key, text, login)
        if not result.ok:
            raise ValidationError(result.errors, result.http_status)
        return self.show_issue(issue_key, as_json)

    def load_fixture(self, path: str) -> dict[str, int]:
        """Load users, rules, components, issues and the rest from a JSON file.

        The whole file is loaded in one transaction: a bad entry leaves the
        database untouched.

        Returns:
            Number of loaded objects per section.

        Raises:
            ValidationError: If an entry is malformed or clashes with stored data.
        """
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValidationError(f"Fixture {path} must hold a JSON object")

        loaders = [
            ("users", self._load_user),
            ("characteristics", self._load_characteristic),
            ("rules", self._load_rule),
            ("components", self._load_component),
            ("snapshots", self._load_snapshot),
            ("action_plans", self._load_action_plan),
            ("issues", self._load_issue),
            ("comments", self._load_comment),
            ("filters", self._load_filter),
        ]
        counts: dict[str, int] = {}

        with self.issues.db.get_connection():
            for section, load in loaders:
                items = data.get(section, [])
                for index, item in enumerate(items, 1):
                    try:
                        load(dict(item))
                    except KeyError as e:
                        raise ValidationError(f"Invalid {section} entry {index}: missing field {e}") from e
                    except (TypeError, ValueError, AttributeError, sqlite3.IntegrityError) as e:
                        raise ValidationError(f"Invalid {section} entry {index}: {e}") from e
                counts[section] = len(items)

        logger.info("Loaded %s from %s", counts, path)
        return counts

    def _load_user(self, item: dict[str, Any]) -> None:
        self.users.insert(User(**item))

    def _load_characteristic(self, item: dict[str, Any]) -> None:
        self.characteristics.insert(Characteristic(**item))

    def _load_rule(self, item: dict[str, Any]) -> None:
        self.rules.insert(Rule(**item))

    def _load_component(self, item: dict[str, Any]) -> None:
        self.components.insert(Component(**item))

    def _load_snapshot(self, item: dict[str, Any]) -> None:
        self.components.insert_snapshot(
            Snapshot(
                component_key=item["component_key"],
                created_at=_date(item.get("created_at")) or datetime.now(),
                is_last=item.get("is_last", True),
                period_dates=[_date(d) for d in item.get("period_dates", [])],
            )
        )

    def _load_action_plan(self, item: dict[str, Any]) -> None:
        self.action_plans.insert(
            ActionPlan(
                key=item.get("key", ""),
                name=item["name"],
                project_key=item["project_key"],
                status=item.get("status", "OPEN"),
                deadline=_date(item.get("deadline")),
            )
        )

    def _load_issue(self, item: dict[str, Any]) -> None:
        self.issues.insert(Issue.from_dict(item))

    def _load_comment(self, item: dict[str, Any]) -> None:
        self.issues.insert_comment(item["issue_key"], item["text"], item.get("user_login"))

    def _load_filter(self, item: dict[str, Any]) -> None:
        favourite_of = item.pop("favourite_of", [])
        issue_filter = self.filters.insert(IssueFilter(**item))
        assert issue_filter.id is not None
        for login in favourite_of:
            self.filters.add_favourite(issue_filter.id, login)

    def get_info(self) -> dict[str, Any]:
        return self.issues.db.get_database_info()


def main() -> None:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="issuepanel",
        description="Issue panel of a code-quality server",
    )
    parser.add_argument("--db", type=str, default=None, help="Path to database file")
    parser.add_argument("--json", action="store_true", help="Output results in JSON format")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (default: INFO)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    web_parser = subparsers.add_parser("web", help="Run the web server")
    web_parser.add_argument("--host", type=str, default=None, help="Host to bind to")
    web_parser.add_argument("--port", type=int, default=None, help="Port to bind to")
    web_parser.add_argument("--debug", action="store_true", help="Use the Flask debug server")

    show_parser = subparsers.add_parser("show", help="Show an issue")
    show_parser.add_argument("key", help="Issue key")

    comment_parser = subparsers.add_parser("comment", help="Add a comment to an issue")
    comment_parser.add_argument("key", help="Issue key")
    comment_parser.add_argument("-t", "--text", required=True, help="Comment text")
    comment_parser.add_argument("--as", dest="login", default=None, help="Author login")

    load_parser = subparsers.add_parser("load", help="Load a JSON fixture")
    load_parser.add_argument("path", help="Path to the JSON file")

    subparsers.add_parser("info", help="Get database information")

    args = parser.parse_args()

    config = Config.from_env()
    config.override({"db": args.db, "log_level": args.log_level})
    configure_logging(config.log_level)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        if args.command == "web":
            from issuepanel.web import app, run_server

            config.override({"host": args.host, "port": args.port})
            app.config.update(config.to_flask_dict())
            run_server(host=config.host, port=config.port, debug=args.debug)
            return

        cli = CLI(config.db)
        if args.command == "show":
            output = cli.show_issue(args.key, args.json)
        elif args.command == "comment":
            output = cli.add_comment(args.key, args.text, args.login, args.json)
        elif args.command == "load":
            output = cli.format_output(cli.load_fixture(args.path), args.json)
        elif args.command == "info":
            output = cli.format_output(cli.get_info(), args.json)
        else:
            parser.print_help()
            sys.exit(1)

        print(output)

    except (IssuePanelError, ValueError, OSError) as e:
        if args.json:
            print(json.dumps({"error": str(e)}), file=sys.stderr)
        else:
            print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
