"""Tests for CLI module."""

import json
import sys

import pytest

from issuepanel.cli import CLI, main
from issuepanel.errors import NotFoundError, ValidationError

ISSUE_KEY = "ABCD-123"


class TestCLI:
    """Test CLI class."""

    @pytest.fixture
    def cli(self, temp_db):
        return CLI(temp_db)

    def test_show_issue(self, cli, seeded):
        output = cli.show_issue(ISSUE_KEY)

        assert f"Issue {ISSUE_KEY}" in output
        assert "Severity: MAJOR" in output
        assert "Component: Main.java" in output
        assert "Assignee: Alice" in output
        assert "Action plan: v1.0" in output
        assert "Carol: Same in Other.java" in output

    def test_show_issue_json(self, cli, seeded):
        data = json.loads(cli.show_issue(ISSUE_KEY, as_json=True))

        assert data["issue"]["key"] == ISSUE_KEY
        assert data["project"]["name"] == "Example App"
        assert sorted(data["users"]) == ["alice", "bob", "carol"]
        assert len(data["comments"]) == 2

    def test_show_missing_issue(self, cli):
        with pytest.raises(NotFoundError):
            cli.show_issue("nope")

    def test_add_comment(self, cli, seeded):
        output = cli.add_comment(ISSUE_KEY, "From the shell", "bob")
        assert "Bob: From the shell" in output

    def test_add_empty_comment(self, cli, seeded):
        with pytest.raises(ValidationError, match="Comment text cannot be empty") as exc_info:
            cli.add_comment(ISSUE_KEY, " ", "bob")
        assert exc_info.value.http_status == 400

    def test_load_fixture(self, cli, tmp_path):
        fixture = tmp_path / "fixture.json"
        fixture.write_text(
            json.dumps(
                {
                    "users": [{"login": "alice", "name": "Alice"}],
                    "rules": [{"key": "manual:bug", "name": "Bug"}],
                    "components": [
                        {"key": "p", "name": "Project", "qualifier": "TRK"},
                        {"key": "p:Foo.java", "name": "Foo.java", "qualifier": "FIL", "project_key": "p"},
                    ],
                    "snapshots": [{"component_key": "p:Foo.java", "period_dates": ["2014-01-01T00:00:00"]}],
                    "action_plans": [{"key": "v1", "name": "v1", "project_key": "p"}],
                    "issues": [
                        {
                            "key": "K1",
                            "component": "p:Foo.java",
                            "project": "p",
                            "rule": "manual:bug",
                            "assignee": "alice",
                        }
                    ],
                    "comments": [{"issue_key": "K1", "text": "hello", "user_login": "alice"}],
                    "filters": [{"name": "Mine", "user_login": "alice", "favourite_of": ["alice"]}],
                }
            ),
            encoding="utf-8",
        )

        counts = cli.load_fixture(str(fixture))

        assert counts["issues"] == 1
        assert counts["characteristics"] == 0
        assert [f.name for f in cli.filters.find_favourites("alice")] == ["Mine"]
        view = cli.assembler.assemble("K1")
        assert view.component.name == "Foo.java"
        assert view.snapshot is not None
        assert view.user("alice").name == "Alice"

    def test_load_fixture_bad_entry_loads_nothing(self, cli, tmp_path):
        fixture = tmp_path / "bad.json"
        fixture.write_text(
            json.dumps(
                {
                    "users": [{"login": "zed", "name": "Zed"}],
                    "rules": [{"key": "manual:bug", "name": "Bug", "severity": "MAJOR"}],
                }
            ),
            encoding="utf-8",
        )

        with pytest.raises(ValidationError, match="Invalid rules entry 1"):
            cli.load_fixture(str(fixture))

        assert cli.users.find_by_login("zed") is None

    def test_load_fixture_missing_field(self, cli, tmp_path):
        fixture = tmp_path / "bad.json"
        fixture.write_text(json.dumps({"action_plans": [{"key": "v1", "project_key": "p"}]}), encoding="utf-8")

        with pytest.raises(ValidationError, match="Invalid action_plans entry 1: missing field 'name'"):
            cli.load_fixture(str(fixture))

    def test_load_fixture_duplicate_key(self, cli, seeded, tmp_path):
        fixture = tmp_path / "dup.json"
        fixture.write_text(
            json.dumps({"users": [{"login": "eve"}, {"login": "alice", "name": "Again"}]}),
            encoding="utf-8",
        )

        with pytest.raises(ValidationError, match="Invalid users entry 2"):
            cli.load_fixture(str(fixture))

        assert cli.users.find_by_login("eve") is None
        assert cli.users.find_by_login("alice").name == "Alice"

    def test_get_info(self, cli, seeded):
        info = cli.get_info()

        assert info["issues_count"] == 1
        assert info["issue_comments_count"] == 2

    def test_format_output_dict(self, cli):
        assert cli.format_output({"a": 1}) == "a: 1"
        assert json.loads(cli.format_output({"a": 1}, as_json=True)) == {"a": 1}


class TestMain:
    """Test the argument parsing entry point."""

    def test_show(self, temp_db, seeded, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["issuepanel", "--db", temp_db, "show", ISSUE_KEY])

        main()

        assert f"Issue {ISSUE_KEY}" in capsys.readouterr().out

    def test_comment_json(self, temp_db, seeded, monkeypatch, capsys):
        monkeypatch.setattr(
            sys, "argv",
            ["issuepanel", "--db", temp_db, "--json", "comment", ISSUE_KEY, "-t", "Done", "--as", "carol"],
        )

        main()

        data = json.loads(capsys.readouterr().out)
        assert data["comments"][-1]["text"] == "Done"

    def test_missing_issue_exits(self, temp_db, seeded, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["issuepanel", "--db", temp_db, "show", "nope"])

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1
        assert "Error: Issue not found: nope" in capsys.readouterr().err

    def test_no_command(self, monkeypatch):
        monkeypatch.setattr(sys, "argv", ["issuepanel"])

        with pytest.raises(SystemExit):
            main()

    def test_comment_on_missing_issue_exits(self, temp_db, monkeypatch, capsys):
        monkeypatch.setattr(sys, "argv", ["issuepanel", "--db", temp_db, "comment", "nope", "-t", "x"])

        with pytest.raises(SystemExit):
            main()

        assert "Issue not found: nope" in capsys.readouterr().err

    def test_load_bad_fixture_exits(self, temp_db, tmp_path, monkeypatch, capsys):
        fixture = tmp_path / "bad.json"
        fixture.write_text(json.dumps({"rules": [{"key": "manual:bug", "oops": 1}]}), encoding="utf-8")
        monkeypatch.setattr(sys, "argv", ["issuepanel", "--db", temp_db, "load", str(fixture)])

        with pytest.raises(SystemExit) as exc_info:
            main()

        assert exc_info.value.code == 1
        assert "Error: Invalid rules entry 1" in capsys.readouterr().err
