"""Tests for comment functionality."""

import pytest

from issuepanel.errors import ForbiddenError, NotFoundError

ISSUE_KEY = "ABCD-123"


class TestCommentRepository:
    """Test comment functionality in repository layer."""

    def test_comments_in_insertion_order(self, repos, seeded):
        comments = repos.issues.find_comments(ISSUE_KEY)

        assert [c.text for c in comments] == ["Looking into it", "Same in Other.java"]
        assert [c.user_login for c in comments] == ["alice", "carol"]

    def test_insert_comment(self, repos, seeded):
        comment = repos.issues.insert_comment(ISSUE_KEY, "Third", "bob")

        assert comment.key
        assert comment.issue_key == ISSUE_KEY
        assert repos.issues.find_comments(ISSUE_KEY)[-1].key == comment.key

    def test_no_comments(self, repos):
        assert repos.issues.find_comments("nope") == []

    def test_update_comment(self, repos, seeded):
        comment = repos.issues.find_comments(ISSUE_KEY)[0]
        updated = repos.issues.update_comment(comment.key, "Fixed in r42")

        assert updated.text == "Fixed in r42"
        assert updated.created_at == comment.created_at
        assert repos.issues.update_comment("nope", "text") is None

    def test_delete_comment(self, repos, seeded):
        comment = repos.issues.find_comments(ISSUE_KEY)[0]

        assert repos.issues.delete_comment(comment.key) is True
        assert repos.issues.find_comment(comment.key) is None
        assert repos.issues.delete_comment(comment.key) is False


class TestCommentService:
    """Test comment operations of the issue service."""

    def test_add_comment_strips_whitespace(self, service, seeded):
        result = service.add_comment(ISSUE_KEY, "  Fixed  ", "bob")

        assert result.ok
        assert result.value.text == "Fixed"
        assert result.value.user_login == "bob"

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_add_comment_empty_text(self, service, seeded, text):
        result = service.add_comment(ISSUE_KEY, text, "bob")

        assert not result.ok
        assert result.http_status == 400
        assert result.errors == ["Comment text cannot be empty"]

    def test_add_comment_missing_issue(self, service):
        result = service.add_comment("nope", "text", "bob")

        assert result.http_status == 404
        assert result.errors == ["Issue not found: nope"]

    def test_edit_own_comment(self, service, seeded):
        comment = service.issues.find_comments(ISSUE_KEY)[0]
        result = service.edit_comment(comment.key, "Done", "alice")

        assert result.ok
        assert service.find_comment(comment.key).text == "Done"

    def test_edit_other_users_comment(self, service, seeded):
        comment = service.issues.find_comments(ISSUE_KEY)[0]
        result = service.edit_comment(comment.key, "Done", "bob")

        assert result.http_status == 403
        assert service.find_comment(comment.key).text == "Looking into it"

    def test_edit_missing_comment(self, service):
        assert service.edit_comment("nope", "Done", "alice").http_status == 404

    def test_edit_with_empty_text(self, service, seeded):
        comment = service.issues.find_comments(ISSUE_KEY)[0]
        assert service.edit_comment(comment.key, " ", "alice").http_status == 400

    def test_delete_own_comment(self, service, seeded):
        comment = service.issues.find_comments(ISSUE_KEY)[1]

        deleted = service.delete_comment(comment.key, "carol")

        assert deleted.key == comment.key
        assert [c.user_login for c in service.issues.find_comments(ISSUE_KEY)] == ["alice"]

    def test_delete_other_users_comment(self, service, seeded):
        comment = service.issues.find_comments(ISSUE_KEY)[1]

        with pytest.raises(ForbiddenError, match="You can only delete your own comments"):
            service.delete_comment(comment.key, "alice")
        assert service.find_comment(comment.key) is not None

    def test_find_missing_comment(self, service):
        with pytest.raises(NotFoundError, match="Comment not found: nope"):
            service.find_comment("nope")
