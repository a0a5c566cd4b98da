"""Tests for comment permissions and undo."""

from datetime import date

import pytest

from issueflow.services import CommentError

pytestmark = pytest.mark.unit

DAY = date(2025, 1, 2)
TEXT = "Still broken on staging"


class TestAddComment:

    def test_anonymous_ticket_rejected_first(self, comments, add_ticket, user):
        ticket = add_ticket(reportedBy="")
        with pytest.raises(CommentError, match="Comments are not allowed on anonymous tickets."):
            comments.add_comment(ticket, user("boss"), "short", DAY)

    def test_minimum_length(self, comments, add_ticket, user):
        ticket = add_ticket()
        with pytest.raises(CommentError, match="Comment must be at least 10 characters long."):
            comments.add_comment(ticket, user("alice"), "too short", DAY)

    def test_missing_content(self, comments, add_ticket, user):
        with pytest.raises(CommentError, match="at least 10 characters"):
            comments.add_comment(add_ticket(), user("alice"), None, DAY)

    def test_reporter_on_own_ticket(self, comments, add_ticket, user):
        ticket = add_ticket()
        comment = comments.add_comment(ticket, user("alice"), TEXT, DAY)
        assert ticket.comments == [comment]
        assert comment.author == "alice"
        assert comment.created_at == DAY

    def test_reporter_on_foreign_ticket(self, comments, add_ticket, user):
        ticket = add_ticket()
        with pytest.raises(CommentError, match="Reporter bob cannot comment on ticket 0."):
            comments.add_comment(ticket, user("bob"), TEXT, DAY)

    def test_reporter_on_closed_ticket(self, comments, add_ticket, user):
        ticket = add_ticket(status="CLOSED")
        with pytest.raises(CommentError, match="Reporters cannot comment on CLOSED tickets."):
            comments.add_comment(ticket, user("alice"), TEXT, DAY)

    def test_developer_must_be_assignee(self, comments, lifecycle, add_ticket, user):
        ticket = add_ticket()
        with pytest.raises(CommentError, match="Ticket 0 is not assigned to the developer sam."):
            comments.add_comment(ticket, user("sam"), TEXT, DAY)

        lifecycle.assign(ticket, user("sam"), DAY)
        comments.add_comment(ticket, user("sam"), TEXT, DAY)
        assert len(ticket.comments) == 1

    def test_manager_comments_anywhere(self, comments, add_ticket, user):
        ticket = add_ticket(status="CLOSED")
        comments.add_comment(ticket, user("boss"), TEXT, DAY)
        assert ticket.comments[0].author == "boss"


class TestUndoAddComment:

    def test_removes_latest_by_actor_only(self, comments, add_ticket, user):
        ticket = add_ticket()
        alice, boss = user("alice"), user("boss")
        comments.add_comment(ticket, alice, "first comment here", DAY)
        comments.add_comment(ticket, boss, "manager checking in", DAY)
        comments.add_comment(ticket, alice, "second comment here", DAY)

        removed = comments.undo_add_comment(ticket, alice)

        assert removed.content == "second comment here"
        assert [c.content for c in ticket.comments] == [
            "first comment here", "manager checking in"
        ]

    def test_identical_comments_removed_one_at_a_time(self, comments, add_ticket, user):
        ticket = add_ticket()
        alice = user("alice")
        comments.add_comment(ticket, alice, TEXT, DAY)
        comments.add_comment(ticket, alice, TEXT, DAY)

        comments.undo_add_comment(ticket, alice)
        assert len(ticket.comments) == 1

    def test_nothing_to_undo(self, comments, add_ticket, user):
        assert comments.undo_add_comment(add_ticket(), user("alice")) is None

    def test_anonymous_ticket(self, comments, add_ticket, user):
        with pytest.raises(CommentError, match="anonymous"):
            comments.undo_add_comment(add_ticket(reportedBy=""), user("alice"))
