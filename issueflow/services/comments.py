"""
issueflow Comment Service

Comments on tickets, with role-scoped permissions:
- REPORTER: only on their own tickets, and not once CLOSED
- DEVELOPER / EMPLOYEE: only while they are the assignee
- MANAGER: anywhere

Anonymous tickets accept no comments at all.
"""

from datetime import date
from typing import Optional

import structlog

from ..core.config import Settings, get_settings
from ..errors import IssueflowError
from ..models import Comment, Developer, Employee, Reporter, Ticket, User

logger = structlog.get_logger(__name__)


class CommentError(IssueflowError):
    """Raised when a comment may not be added or removed."""
    pass


class CommentService:

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def check_can_comment(self, ticket: Ticket, actor: User) -> None:
        if isinstance(actor, Reporter):
            if ticket.is_closed:
                raise CommentError("Reporters cannot comment on CLOSED tickets.")
            if ticket.reported_by != actor.username:
                raise CommentError(
                    f"Reporter {actor.username} cannot comment on ticket {ticket.id}."
                )
        elif isinstance(actor, (Developer, Employee)):
            if ticket.assigned_to != actor.username:
                raise CommentError(
                    f"Ticket {ticket.id} is not assigned to the developer "
                    f"{actor.username}."
                )

    def add_comment(
        self,
        ticket: Ticket,
        actor: User,
        content: Optional[str],
        timestamp: date
    ) -> Comment:
        if ticket.is_anonymous:
            raise CommentError("Comments are not allowed on anonymous tickets.")

        minimum = self.settings.min_comment_length
        if content is None or len(content) < minimum:
            raise CommentError(f"Comment must be at least {minimum} characters long.")

        self.check_can_comment(ticket, actor)

        comment = ticket.add_comment(actor.username, content, timestamp)
        logger.info("comment_added", ticket_id=ticket.id, author=actor.username)
        return comment

    def undo_add_comment(self, ticket: Ticket, actor: User) -> Optional[Comment]:
        """Remove the actor's most recent comment. Returns None if there is none."""
        if ticket.is_anonymous:
            raise CommentError("Comments are not allowed on anonymous tickets.")

        comment = ticket.latest_comment_by(actor.username)
        if comment is None:
            return None

        # Remove by identity; equal comments from earlier are kept
        for index in range(len(ticket.comments) - 1, -1, -1):
            if ticket.comments[index] is comment:
                del ticket.comments[index]
                break

        logger.info("comment_removed", ticket_id=ticket.id, author=actor.username)
        return comment
