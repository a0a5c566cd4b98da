"""
issueflow Ticket Lifecycle Service

The per-ticket state machine:

    OPEN --assign--> IN_PROGRESS --change--> RESOLVED --change--> CLOSED

Assignment is the only OPEN -> IN_PROGRESS edge and is gated, in order,
by role, expertise, seniority and milestone membership. Each step forward
has a matching undo.
"""

from datetime import date
from typing import Dict, FrozenSet, List, Optional

import structlog

from ..errors import IssueflowError, PermissionDenied
from ..models import (
    Developer,
    ExpertiseArea,
    HistoryAction,
    Priority,
    Role,
    Seniority,
    Ticket,
    TicketStatus,
    TicketType,
    User,
)
from ..registry import Registry
from .escalation import MilestoneEscalationService

logger = structlog.get_logger(__name__)


class AssignmentError(IssueflowError):
    """Raised when a developer may not take, release or move a ticket."""
    pass


# Which developer expertise may work a ticket of a given area.
# FULLSTACK is always accepted.
ACCEPTED_EXPERTISE: Dict[ExpertiseArea, FrozenSet[ExpertiseArea]] = {
    ExpertiseArea.FRONTEND: frozenset({ExpertiseArea.FRONTEND, ExpertiseArea.DESIGN}),
    ExpertiseArea.BACKEND: frozenset({ExpertiseArea.BACKEND}),
    ExpertiseArea.DB: frozenset({ExpertiseArea.DB, ExpertiseArea.BACKEND}),
    ExpertiseArea.DESIGN: frozenset({ExpertiseArea.DESIGN, ExpertiseArea.FRONTEND}),
    ExpertiseArea.DEVOPS: frozenset({ExpertiseArea.DEVOPS}),
}

FORWARD = {
    TicketStatus.IN_PROGRESS: TicketStatus.RESOLVED,
    TicketStatus.RESOLVED: TicketStatus.CLOSED,
}
BACKWARD = {
    TicketStatus.CLOSED: TicketStatus.RESOLVED,
    TicketStatus.RESOLVED: TicketStatus.IN_PROGRESS,
}


def accepted_expertise(area: Optional[ExpertiseArea]) -> Optional[List[str]]:
    """Sorted names of accepted expertise, or None when the ticket is unrestricted."""
    if area is None:
        return None
    accepted = set(ACCEPTED_EXPERTISE.get(area, frozenset({area})))
    accepted.add(ExpertiseArea.FULLSTACK)
    return sorted(item.value for item in accepted)


def seniority_floor(ticket: Ticket) -> Seniority:
    """Lowest seniority allowed to take the ticket (floors combine by max)."""
    floor = Seniority.JUNIOR
    if ticket.type == TicketType.FEATURE_REQUEST or ticket.priority == Priority.HIGH:
        floor = Seniority.MID
    if ticket.priority == Priority.CRITICAL:
        floor = Seniority.SENIOR
    return floor


class TicketLifecycleService:
    """
    Enforces the ticket state machine.

    Rules:
    1. assign() runs every gate in order and raises on the first failure
    2. change_status() advances exactly one step and is silent when
       the actor is not the assignee
    3. Every effective transition appends to the ticket history
    """

    def __init__(self, registry: Registry, escalation: MilestoneEscalationService):
        self.registry = registry
        self.escalation = escalation

    # =========================================================================
    # ASSIGN
    # =========================================================================

    def check_assignable(self, ticket: Ticket, actor: User) -> Developer:
        """
        Run every assignment gate without mutating anything.

        Returns the actor as a Developer when all gates pass.
        """
        if ticket.status == TicketStatus.CLOSED:
            raise AssignmentError("Cannot assign a CLOSED ticket.")

        if not isinstance(actor, Developer):
            raise PermissionDenied(required=Role.DEVELOPER.value, actual=actor.role)

        accepted = accepted_expertise(ticket.expertise_area)
        if accepted is not None and actor.expertise_area.value not in accepted:
            raise AssignmentError(
                f"Developer {actor.username} cannot assign ticket {ticket.id} "
                f"due to expertise area. Required: {', '.join(accepted)}; "
                f"Current: {actor.expertise_area.value}."
            )

        floor = seniority_floor(ticket)
        if actor.seniority.rank < floor.rank:
            required = ", ".join(s.value for s in floor.at_least())
            raise AssignmentError(
                f"Developer {actor.username} cannot assign ticket {ticket.id} "
                f"due to seniority level. Required: {required}; "
                f"Current: {actor.seniority.value}."
            )

        milestone = self.registry.milestone_for_ticket(ticket.id)
        if milestone is not None:
            if actor.username not in milestone.assigned_devs:
                raise AssignmentError(
                    f"Developer {actor.username} is not assigned to milestone "
                    f"{milestone.name}."
                )
            if self.escalation.is_blocked(milestone):
                raise AssignmentError(
                    f"Cannot assign ticket {ticket.id} from blocked milestone "
                    f"{milestone.name}."
                )

        if ticket.status != TicketStatus.OPEN:
            raise AssignmentError("Only OPEN tickets can be assigned.")

        return actor

    def can_assign(self, ticket: Ticket, actor: User) -> bool:
        """Dry run of assign(): True when every gate passes."""
        try:
            self.check_assignable(ticket, actor)
        except IssueflowError:
            return False
        return True

    def assign(self, ticket: Ticket, actor: User, timestamp: date) -> Ticket:
        developer = self.check_assignable(ticket, actor)

        ticket.status = TicketStatus.IN_PROGRESS
        ticket.assigned_to = developer.username
        ticket.assigned_at = timestamp

        ticket.record(HistoryAction.ASSIGNED, developer.username, timestamp)
        ticket.record(
            HistoryAction.STATUS_CHANGED,
            developer.username,
            timestamp,
            from_status=TicketStatus.OPEN,
            to_status=TicketStatus.IN_PROGRESS
        )

        logger.info("ticket_assigned", ticket_id=ticket.id, developer=developer.username)
        return ticket

    def undo_assign(self, ticket: Ticket, actor: User, timestamp: date) -> Ticket:
        """Release an IN_PROGRESS ticket back to OPEN."""
        if ticket.status != TicketStatus.IN_PROGRESS:
            raise AssignmentError("Only IN_PROGRESS tickets can be unassigned.")

        ticket.assigned_to = ""
        ticket.assigned_at = None
        ticket.status = TicketStatus.OPEN

        ticket.record(HistoryAction.DE_ASSIGNED, actor.username, timestamp)

        logger.info("ticket_unassigned", ticket_id=ticket.id, by=actor.username)
        return ticket

    # =========================================================================
    # STATUS
    # =========================================================================

    def change_status(self, ticket: Ticket, actor: User, timestamp: date) -> bool:
        """
        Advance one step forward.

        Returns False (and changes nothing) when the actor is not the
        assignee or there is no forward step.
        """
        if ticket.assigned_to != actor.username or ticket.is_closed:
            return False

        target = FORWARD.get(ticket.status)
        if target is None:
            return False

        return self._move(ticket, target, actor, timestamp, stamp_solved=True)

    def undo_change_status(self, ticket: Ticket, actor: User, timestamp: date) -> bool:
        """Step back once. IN_PROGRESS is never undone here (use undo_assign)."""
        if ticket.assigned_to != actor.username:
            raise AssignmentError(
                f"Ticket {ticket.id} is not assigned to developer {actor.username}."
            )

        target = BACKWARD.get(ticket.status)
        if target is None:
            return False

        return self._move(ticket, target, actor, timestamp)

    def _move(
        self,
        ticket: Ticket,
        target: TicketStatus,
        actor: User,
        timestamp: date,
        stamp_solved: bool = False
    ) -> bool:
        previous = ticket.status
        if previous == target:
            return False

        ticket.status = target
        if stamp_solved and target in (TicketStatus.RESOLVED, TicketStatus.CLOSED):
            ticket.solved_at = timestamp

        ticket.record(
            HistoryAction.STATUS_CHANGED,
            actor.username,
            timestamp,
            from_status=previous,
            to_status=target
        )

        logger.info(
            "ticket_status_changed",
            ticket_id=ticket.id,
            from_status=previous.value,
            to_status=target.value
        )
        return True
