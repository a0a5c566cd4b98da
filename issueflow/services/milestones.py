"""
issueflow Milestone Service

Milestone creation and the per-milestone overview shown by
viewMilestones.
"""

from datetime import date
from typing import List, Optional

import structlog

from ..errors import IssueflowError, PermissionDenied
from ..models import (
    Developer,
    HistoryAction,
    Manager,
    Milestone,
    Role,
    User,
)
from ..models.results import MilestoneView, Repartition
from ..registry import Registry
from .escalation import MilestoneEscalationService
from .metrics import round2

logger = structlog.get_logger(__name__)


class MilestoneError(IssueflowError):
    """Raised when a milestone cannot be created."""
    pass


NEW_MILESTONE = "New milestone {name} has been created with due date {due}."


class MilestoneService:

    def __init__(self, registry: Registry, escalation: MilestoneEscalationService):
        self.registry = registry
        self.escalation = escalation

    # =========================================================================
    # CREATE
    # =========================================================================

    def create_milestone(self, actor: User, params: dict, timestamp: date) -> Milestone:
        """
        Create a milestone owned by a manager.

        Each member ticket gets an ADDED_TO_MILESTONE entry and every
        assigned developer is notified.
        """
        if not isinstance(actor, Manager):
            raise PermissionDenied(required=Role.MANAGER.value, actual=actor.role)

        milestone = Milestone.model_validate({
            "name": params.get("name") or params.get("milestoneName"),
            "createdBy": actor.username,
            "createdAt": timestamp,
            "dueDate": params.get("dueDate"),
            "blockingFor": params.get("blockingFor") or [],
            "tickets": params.get("tickets") or [],
            "assignedDevs": params.get("assignedDevs") or [],
        })

        if self.registry.find_milestone(milestone.name) is not None:
            raise MilestoneError(f"Milestone {milestone.name} already exists.")

        for ticket_id in milestone.ticket_ids:
            owner = self.registry.milestone_for_ticket(ticket_id)
            if owner is not None:
                raise MilestoneError(
                    f"Tickets {ticket_id} already assigned to milestone {owner.name}."
                )

        self.registry.add_milestone(milestone)

        for ticket_id in milestone.ticket_ids:
            ticket = self.registry.find_ticket(ticket_id)
            if ticket is not None:
                ticket.record(
                    HistoryAction.ADDED_TO_MILESTONE,
                    actor.username,
                    timestamp,
                    milestone=milestone.name
                )

        message = NEW_MILESTONE.format(
            name=milestone.name, due=milestone.due_date.isoformat()
        )
        for username in milestone.assigned_devs:
            user = self.registry.find_user(username)
            if isinstance(user, Developer):
                user.notify(message)

        logger.info(
            "milestone_created",
            milestone=milestone.name,
            tickets=len(milestone.ticket_ids),
            developers=len(milestone.assigned_devs)
        )
        return milestone

    # =========================================================================
    # OVERVIEW
    # =========================================================================

    def visible_to(self, actor: User) -> List[Milestone]:
        """Managers see what they created; everyone else what they work on."""
        if isinstance(actor, Manager):
            visible = [
                m for m in self.registry.all_milestones()
                if m.created_by == actor.username
            ]
        else:
            visible = [
                m for m in self.registry.all_milestones()
                if actor.username in m.assigned_devs
            ]
        return sorted(visible, key=lambda m: (m.due_date, m.name))

    def completion_date(self, milestone: Milestone) -> Optional[date]:
        """Latest CLOSED transition among the milestone's tickets."""
        latest = None
        for ticket in self.escalation.members_of(milestone):
            for closed_on in ticket.closed_dates():
                if latest is None or closed_on > latest:
                    latest = closed_on
        return latest

    def overview(self, milestone: Milestone, current_day: date) -> MilestoneView:
        open_ids = []
        closed_ids = []
        for ticket in self.escalation.members_of(milestone):
            if ticket.is_closed:
                closed_ids.append(ticket.id)
            else:
                open_ids.append(ticket.id)

        completed = bool(milestone.ticket_ids) and not open_ids
        status = "COMPLETED" if completed else "ACTIVE"

        reference_day = current_day
        if completed:
            reference_day = self.completion_date(milestone) or current_day

        delta = (milestone.due_date - reference_day).days
        if delta >= 0:
            days_until_due, overdue_by = delta + 1, 0
        else:
            days_until_due, overdue_by = 0, -delta + 1

        completion = 0.0
        if milestone.ticket_ids:
            completion = round2(len(closed_ids) / len(milestone.ticket_ids))

        return MilestoneView(
            name=milestone.name,
            blocking_for=list(milestone.blocking_for),
            due_date=milestone.due_date.isoformat(),
            created_at=milestone.created_at.isoformat(),
            tickets=list(milestone.ticket_ids),
            assigned_devs=list(milestone.assigned_devs),
            created_by=milestone.created_by,
            status=status,
            is_blocked=self.escalation.is_blocked(milestone),
            days_until_due=days_until_due,
            overdue_by=overdue_by,
            open_tickets=open_ids,
            closed_tickets=closed_ids,
            completion_percentage=completion,
            repartition=self.repartition(milestone)
        )

    def repartition(self, milestone: Milestone) -> List[Repartition]:
        """Tickets per assigned developer, lightest load first."""
        members = self.escalation.members_of(milestone)
        rows = [
            Repartition(
                developer=developer,
                assigned_tickets=[t.id for t in members if t.assigned_to == developer]
            )
            for developer in milestone.assigned_devs
        ]
        return sorted(rows, key=lambda row: (len(row.assigned_tickets), row.developer))
