"""
issueflow Intake Service

Ticket creation through reportTicket.

Rules:
1. The first report fixes the project start date
2. Reports are accepted only during the testing phase that follows it
3. Only reporters may file tickets
4. Anonymous reports (empty reportedBy) are BUG-only and always LOW
"""

from datetime import date
from typing import Optional

import structlog

from ..core.config import Settings, get_settings
from ..errors import IssueflowError, PermissionDenied
from ..models import (
    Priority,
    Reporter,
    Role,
    Ticket,
    TicketStatus,
    TicketType,
    TICKET_ADAPTER,
    User,
)
from ..registry import Registry

logger = structlog.get_logger(__name__)


class IntakeError(IssueflowError):
    """Raised when a ticket report is rejected."""
    pass


# Server-owned fields a report may not set
PROTECTED_FIELDS = (
    "id", "status", "createdAt", "assignedAt", "solvedAt", "assignedTo",
    "initialPriority", "forcedPriority", "comments", "history",
)


class IntakeService:

    def __init__(self, registry: Registry, settings: Optional[Settings] = None):
        self.registry = registry
        self.settings = settings or get_settings()

    def report_ticket(self, actor: User, params: dict, timestamp: date) -> Ticket:
        """
        Create a ticket from report parameters.

        Raises pydantic.ValidationError when the parameters do not describe
        a valid ticket variant.
        """
        self.registry.mark_project_start(timestamp)

        if not self.registry.in_testing_phase(timestamp, self.settings.testing_phase_days):
            raise IntakeError("Tickets can only be reported during testing phases.")

        if not isinstance(actor, Reporter):
            raise PermissionDenied(required=Role.REPORTER.value, actual=actor.role)

        data = {key: value for key, value in params.items() if key not in PROTECTED_FIELDS}

        reported_by = data.get("reportedBy")
        if reported_by is None:
            reported_by = actor.username
        data["reportedBy"] = reported_by

        # Non-string reporters are left for validation to reject
        if isinstance(reported_by, str) and not reported_by.strip():
            if data.get("type") != TicketType.BUG.value:
                raise IntakeError(
                    "Anonymous reports are only allowed for tickets of type BUG."
                )
            data["businessPriority"] = Priority.LOW.value

        data.update(
            id=self.registry.next_ticket_id(),
            status=TicketStatus.OPEN.value,
            createdAt=timestamp,
        )
        ticket = TICKET_ADAPTER.validate_python(data)
        self.registry.add_ticket(ticket)

        logger.info(
            "ticket_reported",
            ticket_id=ticket.id,
            type=ticket.type,
            anonymous=ticket.is_anonymous
        )
        return ticket
