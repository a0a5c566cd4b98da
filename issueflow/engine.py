"""
issueflow Command Engine

Applies one timestamped command at a time against a Registry.

Per command:
1. Ignore everything once an app stability report came back STABLE
2. Run the daily milestone escalation hook for the command's day
3. Resolve the acting user (unknown users are a silent no-op)
4. Dispatch to the handler; workflow violations become error records
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Callable, Dict, Iterable, List, Optional

import structlog
from pydantic import ValidationError

from .core.config import Settings, get_settings
from .errors import IssueflowError
from .models import Ticket, User
from .models.results import (
    CommandResult,
    ErrorResult,
    NotificationsResult,
    ReportResult,
    SearchResult,
    ViewAssignedTicketsResult,
    ViewMilestonesResult,
    ViewTicketHistoryResult,
    ViewTicketsResult,
)
from .registry import Registry
from .services import (
    CommentService,
    IntakeService,
    MilestoneEscalationService,
    MilestoneService,
    ReportService,
    SearchFilters,
    SearchService,
    TicketLifecycleService,
    ViewService,
)
from .services.reports import STABLE

logger = structlog.get_logger(__name__)


@dataclass
class CommandContext:
    """Everything a handler needs about the command being applied."""
    command: str
    username: str
    timestamp: str
    day: date
    actor: User
    params: dict = field(default_factory=dict)

    def envelope(self) -> dict:
        return {
            "command": self.command,
            "username": self.username,
            "timestamp": self.timestamp,
        }


Handler = Callable[[CommandContext], Optional[CommandResult]]


class CommandEngine:
    """
    Single writer over the registry.

    Commands run strictly in the order they are applied; nothing here is
    safe to call concurrently.
    """

    def __init__(self, registry: Optional[Registry] = None, settings: Optional[Settings] = None):
        self.registry = registry if registry is not None else Registry()
        self.settings = settings or get_settings()

        self.escalation = MilestoneEscalationService(self.registry, self.settings)
        self.lifecycle = TicketLifecycleService(self.registry, self.escalation)
        self.comments = CommentService(self.settings)
        self.intake = IntakeService(self.registry, self.settings)
        self.milestones = MilestoneService(self.registry, self.escalation)
        self.reports = ReportService(self.registry, self.settings)
        self.search_service = SearchService(self.registry, self.lifecycle)
        self.views = ViewService(self.registry)

        self.halted = False

        self._handlers: Dict[str, Handler] = {
            "reportTicket": self._report_ticket,
            "viewTickets": self._view_tickets,
            "createMilestone": self._create_milestone,
            "viewMilestones": self._view_milestones,
            "assignTicket": self._assign_ticket,
            "undoAssignTicket": self._undo_assign_ticket,
            "viewAssignedTickets": self._view_assigned_tickets,
            "addComment": self._add_comment,
            "undoAddComment": self._undo_add_comment,
            "changeStatus": self._change_status,
            "undoChangeStatus": self._undo_change_status,
            "viewTicketHistory": self._view_ticket_history,
            "search": self._search,
            "viewNotifications": self._view_notifications,
            "generateTicketRiskReport": self._ticket_risk_report,
            "generateCustomerImpactReport": self._customer_impact_report,
            "generateResolutionEfficiencyReport": self._resolution_efficiency_report,
            "generatePerformanceReport": self._performance_report,
            "appStabilityReport": self._app_stability_report,
        }

    @property
    def commands(self) -> List[str]:
        return list(self._handlers)

    # =========================================================================
    # ENTRY POINTS
    # =========================================================================

    def apply(
        self,
        command: str,
        username: str,
        timestamp: str,
        params: Optional[dict] = None
    ) -> Optional[dict]:
        """
        Apply one command. Returns a wire-format record, or None when the
        command produces no output.
        """
        if self.halted:
            logger.debug("command_ignored_after_halt", command=command, username=username)
            return None

        handler = self._handlers.get(command)
        if handler is None:
            logger.debug("command_unknown", command=command)
            return None

        try:
            day = date.fromisoformat(timestamp)
        except (TypeError, ValueError):
            logger.warning("command_timestamp_invalid", command=command, timestamp=timestamp)
            return None

        self.escalation.apply_milestone_rules(day)

        actor = self.registry.find_user(username)
        if actor is None:
            logger.debug("command_user_unknown", command=command, username=username)
            return None

        ctx = CommandContext(
            command=command,
            username=username,
            timestamp=timestamp,
            day=day,
            actor=actor,
            params=dict(params or {})
        )

        try:
            result = handler(ctx)
        except IssueflowError as exc:
            logger.info("command_rejected", command=command, username=username, error=str(exc))
            return ErrorResult(**ctx.envelope(), error=str(exc)).to_wire()
        except ValidationError as exc:
            logger.warning(
                "command_payload_invalid",
                command=command,
                username=username,
                errors=exc.error_count()
            )
            return None

        if result is None:
            return None
        return result.to_wire()

    def run(self, commands: Iterable[dict]) -> List[dict]:
        """Apply a sequence of {command, username, timestamp, params} dicts."""
        outputs = []
        for item in commands:
            record = self.apply(
                item.get("command"),
                item.get("username"),
                item.get("timestamp"),
                item.get("params")
            )
            if record is not None:
                outputs.append(record)
        return outputs

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _ticket(self, ctx: CommandContext) -> Optional[Ticket]:
        ticket_id = ctx.params.get("ticketID")
        if not isinstance(ticket_id, int) or isinstance(ticket_id, bool):
            return None
        return self.registry.find_ticket(ticket_id)

    # =========================================================================
    # TICKET LIFECYCLE
    # =========================================================================

    def _report_ticket(self, ctx: CommandContext) -> None:
        self.intake.report_ticket(ctx.actor, ctx.params, ctx.day)

    def _assign_ticket(self, ctx: CommandContext) -> None:
        ticket = self._ticket(ctx)
        if ticket is not None:
            self.lifecycle.assign(ticket, ctx.actor, ctx.day)

    def _undo_assign_ticket(self, ctx: CommandContext) -> None:
        ticket = self._ticket(ctx)
        if ticket is not None:
            self.lifecycle.undo_assign(ticket, ctx.actor, ctx.day)

    def _change_status(self, ctx: CommandContext) -> None:
        ticket = self._ticket(ctx)
        if ticket is not None:
            self.lifecycle.change_status(ticket, ctx.actor, ctx.day)

    def _undo_change_status(self, ctx: CommandContext) -> None:
        ticket = self._ticket(ctx)
        if ticket is not None:
            self.lifecycle.undo_change_status(ticket, ctx.actor, ctx.day)

    def _add_comment(self, ctx: CommandContext) -> None:
        ticket = self._ticket(ctx)
        if ticket is not None:
            self.comments.add_comment(ticket, ctx.actor, ctx.params.get("comment"), ctx.day)

    def _undo_add_comment(self, ctx: CommandContext) -> None:
        ticket = self._ticket(ctx)
        if ticket is not None:
            self.comments.undo_add_comment(ticket, ctx.actor)

    # =========================================================================
    # MILESTONES
    # =========================================================================

    def _create_milestone(self, ctx: CommandContext) -> None:
        self.milestones.create_milestone(ctx.actor, ctx.params, ctx.day)

    def _view_milestones(self, ctx: CommandContext) -> ViewMilestonesResult:
        return ViewMilestonesResult(
            **ctx.envelope(),
            milestones=[
                self.milestones.overview(m, ctx.day)
                for m in self.milestones.visible_to(ctx.actor)
            ]
        )

    # =========================================================================
    # VIEWS & SEARCH
    # =========================================================================

    def _view_tickets(self, ctx: CommandContext) -> ViewTicketsResult:
        return ViewTicketsResult(**ctx.envelope(), tickets=self.views.view_tickets(ctx.actor))

    def _view_assigned_tickets(self, ctx: CommandContext) -> ViewAssignedTicketsResult:
        return ViewAssignedTicketsResult(
            **ctx.envelope(),
            assigned_tickets=self.views.view_assigned_tickets(ctx.actor)
        )

    def _view_ticket_history(self, ctx: CommandContext) -> ViewTicketHistoryResult:
        return ViewTicketHistoryResult(
            **ctx.envelope(),
            ticket_history=self.views.ticket_history(ctx.actor)
        )

    def _view_notifications(self, ctx: CommandContext) -> NotificationsResult:
        return NotificationsResult(
            **ctx.envelope(),
            notifications=self.views.notifications(ctx.actor)
        )

    def _search(self, ctx: CommandContext) -> SearchResult:
        filters = SearchFilters.model_validate(ctx.params.get("filters") or {})
        search_type, results = self.search_service.search(ctx.actor, filters)
        return SearchResult(**ctx.envelope(), search_type=search_type, results=results)

    # =========================================================================
    # REPORTS
    # =========================================================================

    def _ticket_risk_report(self, ctx: CommandContext) -> ReportResult:
        return ReportResult(**ctx.envelope(), report=self.reports.ticket_risk())

    def _customer_impact_report(self, ctx: CommandContext) -> ReportResult:
        return ReportResult(**ctx.envelope(), report=self.reports.customer_impact())

    def _resolution_efficiency_report(self, ctx: CommandContext) -> ReportResult:
        return ReportResult(**ctx.envelope(), report=self.reports.resolution_efficiency())

    def _performance_report(self, ctx: CommandContext) -> ReportResult:
        return ReportResult(**ctx.envelope(), report=self.reports.performance(ctx.actor, ctx.day))

    def _app_stability_report(self, ctx: CommandContext) -> ReportResult:
        report = self.reports.app_stability()
        if report.app_stability == STABLE:
            self.halted = True
            logger.info("engine_halted", reason="app_stable", timestamp=ctx.timestamp)
        return ReportResult(**ctx.envelope(), report=report)
