"""
issueflow Report Service

Aggregate reports built on the metric visitors:
- Ticket risk, customer impact: over active tickets (OPEN, IN_PROGRESS)
- Resolution efficiency: over completed tickets (RESOLVED, CLOSED)
- Performance: per subordinate developer, last calendar month
- App stability: risk and impact combined into one verdict

Only the performance report writes anything back (developer scores, and
the forced priority of the tickets it scores).
"""

from datetime import date
from typing import Dict, List, Optional, Tuple

import structlog

from ..core.config import Settings, get_settings
from ..errors import PermissionDenied
from ..models import (
    Developer,
    Manager,
    Priority,
    Role,
    Ticket,
    User,
)
from ..models.results import (
    AppStabilityReport,
    CustomerImpactReport,
    PerformanceEntry,
    ResolutionEfficiencyReport,
    TicketRiskReport,
)
from ..registry import Registry
from .metrics import (
    CustomerImpactVisitor,
    PerformanceStatsVisitor,
    ResolutionEfficiencyVisitor,
    TicketRiskVisitor,
    round2,
)

logger = structlog.get_logger(__name__)


STABLE = "STABLE"
PARTIALLY_STABLE = "PARTIALLY STABLE"
UNSTABLE = "UNSTABLE"

STABILITY_IMPACT_THRESHOLD = 50.0


def previous_month(day: date) -> Tuple[int, int]:
    """(year, month) of the calendar month before `day`."""
    if day.month == 1:
        return day.year - 1, 12
    return day.year, day.month - 1


def counts_by_priority(tickets: List[Ticket]) -> Dict[str, int]:
    counts = {p.value: 0 for p in Priority}
    for ticket in tickets:
        counts[ticket.priority.value] += 1
    return counts


class ReportService:

    def __init__(self, registry: Registry, settings: Optional[Settings] = None):
        self.registry = registry
        self.settings = settings or get_settings()

    # =========================================================================
    # POPULATIONS
    # =========================================================================

    def active_tickets(self) -> List[Ticket]:
        return [t for t in self.registry.all_tickets() if t.is_active]

    def completed_tickets(self) -> List[Ticket]:
        return [t for t in self.registry.all_tickets() if t.is_completed]

    # =========================================================================
    # TICKET REPORTS
    # =========================================================================

    def ticket_risk(self) -> TicketRiskReport:
        tickets = self.active_tickets()
        visitor = TicketRiskVisitor().visit_all(tickets)
        return TicketRiskReport(
            total_tickets=len(tickets),
            tickets_by_type=visitor.counts_by_type(),
            tickets_by_priority=counts_by_priority(tickets),
            risk_by_type=visitor.qualifiers()
        )

    def customer_impact(self) -> CustomerImpactReport:
        tickets = self.active_tickets()
        visitor = CustomerImpactVisitor().visit_all(tickets)
        return CustomerImpactReport(
            total_tickets=len(tickets),
            tickets_by_type=visitor.counts_by_type(),
            tickets_by_priority=counts_by_priority(tickets),
            customer_impact_by_type=visitor.averages()
        )

    def resolution_efficiency(self) -> ResolutionEfficiencyReport:
        tickets = self.completed_tickets()
        visitor = ResolutionEfficiencyVisitor().visit_all(tickets)
        return ResolutionEfficiencyReport(
            total_tickets=len(tickets),
            tickets_by_type=visitor.counts_by_type(),
            tickets_by_priority=counts_by_priority(tickets),
            efficiency_by_type=visitor.averages()
        )

    def app_stability(self) -> AppStabilityReport:
        """
        UNSTABLE if any type is SIGNIFICANT or MAJOR risk.
        STABLE if nothing is active, or every risk is NEGLIGIBLE and every
        impact is below 50. PARTIALLY STABLE otherwise.
        """
        tickets = self.active_tickets()
        risk = TicketRiskVisitor().visit_all(tickets)
        impact = CustomerImpactVisitor().visit_all(tickets)

        risk_by_type = risk.qualifiers()
        impact_by_type = impact.averages()

        if not tickets:
            verdict = STABLE
        elif any(r in ("SIGNIFICANT", "MAJOR") for r in risk_by_type.values()):
            verdict = UNSTABLE
        elif (
            all(r == "NEGLIGIBLE" for r in risk_by_type.values())
            and all(i < STABILITY_IMPACT_THRESHOLD for i in impact_by_type.values())
        ):
            verdict = STABLE
        else:
            verdict = PARTIALLY_STABLE

        return AppStabilityReport(
            total_open_tickets=len(tickets),
            open_tickets_by_type=risk.counts_by_type(),
            open_tickets_by_priority=counts_by_priority(tickets),
            risk_by_type=risk_by_type,
            impact_by_type=impact_by_type,
            app_stability=verdict
        )

    # =========================================================================
    # PERFORMANCE
    # =========================================================================

    def tickets_closed_last_month(self, developer: Developer, day: date) -> List[Ticket]:
        year, month = previous_month(day)
        return [
            t for t in self.registry.all_tickets()
            if t.is_closed
            and t.assigned_to == developer.username
            and t.solved_at is not None
            and (t.solved_at.year, t.solved_at.month) == (year, month)
        ]

    def reforce_priority(self, ticket: Ticket) -> None:
        """
        Recompute forced priority from the ticket's own active span.

        Independent of the daily escalation hook; whichever of the two
        writes last wins.
        """
        if ticket.initial_priority == Priority.LOW:
            return
        if self.registry.milestone_for_ticket(ticket.id) is None:
            return

        closed = ticket.closed_dates()
        end = closed[0] if closed else ticket.solved_at
        if end is None:
            return

        bumps = (end - ticket.created_at).days // self.settings.bump_interval_days
        if bumps > 0:
            ticket.force_priority(ticket.initial_priority.bump(bumps))

    def performance(self, actor: User, day: date) -> List[PerformanceEntry]:
        if not isinstance(actor, Manager):
            raise PermissionDenied(required=Role.MANAGER.value, actual=actor.role)

        team = []
        for username in actor.subordinates:
            user = self.registry.find_user(username)
            if isinstance(user, Developer):
                team.append(user)
        team.sort(key=lambda d: d.username)

        entries = []
        for developer in team:
            tickets = self.tickets_closed_last_month(developer, day)
            for ticket in tickets:
                self.reforce_priority(ticket)

            stats = PerformanceStatsVisitor().visit_all(tickets)
            score = stats.score(developer.seniority)
            developer.performance_score = score

            entries.append(PerformanceEntry(
                username=developer.username,
                closed_tickets=stats.closed_count,
                average_resolution_time=round2(stats.average_resolution_time),
                performance_score=score,
                seniority=developer.seniority.value
            ))

        logger.info("performance_report_generated", manager=actor.username, developers=len(entries))
        return entries
