"""
issueflow Milestone Escalation Service

Daily priority escalation driven by the simulated calendar.

Rules per milestone, evaluated once per command day:
1. Blocked milestones are skipped entirely
2. Dependent milestone past its due date: one-shot "unblocked after
   due date" notice, all open tickets forced CRITICAL
3. Inside the critical window (daysUntilDue <= 2): all open tickets
   forced CRITICAL, one-shot "due tomorrow" notice at exactly 2
4. Otherwise: every open ticket bumped from its initial priority once
   per elapsed bump interval

Evaluation is pure. The service applies the returned outcome to the
registry, and the one-shot flags make re-running a day a no-op.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List, Optional, Tuple

import structlog

from ..core.config import Settings, get_settings
from ..models import Developer, Milestone, Priority, Ticket
from ..registry import Registry

logger = structlog.get_logger(__name__)


UNBLOCKED_AFTER_DUE = (
    "Milestone {name} was unblocked after due date. "
    "All active tickets are now CRITICAL."
)
DUE_TOMORROW = (
    "Milestone {name} is due tomorrow. "
    "All unresolved tickets are now CRITICAL."
)


@dataclass
class EscalationOutcome:
    """Deltas produced by evaluating one milestone on one day."""
    milestone: Milestone
    notifications: List[Tuple[str, str]] = field(default_factory=list)  # (developer, message)
    overrides: Dict[int, Priority] = field(default_factory=dict)        # ticket id -> forced priority

    @property
    def is_empty(self) -> bool:
        return not self.notifications and not self.overrides


def evaluate(
    milestone: Milestone,
    current_day: date,
    members: List[Ticket],
    blocked: bool,
    dependent: bool,
    bump_interval_days: int = 3,
    critical_window_days: int = 2
) -> EscalationOutcome:
    """
    Compute one day of escalation for a milestone without touching it.

    `members` are the milestone's tickets as currently stored. The
    returned milestone is a copy carrying any newly set one-shot flags.
    """
    if blocked:
        return EscalationOutcome(milestone=milestone)

    updated = milestone.model_copy(deep=True)
    outcome = EscalationOutcome(milestone=updated)
    open_members = [ticket for ticket in members if not ticket.is_closed]

    def force_all_critical():
        for ticket in open_members:
            outcome.overrides[ticket.id] = Priority.CRITICAL

    def notify_all(template: str):
        message = template.format(name=updated.name)
        for developer in updated.assigned_devs:
            outcome.notifications.append((developer, message))

    if dependent and current_day > updated.due_date and not updated.notified_unblocked_after_due:
        notify_all(UNBLOCKED_AFTER_DUE)
        updated.notified_unblocked_after_due = True
        force_all_critical()

    days_until_due = updated.days_until_due(current_day)

    if days_until_due <= critical_window_days:
        if days_until_due == critical_window_days and not updated.notified_due_tomorrow:
            notify_all(DUE_TOMORROW)
            updated.notified_due_tomorrow = True
        force_all_critical()
    else:
        bumps = (current_day - updated.created_at).days // bump_interval_days
        if bumps > 0:
            for ticket in open_members:
                outcome.overrides[ticket.id] = ticket.initial_priority.bump(bumps)

    return outcome


class MilestoneEscalationService:
    """
    Applies the daily escalation rules across every milestone.

    Also owns the blocking graph queries the lifecycle and view
    services rely on.
    """

    def __init__(self, registry: Registry, settings: Optional[Settings] = None):
        self.registry = registry
        self.settings = settings or get_settings()

    # =========================================================================
    # BLOCKING GRAPH
    # =========================================================================

    def is_active(self, milestone: Milestone) -> bool:
        """A milestone is active while any member ticket is not CLOSED."""
        for ticket_id in milestone.ticket_ids:
            ticket = self.registry.find_ticket(ticket_id)
            if ticket is not None and not ticket.is_closed:
                return True
        return False

    def blockers_of(self, milestone: Milestone) -> List[Milestone]:
        return [
            other for other in self.registry.all_milestones()
            if other.name != milestone.name and other.blocks(milestone.name)
        ]

    def is_blocked(self, milestone: Milestone) -> bool:
        return any(self.is_active(other) for other in self.blockers_of(milestone))

    def is_dependent(self, milestone: Milestone) -> bool:
        return bool(self.blockers_of(milestone))

    # =========================================================================
    # DAILY HOOK
    # =========================================================================

    def members_of(self, milestone: Milestone) -> List[Ticket]:
        members = []
        for ticket_id in milestone.ticket_ids:
            ticket = self.registry.find_ticket(ticket_id)
            if ticket is not None:
                members.append(ticket)
        return members

    def evaluate(self, milestone: Milestone, current_day: date) -> EscalationOutcome:
        return evaluate(
            milestone,
            current_day,
            members=self.members_of(milestone),
            blocked=self.is_blocked(milestone),
            dependent=self.is_dependent(milestone),
            bump_interval_days=self.settings.bump_interval_days,
            critical_window_days=self.settings.critical_window_days
        )

    def apply(self, outcome: EscalationOutcome) -> None:
        """Write an outcome back: flags, forced priorities, notifications."""
        self.registry.add_milestone(outcome.milestone)

        for ticket_id, priority in outcome.overrides.items():
            ticket = self.registry.find_ticket(ticket_id)
            if ticket is not None:
                ticket.force_priority(priority)

        for username, message in outcome.notifications:
            user = self.registry.find_user(username)
            if isinstance(user, Developer):
                user.notify(message)

    def apply_milestone_rules(self, current_day: date) -> List[EscalationOutcome]:
        """
        Run one simulated day of escalation.

        All milestones are evaluated against the same starting state, then
        the outcomes are applied.
        """
        outcomes = [
            self.evaluate(milestone, current_day)
            for milestone in self.registry.all_milestones()
        ]

        for outcome in outcomes:
            self.apply(outcome)
            if outcome.notifications:
                logger.info(
                    "milestone_escalated",
                    milestone=outcome.milestone.name,
                    day=current_day.isoformat(),
                    notifications=len(outcome.notifications),
                    overrides=len(outcome.overrides)
                )

        return outcomes
