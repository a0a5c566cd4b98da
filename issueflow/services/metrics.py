"""
issueflow Metric Visitors

Scoring visitors over the ticket union. TicketVisitor.visit dispatches
with one exhaustive match; each report is a subclass implementing all
three variant handlers.

Reports:
- TicketRiskVisitor: per-type risk band over active tickets
- CustomerImpactVisitor: per-type mean impact over active tickets
- ResolutionEfficiencyVisitor: per-type mean efficiency over completed tickets
- PerformanceStatsVisitor: one developer's closed tickets for a month
"""

import math
import statistics
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, Optional

from ..models import (
    Bug,
    FeatureRequest,
    Priority,
    Seniority,
    Ticket,
    TicketType,
    UIFeedback,
)

TICKET_TYPES = (TicketType.BUG, TicketType.FEATURE_REQUEST, TicketType.UI_FEEDBACK)


def round2(value: float) -> float:
    """Round half-up to 2 decimals (1.125 -> 1.13)."""
    return math.floor(value * 100 + 0.5) / 100


# =============================================================================
# BASE VISITOR
# =============================================================================

class TicketVisitor(ABC):

    def visit(self, ticket: Ticket) -> None:
        match ticket:
            case Bug():
                self.visit_bug(ticket)
            case FeatureRequest():
                self.visit_feature_request(ticket)
            case UIFeedback():
                self.visit_ui_feedback(ticket)
            case _:
                raise TypeError(f"Unknown ticket variant: {type(ticket).__name__}")

    def visit_all(self, tickets: Iterable[Ticket]) -> "TicketVisitor":
        for ticket in tickets:
            self.visit(ticket)
        return self

    @abstractmethod
    def visit_bug(self, bug: Bug) -> None:
        ...

    @abstractmethod
    def visit_feature_request(self, feature: FeatureRequest) -> None:
        ...

    @abstractmethod
    def visit_ui_feedback(self, feedback: UIFeedback) -> None:
        ...


class AveragingVisitor(TicketVisitor):
    """Accumulates one score per ticket and averages it per type."""

    def __init__(self):
        self.totals: Dict[str, float] = defaultdict(float)
        self.counts: Dict[str, int] = defaultdict(int)

    def accumulate(self, ticket_type: str, score: float) -> None:
        self.totals[ticket_type] += score
        self.counts[ticket_type] += 1

    def count(self, ticket_type: str) -> int:
        return self.counts.get(ticket_type, 0)

    def mean(self, ticket_type: str) -> Optional[float]:
        count = self.count(ticket_type)
        if count == 0:
            return None
        return self.totals[ticket_type] / count

    def counts_by_type(self) -> Dict[str, int]:
        return {t.value: self.count(t.value) for t in TICKET_TYPES}


# =============================================================================
# RISK
# =============================================================================

class TicketRiskVisitor(AveragingVisitor):
    """
    Bug:      frequency x severity, scaled x100/12
    Feature:  businessValue + customerDemand, scaled x100/20
    UI:       (11 - usabilityScore) x businessValue
    """

    BANDS = (
        (25.0, "NEGLIGIBLE"),
        (50.0, "MODERATE"),
        (75.0, "SIGNIFICANT"),
    )

    def visit_bug(self, bug: Bug) -> None:
        raw = bug.frequency.weight * bug.severity.weight
        self.accumulate(TicketType.BUG.value, raw * 100.0 / 12.0)

    def visit_feature_request(self, feature: FeatureRequest) -> None:
        raw = feature.business_value.weight + feature.customer_demand.weight
        self.accumulate(TicketType.FEATURE_REQUEST.value, raw * 100.0 / 20.0)

    def visit_ui_feedback(self, feedback: UIFeedback) -> None:
        raw = (11 - feedback.usability_score) * feedback.business_value.weight
        self.accumulate(TicketType.UI_FEEDBACK.value, float(raw))

    @classmethod
    def band(cls, score: float) -> str:
        for upper, label in cls.BANDS:
            if score < upper:
                return label
        return "MAJOR"

    def qualifier(self, ticket_type: str) -> str:
        average = self.mean(ticket_type)
        if average is None:
            return "NEGLIGIBLE"
        return self.band(average)

    def qualifiers(self) -> Dict[str, str]:
        return {t.value: self.qualifier(t.value) for t in TICKET_TYPES}


# =============================================================================
# CUSTOMER IMPACT
# =============================================================================

class CustomerImpactVisitor(AveragingVisitor):
    """
    Bug:      frequency x priority x severity, scaled x100/48
    Feature:  businessValue x customerDemand
    UI:       businessValue x usabilityScore
    """

    def visit_bug(self, bug: Bug) -> None:
        raw = bug.frequency.weight * bug.priority.value_score * bug.severity.weight
        self.accumulate(TicketType.BUG.value, raw * 100.0 / 48.0)

    def visit_feature_request(self, feature: FeatureRequest) -> None:
        raw = feature.business_value.weight * feature.customer_demand.weight
        self.accumulate(TicketType.FEATURE_REQUEST.value, float(raw))

    def visit_ui_feedback(self, feedback: UIFeedback) -> None:
        raw = feedback.business_value.weight * feedback.usability_score
        self.accumulate(TicketType.UI_FEEDBACK.value, float(raw))

    def average(self, ticket_type: str) -> float:
        value = self.mean(ticket_type)
        return 0.0 if value is None else round2(value)

    def averages(self) -> Dict[str, float]:
        return {t.value: self.average(t.value) for t in TICKET_TYPES}


# =============================================================================
# RESOLUTION EFFICIENCY
# =============================================================================

def days_to_resolve(ticket: Ticket) -> int:
    """Inclusive days from assignment to solve; 1 when either date is unset."""
    if ticket.assigned_at is None or ticket.solved_at is None:
        return 1
    return (ticket.solved_at - ticket.assigned_at).days + 1


class ResolutionEfficiencyVisitor(AveragingVisitor):
    """
    Bug:      (frequency + severity) x 10 / days, scaled x100/70
    Feature:  (businessValue + customerDemand) / days, scaled x100/20
    UI:       (usabilityScore + businessValue) / days, scaled x100/20
    """

    def visit_bug(self, bug: Bug) -> None:
        score = (bug.frequency.weight + bug.severity.weight) * 10.0 / days_to_resolve(bug)
        self.accumulate(TicketType.BUG.value, score * 100.0 / 70.0)

    def visit_feature_request(self, feature: FeatureRequest) -> None:
        raw = feature.business_value.weight + feature.customer_demand.weight
        score = raw / days_to_resolve(feature)
        self.accumulate(TicketType.FEATURE_REQUEST.value, score * 100.0 / 20.0)

    def visit_ui_feedback(self, feedback: UIFeedback) -> None:
        raw = feedback.usability_score + feedback.business_value.weight
        score = raw / days_to_resolve(feedback)
        self.accumulate(TicketType.UI_FEEDBACK.value, score * 100.0 / 20.0)

    def average(self, ticket_type: str) -> float:
        value = self.mean(ticket_type)
        return 0.0 if value is None else round2(value)

    def averages(self) -> Dict[str, float]:
        return {t.value: self.average(t.value) for t in TICKET_TYPES}


# =============================================================================
# PERFORMANCE
# =============================================================================

@dataclass
class SeniorityWeights:
    """Coefficients of one seniority's performance formula."""
    closed: float
    high_priority: float
    resolution_time: float
    bonus: float


SENIORITY_WEIGHTS = {
    Seniority.MID: SeniorityWeights(closed=0.5, high_priority=0.7, resolution_time=0.3, bonus=15),
    Seniority.SENIOR: SeniorityWeights(closed=0.5, high_priority=1.0, resolution_time=0.5, bonus=30),
}
JUNIOR_CLOSED_WEIGHT = 0.5
JUNIOR_BONUS = 5


def resolution_end(ticket: Ticket) -> Optional[date]:
    """Last transition into CLOSED, falling back to solvedAt."""
    closed = ticket.closed_dates()
    if closed:
        return closed[-1]
    return ticket.solved_at


class PerformanceStatsVisitor(TicketVisitor):
    """Raw counts for one developer's closed tickets."""

    def __init__(self):
        self.bug_count = 0
        self.feature_count = 0
        self.ui_count = 0
        self.closed_count = 0
        self.high_priority_count = 0
        self.total_resolution_days = 0

    def visit_bug(self, bug: Bug) -> None:
        self.bug_count += 1
        self._common(bug)

    def visit_feature_request(self, feature: FeatureRequest) -> None:
        self.feature_count += 1
        self._common(feature)

    def visit_ui_feedback(self, feedback: UIFeedback) -> None:
        self.ui_count += 1
        self._common(feedback)

    def _common(self, ticket: Ticket) -> None:
        self.closed_count += 1
        if ticket.priority in (Priority.HIGH, Priority.CRITICAL):
            self.high_priority_count += 1

        end = resolution_end(ticket)
        if ticket.assigned_at is not None and end is not None:
            self.total_resolution_days += abs((end - ticket.assigned_at).days) + 1

    @property
    def average_resolution_time(self) -> float:
        if self.closed_count == 0:
            return 0.0
        return self.total_resolution_days / self.closed_count

    @property
    def diversity(self) -> float:
        """Population stddev of the per-type counts over their mean."""
        counts = [self.bug_count, self.feature_count, self.ui_count]
        mean = statistics.mean(counts)
        if mean == 0:
            return 0.0
        return statistics.pstdev(counts) / mean

    def score(self, seniority: Seniority) -> float:
        if self.closed_count == 0:
            return 0.0

        if seniority == Seniority.JUNIOR:
            raw = JUNIOR_CLOSED_WEIGHT * self.closed_count - self.diversity
            return round2(max(0.0, raw) + JUNIOR_BONUS)

        weights = SENIORITY_WEIGHTS[seniority]
        raw = (
            weights.closed * self.closed_count
            + weights.high_priority * self.high_priority_count
            - weights.resolution_time * self.average_resolution_time
        )
        return round2(max(0.0, raw) + weights.bonus)
