"""Tests for the scoring visitors."""

from datetime import date

import pytest

from issueflow.models import Seniority
from issueflow.services.metrics import (
    CustomerImpactVisitor,
    PerformanceStatsVisitor,
    ResolutionEfficiencyVisitor,
    TicketRiskVisitor,
    days_to_resolve,
    round2,
)

pytestmark = pytest.mark.unit


def test_round2_is_half_up():
    assert round2(1.125) == 1.13
    assert round2(0.125) == 0.13
    assert round2(2.0) == 2.0
    assert round2(28.571428) == 28.57


class TestRiskBands:
    """Band boundaries belong to the band above."""

    @pytest.mark.parametrize("score,label", [
        (0.0, "NEGLIGIBLE"),
        (24.99, "NEGLIGIBLE"),
        (25.0, "MODERATE"),
        (50.0, "SIGNIFICANT"),
        (75.0, "MAJOR"),
        (100.0, "MAJOR"),
    ])
    def test_band(self, score, label):
        assert TicketRiskVisitor.band(score) == label

    def test_bug_scores_land_on_boundaries(self, add_ticket):
        # SEVERE x {RARE, OCCASIONAL, FREQUENT} scores exactly 25, 50, 75
        cases = [
            ("RARE", "MODERATE"),
            ("OCCASIONAL", "SIGNIFICANT"),
            ("FREQUENT", "MAJOR"),
        ]
        for frequency, expected in cases:
            bug = add_ticket(severity="SEVERE", frequency=frequency)
            visitor = TicketRiskVisitor().visit_all([bug])
            assert visitor.qualifier("BUG") == expected

    def test_empty_type_is_negligible(self):
        visitor = TicketRiskVisitor()
        assert visitor.qualifiers() == {
            "BUG": "NEGLIGIBLE",
            "FEATURE_REQUEST": "NEGLIGIBLE",
            "UI_FEEDBACK": "NEGLIGIBLE",
        }

    def test_ui_feedback_risk(self, add_ticket):
        low = add_ticket(type="UI_FEEDBACK", usabilityScore=10, businessValue="S")
        high = add_ticket(type="UI_FEEDBACK", usabilityScore=1, businessValue="XL")

        assert TicketRiskVisitor().visit_all([low]).qualifier("UI_FEEDBACK") == "NEGLIGIBLE"
        assert TicketRiskVisitor().visit_all([high]).qualifier("UI_FEEDBACK") == "MAJOR"

    def test_counts_by_type(self, add_ticket):
        tickets = [add_ticket(), add_ticket(), add_ticket(type="FEATURE_REQUEST")]
        visitor = TicketRiskVisitor().visit_all(tickets)
        assert visitor.counts_by_type() == {"BUG": 2, "FEATURE_REQUEST": 1, "UI_FEEDBACK": 0}


class TestAverages:

    def test_customer_impact_bug_uses_effective_priority(self, add_ticket):
        bug = add_ticket()
        assert CustomerImpactVisitor().visit_all([bug]).average("BUG") == 2.08

        bug.force_priority(bug.priority.bump(3))
        assert CustomerImpactVisitor().visit_all([bug]).average("BUG") == 8.33

    def test_customer_impact_feature(self, add_ticket):
        feature = add_ticket(type="FEATURE_REQUEST", businessValue="L", customerDemand="HIGH")
        assert CustomerImpactVisitor().visit_all([feature]).averages() == {
            "BUG": 0.0,
            "FEATURE_REQUEST": 36.0,
            "UI_FEEDBACK": 0.0,
        }

    def test_resolution_efficiency_divides_by_inclusive_days(self, add_ticket):
        quick = add_ticket(assignedAt=date(2025, 1, 2), solvedAt=date(2025, 1, 2))
        slow = add_ticket(assignedAt=date(2025, 1, 2), solvedAt=date(2025, 1, 5))

        assert days_to_resolve(quick) == 1
        assert days_to_resolve(slow) == 4
        assert ResolutionEfficiencyVisitor().visit_all([quick]).average("BUG") == 28.57
        assert ResolutionEfficiencyVisitor().visit_all([slow]).average("BUG") == 7.14

    def test_unset_dates_count_as_one_day(self, add_ticket):
        assert days_to_resolve(add_ticket()) == 1


class TestPerformance:

    def closed(self, add_ticket, **fields):
        data = dict(
            status="CLOSED",
            assignedTo="jun",
            assignedAt=date(2025, 1, 1),
            solvedAt=date(2025, 1, 3),
        )
        data.update(fields)
        return add_ticket(**data)

    def test_junior_diversity_penalty(self, add_ticket):
        tickets = [
            self.closed(add_ticket),
            self.closed(add_ticket),
            self.closed(add_ticket, type="FEATURE_REQUEST"),
            self.closed(add_ticket, type="UI_FEEDBACK"),
        ]
        stats = PerformanceStatsVisitor().visit_all(tickets)

        assert (stats.bug_count, stats.feature_count, stats.ui_count) == (2, 1, 1)
        assert stats.diversity == pytest.approx(0.353553, abs=1e-6)
        assert stats.score(Seniority.JUNIOR) == 6.65

    def test_junior_single_type_has_no_penalty(self, add_ticket):
        stats = PerformanceStatsVisitor().visit_all([self.closed(add_ticket)])
        assert stats.diversity == pytest.approx(2 ** 0.5)
        assert stats.score(Seniority.JUNIOR) == 5.0

    def test_mid_and_senior(self, add_ticket):
        tickets = [
            self.closed(add_ticket, businessPriority="HIGH"),
            self.closed(add_ticket),
        ]
        stats = PerformanceStatsVisitor().visit_all(tickets)

        assert stats.closed_count == 2
        assert stats.high_priority_count == 1
        assert stats.average_resolution_time == 3.0
        assert stats.score(Seniority.MID) == pytest.approx(15.8)
        assert stats.score(Seniority.SENIOR) == pytest.approx(30.5)

    def test_no_tickets_scores_zero(self):
        stats = PerformanceStatsVisitor()
        assert stats.score(Seniority.SENIOR) == 0.0
        assert stats.average_resolution_time == 0.0
        assert stats.diversity == 0.0

    def test_raw_score_floors_at_zero(self, add_ticket):
        slow = self.closed(add_ticket, solvedAt=date(2025, 1, 30))
        stats = PerformanceStatsVisitor().visit_all([slow])
        assert stats.score(Seniority.SENIOR) == 30.0
