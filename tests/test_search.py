"""Tests for ticket and developer search."""

from datetime import date

import pytest

from issueflow.services import SearchFilters, SearchService

pytestmark = pytest.mark.unit


@pytest.fixture
def search(registry, lifecycle):
    return SearchService(registry, lifecycle)


def filters(**raw):
    return SearchFilters.model_validate(raw)


class TestTicketSearch:

    def test_manager_sees_everything(self, search, add_ticket, user):
        add_ticket()
        add_ticket(status="CLOSED")
        search_type, hits = search.search(user("boss"), filters())
        assert search_type == "TICKET"
        assert [h.id for h in hits] == [0, 1]
        assert all(h.matching_words is None for h in hits)

    def test_developer_limited_to_open_milestone_tickets(
        self, search, milestones, add_ticket, user
    ):
        inside = add_ticket()
        add_ticket()
        closed = add_ticket(status="CLOSED")
        milestones.create_milestone(
            user("boss"),
            {"name": "M1", "dueDate": "2025-02-01", "tickets": [inside.id, closed.id],
             "assignedDevs": ["sam"]},
            date(2025, 1, 1)
        )

        _, hits = search.search(user("sam"), filters())
        assert [h.id for h in hits] == [inside.id]

        _, hits = search.search(user("mia"), filters())
        assert hits == []

    def test_reporters_find_nothing(self, search, add_ticket, user):
        add_ticket()
        assert search.search(user("alice"), filters())[1] == []

    def test_date_bounds_are_strict(self, search, add_ticket, user):
        add_ticket(createdAt=date(2025, 1, 1))
        add_ticket(createdAt=date(2025, 1, 2))
        add_ticket(createdAt=date(2025, 1, 3))

        _, hits = search.search(
            user("boss"), filters(createdAfter="2025-01-01", createdBefore="2025-01-03")
        )
        assert [h.id for h in hits] == [1]

    def test_keywords(self, search, add_ticket, user):
        add_ticket(title="Crash on login", description="App crashes when saving")
        add_ticket(title="Dark mode", description="Add a dark theme")

        _, hits = search.search(user("boss"), filters(keywords=["save", "Crash", "theme"]))

        assert [h.id for h in hits] == [0, 1]
        assert hits[0].matching_words == ["Crash"]
        assert hits[1].matching_words == ["theme"]

    def test_priority_filter_uses_effective_priority(self, search, add_ticket, user):
        from issueflow.models import Priority

        add_ticket().force_priority(Priority.HIGH)
        add_ticket(businessPriority="HIGH").force_priority(Priority.CRITICAL)

        _, hits = search.search(user("boss"), filters(businessPriority="HIGH"))
        assert [h.id for h in hits] == [0]

    def test_available_for_assignment(self, search, milestones, add_ticket, user):
        backend = add_ticket(expertiseArea="BACKEND")
        frontend = add_ticket(expertiseArea="FRONTEND")
        milestones.create_milestone(
            user("boss"),
            {"name": "M1", "dueDate": "2025-02-01", "tickets": [backend.id, frontend.id],
             "assignedDevs": ["jun"]},
            date(2025, 1, 1)
        )

        _, hits = search.search(user("jun"), filters(availableForAssignment=True))
        assert [h.id for h in hits] == [backend.id]

    def test_sorted_by_creation_then_id(self, search, add_ticket, user):
        add_ticket(createdAt=date(2025, 1, 5))
        add_ticket(createdAt=date(2025, 1, 2))
        add_ticket(createdAt=date(2025, 1, 2))
        _, hits = search.search(user("boss"), filters())
        assert [h.id for h in hits] == [1, 2, 0]


class TestDeveloperSearch:

    def test_filters_subordinates(self, search, user):
        user("mia").performance_score = 20.0
        user("sam").performance_score = 40.0

        search_type, hits = search.search(
            user("boss"), filters(searchType="DEVELOPER", performanceScoreAbove=10.0)
        )
        assert search_type == "DEVELOPER"
        assert [h.username for h in hits] == ["mia", "sam"]

        _, hits = search.search(
            user("boss"), filters(searchType="DEVELOPER", performanceScoreBelow=40.0)
        )
        assert [h.username for h in hits] == ["jun", "mia"]

    def test_expertise_and_seniority(self, search, user):
        _, hits = search.search(
            user("boss"), filters(searchType="DEVELOPER", expertiseArea="BACKEND", seniority="JUNIOR")
        )
        assert [h.model_dump(by_alias=True) for h in hits] == [{
            "username": "jun",
            "expertiseArea": "BACKEND",
            "seniority": "JUNIOR",
            "performanceScore": 0.0,
            "hireDate": "2024-02-01",
        }]

    def test_non_manager_gets_empty_results(self, search, user):
        assert search.search(user("sam"), filters(searchType="DEVELOPER")) == ("DEVELOPER", [])


def test_search_type_is_restricted():
    from pydantic import ValidationError

    with pytest.raises(ValidationError):
        filters(searchType="FOO")
    assert filters(searchType="DEVELOPER").search_type == "DEVELOPER"
