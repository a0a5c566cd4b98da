"""
issueflow Search Service

Two search modes selected by `searchType`:
- TICKET (default): managers search every ticket; developers only OPEN
  tickets of milestones they are assigned to
- DEVELOPER: managers search their subordinate developers

Date and score bounds are strict.
"""

from datetime import date
from typing import List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..models import (
    Developer,
    Employee,
    ExpertiseArea,
    Manager,
    Priority,
    Seniority,
    Ticket,
    TicketStatus,
    TicketType,
    User,
)
from ..models.results import DeveloperSearchHit, TicketSearchHit
from ..registry import Registry
from .lifecycle import TicketLifecycleService
from .views import iso


class SearchFilters(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    search_type: Literal["TICKET", "DEVELOPER"] = "TICKET"

    # Ticket filters
    business_priority: Optional[Priority] = None
    type: Optional[TicketType] = None
    created_after: Optional[date] = None
    created_before: Optional[date] = None
    keywords: Optional[List[str]] = None
    available_for_assignment: bool = False

    # Developer filters
    expertise_area: Optional[ExpertiseArea] = None
    seniority: Optional[Seniority] = None
    performance_score_above: Optional[float] = None
    performance_score_below: Optional[float] = None


def matching_words(ticket: Ticket, keywords: List[str]) -> List[str]:
    """Keywords found in title + description, case-insensitive, sorted."""
    haystack = f"{ticket.title} {ticket.description}".lower()
    return sorted(word for word in keywords if word.lower() in haystack)


class SearchService:

    def __init__(self, registry: Registry, lifecycle: TicketLifecycleService):
        self.registry = registry
        self.lifecycle = lifecycle

    def search(
        self,
        actor: User,
        filters: SearchFilters
    ) -> Tuple[str, List[Union[TicketSearchHit, DeveloperSearchHit]]]:
        if filters.search_type == "DEVELOPER":
            return filters.search_type, self.search_developers(actor, filters)
        return filters.search_type, self.search_tickets(actor, filters)

    # =========================================================================
    # TICKETS
    # =========================================================================

    def can_see(self, actor: User, ticket: Ticket) -> bool:
        if isinstance(actor, Manager):
            return True
        if isinstance(actor, (Developer, Employee)):
            if ticket.status != TicketStatus.OPEN:
                return False
            milestone = self.registry.milestone_for_ticket(ticket.id)
            return milestone is not None and actor.username in milestone.assigned_devs
        return False

    def matches(self, actor: User, ticket: Ticket, filters: SearchFilters) -> bool:
        if filters.business_priority is not None and ticket.priority != filters.business_priority:
            return False
        if filters.type is not None and ticket.type != filters.type:
            return False
        if filters.created_after is not None and not ticket.created_at > filters.created_after:
            return False
        if filters.created_before is not None and not ticket.created_at < filters.created_before:
            return False
        if filters.keywords is not None and not matching_words(ticket, filters.keywords):
            return False
        if filters.available_for_assignment and not self.lifecycle.can_assign(ticket, actor):
            return False
        return True

    def search_tickets(self, actor: User, filters: SearchFilters) -> List[TicketSearchHit]:
        found = [
            t for t in self.registry.all_tickets()
            if self.can_see(actor, t) and self.matches(actor, t, filters)
        ]
        found.sort(key=lambda t: (t.created_at, t.id))

        hits = []
        for ticket in found:
            hit = TicketSearchHit(
                id=ticket.id,
                type=ticket.type,
                title=ticket.title,
                business_priority=ticket.priority,
                status=ticket.status,
                created_at=iso(ticket.created_at),
                solved_at=iso(ticket.solved_at),
                reported_by=ticket.reported_by
            )
            if filters.keywords is not None:
                hit.matching_words = matching_words(ticket, filters.keywords)
            hits.append(hit)
        return hits

    # =========================================================================
    # DEVELOPERS
    # =========================================================================

    def search_developers(self, actor: User, filters: SearchFilters) -> List[DeveloperSearchHit]:
        if not isinstance(actor, Manager):
            return []

        found = []
        for username in actor.subordinates:
            user = self.registry.find_user(username)
            if not isinstance(user, Developer):
                continue
            if filters.expertise_area is not None and user.expertise_area != filters.expertise_area:
                continue
            if filters.seniority is not None and user.seniority != filters.seniority:
                continue
            if (
                filters.performance_score_above is not None
                and not user.performance_score > filters.performance_score_above
            ):
                continue
            if (
                filters.performance_score_below is not None
                and not user.performance_score < filters.performance_score_below
            ):
                continue
            found.append(user)

        found.sort(key=lambda d: d.username)
        return [
            DeveloperSearchHit(
                username=d.username,
                expertise_area=d.expertise_area.value,
                seniority=d.seniority.value,
                performance_score=d.performance_score,
                hire_date=iso(d.hire_date)
            )
            for d in found
        ]
