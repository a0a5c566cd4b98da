"""
issueflow View Service

Read-only projections of tickets for viewTickets, viewAssignedTickets
and viewTicketHistory. viewNotifications is the one view that mutates
(it drains the developer's queue).
"""

from datetime import date
from typing import List, Optional

from ..models import (
    Developer,
    Employee,
    HistoryAction,
    HistoryEntry,
    Manager,
    Reporter,
    Ticket,
    User,
)
from ..models.results import (
    AssignedTicketView,
    CommentView,
    HistoryView,
    TicketHistoryView,
    TicketView,
)
from ..registry import Registry


def iso(day: Optional[date]) -> str:
    """ISO date, or "" when unset."""
    return day.isoformat() if day is not None else ""


def comment_views(ticket: Ticket) -> List[CommentView]:
    return [
        CommentView(author=c.author, content=c.content, created_at=iso(c.created_at))
        for c in ticket.comments
    ]


def history_views(entries: List[HistoryEntry]) -> List[HistoryView]:
    return [
        HistoryView(
            action=e.action,
            from_status=e.from_status,
            to_status=e.to_status,
            milestone=e.milestone,
            by=e.by,
            timestamp=iso(e.timestamp)
        )
        for e in entries
    ]


def visible_history(ticket: Ticket, username: str) -> List[HistoryEntry]:
    """
    History a developer may see.

    Once unassigned, a developer sees history only up to (and including)
    their last DE-ASSIGNED entry.
    """
    if ticket.assigned_to == username:
        return list(ticket.history)

    for index in range(len(ticket.history) - 1, -1, -1):
        entry = ticket.history[index]
        if entry.action == HistoryAction.DE_ASSIGNED and entry.by == username:
            return list(ticket.history[:index + 1])

    return list(ticket.history)


class ViewService:

    def __init__(self, registry: Registry):
        self.registry = registry

    def view_tickets(self, actor: User) -> List[TicketView]:
        """Reporters see their own tickets; everyone else sees all."""
        tickets = self.registry.all_tickets()
        if isinstance(actor, Reporter):
            tickets = [t for t in tickets if t.reported_by == actor.username]
        tickets = sorted(tickets, key=lambda t: t.id)

        return [
            TicketView(
                id=t.id,
                type=t.type,
                title=t.title,
                business_priority=t.priority,
                status=t.status,
                created_at=iso(t.created_at),
                assigned_at=iso(t.assigned_at),
                solved_at=iso(t.solved_at),
                assigned_to=t.assigned_to,
                reported_by=t.reported_by,
                comments=comment_views(t)
            )
            for t in tickets
        ]

    def view_assigned_tickets(self, actor: User) -> List[AssignedTicketView]:
        """Highest effective priority first, then oldest, then lowest id."""
        tickets = [
            t for t in self.registry.all_tickets()
            if t.assigned_to and t.assigned_to == actor.username
        ]
        tickets.sort(key=lambda t: (-t.priority.value_score, t.created_at, t.id))

        return [
            AssignedTicketView(
                id=t.id,
                type=t.type,
                title=t.title,
                business_priority=t.priority,
                status=t.status,
                created_at=iso(t.created_at),
                assigned_at=iso(t.assigned_at),
                reported_by=t.reported_by,
                comments=comment_views(t)
            )
            for t in tickets
        ]

    def ticket_history(self, actor: User) -> List[TicketHistoryView]:
        if isinstance(actor, Manager):
            tickets = self._manager_tickets(actor)
        elif isinstance(actor, (Developer, Employee)):
            tickets = [
                t for t in self.registry.all_tickets()
                if any(
                    e.action == HistoryAction.ASSIGNED and e.by == actor.username
                    for e in t.history
                )
            ]
        else:
            tickets = []

        tickets.sort(key=lambda t: (t.created_at, t.id))

        views = []
        for ticket in tickets:
            if isinstance(actor, Manager):
                entries = list(ticket.history)
            else:
                entries = visible_history(ticket, actor.username)
            views.append(TicketHistoryView(
                id=ticket.id,
                title=ticket.title,
                status=ticket.status,
                actions=history_views(entries),
                comments=comment_views(ticket)
            ))
        return views

    def _manager_tickets(self, manager: Manager) -> List[Ticket]:
        seen = set()
        tickets = []
        for milestone in self.registry.all_milestones():
            if milestone.created_by != manager.username:
                continue
            for ticket_id in milestone.ticket_ids:
                ticket = self.registry.find_ticket(ticket_id)
                if ticket is not None and ticket.id not in seen:
                    seen.add(ticket.id)
                    tickets.append(ticket)
        return tickets

    def notifications(self, actor: User) -> List[str]:
        if isinstance(actor, Developer):
            return actor.drain_notifications()
        return []
