"""
issueflow Registry

Keyed in-memory stores for users, tickets and milestones. One registry
is built per run and handed to every service; the command engine is its
only writer.
"""

from datetime import date
from typing import Dict, Iterable, List, Optional

import structlog

from .models import Milestone, Ticket, User, USERS_ADAPTER

logger = structlog.get_logger(__name__)


class Registry:
    """Lookup-by-key storage plus the run-wide testing phase anchor."""

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._tickets: Dict[int, Ticket] = {}
        self._milestones: Dict[str, Milestone] = {}
        self.project_start: Optional[date] = None

    # =========================================================================
    # USERS
    # =========================================================================

    def load_users(self, raw_users: Iterable[dict]) -> List[User]:
        """Validate and store the user directory, replacing any previous one."""
        users = USERS_ADAPTER.validate_python(list(raw_users))
        self._users = {user.username: user for user in users}
        logger.info("users_loaded", count=len(users))
        return users

    def add_user(self, user: User) -> None:
        self._users[user.username] = user

    def find_user(self, username: str) -> Optional[User]:
        return self._users.get(username)

    def all_users(self) -> List[User]:
        return list(self._users.values())

    # =========================================================================
    # TICKETS
    # =========================================================================

    def next_ticket_id(self) -> int:
        return len(self._tickets)

    def add_ticket(self, ticket: Ticket) -> None:
        self._tickets[ticket.id] = ticket

    def find_ticket(self, ticket_id: int) -> Optional[Ticket]:
        return self._tickets.get(ticket_id)

    def all_tickets(self) -> List[Ticket]:
        """All tickets in creation (id) order."""
        return [self._tickets[key] for key in sorted(self._tickets)]

    # =========================================================================
    # MILESTONES
    # =========================================================================

    def add_milestone(self, milestone: Milestone) -> None:
        self._milestones[milestone.name] = milestone

    def find_milestone(self, name: str) -> Optional[Milestone]:
        return self._milestones.get(name)

    def all_milestones(self) -> List[Milestone]:
        """All milestones in creation order."""
        return list(self._milestones.values())

    def milestone_for_ticket(self, ticket_id: int) -> Optional[Milestone]:
        for milestone in self._milestones.values():
            if milestone.contains(ticket_id):
                return milestone
        return None

    # =========================================================================
    # TESTING PHASE
    # =========================================================================

    def mark_project_start(self, day: date) -> None:
        """The first report fixes the project start; later calls are ignored."""
        if self.project_start is None:
            self.project_start = day

    def in_testing_phase(self, day: date, phase_days: int) -> bool:
        if self.project_start is None:
            return True
        return (day - self.project_start).days <= phase_days
