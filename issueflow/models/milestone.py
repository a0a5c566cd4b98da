"""
issueflow Milestone Model

A milestone groups tickets under a due date and may block other
milestones (by name) while any of its tickets is still open.
"""

from datetime import date
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Milestone(BaseModel):
    """
    Structural fields are fixed at creation.

    The two notified_* flags are one-shot: once set they are never reset,
    which keeps the daily escalation hook idempotent.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str
    created_by: str
    created_at: date
    due_date: date
    blocking_for: List[str] = Field(default_factory=list)
    ticket_ids: List[int] = Field(default_factory=list, alias="tickets")
    assigned_devs: List[str] = Field(default_factory=list)

    notified_due_tomorrow: bool = False
    notified_unblocked_after_due: bool = False

    def contains(self, ticket_id: int) -> bool:
        return ticket_id in self.ticket_ids

    def blocks(self, other_name: str) -> bool:
        return other_name in self.blocking_for

    def days_until_due(self, current_day: date) -> int:
        """Inclusive day count: due today gives 1, due tomorrow gives 2."""
        return (self.due_date - current_day).days + 1
