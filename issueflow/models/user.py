"""
issueflow User Model

Users are loaded once per run from the user directory and discriminated
by `role`. Only developers carry a notification queue and a performance
score.
"""

from datetime import date
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from .ticket import ExpertiseArea


class Role(str, Enum):
    REPORTER = "REPORTER"
    DEVELOPER = "DEVELOPER"
    MANAGER = "MANAGER"
    EMPLOYEE = "EMPLOYEE"


class Seniority(str, Enum):
    JUNIOR = "JUNIOR"
    MID = "MID"
    SENIOR = "SENIOR"

    @property
    def rank(self) -> int:
        return list(Seniority).index(self)

    def at_least(self) -> List["Seniority"]:
        """Every seniority that satisfies this one as a floor."""
        return [s for s in Seniority if s.rank >= self.rank]


class UserBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    username: str
    email: str = ""


class Reporter(UserBase):
    role: Literal["REPORTER"] = "REPORTER"


class Employee(UserBase):
    role: Literal["EMPLOYEE"] = "EMPLOYEE"


class Developer(UserBase):
    """
    Developer with expertise and seniority.

    notifications are queued by milestone creation and escalation and
    drained by viewNotifications. performance_score holds the last value
    written by the performance report.
    """
    role: Literal["DEVELOPER"] = "DEVELOPER"

    hire_date: Optional[date] = None
    expertise_area: ExpertiseArea
    seniority: Seniority = Seniority.JUNIOR
    performance_score: float = 0.0
    notifications: List[str] = Field(default_factory=list)

    def notify(self, message: str) -> None:
        self.notifications.append(message)

    def drain_notifications(self) -> List[str]:
        pending = list(self.notifications)
        self.notifications.clear()
        return pending


class Manager(UserBase):
    role: Literal["MANAGER"] = "MANAGER"

    hire_date: Optional[date] = None
    subordinates: List[str] = Field(default_factory=list)

    @field_validator("subordinates", mode="before")
    @classmethod
    def _none_is_empty(cls, value):
        return [] if value is None else value


User = Annotated[
    Union[Reporter, Developer, Manager, Employee],
    Field(discriminator="role")
]

USER_ADAPTER: TypeAdapter = TypeAdapter(User)
USERS_ADAPTER: TypeAdapter = TypeAdapter(List[User])
