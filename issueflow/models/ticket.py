"""
issueflow Ticket Model

Tickets are a tagged union over three variants (Bug, FeatureRequest,
UIFeedback) discriminated by `type`.

Core principles:
1. Effective priority = forced priority if set, else base priority
2. Initial priority is captured once and never rewritten
3. History is append-only (single source of truth for audit and reports)
4. Anonymous tickets (empty reporter) accept no comments
"""

from datetime import date
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel


# =============================================================================
# ENUMS
# =============================================================================

class TicketType(str, Enum):
    BUG = "BUG"
    FEATURE_REQUEST = "FEATURE_REQUEST"
    UI_FEEDBACK = "UI_FEEDBACK"


class TicketStatus(str, Enum):
    OPEN = "OPEN"
    IN_PROGRESS = "IN_PROGRESS"
    RESOLVED = "RESOLVED"
    CLOSED = "CLOSED"


class Priority(str, Enum):
    LOW = "LOW"            # Value: 1
    MEDIUM = "MEDIUM"      # Value: 2
    HIGH = "HIGH"          # Value: 3
    CRITICAL = "CRITICAL"  # Value: 4

    @property
    def value_score(self) -> int:
        return list(Priority).index(self) + 1

    def bump(self, steps: int = 1) -> "Priority":
        """Advance along LOW -> MEDIUM -> HIGH -> CRITICAL, saturating."""
        ladder = list(Priority)
        index = min(ladder.index(self) + max(steps, 0), len(ladder) - 1)
        return ladder[index]


class ExpertiseArea(str, Enum):
    FRONTEND = "FRONTEND"
    BACKEND = "BACKEND"
    DB = "DB"
    DESIGN = "DESIGN"
    DEVOPS = "DEVOPS"
    FULLSTACK = "FULLSTACK"  # Developers only


class HistoryAction(str, Enum):
    ASSIGNED = "ASSIGNED"
    DE_ASSIGNED = "DE-ASSIGNED"
    STATUS_CHANGED = "STATUS_CHANGED"
    ADDED_TO_MILESTONE = "ADDED_TO_MILESTONE"


# -----------------------------------------------------------------------------
# Ordinal scales shared by the metric visitors
# -----------------------------------------------------------------------------

class Severity(str, Enum):
    MINOR = "MINOR"
    MODERATE = "MODERATE"
    SEVERE = "SEVERE"

    @property
    def weight(self) -> int:
        return {"MINOR": 1, "MODERATE": 2, "SEVERE": 3}[self.value]


class Frequency(str, Enum):
    RARE = "RARE"
    OCCASIONAL = "OCCASIONAL"
    FREQUENT = "FREQUENT"
    ALWAYS = "ALWAYS"

    @property
    def weight(self) -> int:
        return {"RARE": 1, "OCCASIONAL": 2, "FREQUENT": 3, "ALWAYS": 4}[self.value]


class BusinessValue(str, Enum):
    S = "S"
    M = "M"
    L = "L"
    XL = "XL"

    @property
    def weight(self) -> int:
        return {"S": 1, "M": 3, "L": 6, "XL": 10}[self.value]


class CustomerDemand(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    VERY_HIGH = "VERY_HIGH"

    @property
    def weight(self) -> int:
        return {"LOW": 1, "MEDIUM": 3, "HIGH": 6, "VERY_HIGH": 10}[self.value]


# =============================================================================
# SUPPORTING MODELS
# =============================================================================

class Comment(BaseModel):
    """A comment left on a ticket."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    author: str
    content: str
    created_at: date


class HistoryEntry(BaseModel):
    """
    One audit record on a ticket.

    Never mutated or reordered once appended.
    """
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, frozen=True
    )

    action: HistoryAction
    by: str
    timestamp: date

    # Status transitions only
    from_status: Optional[TicketStatus] = Field(default=None, alias="from")
    to_status: Optional[TicketStatus] = Field(default=None, alias="to")

    # ADDED_TO_MILESTONE only
    milestone: Optional[str] = None


# =============================================================================
# CORE MODELS
# =============================================================================

class TicketBase(BaseModel):
    """
    Shape shared by every ticket variant.

    Priority fields:
    - base_priority: set by the reporter (wire name businessPriority)
    - initial_priority: copy of the first base priority, anchor for bumps
    - forced_priority: override written by milestone escalation
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    title: str
    description: str = ""
    reported_by: str = ""

    base_priority: Priority = Field(default=Priority.LOW, alias="businessPriority")
    initial_priority: Optional[Priority] = None
    forced_priority: Optional[Priority] = None

    status: TicketStatus = TicketStatus.OPEN
    created_at: date
    assigned_at: Optional[date] = None
    solved_at: Optional[date] = None
    assigned_to: str = ""
    expertise_area: Optional[ExpertiseArea] = None

    comments: List[Comment] = Field(default_factory=list)
    history: List[HistoryEntry] = Field(default_factory=list)

    @field_validator("expertise_area", mode="before")
    @classmethod
    def _blank_area_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("reported_by", mode="before")
    @classmethod
    def _none_reporter_is_anonymous(cls, value):
        return "" if value is None else value

    def model_post_init(self, __context) -> None:
        if self.initial_priority is None:
            self.initial_priority = self.base_priority

    # -------------------------------------------------------------------------
    # Priority
    # -------------------------------------------------------------------------

    @property
    def priority(self) -> Priority:
        """Effective priority."""
        if self.forced_priority is not None:
            return self.forced_priority
        return self.base_priority

    def set_priority(self, priority: Priority) -> None:
        self.base_priority = priority
        if self.initial_priority is None:
            self.initial_priority = priority

    def force_priority(self, priority: Priority) -> None:
        self.forced_priority = priority

    # -------------------------------------------------------------------------
    # Status helpers
    # -------------------------------------------------------------------------

    @property
    def is_anonymous(self) -> bool:
        return not self.reported_by.strip()

    @property
    def is_active(self) -> bool:
        return self.status in (TicketStatus.OPEN, TicketStatus.IN_PROGRESS)

    @property
    def is_completed(self) -> bool:
        return self.status in (TicketStatus.RESOLVED, TicketStatus.CLOSED)

    @property
    def is_closed(self) -> bool:
        return self.status == TicketStatus.CLOSED

    # -------------------------------------------------------------------------
    # History & comments
    # -------------------------------------------------------------------------

    def record(
        self,
        action: HistoryAction,
        by: str,
        timestamp: date,
        from_status: Optional[TicketStatus] = None,
        to_status: Optional[TicketStatus] = None,
        milestone: Optional[str] = None
    ) -> HistoryEntry:
        """Append a history entry and return it."""
        entry = HistoryEntry(
            action=action,
            by=by,
            timestamp=timestamp,
            from_status=from_status,
            to_status=to_status,
            milestone=milestone
        )
        self.history.append(entry)
        return entry

    def closed_dates(self) -> List[date]:
        """Dates of every transition into CLOSED, oldest first."""
        return [
            entry.timestamp for entry in self.history
            if entry.action == HistoryAction.STATUS_CHANGED
            and entry.to_status == TicketStatus.CLOSED
        ]

    def add_comment(self, author: str, content: str, created_at: date) -> Comment:
        comment = Comment(author=author, content=content, created_at=created_at)
        self.comments.append(comment)
        return comment

    def latest_comment_by(self, author: str) -> Optional[Comment]:
        for comment in reversed(self.comments):
            if comment.author == author:
                return comment
        return None


class Bug(TicketBase):
    """Defect report. The only variant that may be filed anonymously."""
    type: Literal["BUG"] = "BUG"

    severity: Severity = Severity.MINOR
    frequency: Frequency = Frequency.RARE
    expected_behavior: Optional[str] = None
    actual_behavior: Optional[str] = None
    environment: Optional[str] = None
    error_code: Optional[int] = None


class FeatureRequest(TicketBase):
    """Request for new functionality."""
    type: Literal["FEATURE_REQUEST"] = "FEATURE_REQUEST"

    business_value: BusinessValue = BusinessValue.S
    customer_demand: CustomerDemand = CustomerDemand.LOW


class UIFeedback(TicketBase):
    """Usability feedback on a specific UI element."""
    type: Literal["UI_FEEDBACK"] = "UI_FEEDBACK"

    business_value: BusinessValue = BusinessValue.S
    usability_score: int = Field(default=1, ge=1, le=10)
    ui_element_id: Optional[str] = None


Ticket = Annotated[Union[Bug, FeatureRequest, UIFeedback], Field(discriminator="type")]

TICKET_ADAPTER: TypeAdapter = TypeAdapter(Ticket)
