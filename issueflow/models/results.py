"""
issueflow Result Records

Every record the command engine emits. Field names are snake_case in
Python and camelCase on the wire (model_dump(by_alias=True)).

Dates inside views are ISO strings; an unset date is "".
"""

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .ticket import Priority, TicketStatus, TicketType, HistoryAction


class Record(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# ENVELOPES
# =============================================================================

class CommandResult(Record):
    command: str
    username: str
    timestamp: str

    def to_wire(self) -> dict:
        """Serialize with wire names, dropping unset optional fields."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)


class ErrorResult(CommandResult):
    error: str


# =============================================================================
# TICKET VIEWS
# =============================================================================

class CommentView(Record):
    author: str
    content: str
    created_at: str


class TicketView(Record):
    """Row of viewTickets."""
    id: int
    type: TicketType
    title: str
    business_priority: Priority = Field(alias="businessPriority")
    status: TicketStatus
    created_at: str
    assigned_at: str
    solved_at: str
    assigned_to: str
    reported_by: str
    comments: List[CommentView] = Field(default_factory=list)


class AssignedTicketView(Record):
    """Row of viewAssignedTickets."""
    id: int
    type: TicketType
    title: str
    business_priority: Priority = Field(alias="businessPriority")
    status: TicketStatus
    created_at: str
    assigned_at: str
    reported_by: str
    comments: List[CommentView] = Field(default_factory=list)


class HistoryView(Record):
    action: HistoryAction
    from_status: Optional[TicketStatus] = Field(default=None, alias="from")
    to_status: Optional[TicketStatus] = Field(default=None, alias="to")
    milestone: Optional[str] = None
    by: str
    timestamp: str


class TicketHistoryView(Record):
    id: int
    title: str
    status: TicketStatus
    actions: List[HistoryView] = Field(default_factory=list)
    comments: List[CommentView] = Field(default_factory=list)


class ViewTicketsResult(CommandResult):
    tickets: List[TicketView]


class ViewAssignedTicketsResult(CommandResult):
    assigned_tickets: List[AssignedTicketView]


class ViewTicketHistoryResult(CommandResult):
    ticket_history: List[TicketHistoryView]


class NotificationsResult(CommandResult):
    notifications: List[str]


# =============================================================================
# MILESTONE VIEWS
# =============================================================================

class Repartition(Record):
    developer: str
    assigned_tickets: List[int]


class MilestoneView(Record):
    name: str
    blocking_for: List[str]
    due_date: str
    created_at: str
    tickets: List[int]
    assigned_devs: List[str]
    created_by: str
    status: str                    # ACTIVE | COMPLETED
    is_blocked: bool
    days_until_due: int
    overdue_by: int
    open_tickets: List[int]
    closed_tickets: List[int]
    completion_percentage: float
    repartition: List[Repartition]


class ViewMilestonesResult(CommandResult):
    milestones: List[MilestoneView]


# =============================================================================
# SEARCH
# =============================================================================

class TicketSearchHit(Record):
    id: int
    type: TicketType
    title: str
    business_priority: Priority = Field(alias="businessPriority")
    status: TicketStatus
    created_at: str
    solved_at: str
    reported_by: str
    matching_words: Optional[List[str]] = None


class DeveloperSearchHit(Record):
    username: str
    expertise_area: str
    seniority: str
    performance_score: float
    hire_date: str


class SearchResult(CommandResult):
    search_type: str
    results: List[Union[TicketSearchHit, DeveloperSearchHit]]


# =============================================================================
# REPORTS
# =============================================================================

class TicketRiskReport(Record):
    total_tickets: int
    tickets_by_type: Dict[str, int]
    tickets_by_priority: Dict[str, int]
    risk_by_type: Dict[str, str]


class CustomerImpactReport(Record):
    total_tickets: int
    tickets_by_type: Dict[str, int]
    tickets_by_priority: Dict[str, int]
    customer_impact_by_type: Dict[str, float]


class ResolutionEfficiencyReport(Record):
    total_tickets: int
    tickets_by_type: Dict[str, int]
    tickets_by_priority: Dict[str, int]
    efficiency_by_type: Dict[str, float]


class PerformanceEntry(Record):
    username: str
    closed_tickets: int
    average_resolution_time: float
    performance_score: float
    seniority: str


class AppStabilityReport(Record):
    total_open_tickets: int
    open_tickets_by_type: Dict[str, int]
    open_tickets_by_priority: Dict[str, int]
    risk_by_type: Dict[str, str]
    impact_by_type: Dict[str, float]
    app_stability: str


class ReportResult(CommandResult):
    report: Union[
        TicketRiskReport,
        CustomerImpactReport,
        ResolutionEfficiencyReport,
        AppStabilityReport,
        List[PerformanceEntry],
    ]
