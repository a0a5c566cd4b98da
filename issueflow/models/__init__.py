"""
issueflow Models

Tickets, users and milestones, plus the result records the engine emits.
"""

from .ticket import (
    # Enums
    TicketType,
    TicketStatus,
    Priority,
    ExpertiseArea,
    HistoryAction,
    Severity,
    Frequency,
    BusinessValue,
    CustomerDemand,

    # Core models
    Ticket,
    TicketBase,
    Bug,
    FeatureRequest,
    UIFeedback,
    TICKET_ADAPTER,

    # Supporting models
    Comment,
    HistoryEntry,
)
from .user import (
    Role,
    Seniority,
    User,
    UserBase,
    Reporter,
    Developer,
    Manager,
    Employee,
    USER_ADAPTER,
    USERS_ADAPTER,
)
from .milestone import Milestone

__all__ = [
    "TicketType", "TicketStatus", "Priority", "ExpertiseArea", "HistoryAction",
    "Severity", "Frequency", "BusinessValue", "CustomerDemand",
    "Ticket", "TicketBase", "Bug", "FeatureRequest", "UIFeedback", "TICKET_ADAPTER",
    "Comment", "HistoryEntry",
    "Role", "Seniority", "User", "UserBase", "Reporter", "Developer", "Manager",
    "Employee", "USER_ADAPTER", "USERS_ADAPTER",
    "Milestone",
]
