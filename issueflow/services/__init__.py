"""
issueflow Services

Business logic for the ticket lifecycle, milestone escalation and the
metric reports.
"""

from .escalation import MilestoneEscalationService, EscalationOutcome, evaluate
from .lifecycle import TicketLifecycleService, AssignmentError
from .comments import CommentService, CommentError
from .intake import IntakeService, IntakeError
from .milestones import MilestoneService, MilestoneError
from .metrics import (
    TicketVisitor,
    TicketRiskVisitor,
    CustomerImpactVisitor,
    ResolutionEfficiencyVisitor,
    PerformanceStatsVisitor,
    round2,
)
from .reports import ReportService
from .search import SearchService, SearchFilters
from .views import ViewService

__all__ = [
    # Milestone escalation (daily hook)
    "MilestoneEscalationService", "EscalationOutcome", "evaluate",

    # Ticket state machine
    "TicketLifecycleService", "AssignmentError",
    "CommentService", "CommentError",

    # Creation
    "IntakeService", "IntakeError",
    "MilestoneService", "MilestoneError",

    # Metrics & reports
    "TicketVisitor", "TicketRiskVisitor", "CustomerImpactVisitor",
    "ResolutionEfficiencyVisitor", "PerformanceStatsVisitor", "round2",
    "ReportService",

    # Read side
    "SearchService", "SearchFilters",
    "ViewService",
]
