"""Shared test fixtures for all test groups."""

from datetime import date

import pytest

from issueflow.core.config import Settings
from issueflow.engine import CommandEngine
from issueflow.models import TICKET_ADAPTER
from issueflow.registry import Registry
from issueflow.services import (
    CommentService,
    MilestoneEscalationService,
    MilestoneService,
    ReportService,
    TicketLifecycleService,
)


USERS = [
    {"username": "alice", "email": "alice@example.com", "role": "REPORTER"},
    {"username": "bob", "email": "bob@example.com", "role": "REPORTER"},
    {
        "username": "jun",
        "email": "jun@example.com",
        "role": "DEVELOPER",
        "hireDate": "2024-02-01",
        "expertiseArea": "BACKEND",
        "seniority": "JUNIOR",
    },
    {
        "username": "mia",
        "email": "mia@example.com",
        "role": "DEVELOPER",
        "hireDate": "2022-06-01",
        "expertiseArea": "FRONTEND",
        "seniority": "MID",
    },
    {
        "username": "sam",
        "email": "sam@example.com",
        "role": "DEVELOPER",
        "hireDate": "2018-09-01",
        "expertiseArea": "FULLSTACK",
        "seniority": "SENIOR",
    },
    {
        "username": "boss",
        "email": "boss@example.com",
        "role": "MANAGER",
        "hireDate": "2015-01-01",
        "subordinates": ["jun", "mia", "sam"],
    },
    {"username": "eve", "email": "eve@example.com", "role": "EMPLOYEE"},
]


@pytest.fixture
def user_directory():
    """Raw user directory as it arrives on the wire."""
    return [dict(u) for u in USERS]


@pytest.fixture
def settings():
    """Default settings with console logging."""
    return Settings(json_logs=False)


@pytest.fixture
def registry():
    """Fresh registry with reporters, one developer per seniority, a manager and an employee."""
    reg = Registry()
    reg.load_users(USERS)
    return reg


@pytest.fixture
def escalation(registry, settings):
    return MilestoneEscalationService(registry, settings)


@pytest.fixture
def lifecycle(registry, escalation):
    return TicketLifecycleService(registry, escalation)


@pytest.fixture
def comments(settings):
    return CommentService(settings)


@pytest.fixture
def milestones(registry, escalation):
    return MilestoneService(registry, escalation)


@pytest.fixture
def reports(registry, settings):
    return ReportService(registry, settings)


@pytest.fixture
def engine(registry, settings):
    return CommandEngine(registry, settings)


@pytest.fixture
def add_ticket(registry):
    """Factory storing a ticket built from wire-format fields."""

    def _add(**fields):
        data = {
            "id": registry.next_ticket_id(),
            "type": "BUG",
            "title": "Login fails",
            "description": "Submitting the form does nothing",
            "reportedBy": "alice",
            "businessPriority": "LOW",
            "createdAt": date(2025, 1, 1),
        }
        data.update(fields)
        ticket = TICKET_ADAPTER.validate_python(data)
        registry.add_ticket(ticket)
        return ticket

    return _add


@pytest.fixture
def user(registry):
    """Look up a loaded user by name."""
    return registry.find_user
