"""
Base exception for issueflow.

Service modules raise their own subclasses. The command engine turns any
IssueflowError into a structured error record, so the message must be
readable on its own.
"""


class IssueflowError(Exception):
    """Raised when a command violates a workflow rule."""
    pass


class PermissionDenied(IssueflowError):
    """Raised when the acting user has the wrong role for a command."""

    def __init__(self, required: str, actual: str):
        self.required = required
        self.actual = actual
        super().__init__(
            "The user does not have permission to execute this command: "
            f"required role {required}; user role {actual}."
        )
