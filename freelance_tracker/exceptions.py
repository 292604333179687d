"""
Typed errors raised by the session tracker and project queries.

Every error is recoverable by the caller: either pick a different target
(stop the running timer first) or correct the input. Storage failures are
not wrapped and propagate as raised by the driver.

    TrackerError (base)
    +-- ConflictError     a second open entry would exist in the same scope
    +-- NotFoundError     missing record, or one owned by another user
    +-- ValidationError   temporal fields combine into an invalid entry
"""
from typing import Optional


class TrackerError(Exception):
    """Base class for all tracker errors."""

    code: str = "TRACKER_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConflictError(TrackerError):
    """Starting or resuming would open a second timer on the same project."""

    code = "CONFLICT"

    def __init__(
        self,
        project_id: str,
        project_name: Optional[str] = None,
        entry_id: Optional[str] = None,
    ):
        self.project_id = project_id
        self.project_name = project_name
        self.entry_id = entry_id
        label = project_name or project_id
        super().__init__(f"A timer is already running on project '{label}'")


class NotFoundError(TrackerError):
    """
    Referenced record does not exist or does not belong to the caller.

    Ownership failures use the same error so other users' records are never
    revealed.
    """

    code = "NOT_FOUND"

    def __init__(self, resource: str, message: Optional[str] = None):
        self.resource = resource
        super().__init__(message or f"{resource} not found")


class ValidationError(TrackerError):
    """Input reached the tracker in a temporally invalid combination."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        self.field = field
        super().__init__(message)
