"""
Error taxonomy for schedule commands.

The pure calculators (window, conflicts, layout, utilization) never raise
these; they are produced at the store boundary and handled by the controller.
"""

from typing import List, Optional


class SchedulingError(Exception):
    """Base class for every recoverable scheduling failure."""


class ValidationError(SchedulingError):
    """A required field is missing or malformed; nothing was sent to the store."""

    def __init__(self, field: str, message: Optional[str] = None):
        self.field = field
        super().__init__(message or f"'{field}' is required")


class ConflictWarning(SchedulingError):
    """Non-fatal: the candidate overlaps existing entries and needs confirmation."""

    def __init__(self, conflicts: List):
        self.conflicts = list(conflicts)
        noun = "entry" if len(self.conflicts) == 1 else "entries"
        super().__init__(f"Overlaps {len(self.conflicts)} existing {noun}")


class ImmutableEntryError(SchedulingError):
    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Entry {entry_id} is synced from an external calendar and cannot be changed")


class InvalidStateTransition(SchedulingError):
    def __init__(self, request_id: str, current: str, attempted: str):
        self.request_id = request_id
        self.current = current
        self.attempted = attempted
        super().__init__(f"Cannot {attempted} time-off request {request_id}: it is already {current}")


class NotFoundError(SchedulingError):
    def __init__(self, kind: str, item_id: str):
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"{kind} {item_id} not found")


class PermissionDeniedError(SchedulingError):
    pass


class TransientNetworkError(SchedulingError):
    """Any other store failure. Never retried automatically."""
