"""Error handling utilities."""

from typing import Optional


class WineryError(Exception):
    """Base exception for the winery engine."""
    pass


class InvalidActivityError(WineryError):
    """Activity rejected before any registry mutation."""
    pass


class ActivityNotFoundError(WineryError):
    """Activity id is not (or no longer) in the registry."""

    def __init__(self, activity_id: str):
        super().__init__(f"Activity not found: {activity_id}")
        self.activity_id = activity_id


class NotCancellableError(WineryError):
    """Cancellation requested for a non-cancellable activity."""

    def __init__(self, activity_id: str):
        super().__init__(f"Activity is not cancellable: {activity_id}")
        self.activity_id = activity_id


class CallbackFailure(WineryError):
    """An outcome handler raised while a tick was being processed."""

    def __init__(self, activity_id: str, phase: str, error: Exception):
        super().__init__(f"{phase} handler failed for activity {activity_id}: {error}")
        self.activity_id = activity_id
        self.phase = phase
        self.error = error


class PersistenceError(WineryError):
    """Backing store could not durably record a change."""

    def __init__(self, message: str, activity_id: Optional[str] = None):
        super().__init__(message)
        self.activity_id = activity_id
