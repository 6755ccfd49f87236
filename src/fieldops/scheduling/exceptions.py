"""
Error taxonomy for the scheduling engine.
"""


class SchedulingError(Exception):
    """Base class for scheduling engine errors."""


class InputValidationError(SchedulingError, ValueError):
    """Caller input rejected before any detection runs (bad date range, threshold, tenant ids)."""


class DataAccessError(SchedulingError):
    """The data store failed to read or write scheduling records."""

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class ResolutionApplyError(SchedulingError):
    """A proposed change could not be executed."""

    def __init__(self, message: str, resolution_id: str | None = None):
        super().__init__(message)
        self.resolution_id = resolution_id


class StaleResolutionError(SchedulingError):
    """A selected resolution no longer exists in the current schedule snapshot."""

    def __init__(self, resolution_ids: list[str]):
        super().__init__(
            f"Resolutions no longer match the current schedule: {', '.join(resolution_ids)}"
        )
        self.resolution_ids = resolution_ids
