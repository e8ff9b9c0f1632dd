"""Exceptions raised by the operation tracker."""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for tracker errors."""


class OperationNotFoundError(TrackerError, LookupError):
    def __init__(self, operation_id: str) -> None:
        super().__init__(f"Operation {operation_id} not found")
        self.operation_id = operation_id


class RestorePointNotFoundError(TrackerError, LookupError):
    def __init__(self, operation_id: str, restore_point_id: str) -> None:
        super().__init__(
            f"Restore point {restore_point_id} not found on operation {operation_id}"
        )
        self.operation_id = operation_id
        self.restore_point_id = restore_point_id


class RetryNotPossibleError(TrackerError, ValueError):
    """The origin operation lacks the data needed to derive a retry."""


class OperationCancelledError(TrackerError):
    """Tracked work stopped because its operation was cancelled."""

    def __init__(self, operation_id: str) -> None:
        super().__init__(f"Operation {operation_id} was cancelled")
        self.operation_id = operation_id
