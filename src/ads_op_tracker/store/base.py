"""Operation store contract shared by the in-memory and SQLite backends."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Literal

from ads_op_tracker.domain.operations import (
    Operation,
    OperationError,
    OperationLog,
    OperationStatus,
    RestorePoint,
    parse_status,
)

SortDirection = Literal["asc", "desc"]

_SORT_KEYS: dict[str, str] = {
    "id": "id",
    "type": "type",
    "status": "status",
    "progress": "progress",
    "start_time": "start_time",
    "startTime": "start_time",
    "end_time": "end_time",
    "endTime": "end_time",
}


@dataclass
class OperationFilter:
    type: str | None = None
    status: OperationStatus | str | None = None
    limit: int | None = None
    offset: int | None = None
    sort_by: str = "start_time"
    sort_direction: SortDirection = "desc"
    include_completed: bool = True
    started_after: datetime | None = None
    started_before: datetime | None = None

    @property
    def resolved_status(self) -> OperationStatus | None:
        if self.status is None:
            return None
        return parse_status(self.status)


def _sort_value(operation: Operation, attribute: str) -> Any:
    value = getattr(operation, attribute)
    if isinstance(value, OperationStatus):
        return value.value
    return value


def apply_filter(operations: list[Operation], flt: OperationFilter) -> list[Operation]:
    """Filter, sort and paginate operations given in insertion order."""
    status = flt.resolved_status
    selected = [
        op
        for op in operations
        if (flt.type is None or op.type == flt.type)
        and (status is None or op.status == status)
        and (flt.include_completed or op.status != OperationStatus.COMPLETED)
        and (
            flt.started_after is None
            or (op.start_time is not None and op.start_time >= flt.started_after)
        )
        and (
            flt.started_before is None
            or (op.start_time is not None and op.start_time <= flt.started_before)
        )
    ]

    attribute = _SORT_KEYS.get(flt.sort_by)
    if attribute is not None:
        descending = flt.sort_direction == "desc"
        missing = [op for op in selected if getattr(op, attribute) is None]
        present = [op for op in selected if getattr(op, attribute) is not None]
        # list.sort is stable in both directions, so ties keep insertion order.
        present.sort(key=lambda op: _sort_value(op, attribute), reverse=descending)
        selected = missing + present if descending else present + missing

    start = max(flt.offset or 0, 0)
    if flt.limit is not None:
        return selected[start : start + max(flt.limit, 0)]
    return selected[start:]


class OperationStore(ABC):
    """Canonical holder of operation state.

    Reads return snapshots. Mutators return ``False`` and change nothing when
    the id is unknown; only the lifecycle API is expected to call them.
    """

    @abstractmethod
    def create(self, type: str, metadata: dict[str, Any] | None = None) -> str: ...

    @abstractmethod
    def get(self, operation_id: str) -> Operation | None: ...

    @abstractmethod
    def list(self, flt: OperationFilter | None = None) -> list[Operation]: ...

    @abstractmethod
    def exists(self, operation_id: str) -> bool: ...

    @abstractmethod
    def get_status(self, operation_id: str) -> OperationStatus | None: ...

    @abstractmethod
    def set_status(self, operation_id: str, status: OperationStatus) -> bool: ...

    @abstractmethod
    def set_progress(self, operation_id: str, progress: float) -> bool: ...

    @abstractmethod
    def set_times(
        self,
        operation_id: str,
        *,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
    ) -> bool: ...

    @abstractmethod
    def append_log(self, operation_id: str, log: OperationLog) -> bool: ...

    @abstractmethod
    def append_restore_point(self, operation_id: str, restore_point: RestorePoint) -> bool: ...

    @abstractmethod
    def set_error(self, operation_id: str, error: OperationError | None) -> bool: ...

    def close(self) -> None:
        """Release backend resources."""
