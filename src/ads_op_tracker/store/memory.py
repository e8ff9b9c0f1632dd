"""In-process operation store."""

from __future__ import annotations

import copy
import threading
from datetime import datetime
from typing import Any

from ads_op_tracker.domain.operations import (
    Operation,
    OperationError,
    OperationLog,
    OperationStatus,
    RestorePoint,
    new_operation_id,
)
from ads_op_tracker.store.base import OperationFilter, OperationStore, apply_filter


class InMemoryOperationStore(OperationStore):
    def __init__(self) -> None:
        # dicts preserve insertion order, which list() relies on for tie-breaking
        self._operations: dict[str, Operation] = {}
        self._lock = threading.RLock()

    def create(self, type: str, metadata: dict[str, Any] | None = None) -> str:
        operation_id = new_operation_id()
        operation = Operation(
            id=operation_id,
            type=type,
            metadata=copy.deepcopy(dict(metadata or {})),
        )
        with self._lock:
            self._operations[operation_id] = operation
        return operation_id

    def get(self, operation_id: str) -> Operation | None:
        with self._lock:
            operation = self._operations.get(operation_id)
            return operation.snapshot() if operation is not None else None

    def list(self, flt: OperationFilter | None = None) -> list[Operation]:
        with self._lock:
            ordered = list(self._operations.values())
            selected = apply_filter(ordered, flt or OperationFilter())
            return [operation.snapshot() for operation in selected]

    def exists(self, operation_id: str) -> bool:
        with self._lock:
            return operation_id in self._operations

    def get_status(self, operation_id: str) -> OperationStatus | None:
        with self._lock:
            operation = self._operations.get(operation_id)
            return operation.status if operation is not None else None

    def set_status(self, operation_id: str, status: OperationStatus) -> bool:
        with self._lock:
            operation = self._operations.get(operation_id)
            if operation is None:
                return False
            operation.status = status
            return True

    def set_progress(self, operation_id: str, progress: float) -> bool:
        with self._lock:
            operation = self._operations.get(operation_id)
            if operation is None:
                return False
            operation.progress = progress
            return True

    def set_times(
        self,
        operation_id: str,
        *,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
    ) -> bool:
        with self._lock:
            operation = self._operations.get(operation_id)
            if operation is None:
                return False
            if start_time is not None:
                operation.start_time = start_time
            if end_time is not None:
                operation.end_time = end_time
            return True

    def append_log(self, operation_id: str, log: OperationLog) -> bool:
        with self._lock:
            operation = self._operations.get(operation_id)
            if operation is None:
                return False
            operation.logs.append(copy.deepcopy(log))
            return True

    def append_restore_point(self, operation_id: str, restore_point: RestorePoint) -> bool:
        with self._lock:
            operation = self._operations.get(operation_id)
            if operation is None:
                return False
            operation.restore_points.append(copy.deepcopy(restore_point))
            return True

    def set_error(self, operation_id: str, error: OperationError | None) -> bool:
        with self._lock:
            operation = self._operations.get(operation_id)
            if operation is None:
                return False
            operation.error = copy.deepcopy(error)
            return True
