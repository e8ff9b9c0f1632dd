"""Operation lifecycle API.

``OperationTracker`` is the only component that mutates the operation store.
It enforces the state machine::

    pending -> running -> {completed, failed, cancelled}

``pending`` may also go straight to ``failed`` or ``cancelled``. Terminal
states absorb every lifecycle call; ``add_log`` and ``create_restore_point``
are accepted in any state so diagnostics can annotate finished operations.

Progress reporting runs inside best-effort code paths, so mutators on an
unknown id are silent no-ops. Pass ``strict=True`` to raise
``OperationNotFoundError`` instead, which is useful in test suites.
"""

from __future__ import annotations

import logging
import math
import threading
from collections.abc import Mapping
from typing import Any, Callable

from ads_op_tracker.domain.operations import (
    LogLevel,
    Operation,
    OperationError,
    OperationLog,
    OperationStatus,
    RestorePoint,
    RestorePointMetadata,
    RestorePointType,
    new_restore_point_id,
)
from ads_op_tracker.errors import OperationNotFoundError
from ads_op_tracker.events import EventBus, Unsubscribe
from ads_op_tracker.store.base import OperationFilter, OperationStore
from ads_op_tracker.utils.time import utc_now

logger = logging.getLogger(__name__)

_STARTABLE = frozenset({OperationStatus.PENDING})
_RUNNING = frozenset({OperationStatus.RUNNING})
_ACTIVE = frozenset({OperationStatus.PENDING, OperationStatus.RUNNING})


def clamp_progress(value: float) -> float:
    if math.isnan(value):
        return 0
    return min(max(value, 0), 100)


class OperationTracker:
    def __init__(
        self,
        store: OperationStore,
        bus: EventBus[Operation] | None = None,
        *,
        strict: bool = False,
    ) -> None:
        self._store = store
        self._bus: EventBus[Operation] = bus if bus is not None else EventBus()
        self._strict = strict
        # Guards check-then-set in transitions against native-thread interleaving.
        self._lock = threading.RLock()

    @property
    def store(self) -> OperationStore:
        return self._store

    @property
    def bus(self) -> EventBus[Operation]:
        return self._bus

    @property
    def strict(self) -> bool:
        return self._strict

    def create_operation(self, type: str, metadata: Mapping[str, Any] | None = None) -> str:
        operation_id = self._store.create(type, dict(metadata or {}))
        logger.debug("Created %s operation %s", type, operation_id)
        self._notify(operation_id)
        return operation_id

    def start_operation(self, operation_id: str) -> None:
        with self._lock:
            if not self._can_transition(operation_id, _STARTABLE, "start"):
                return
            self._store.set_status(operation_id, OperationStatus.RUNNING)
            self._store.set_progress(operation_id, 0)
            self._store.set_times(operation_id, start_time=utc_now())
            self._append_log(operation_id, LogLevel.INFO, "Operation started")
        self._notify(operation_id)

    def update_progress(self, operation_id: str, progress: float) -> None:
        with self._lock:
            if not self._can_transition(operation_id, _RUNNING, "update progress of"):
                return
            self._store.set_progress(operation_id, clamp_progress(float(progress)))
        self._notify(operation_id)

    def complete_operation(self, operation_id: str) -> None:
        with self._lock:
            if not self._can_transition(operation_id, _RUNNING, "complete"):
                return
            self._store.set_status(operation_id, OperationStatus.COMPLETED)
            self._store.set_progress(operation_id, 100)
            self._store.set_times(operation_id, end_time=utc_now())
            self._append_log(operation_id, LogLevel.INFO, "Operation completed")
        self._notify(operation_id)

    def fail_operation(
        self,
        operation_id: str,
        error: OperationError | Mapping[str, Any] | BaseException | str,
    ) -> None:
        failure = OperationError.coerce(error)
        with self._lock:
            if not self._can_transition(operation_id, _ACTIVE, "fail"):
                return
            self._store.set_status(operation_id, OperationStatus.FAILED)
            self._store.set_error(operation_id, failure)
            self._store.set_times(operation_id, end_time=utc_now())
            self._append_log(
                operation_id,
                LogLevel.ERROR,
                f"Operation failed: {failure.message}",
                {"message": failure.message, "code": failure.code, "details": failure.details},
            )
        logger.info("Operation %s failed: %s", operation_id, failure.message)
        self._notify(operation_id)

    def cancel_operation(self, operation_id: str) -> None:
        with self._lock:
            if not self._can_transition(operation_id, _ACTIVE, "cancel"):
                return
            self._store.set_status(operation_id, OperationStatus.CANCELLED)
            self._store.set_times(operation_id, end_time=utc_now())
            self._append_log(operation_id, LogLevel.INFO, "Operation cancelled")
        self._notify(operation_id)

    def add_log(
        self,
        operation_id: str,
        level: LogLevel | str,
        message: str,
        details: Any = None,
    ) -> None:
        log_level = LogLevel(level.lower()) if isinstance(level, str) else level
        with self._lock:
            if not self._append_log(operation_id, log_level, message, details):
                self._missing(operation_id, "log to")
                return
        self._notify(operation_id)

    def create_restore_point(
        self,
        operation_id: str,
        type: RestorePointType | str,
        data: Any,
        metadata: RestorePointMetadata | Mapping[str, Any] | None = None,
    ) -> str:
        """Record a restore point and return its id.

        Raises ``OperationNotFoundError`` regardless of strict mode, since the
        caller needs the returned id.
        """
        restore_point = RestorePoint(
            id=new_restore_point_id(),
            timestamp=utc_now(),
            type=type.value if isinstance(type, RestorePointType) else type,
            data=data,
            metadata=RestorePointMetadata.coerce(metadata),
        )
        with self._lock:
            if not self._store.append_restore_point(operation_id, restore_point):
                raise OperationNotFoundError(operation_id)
            self._append_log(
                operation_id,
                LogLevel.INFO,
                f"Restore point created: {restore_point.label}",
                {"restorePointId": restore_point.id},
            )
        self._notify(operation_id)
        return restore_point.id

    def get_operation(self, operation_id: str) -> Operation | None:
        return self._store.get(operation_id)

    def list_operations(
        self, flt: OperationFilter | None = None, **options: Any
    ) -> list[Operation]:
        if flt is not None and options:
            raise TypeError("Pass either an OperationFilter or keyword options, not both")
        if flt is None:
            flt = OperationFilter(**options)
        return self._store.list(flt)

    def get_operation_logs(self, operation_id: str) -> list[OperationLog]:
        operation = self._store.get(operation_id)
        return list(operation.logs) if operation is not None else []

    def get_restore_points(self, operation_id: str) -> list[RestorePoint]:
        operation = self._store.get(operation_id)
        return list(operation.restore_points) if operation is not None else []

    def get_restore_point(self, operation_id: str, restore_point_id: str) -> RestorePoint | None:
        for restore_point in self.get_restore_points(operation_id):
            if restore_point.id == restore_point_id:
                return restore_point
        return None

    def get_latest_restore_point(
        self, operation_id: str, type: RestorePointType | str | None = None
    ) -> RestorePoint | None:
        wanted = type.value if isinstance(type, RestorePointType) else type
        latest: RestorePoint | None = None
        for restore_point in self.get_restore_points(operation_id):
            if wanted is not None and restore_point.type != wanted:
                continue
            if latest is None or restore_point.timestamp >= latest.timestamp:
                latest = restore_point
        return latest

    def subscribe(self, operation_id: str, callback: Callable[[Operation], None]) -> Unsubscribe:
        """Register ``callback`` and replay the current snapshot to it once."""
        unsubscribe = self._bus.subscribe(operation_id, callback)
        snapshot = self._store.get(operation_id)
        if snapshot is not None:
            self._bus.deliver(operation_id, callback, snapshot)
        return unsubscribe

    def _can_transition(
        self, operation_id: str, allowed: frozenset[OperationStatus], action: str
    ) -> bool:
        status = self._store.get_status(operation_id)
        if status is None:
            self._missing(operation_id, action)
            return False
        if status not in allowed:
            logger.debug(
                "Ignoring request to %s operation %s in status %s",
                action,
                operation_id,
                status.value,
            )
            return False
        return True

    def _missing(self, operation_id: str, action: str) -> None:
        if self._strict:
            raise OperationNotFoundError(operation_id)
        logger.debug("Cannot %s unknown operation %s", action, operation_id)

    def _append_log(
        self, operation_id: str, level: LogLevel, message: str, details: Any = None
    ) -> bool:
        log = OperationLog(timestamp=utc_now(), level=level, message=message, details=details)
        return self._store.append_log(operation_id, log)

    def _notify(self, operation_id: str) -> None:
        if self._bus.subscriber_count(operation_id) == 0:
            return
        snapshot = self._store.get(operation_id)
        if snapshot is None:
            return
        self._bus.publish(operation_id, snapshot, copy=Operation.snapshot)
