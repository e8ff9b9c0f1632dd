"""Rollback dispatcher.

Resolves a restore point on an operation and hands it to the executor
registered for its type. Executors perform the actual Ads API calls and are
supplied by the application; this module never talks to the network.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass
from typing import Any, Callable

from ads_op_tracker.domain.clone_metadata import CloneMetadata
from ads_op_tracker.domain.operations import LogLevel, RestorePoint, RestorePointType
from ads_op_tracker.errors import OperationNotFoundError, RestorePointNotFoundError, TrackerError
from ads_op_tracker.tracker import OperationTracker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RollbackResult:
    success: bool
    message: str
    details: Any = None


RollbackExecutor = Callable[[RestorePoint, str | None], Awaitable[RollbackResult]]


class RollbackError(TrackerError):
    """Raised internally when a rollback cannot be dispatched."""


class RollbackService:
    def __init__(
        self,
        tracker: OperationTracker,
        executors: Mapping[RestorePointType | str, RollbackExecutor] | None = None,
    ) -> None:
        self._tracker = tracker
        self._executors: dict[str, RollbackExecutor] = {}
        for rp_type, executor in (executors or {}).items():
            self.register(rp_type, executor)

    def register(self, rp_type: RestorePointType | str, executor: RollbackExecutor) -> None:
        key = RestorePointType(rp_type).value
        self._executors[key] = executor

    @property
    def supported_types(self) -> list[str]:
        return sorted(self._executors)

    async def rollback_operation(
        self,
        operation_id: str,
        restore_point_id: str | None = None,
        *,
        customer_id: str | None = None,
        silent: bool = False,
    ) -> RollbackResult:
        """Undo one side-effecting step of an operation.

        Uses the named restore point, or the latest one when no id is given.
        Failures come back as an unsuccessful ``RollbackResult``.
        """
        operation_known = False
        try:
            operation = self._tracker.get_operation(operation_id)
            if operation is None:
                raise OperationNotFoundError(operation_id)
            operation_known = True

            restore_point = self._resolve(operation_id, restore_point_id)
            if not silent:
                self._tracker.add_log(
                    operation_id,
                    LogLevel.INFO,
                    f"Attempting rollback using restore point: {restore_point.label}",
                    {"restorePointId": restore_point.id},
                )

            executor = self._executors.get(restore_point.type)
            if executor is None:
                raise RollbackError(f"Unsupported restore point type: {restore_point.type}")

            target_customer = customer_id or CloneMetadata(operation.metadata).customer_id
            result = await executor(restore_point, target_customer)
            if not isinstance(result, RollbackResult):
                raise RollbackError("Executor returned no RollbackResult")
            logger.info("Rollback of operation %s finished: %s", operation_id, result.message)
        except TrackerError as exc:
            logger.warning("Rollback of operation %s rejected: %s", operation_id, exc)
            return self._failure(operation_id, exc, operation_known)
        except Exception as exc:
            logger.exception("Rollback of operation %s failed", operation_id)
            return self._failure(operation_id, exc, operation_known)

        return result

    def _failure(
        self, operation_id: str, exc: Exception, operation_known: bool
    ) -> RollbackResult:
        message = f"Failed to execute rollback: {exc}"
        if operation_known:
            self._tracker.add_log(operation_id, LogLevel.ERROR, message, {"error": str(exc)})
        return RollbackResult(success=False, message=message, details={"error": str(exc)})

    def _resolve(self, operation_id: str, restore_point_id: str | None) -> RestorePoint:
        if restore_point_id is not None:
            restore_point = self._tracker.get_restore_point(operation_id, restore_point_id)
            if restore_point is None:
                raise RestorePointNotFoundError(operation_id, restore_point_id)
            return restore_point
        restore_point = self._tracker.get_latest_restore_point(operation_id)
        if restore_point is None:
            raise RollbackError("No restore points available for this operation")
        return restore_point
