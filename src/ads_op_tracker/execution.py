"""Tracked execution of asynchronous work.

``TrackedExecutor.run_tracked`` creates an operation and drives it through
the lifecycle API while the work callable runs. A failed attempt is logged
on the operation and retried after a delay that grows with the attempt
number. When the last attempt fails the operation is marked failed and, if
a rollback service is configured, its latest restore point is rolled back.

Cancellation is cooperative: work checks ``handle.cancelled`` (or calls
``handle.raise_if_cancelled()``) between steps, and anyone holding the
operation id may call ``OperationTracker.cancel_operation``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Mapping
from typing import Any, Callable, TypeVar

from ads_op_tracker.domain.operations import (
    LogLevel,
    OperationStatus,
    RestorePointMetadata,
    RestorePointType,
)
from ads_op_tracker.errors import OperationCancelledError
from ads_op_tracker.rollback import RollbackService
from ads_op_tracker.tracker import OperationTracker

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_RETRIES = 2
DEFAULT_RETRY_DELAY = 1.0


class ExecutionHandle:
    """What a work callable sees of the operation it runs under."""

    def __init__(self, tracker: OperationTracker, operation_id: str, attempt: int) -> None:
        self._tracker = tracker
        self._operation_id = operation_id
        self._attempt = attempt

    @property
    def operation_id(self) -> str:
        return self._operation_id

    @property
    def attempt(self) -> int:
        return self._attempt

    @property
    def cancelled(self) -> bool:
        operation = self._tracker.get_operation(self._operation_id)
        return operation is not None and operation.status == OperationStatus.CANCELLED

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelledError(self._operation_id)

    def report_progress(self, value: float) -> None:
        self._tracker.update_progress(self._operation_id, value)

    def log(self, level: LogLevel | str, message: str, details: Any = None) -> None:
        self._tracker.add_log(self._operation_id, level, message, details)

    def create_restore_point(
        self,
        type: RestorePointType | str,
        data: Any,
        metadata: RestorePointMetadata | Mapping[str, Any] | None = None,
    ) -> str:
        return self._tracker.create_restore_point(self._operation_id, type, data, metadata)


Work = Callable[[ExecutionHandle], Awaitable[T]]
Sleep = Callable[[float], Awaitable[Any]]


class TrackedExecutor:
    def __init__(
        self,
        tracker: OperationTracker,
        rollback: RollbackService | None = None,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        _check_retry_options(max_retries, retry_delay)
        self._tracker = tracker
        self._rollback = rollback
        self._max_retries = max_retries
        self._retry_delay = retry_delay
        self._sleep = sleep

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def retry_delay(self) -> float:
        return self._retry_delay

    async def run_tracked(
        self,
        type: str,
        metadata: Mapping[str, Any] | None,
        work: Work[T],
        *,
        max_retries: int | None = None,
        retry_delay: float | None = None,
    ) -> T:
        """Run ``work`` under a new operation and return its result.

        ``work`` is attempted once plus up to ``max_retries`` more times;
        attempt ``n`` is followed by a wait of ``retry_delay * n`` seconds.
        The last error is re-raised after the operation is failed. A
        cancelled operation is never retried and raises
        ``OperationCancelledError``.
        """
        retries = self._max_retries if max_retries is None else max_retries
        delay = self._retry_delay if retry_delay is None else retry_delay
        _check_retry_options(retries, delay)

        operation_id = self._tracker.create_operation(type, metadata)
        self._tracker.start_operation(operation_id)
        attempt = 0
        while True:
            attempt += 1
            handle = ExecutionHandle(self._tracker, operation_id, attempt)
            try:
                handle.raise_if_cancelled()
                result = await work(handle)
                handle.raise_if_cancelled()
            except OperationCancelledError:
                self._cancelled(operation_id)
                raise
            except asyncio.CancelledError:
                self._cancelled(operation_id)
                raise
            except Exception as exc:
                if handle.cancelled:
                    self._cancelled(operation_id)
                    raise OperationCancelledError(operation_id) from exc
                if attempt > retries:
                    await self._give_up(operation_id, attempt, exc)
                    raise
                wait = delay * attempt
                logger.warning(
                    "Attempt %d of operation %s failed: %s; retrying in %.2fs",
                    attempt,
                    operation_id,
                    exc,
                    wait,
                )
                self._tracker.add_log(
                    operation_id,
                    LogLevel.WARNING,
                    f"Attempt {attempt} failed: {exc}",
                    {"attempt": attempt, "error": str(exc), "retryDelay": wait},
                )
                self._tracker.update_progress(operation_id, 0)
                await self._sleep(wait)
                continue

            self._tracker.complete_operation(operation_id)
            return result

    def _cancelled(self, operation_id: str) -> None:
        self._tracker.cancel_operation(operation_id)
        logger.info("Tracked work for operation %s stopped after cancellation", operation_id)

    async def _give_up(self, operation_id: str, attempts: int, exc: Exception) -> None:
        self._tracker.fail_operation(operation_id, exc)
        logger.error("Operation %s failed after %d attempts: %s", operation_id, attempts, exc)
        if self._rollback is None:
            return
        if self._tracker.get_latest_restore_point(operation_id) is None:
            return
        result = await self._rollback.rollback_operation(operation_id)
        if not result.success:
            logger.warning("Automatic rollback of %s failed: %s", operation_id, result.message)


def _check_retry_options(max_retries: int, retry_delay: float) -> None:
    if max_retries < 0:
        raise ValueError("max_retries must not be negative")
    if retry_delay < 0:
        raise ValueError("retry_delay must not be negative")
