"""Application context assembly."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from ads_op_tracker.config import Settings, load_settings
from ads_op_tracker.diagnostics.engine import DiagnosticEngine
from ads_op_tracker.diagnostics.loader import load_diagnostics_config
from ads_op_tracker.domain.operations import Operation, RestorePointType
from ads_op_tracker.domain.payload import operation_to_payload
from ads_op_tracker.events import EventBus
from ads_op_tracker.execution import TrackedExecutor
from ads_op_tracker.logging_utils import configure_logging
from ads_op_tracker.retry import RetryEngine
from ads_op_tracker.rollback import RollbackExecutor, RollbackService
from ads_op_tracker.store.base import OperationStore
from ads_op_tracker.store.memory import InMemoryOperationStore
from ads_op_tracker.store.sqlite import SqliteOperationStore
from ads_op_tracker.tracker import OperationTracker

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """Application-wide dependency container.

    Built once at startup by ``build_app_context`` and passed explicitly to
    whatever needs it. Tests build a fresh context per case.
    """

    settings: Settings
    store: OperationStore
    bus: EventBus[Operation]
    tracker: OperationTracker
    retry_engine: RetryEngine
    diagnostics: DiagnosticEngine
    rollback: RollbackService
    executor: TrackedExecutor

    def operation_payload(self, operation_id: str) -> dict[str, Any] | None:
        """Outbound snapshot of an operation in the configured status vocabulary."""
        operation = self.tracker.get_operation(operation_id)
        if operation is None:
            return None
        return operation_to_payload(operation, self.settings.tracker.status_vocabulary)

    def close(self) -> None:
        self.store.close()


def _build_store(settings: Settings) -> OperationStore:
    if settings.storage.backend == "sqlite":
        return SqliteOperationStore(settings.storage.sqlite_path, wal=settings.storage.sqlite_wal)
    return InMemoryOperationStore()


def build_app_context(
    settings: Settings | None = None,
    rollback_executors: Mapping[RestorePointType | str, RollbackExecutor] | None = None,
) -> AppContext:
    if settings is None:
        settings = load_settings()
    configure_logging(settings.logging)

    store = _build_store(settings)
    bus: EventBus[Operation] = EventBus()
    tracker = OperationTracker(store, bus, strict=settings.tracker.strict_mode)
    retry_engine = RetryEngine(
        tracker,
        default_chunk_size=settings.retry.default_chunk_size,
        retry_operation_type=settings.retry.operation_type,
    )
    diagnostics = DiagnosticEngine(load_diagnostics_config(settings.diagnostics.config_path))
    rollback = RollbackService(tracker, rollback_executors)
    executor = TrackedExecutor(
        tracker,
        rollback,
        max_retries=settings.execution.max_retries,
        retry_delay=settings.execution.retry_delay_seconds,
    )

    logger.info(
        "Operation tracker ready (store=%s, strict=%s, rollback types=%s)",
        settings.storage.backend,
        settings.tracker.strict_mode,
        ",".join(rollback.supported_types) or "none",
    )
    return AppContext(
        settings=settings,
        store=store,
        bus=bus,
        tracker=tracker,
        retry_engine=retry_engine,
        diagnostics=diagnostics,
        rollback=rollback,
        executor=executor,
    )
