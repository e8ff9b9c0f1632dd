"""Retry/derivation engine.

A retry is a fresh ``pending`` operation whose metadata points back at its
origin while the origin's log records a forward reference to the retry.
Higher-level policies (retrying failed campaigns, executing a diagnostic
fix) compute a narrowed work set and delegate to ``retry_operation``.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Sequence

from ads_op_tracker.diagnostics.findings import Fix, FixType
from ads_op_tracker.domain import clone_metadata as keys
from ads_op_tracker.domain.clone_metadata import CloneMetadata
from ads_op_tracker.domain.operations import LogLevel, Operation
from ads_op_tracker.errors import OperationNotFoundError, RetryNotPossibleError
from ads_op_tracker.tracker import OperationTracker
from ads_op_tracker.utils.time import utc_now_iso

logger = logging.getLogger(__name__)

DEFAULT_RETRY_CHUNK_SIZE = 3
DEFAULT_RETRY_OPERATION_TYPE = "retry_campaign_clone"

_LINK_KEYS = (keys.ORIGINAL_OPERATION_ID, keys.RETRY_OF)


class RetryEngine:
    def __init__(
        self,
        tracker: OperationTracker,
        *,
        default_chunk_size: int = DEFAULT_RETRY_CHUNK_SIZE,
        retry_operation_type: str = DEFAULT_RETRY_OPERATION_TYPE,
    ) -> None:
        if default_chunk_size < 1:
            raise ValueError("default_chunk_size must be at least 1")
        self._tracker = tracker
        self._default_chunk_size = default_chunk_size
        self._retry_operation_type = retry_operation_type

    @property
    def default_chunk_size(self) -> int:
        return self._default_chunk_size

    def retry_operation(
        self,
        original_id: str,
        new_type: str,
        metadata: Mapping[str, Any] | None = None,
    ) -> str:
        """Create a retry of ``original_id`` and link both operations.

        Caller metadata overrides ``originalType`` and ``retryTime``. The
        back-reference keys always name the origin.
        """
        original = self._require(original_id)
        merged: dict[str, Any] = {
            keys.ORIGINAL_TYPE: original.type,
            keys.RETRY_TIME: utc_now_iso(),
        }
        merged.update(metadata or {})
        for key in _LINK_KEYS:
            if key in merged and merged[key] != original_id:
                logger.warning(
                    "Ignoring %s=%r supplied for retry of %s", key, merged[key], original_id
                )
            merged[key] = original_id

        retry_id = self._tracker.create_operation(new_type, merged)
        self._tracker.add_log(
            retry_id, LogLevel.INFO, f"Retry operation created for {original_id}"
        )
        self._tracker.add_log(
            original_id,
            LogLevel.INFO,
            f"Retry operation {retry_id} created",
            {"retryId": retry_id},
        )
        logger.info("Created retry %s (%s) for operation %s", retry_id, new_type, original_id)
        return retry_id

    def retry_failed_items(
        self,
        original_id: str,
        chunk_size: int | None = None,
        new_type: str | None = None,
        items: Sequence[str] | None = None,
    ) -> str:
        """Retry the failed campaigns of a clone operation.

        Without explicit ``items`` the work set is the failed campaign ids,
        or every campaign id when none are recorded as failed.
        """
        original = self._require(original_id)
        view = CloneMetadata(original.metadata)
        if view.customer_id is None:
            raise RetryNotPossibleError(f"Operation {original_id} has no customer id")
        if view.raw_config is None:
            raise RetryNotPossibleError(f"Operation {original_id} has no clone config")

        work_set = list(items) if items else (view.failed_item_ids or view.campaign_ids)
        if not work_set:
            raise RetryNotPossibleError(f"Operation {original_id} has no campaigns to retry")

        size = chunk_size if chunk_size is not None else self._default_chunk_size
        if size < 1:
            raise RetryNotPossibleError(f"Invalid chunk size {size}")

        metadata = {
            keys.CUSTOMER_ID: view.customer_id,
            keys.CAMPAIGN_IDS: work_set,
            keys.CONFIG: dict(view.raw_config),
            keys.RETRY_COUNT: view.retry_count + 1,
            keys.CHUNK_SIZE: size,
        }
        retry_id = self.retry_operation(
            original_id, new_type or self._retry_operation_type, metadata
        )
        previous_errors = {
            item.id: item.error
            for item in view.failed_items
            if item.error is not None and item.id in work_set
        }
        if previous_errors:
            self._tracker.add_log(
                retry_id,
                LogLevel.INFO,
                f"Retrying {len(previous_errors)} campaigns that previously failed",
                {"previousErrors": previous_errors},
            )
        return retry_id

    def apply_fix(self, fix: Fix) -> str:
        if fix.type == FixType.REDUCE_CHUNK_SIZE:
            return self.retry_failed_items(fix.operation_id, chunk_size=fix.proposed_chunk_size)
        if fix.type == FixType.RETRY_FAILED_ITEMS:
            return self.retry_failed_items(
                fix.operation_id, chunk_size=self._default_chunk_size, items=fix.items
            )
        raise ValueError(f"Unsupported fix type: {fix.type}")

    def _require(self, operation_id: str) -> Operation:
        operation = self._tracker.get_operation(operation_id)
        if operation is None:
            raise OperationNotFoundError(operation_id)
        return operation
