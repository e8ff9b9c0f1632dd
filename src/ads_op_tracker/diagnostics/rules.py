"""Heuristic failure-classification rules.

Each rule inspects a single operation snapshot and returns at most one
finding. Rules never mutate the operation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from ads_op_tracker.diagnostics.findings import Finding, Fix, FixType, Severity
from ads_op_tracker.diagnostics.models import DiagnosticsConfig
from ads_op_tracker.domain.clone_metadata import CloneMetadata
from ads_op_tracker.domain.operations import LogLevel, Operation, OperationStatus

RuleCheck = Callable[[Operation, DiagnosticsConfig], Finding | None]


@dataclass(frozen=True)
class DiagnosticRule:
    name: str
    check: RuleCheck


def _mentions_any(message: str, markers: list[str]) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in markers)


def check_rate_limit(operation: Operation, config: DiagnosticsConfig) -> Finding | None:
    throttled = [
        log
        for log in operation.logs
        if log.level == LogLevel.ERROR and _mentions_any(log.message, config.rate_limit_markers)
    ]
    if not throttled:
        return None
    chunk_size = CloneMetadata(operation.metadata).chunk_size(config.default_chunk_size)
    return Finding(
        key="rate_limit",
        type="api_limit",
        description="Operation encountered rate limiting issues",
        severity=Severity.HIGH,
        resolution="Reduce the chunk size and retry with progressive delay",
        fix=Fix(
            type=FixType.REDUCE_CHUNK_SIZE,
            operation_id=operation.id,
            description="Reduce chunk size and retry with progressive delay",
            original_chunk_size=chunk_size,
            proposed_chunk_size=max(1, chunk_size // 2),
        ),
    )


def check_partial_completion(operation: Operation, config: DiagnosticsConfig) -> Finding | None:
    if operation.status != OperationStatus.FAILED:
        return None
    failed_ids = CloneMetadata(operation.metadata).failed_item_ids
    if not failed_ids:
        return None
    return Finding(
        key="incomplete",
        type="incomplete",
        description=f"{len(failed_ids)} campaigns failed to process",
        severity=Severity.MEDIUM,
        resolution="Retry failed campaigns with a smaller chunk size",
        fix=Fix(
            type=FixType.RETRY_FAILED_ITEMS,
            operation_id=operation.id,
            description="Retry failed campaigns with reduced chunk size",
            items=tuple(failed_ids),
        ),
    )


def check_negative_keywords(operation: Operation, config: DiagnosticsConfig) -> Finding | None:
    if operation.type not in config.clone_operation_types:
        return None
    clone_config = CloneMetadata(operation.metadata).config
    if clone_config is None or not clone_config.create_negative_exact_keywords:
        return None
    far_enough = (
        operation.status == OperationStatus.COMPLETED
        or operation.progress >= config.progress_threshold
    )
    if not far_enough:
        return None
    confirmed = any(
        "negative" in log.message.lower() and "keyword" in log.message.lower()
        for log in operation.logs
    )
    if confirmed:
        return None
    return Finding(
        key="negative_keywords",
        type="configuration",
        description="Negative keywords may not have been created properly",
        severity=Severity.LOW,
        resolution="Verify negative keyword creation status",
    )


def check_default_naming(operation: Operation, config: DiagnosticsConfig) -> Finding | None:
    if operation.type not in config.clone_operation_types:
        return None
    if operation.status != OperationStatus.COMPLETED:
        return None
    view = CloneMetadata(operation.metadata)
    if not view.has_completed_items or view.config is None:
        return None
    if view.config.name_template != config.default_name_template:
        return None
    return Finding(
        key="naming",
        type="configuration",
        description="Default naming template used which might lead to confusion",
        severity=Severity.LOW,
        resolution="Consider using a more descriptive naming convention",
    )


DEFAULT_RULES: tuple[DiagnosticRule, ...] = (
    DiagnosticRule("rate_limit", check_rate_limit),
    DiagnosticRule("incomplete", check_partial_completion),
    DiagnosticRule("negative_keywords", check_negative_keywords),
    DiagnosticRule("naming", check_default_naming),
)
