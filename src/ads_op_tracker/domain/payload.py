"""Outbound snapshot shape consumed by dashboards and other renderers."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from ads_op_tracker.diagnostics.findings import Finding, Fix
from ads_op_tracker.domain.operations import (
    Operation,
    OperationLog,
    RestorePoint,
    StatusVocabulary,
    to_external_status,
)
from ads_op_tracker.utils.masking import redact_sensitive_fields
from ads_op_tracker.utils.serialization import dumps, loads


def _json_safe(value: Any) -> Any:
    return loads(dumps(value))


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _log_payload(log: OperationLog, redact: bool) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "timestamp": _iso(log.timestamp),
        "level": log.level.value,
        "message": log.message,
    }
    if log.details is not None:
        details = _json_safe(log.details)
        payload["details"] = redact_sensitive_fields(details) if redact else details
    return payload


def _restore_point_payload(restore_point: RestorePoint) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": restore_point.id,
        "timestamp": _iso(restore_point.timestamp),
        "type": restore_point.type,
        "data": _json_safe(restore_point.data),
    }
    metadata = restore_point.metadata
    if metadata is not None:
        payload["metadata"] = {
            "name": metadata.name,
            "description": metadata.description,
            "resourceId": metadata.resource_id,
            "resourceType": metadata.resource_type,
        }
    return payload


def operation_to_payload(
    operation: Operation,
    vocabulary: StatusVocabulary = "canonical",
    redact: bool = True,
) -> dict[str, Any]:
    metadata = _json_safe(operation.metadata)
    payload: dict[str, Any] = {
        "id": operation.id,
        "type": operation.type,
        "status": to_external_status(operation.status, vocabulary),
        "progress": operation.progress,
        "startTime": _iso(operation.start_time),
        "endTime": _iso(operation.end_time),
        "logs": [_log_payload(log, redact) for log in operation.logs],
        "metadata": redact_sensitive_fields(metadata) if redact else metadata,
        "restorePoints": [_restore_point_payload(rp) for rp in operation.restore_points],
    }
    if operation.error is not None:
        payload["error"] = {
            "message": operation.error.message,
            "code": operation.error.code,
            "details": _json_safe(operation.error.details),
        }
    return payload


def _fix_payload(fix: Fix) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": fix.type.value,
        "operationId": fix.operation_id,
        "description": fix.description,
    }
    if fix.original_chunk_size is not None:
        payload["originalChunkSize"] = fix.original_chunk_size
    if fix.proposed_chunk_size is not None:
        payload["proposedChunkSize"] = fix.proposed_chunk_size
    if fix.items:
        payload["items"] = list(fix.items)
    return payload


def finding_to_payload(finding: Finding) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "key": finding.key,
        "type": finding.type,
        "description": finding.description,
        "severity": finding.severity.value,
        "resolution": finding.resolution,
        "autoFixable": finding.auto_fixable,
    }
    if finding.fix is not None:
        payload["fix"] = _fix_payload(finding.fix)
    return payload
