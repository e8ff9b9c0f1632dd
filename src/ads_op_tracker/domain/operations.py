"""Domain objects for tracked operations."""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Literal
from uuid import uuid4

StatusVocabulary = Literal["canonical", "dashboard"]


def new_operation_id() -> str:
    return f"op_{uuid4().hex}"


def new_restore_point_id() -> str:
    return f"rp_{uuid4().hex}"


class OperationStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {OperationStatus.COMPLETED, OperationStatus.FAILED, OperationStatus.CANCELLED}
)

# Spellings used by the dashboard side of the original system.
_STATUS_ALIASES: dict[str, OperationStatus] = {
    "in_progress": OperationStatus.RUNNING,
    "in-progress": OperationStatus.RUNNING,
    "canceled": OperationStatus.CANCELLED,
}

_DASHBOARD_SPELLING: dict[OperationStatus, str] = {
    OperationStatus.RUNNING: "in_progress",
}


def parse_status(value: str | OperationStatus) -> OperationStatus:
    """Map either status vocabulary onto the canonical enum."""
    if isinstance(value, OperationStatus):
        return value
    key = value.strip().lower()
    alias = _STATUS_ALIASES.get(key)
    if alias is not None:
        return alias
    try:
        return OperationStatus(key)
    except ValueError as exc:
        raise ValueError(f"Unknown operation status: {value!r}") from exc


def to_external_status(
    status: OperationStatus, vocabulary: StatusVocabulary = "canonical"
) -> str:
    if vocabulary == "dashboard":
        return _DASHBOARD_SPELLING.get(status, status.value)
    return status.value


class LogLevel(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    DEBUG = "debug"


class RestorePointType(str, Enum):
    """Restorable actions understood by the rollback executors."""

    CAMPAIGN_CREATION = "campaign_creation"
    CAMPAIGN_UPDATE = "campaign_update"
    AD_GROUP_CREATION = "ad_group_creation"
    KEYWORD_CREATION = "keyword_creation"


@dataclass(frozen=True)
class OperationLog:
    timestamp: datetime
    level: LogLevel
    message: str
    details: Any = None


@dataclass
class OperationError:
    message: str
    code: str | None = None
    details: Any = None

    @classmethod
    def coerce(
        cls, value: OperationError | Mapping[str, Any] | BaseException | str
    ) -> OperationError:
        if isinstance(value, OperationError):
            return value
        if isinstance(value, Mapping):
            code = value.get("code")
            return cls(
                message=str(value.get("message") or "Unknown error"),
                code=str(code) if code is not None else None,
                details=value.get("details"),
            )
        if isinstance(value, BaseException):
            code = getattr(value, "code", None)
            return cls(
                message=str(value) or type(value).__name__,
                code=code if isinstance(code, str) else None,
                details={"type": type(value).__name__},
            )
        return cls(message=str(value))


@dataclass(frozen=True)
class RestorePointMetadata:
    name: str
    description: str
    resource_id: str | None = None
    resource_type: str | None = None

    @classmethod
    def coerce(
        cls, value: RestorePointMetadata | Mapping[str, Any] | None
    ) -> RestorePointMetadata | None:
        if value is None or isinstance(value, RestorePointMetadata):
            return value
        return cls(
            name=str(value.get("name", "")),
            description=str(value.get("description", "")),
            resource_id=value.get("resource_id", value.get("resourceId")),
            resource_type=value.get("resource_type", value.get("resourceType")),
        )


@dataclass(frozen=True)
class RestorePoint:
    id: str
    timestamp: datetime
    type: str
    data: Any
    metadata: RestorePointMetadata | None = None

    @property
    def label(self) -> str:
        if self.metadata and self.metadata.name:
            return self.metadata.name
        return self.type


@dataclass
class Operation:
    id: str
    type: str
    status: OperationStatus = OperationStatus.PENDING
    progress: float = 0
    start_time: datetime | None = None
    end_time: datetime | None = None
    logs: list[OperationLog] = field(default_factory=list)
    error: OperationError | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    restore_points: list[RestorePoint] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def snapshot(self) -> Operation:
        """Deep copy handed to callers outside the store."""
        return copy.deepcopy(self)
