"""Finding and auto-fix descriptors produced by diagnostic rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class FixType(str, Enum):
    REDUCE_CHUNK_SIZE = "reduce_chunk_size"
    RETRY_FAILED_ITEMS = "retry_failed_items"


@dataclass(frozen=True)
class Fix:
    """Machine-actionable remediation, consumed by ``RetryEngine.apply_fix``."""

    type: FixType
    operation_id: str
    description: str
    original_chunk_size: int | None = None
    proposed_chunk_size: int | None = None
    items: tuple[str, ...] = ()


@dataclass(frozen=True)
class Finding:
    key: str
    type: str
    description: str
    severity: Severity
    resolution: str
    fix: Fix | None = field(default=None)

    @property
    def auto_fixable(self) -> bool:
        return self.fix is not None
