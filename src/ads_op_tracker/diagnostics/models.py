"""Diagnostic rule configuration models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

DEFAULT_RATE_LIMIT_MARKERS = [
    "rate limit",
    "quota",
    "resource_exhausted",
    "throttl",
    "too many requests",
]

DEFAULT_CLONE_OPERATION_TYPES = [
    "campaign_clone",
    "bulk_campaign_clone",
    "retry_campaign_clone",
]


def _ensure_list(v: Any) -> list:
    """Convert None to empty list, pass through lists."""
    if v is None:
        return []
    return v


class DiagnosticsConfig(BaseModel):
    version: int = Field(default=1)
    default_chunk_size: int = Field(default=5, ge=1, le=1000)
    progress_threshold: float = Field(default=50, ge=0, le=100)
    default_name_template: str = Field(default="{original}")
    rate_limit_markers: list[str] = Field(
        default_factory=lambda: list(DEFAULT_RATE_LIMIT_MARKERS)
    )
    clone_operation_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_CLONE_OPERATION_TYPES)
    )
    disabled_rules: list[str] = Field(default_factory=list)

    @field_validator("rate_limit_markers", mode="before")
    @classmethod
    def _validate_markers(cls, v: Any) -> list:
        if v is None:
            return list(DEFAULT_RATE_LIMIT_MARKERS)
        return [str(marker).lower() for marker in v]

    @field_validator("clone_operation_types", "disabled_rules", mode="before")
    @classmethod
    def _validate_lists(cls, v: Any) -> list:
        return _ensure_list(v)

    @classmethod
    def from_yaml(cls, data: dict[str, object]) -> "DiagnosticsConfig":
        return cls.model_validate(data)
