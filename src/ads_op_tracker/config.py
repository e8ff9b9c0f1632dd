"""Configuration management for the operation tracker."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from ads_op_tracker.domain.operations import StatusVocabulary

_config_logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class TrackerSettings(BaseModel):
    strict_mode: bool = Field(
        default=False,
        description="Raise OperationNotFoundError when a mutator targets an unknown id.",
    )
    status_vocabulary: StatusVocabulary = Field(
        default="canonical",
        description="Status spelling used in outbound payloads: canonical | dashboard",
    )


class StorageSettings(BaseModel):
    backend: Literal["memory", "sqlite"] = Field(default="memory")
    sqlite_path: str = Field(default="./data/operations.sqlite")
    sqlite_wal: bool = Field(default=True)

    @field_validator("backend", mode="before")
    @classmethod
    def _normalize_backend(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value


class RetrySettings(BaseModel):
    default_chunk_size: int = Field(default=3, ge=1, le=1000)
    operation_type: str = Field(default="retry_campaign_clone", min_length=1)


class ExecutionSettings(BaseModel):
    max_retries: int = Field(default=2, ge=0, le=10)
    retry_delay_seconds: float = Field(default=1.0, ge=0, le=60)


class DiagnosticsSettings(BaseModel):
    config_path: str | None = Field(
        default=None,
        description="Path to diagnostics.yaml; built-in defaults are used when unset.",
    )


class Settings(BaseModel):
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    tracker: TrackerSettings = Field(default_factory=TrackerSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    retry: RetrySettings = Field(default_factory=RetrySettings)
    execution: ExecutionSettings = Field(default_factory=ExecutionSettings)
    diagnostics: DiagnosticsSettings = Field(default_factory=DiagnosticsSettings)


ENV_KEYS = {
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "strict_mode": "TRACKER_STRICT_MODE",
    "status_vocabulary": "TRACKER_STATUS_VOCABULARY",
    "store_backend": "TRACKER_STORE_BACKEND",
    "sqlite_path": "SQLITE_PATH",
    "sqlite_wal": "SQLITE_WAL",
    "retry_chunk_size": "RETRY_DEFAULT_CHUNK_SIZE",
    "retry_operation_type": "RETRY_OPERATION_TYPE",
    "execution_max_retries": "EXECUTION_MAX_RETRIES",
    "execution_retry_delay": "EXECUTION_RETRY_DELAY_SECONDS",
    "diagnostics_config_path": "DIAGNOSTICS_CONFIG_PATH",
}

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path)
    root = _project_root().resolve()
    if candidate.is_absolute():
        resolved = candidate.resolve()
    else:
        resolved = (root / candidate).resolve()
    if not resolved.is_relative_to(root):
        raise ValueError(f"Path traversal detected: '{path}' resolves outside project root")
    return str(resolved)


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def _env_float(key: str, default: float) -> float:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        _config_logger.warning(
            "Invalid float value for %s: %r, using default %s", key, value, default
        )
        return default


def _env_path(key: str) -> str | None:
    value = os.getenv(key, "").strip()
    return _resolve_path(value) if value else None


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")

    settings_data: dict[str, object] = {
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _env_path(ENV_KEYS["log_file"]),
        },
        "tracker": {
            "strict_mode": _env_bool(ENV_KEYS["strict_mode"], TrackerSettings().strict_mode),
            "status_vocabulary": os.getenv(
                ENV_KEYS["status_vocabulary"], TrackerSettings().status_vocabulary
            )
            .strip()
            .lower(),
        },
        "storage": {
            "backend": os.getenv(ENV_KEYS["store_backend"], StorageSettings().backend),
            "sqlite_path": _resolve_path(
                os.getenv(ENV_KEYS["sqlite_path"], StorageSettings().sqlite_path)
            ),
            "sqlite_wal": _env_bool(ENV_KEYS["sqlite_wal"], StorageSettings().sqlite_wal),
        },
        "retry": {
            "default_chunk_size": _env_int(
                ENV_KEYS["retry_chunk_size"], RetrySettings().default_chunk_size
            ),
            "operation_type": os.getenv(
                ENV_KEYS["retry_operation_type"], RetrySettings().operation_type
            ),
        },
        "execution": {
            "max_retries": _env_int(
                ENV_KEYS["execution_max_retries"], ExecutionSettings().max_retries
            ),
            "retry_delay_seconds": _env_float(
                ENV_KEYS["execution_retry_delay"], ExecutionSettings().retry_delay_seconds
            ),
        },
        "diagnostics": {
            "config_path": _env_path(ENV_KEYS["diagnostics_config_path"]),
        },
    }

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    if settings.storage.backend == "sqlite":
        Path(settings.storage.sqlite_path).parent.mkdir(parents=True, exist_ok=True)

    return settings
