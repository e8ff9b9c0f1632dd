from __future__ import annotations

import pytest

from ads_op_tracker import config


def test_resolve_path_absolute_inside_project() -> None:
    root = str(config._project_root().resolve())
    absolute = f"{root}/data/test_file"
    assert config._resolve_path(absolute) == absolute


def test_resolve_path_absolute_outside_project_rejected() -> None:
    with pytest.raises(ValueError, match="Path traversal detected"):
        config._resolve_path("/tmp/example")


def test_env_int_uses_default_for_blank(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_INT_VALUE", "")
    assert config._env_int("TEST_INT_VALUE", 7) == 7


def test_env_int_invalid_value_returns_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_INT_INVALID", "not_a_number")
    assert config._env_int("TEST_INT_INVALID", 42) == 42


def test_env_bool(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_BOOL", "Yes")
    assert config._env_bool("TEST_BOOL", False) is True
    monkeypatch.setenv("TEST_BOOL", "off")
    assert config._env_bool("TEST_BOOL", True) is False
    monkeypatch.delenv("TEST_BOOL")
    assert config._env_bool("TEST_BOOL", True) is True


def test_load_settings_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in config.ENV_KEYS.values():
        monkeypatch.delenv(key, raising=False)

    settings = config.load_settings()

    assert settings.logging.level == "INFO"
    assert settings.logging.file is None
    assert settings.tracker.strict_mode is False
    assert settings.tracker.status_vocabulary == "canonical"
    assert settings.storage.backend == "memory"
    assert settings.storage.sqlite_path.endswith("data/operations.sqlite")
    assert settings.retry.default_chunk_size == 3
    assert settings.retry.operation_type == "retry_campaign_clone"
    assert settings.diagnostics.config_path is None
    assert settings.execution.max_retries == 2
    assert settings.execution.retry_delay_seconds == 1.0


def test_load_settings_is_cached() -> None:
    assert config.load_settings() is config.load_settings()


def test_load_settings_from_env(monkeypatch: pytest.MonkeyPatch) -> None:
    mkdir_calls: list[object] = []
    monkeypatch.setattr(config.Path, "mkdir", lambda self, **_: mkdir_calls.append(self))
    monkeypatch.setenv("TRACKER_STRICT_MODE", "true")
    monkeypatch.setenv("TRACKER_STATUS_VOCABULARY", "Dashboard")
    monkeypatch.setenv("TRACKER_STORE_BACKEND", "SQLite")
    monkeypatch.setenv("SQLITE_WAL", "false")
    monkeypatch.setenv("RETRY_DEFAULT_CHUNK_SIZE", "2")
    monkeypatch.setenv("RETRY_OPERATION_TYPE", "retry_bulk_clone")
    monkeypatch.setenv("DIAGNOSTICS_CONFIG_PATH", "./config/diagnostics.yaml")
    monkeypatch.setenv("EXECUTION_MAX_RETRIES", "4")
    monkeypatch.setenv("EXECUTION_RETRY_DELAY_SECONDS", "0.5")

    settings = config.load_settings()

    assert settings.tracker.strict_mode is True
    assert settings.tracker.status_vocabulary == "dashboard"
    assert settings.storage.backend == "sqlite"
    assert settings.storage.sqlite_wal is False
    assert len(mkdir_calls) == 1
    assert settings.retry.default_chunk_size == 2
    assert settings.retry.operation_type == "retry_bulk_clone"
    assert settings.diagnostics.config_path.endswith("config/diagnostics.yaml")
    assert settings.execution.max_retries == 4
    assert settings.execution.retry_delay_seconds == 0.5


def test_load_settings_raises_runtime_error_on_validation(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("RETRY_DEFAULT_CHUNK_SIZE", "0")

    with pytest.raises(RuntimeError, match="Invalid configuration"):
        config.load_settings()


def test_unknown_store_backend_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TRACKER_STORE_BACKEND", "postgres")

    with pytest.raises(RuntimeError, match="Invalid configuration"):
        config.load_settings()


def test_env_float_invalid_value_returns_default(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TEST_FLOAT_INVALID", "soon")
    assert config._env_float("TEST_FLOAT_INVALID", 1.5) == 1.5
    monkeypatch.setenv("TEST_FLOAT_INVALID", "0.25")
    assert config._env_float("TEST_FLOAT_INVALID", 1.5) == 0.25
