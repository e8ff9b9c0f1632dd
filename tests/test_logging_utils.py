from __future__ import annotations

import logging
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from ads_op_tracker import logging_utils
from ads_op_tracker.config import LoggingSettings


def _settings(log_file: str | None) -> SimpleNamespace:
    return SimpleNamespace(
        logging=SimpleNamespace(level="INFO", file=log_file),
    )


@patch("ads_op_tracker.logging_utils.load_settings")
@patch("ads_op_tracker.logging_utils.logging.basicConfig")
def test_configure_logging_stream_only(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
) -> None:
    mock_load_settings.return_value = _settings(None)

    logging_utils.configure_logging()

    kwargs = mock_basic_config.call_args.kwargs
    assert kwargs["force"] is True
    assert kwargs["level"] == logging.INFO
    assert len(kwargs["handlers"]) == 1


@patch("ads_op_tracker.logging_utils.load_settings")
@patch("ads_op_tracker.logging_utils.logging.basicConfig")
def test_configure_logging_explicit_settings_skip_loading(
    mock_basic_config: MagicMock,
    mock_load_settings: MagicMock,
) -> None:
    logging_utils.configure_logging(LoggingSettings(level="debug"))

    mock_load_settings.assert_not_called()
    assert mock_basic_config.call_args.kwargs["level"] == logging.DEBUG


@patch("ads_op_tracker.logging_utils.logging.basicConfig")
def test_configure_logging_with_file(mock_basic_config: MagicMock, tmp_path) -> None:
    log_file = tmp_path / "logs" / "tracker.log"

    logging_utils.configure_logging(LoggingSettings(file=str(log_file)))

    handlers = mock_basic_config.call_args.kwargs["handlers"]
    assert len(handlers) == 2
    assert log_file.parent.is_dir()
    for handler in handlers:
        handler.close()


@patch("ads_op_tracker.logging_utils.load_settings")
@patch("ads_op_tracker.logging_utils.logging.FileHandler", side_effect=OSError("permission denied"))
@patch("ads_op_tracker.logging_utils._logger")
def test_configure_logging_file_handler_error(
    mock_logger: MagicMock,
    _mock_file_handler: MagicMock,
    mock_load_settings: MagicMock,
) -> None:
    mock_load_settings.return_value = _settings("./logs/app.log")

    logging_utils.configure_logging()

    mock_logger.warning.assert_called_once()


def test_get_logger_auto_configures(monkeypatch) -> None:
    monkeypatch.setattr(logging_utils, "_logging_configured", False)

    calls = {"count": 0}

    def fake_configure() -> None:
        calls["count"] += 1
        monkeypatch.setattr(logging_utils, "_logging_configured", True)

    monkeypatch.setattr(logging_utils, "configure_logging", fake_configure)

    logger = logging_utils.get_logger("test.logger")
    assert logger.name == "test.logger"
    assert calls["count"] == 1
