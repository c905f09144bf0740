# tests/common/test_logger.py
"""
Тесты модуля логирования.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from flycargo.common.constants import TypeMsg
from flycargo.common.logger import (
    DEFAULT_LOGGER,
    DEGRADED_SIGNAL,
    ColoredFormatter,
    JsonFormatter,
    SizeRotatingFileHandler,
    _get_caller_info,
    _loggers,
    _read_logging_settings,
    get_logger,
    log_degraded,
    log_error,
    log_info,
    log_warning,
    setup_logging,
)


def _record(level: int = logging.INFO, msg: str = "Test message", exc_info=None) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test_logger",
        level=level,
        pathname="test.py",
        lineno=10,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    record.module = "test_module"
    record.funcName = "test_function"
    return record


class TestJsonFormatter:
    """Тесты JsonFormatter."""

    def test_format_basic_record(self) -> None:
        result = json.loads(JsonFormatter().format(_record()))

        assert result["level"] == "INFO"
        assert result["message"] == "Test message"
        assert result["function"] == "test_function"
        assert result["line"] == 10
        assert result["timestamp"].endswith("Z")

    def test_format_with_extra_data(self) -> None:
        record = _record(logging.WARNING)
        record.extra_data = {"order_id": 15, "region": "RU"}

        result = json.loads(JsonFormatter().format(record))

        assert result["extra"] == {"order_id": 15, "region": "RU"}

    def test_format_with_exception(self) -> None:
        try:
            raise ValueError("Test exception")
        except ValueError:
            exc_info = sys.exc_info()

        result = json.loads(JsonFormatter().format(_record(logging.ERROR, exc_info=exc_info)))

        assert "ValueError: Test exception" in result["exception"]


class TestColoredFormatter:
    """Тесты ColoredFormatter."""

    def test_format_basic_record(self) -> None:
        result = ColoredFormatter().format(_record())

        assert "[INFO]" in result
        assert "Test message" in result
        assert "\033[" in result

    def test_format_with_caller_info(self) -> None:
        record = _record(logging.DEBUG)
        record.extra_data = {
            "caller_function": "accept_response",
            "caller_module": "flycargo.core.responses.service",
            "caller_file": "service.py",
            "caller_line": 42,
        }

        result = ColoredFormatter().format(record)

        assert "flycargo.core.responses.service.accept_response()" in result
        assert "service.py:42" in result


class TestSizeRotatingFileHandler:
    """Тесты ротации файла логов по размеру."""

    def test_rollover_archives_file(self, tmp_path: Path) -> None:
        handler = SizeRotatingFileHandler(log_dir=str(tmp_path), max_bytes=10, logger_name="flycargo")
        handler.setFormatter(logging.Formatter("%(message)s"))
        try:
            handler.emit(_record(msg="первая запись длиннее лимита"))
            handler.emit(_record(msg="вторая"))
        finally:
            handler.close()

        archives = list(tmp_path.glob("flycargo_*.log"))
        assert len(archives) == 1
        assert (tmp_path / "flycargo.log").read_text(encoding="utf-8").strip() == "вторая"

    def test_zero_limit_never_rolls(self, tmp_path: Path) -> None:
        handler = SizeRotatingFileHandler(log_dir=str(tmp_path), max_bytes=0)
        try:
            assert handler.shouldRollover(_record()) is False
        finally:
            handler.close()


class TestGetLogger:
    """Тесты get_logger и чтения настроек."""

    def setup_method(self) -> None:
        _loggers.clear()

    def test_returns_cached_logger(self) -> None:
        logger1 = get_logger("test_cached")
        logger2 = get_logger("test_cached")

        assert logger1 is logger2
        assert logger1.propagate is False
        assert len(logger1.handlers) >= 1

    def test_settings_from_config(self) -> None:
        mock_settings = MagicMock()
        mock_settings.logging.LOG_LEVEL = "WARNING"
        mock_settings.logging.LOG_FORMAT = "json"
        mock_settings.logging.LOG_TO_FILE = False
        mock_settings.logging.LOG_FILE_PATH = "logs/test.log"
        mock_settings.logging.LOG_MAX_BYTES = 1024

        with patch("flycargo.config.settings", mock_settings):
            conf = _read_logging_settings()
            logger = get_logger("test_with_settings")

        assert conf["format"] == "json"
        assert conf["max_bytes"] == 1024
        assert logger.level == logging.WARNING

    def test_mock_values_fall_back_to_defaults(self) -> None:
        with patch("flycargo.config.settings", MagicMock()):
            conf = _read_logging_settings()

        assert conf["level"] == "DEBUG"
        assert conf["to_file"] is False
        assert conf["max_bytes"] == 10485760

    def test_setup_logging_sets_third_party_levels(self) -> None:
        with patch("flycargo.common.logger._LOGGING_INITIALIZED", False):
            setup_logging()

        assert DEFAULT_LOGGER in _loggers
        assert logging.getLogger("aio_pika").level == logging.WARNING
        assert logging.getLogger("httpx").level == logging.WARNING


class TestCallerInfo:
    """Тесты _get_caller_info."""

    def test_caller_is_reported(self) -> None:
        def wrapper() -> dict:
            return _get_caller_info()

        def test_caller() -> dict:
            return wrapper()

        info = test_caller()

        assert info["caller_function"] == "test_caller"
        assert info["caller_file"] == "test_logger.py"


class TestLogFunctions:
    """Тесты асинхронных функций логирования."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("type_msg,method", [
        (TypeMsg.DEBUG, "debug"),
        (TypeMsg.INFO, "info"),
        (TypeMsg.WARNING, "warning"),
        (TypeMsg.ERROR, "error"),
        (TypeMsg.CRITICAL, "critical"),
    ])
    async def test_log_info_levels(self, type_msg: TypeMsg, method: str) -> None:
        with patch.object(logging.Logger, method) as mock_method:
            await log_info("Сообщение", type_msg=type_msg)

        mock_method.assert_called_once()
        assert mock_method.call_args.args[0] == "Сообщение"

    @pytest.mark.asyncio
    async def test_extra_merged_with_caller(self) -> None:
        with patch.object(logging.Logger, "info") as mock_info:
            await log_info("Сообщение", extra={"order_id": 7})

        extra_data = mock_info.call_args.kwargs["extra"]["extra_data"]
        assert extra_data["order_id"] == 7
        assert extra_data["caller_function"] == "test_extra_merged_with_caller"

    @pytest.mark.asyncio
    async def test_log_warning(self) -> None:
        with patch.object(logging.Logger, "warning") as mock_warning:
            await log_warning("Предупреждение")

        mock_warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_log_error_with_exc_info(self) -> None:
        with patch.object(logging.Logger, "error") as mock_error:
            await log_error("Ошибка", exc_info=True)

        assert mock_error.call_args.kwargs["exc_info"] is True

    @pytest.mark.asyncio
    async def test_log_degraded_signal(self) -> None:
        with patch.object(logging.Logger, "error") as mock_error:
            await log_degraded("smtp", "SMTP недоступен", extra={"destination": "a@b.ru"})

        extra_data = mock_error.call_args.kwargs["extra"]["extra_data"]
        assert extra_data["signal"] == DEGRADED_SIGNAL
        assert extra_data["service"] == "smtp"
        assert extra_data["destination"] == "a@b.ru"

    @pytest.mark.asyncio
    async def test_custom_logger_name(self) -> None:
        with patch("flycargo.common.logger.get_logger") as mock_get_logger:
            mock_get_logger.return_value = MagicMock()

            await log_info("Сообщение", logger_name="custom_logger")

        mock_get_logger.assert_called_once_with("custom_logger")
        mock_get_logger.return_value.info.assert_called_once()
