"""Tests for structured logging configuration."""

import json
import logging
import sys

import pytest

from temp_targets.logging_config import (
    JsonFormatter,
    TextFormatter,
    correlation_id_ctx,
    get_logger,
    setup_logging,
)


def _record(
    msg: str = "Test",
    level: int = logging.INFO,
    exc_info=None,
    **extra_fields,
) -> logging.LogRecord:
    record = logging.LogRecord(
        name="temp_targets.test",
        level=level,
        pathname="/app/controller.py",
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    if extra_fields:
        record.extra_fields = extra_fields
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


class TestJsonFormatter:
    def test_basic_fields(self):
        parsed = json.loads(JsonFormatter(service_name="svc").format(_record("Hi")))

        assert parsed["level"] == "INFO"
        assert parsed["service"] == "svc"
        assert parsed["message"] == "Hi"
        assert parsed["logger"] == "temp_targets.test"
        assert "timestamp" in parsed
        assert "correlation_id" not in parsed

    def test_correlation_id(self):
        token = correlation_id_ctx.set("corr-123")
        try:
            parsed = json.loads(JsonFormatter().format(_record()))
        finally:
            correlation_id_ctx.reset(token)

        assert parsed["correlation_id"] == "corr-123"

    def test_extra_fields_are_merged(self):
        record = _record(preset_id="abc", persisted=False)
        parsed = json.loads(JsonFormatter().format(record))

        assert parsed["preset_id"] == "abc"
        assert parsed["persisted"] is False

    def test_exception_is_rendered(self):
        try:
            raise RuntimeError("disk full")
        except RuntimeError:
            exc_info = sys.exc_info()

        record = _record("Write failed", level=logging.ERROR, exc_info=exc_info)
        parsed = json.loads(JsonFormatter().format(record))

        assert "RuntimeError: disk full" in parsed["exception"]


class TestTextFormatter:
    def test_basic_line(self):
        output = TextFormatter(service_name="svc").format(_record("Hello"))

        assert " - svc - INFO - [-] - Hello" in output

    def test_correlation_id_and_extras(self):
        token = correlation_id_ctx.set("abc-123")
        try:
            output = TextFormatter().format(_record("Saved", preset_id="p1"))
        finally:
            correlation_id_ctx.reset(token)

        assert "[abc-123]" in output
        assert output.endswith("Saved preset_id=p1")


class TestStructuredLogger:
    def test_extra_fields_reach_record(self, caplog):
        logger = get_logger("temp_targets.test")

        with caplog.at_level(logging.INFO):
            logger.info("Enacted temp target", target=120)

        record = caplog.records[-1]
        assert record.getMessage() == "Enacted temp target"
        assert record.extra_fields == {"target": 120}

    def test_no_extra_fields(self, caplog):
        logger = get_logger("temp_targets.test")

        with caplog.at_level(logging.WARNING):
            logger.warning("Preset not found")

        assert not hasattr(caplog.records[-1], "extra_fields")

    def test_exception_captures_traceback(self, caplog):
        logger = get_logger("temp_targets.test")

        with caplog.at_level(logging.ERROR):
            try:
                raise ValueError("boom")
            except ValueError:
                logger.exception("Temp target write failed", step="submit")

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert record.exc_info[0] is ValueError
        assert record.extra_fields == {"step": "submit"}


@pytest.mark.usefixtures("restore_root_logger")
class TestSetupLogging:
    def test_json(self):
        setup_logging(log_format="json", log_level="DEBUG", service_name="custom")

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        formatter = root.handlers[0].formatter
        assert isinstance(formatter, JsonFormatter)
        assert formatter.service_name == "custom"

    def test_text(self):
        setup_logging(log_format="text", log_level="warning")

        root = logging.getLogger()
        assert root.level == logging.WARNING
        assert isinstance(root.handlers[0].formatter, TextFormatter)

    def test_unknown_level_falls_back_to_info(self):
        setup_logging(log_level="chatty")
        assert logging.getLogger().level == logging.INFO
