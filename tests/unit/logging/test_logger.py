# tests/unit/logging/test_logger.py - v1
"""Tests for logging/logger.py - logger factory and formatters."""

from __future__ import annotations

import json
import logging
import sys

from matrixmint.logging.context import clear_context, log_context, set_lane
from matrixmint.logging.logger import JsonFormatter, TextFormatter, get_logger, setup_logging


def _record(msg: str = "Hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="test", level=logging.INFO, pathname="", lineno=0,
        msg=msg, args=(), exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["level"] == "INFO"
        assert parsed["message"] == "Hello"
        assert "timestamp" in parsed
        assert "context" not in parsed

    def test_format_with_context(self):
        with log_context(run_id="matrixmint_1_abc123"):
            set_lane("live", "gemini-3-flash-preview")
            parsed = json.loads(JsonFormatter().format(_record()))
        assert parsed["context"]["run_id"] == "matrixmint_1_abc123"
        assert parsed["context"]["lane"] == "live"
        assert parsed["context"]["model"] == "gemini-3-flash-preview"

    def test_extra_data(self):
        parsed = json.loads(JsonFormatter().format(_record(data={"attempts": 2})))
        assert parsed["data"] == {"attempts": 2}

    def test_exception(self):
        record = _record()
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record.exc_info = sys.exc_info()
        parsed = json.loads(JsonFormatter().format(record))
        assert "RuntimeError: boom" in parsed["exception"]


class TestTextFormatter:
    def setup_method(self):
        clear_context()

    def teardown_method(self):
        clear_context()

    def test_format_basic(self):
        output = TextFormatter().format(_record("Hello text"))
        assert "Hello text" in output
        assert "INFO" in output

    def test_lane_and_run(self):
        with log_context(run_id="run1", lane="offline", model="offline"):
            output = TextFormatter().format(_record())
        assert "[run1]" in output
        assert "(offline/offline)" in output


class TestGetLogger:
    def test_prefixed(self):
        assert get_logger("test_module").name == "matrixmint.test_module"

    def test_already_prefixed(self):
        assert get_logger("matrixmint.pipeline").name == "matrixmint.pipeline"


class TestSetupLogging:
    def teardown_method(self):
        root = logging.getLogger("matrixmint")
        for handler in root.handlers:
            handler.close()
        root.handlers.clear()
        root.setLevel(logging.NOTSET)

    def test_setup_json(self):
        root = setup_logging(level="DEBUG", log_format="json")
        assert root is logging.getLogger("matrixmint")
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)

    def test_setup_text(self):
        root = setup_logging(level="INFO", log_format="text")
        assert isinstance(root.handlers[0].formatter, TextFormatter)

    def test_reinit_does_not_duplicate(self):
        setup_logging()
        root = setup_logging()
        assert len(root.handlers) == 1

    def test_with_file(self, tmp_path):
        log_file = tmp_path / "logs" / "matrixmint.log"
        root = setup_logging(log_file=log_file)
        assert len(root.handlers) == 2
        assert log_file.parent.is_dir()
