# backend/tests/utils/test_logging.py
"""
Tests for logging configuration.

This module tests:
- Render id stamping on log records
- JSON formatter output
- setup_logging() handler installation and level validation
"""

import json
import logging

import pytest

from portfolio_engine.utils.context import render_scope
from portfolio_engine.utils.logging import (
    NO_RENDER_ID,
    JsonFormatter,
    RenderIdFilter,
    _get_log_level,
    get_logger,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    """setup_logging() replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(message: str = "hello", **extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="portfolio_engine.test",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestRenderIdFilter:
    """Tests for render id stamping."""

    def test_outside_render(self):
        record = _record()
        assert RenderIdFilter().filter(record) is True
        assert record.render_id == NO_RENDER_ID

    def test_inside_render(self):
        record = _record()
        with render_scope("abc123"):
            RenderIdFilter().filter(record)
        assert record.render_id == "abc123"


class TestJsonFormatter:
    """Tests for structured output."""

    def test_fields(self):
        record = _record("No rate for XYZ", render_id="r1")

        entry = json.loads(JsonFormatter().format(record))

        assert entry["level"] == "WARNING"
        assert entry["logger"] == "portfolio_engine.test"
        assert entry["render_id"] == "r1"
        assert entry["message"] == "No rate for XYZ"
        assert "extra" not in entry

    def test_extra_fields(self):
        record = _record(config={"level": "DEBUG"}, obj=object())

        entry = json.loads(JsonFormatter().format(record))

        assert entry["extra"]["config"] == {"level": "DEBUG"}
        assert entry["extra"]["obj"].startswith("<object")

    def test_render_metadata(self):
        """Records logged inside a render carry its metadata."""
        with render_scope("r2", currency="CHF"):
            entry = json.loads(JsonFormatter().format(_record()))

        assert entry["render"] == {"currency": "CHF"}

    def test_no_render_metadata_outside_render(self):
        entry = json.loads(JsonFormatter().format(_record()))
        assert "render" not in entry


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_installs_single_handler(self, restore_root_logger):
        setup_logging(level="DEBUG", log_format="text")

        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        handler = restore_root_logger.handlers[0]
        assert any(isinstance(f, RenderIdFilter) for f in handler.filters)

    def test_json_format(self, restore_root_logger):
        setup_logging(level="INFO", log_format="json")

        assert isinstance(restore_root_logger.handlers[0].formatter, JsonFormatter)

    def test_noisy_loggers_suppressed(self, restore_root_logger):
        setup_logging(level="DEBUG")

        assert logging.getLogger("yfinance").level == logging.WARNING

    def test_invalid_level(self, restore_root_logger):
        with pytest.raises(ValueError, match="Invalid log level"):
            setup_logging(level="LOUD")

    @pytest.mark.parametrize("name,level", [
        ("debug", logging.DEBUG),
        (" WARN ", logging.WARNING),
        ("critical", logging.CRITICAL),
    ])
    def test_level_mapping(self, name, level):
        assert _get_log_level(name) == level

    def test_get_logger(self):
        assert get_logger("portfolio_engine.x").name == "portfolio_engine.x"
