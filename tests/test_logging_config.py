"""Tests for the structured analysis log format."""

import json
import logging
import sys

import pytest

from codescope.logging_config import (
    ANALYSIS_LOGGER_NAME,
    AnalysisLogFormatter,
    configure_analysis_logging,
    get_analysis_logger,
)


@pytest.fixture
def restore_logger():
    """Put the codescope logger back the way it was."""
    logger = logging.getLogger(ANALYSIS_LOGGER_NAME)
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield logger
    for handler in logger.handlers:
        if handler not in saved[0]:
            handler.close()
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]


def _record(msg="Analysis finished", **extra):
    record = logging.LogRecord(
        name="codescope.engine",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestAnalysisLogFormatter:
    def test_base_fields(self):
        """Every entry is JSON with timestamp, level, logger and message."""
        entry = json.loads(AnalysisLogFormatter().format(_record()))
        assert entry["level"] == "INFO"
        assert entry["logger"] == "codescope.engine"
        assert entry["message"] == "Analysis finished"
        assert "timestamp" in entry
        assert "event" not in entry

    def test_extra_fields(self):
        """Known extra fields are copied into the entry."""
        record = _record(
            event="stage_failed",
            file_path="src/a.ts",
            stage="patterns",
            error="boom",
            duration_ms=12,
            unrelated="dropped",
        )
        entry = json.loads(AnalysisLogFormatter().format(record))
        assert entry["event"] == "stage_failed"
        assert entry["file_path"] == "src/a.ts"
        assert entry["stage"] == "patterns"
        assert entry["error"] == "boom"
        assert entry["duration_ms"] == 12
        assert "unrelated" not in entry

    def test_exception_included(self):
        """Exception text is attached when present."""
        try:
            raise RuntimeError("kaput")
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()
        entry = json.loads(AnalysisLogFormatter().format(record))
        assert "RuntimeError: kaput" in entry["exception"]


class TestConfigureAnalysisLogging:
    def test_console_handler(self, restore_logger):
        """Console logging installs one formatted stream handler."""
        configure_analysis_logging(log_level="debug")
        logger = get_analysis_logger()
        assert logger is restore_logger
        assert logger.level == logging.DEBUG
        assert not logger.propagate
        (handler,) = logger.handlers
        assert isinstance(handler.formatter, AnalysisLogFormatter)

    def test_file_handler(self, restore_logger, tmp_path):
        """A log file receives JSON lines."""
        log_file = tmp_path / "codescope.log"
        configure_analysis_logging(log_file=str(log_file), enable_console=False)
        logging.getLogger("codescope.engine").info(
            "Analysis started", extra={"event": "analysis_started", "files": 3}
        )
        for handler in restore_logger.handlers:
            handler.flush()

        (line,) = log_file.read_text(encoding="utf-8").splitlines()
        entry = json.loads(line)
        assert entry["event"] == "analysis_started"
        assert entry["files"] == 3

    def test_reconfigure_replaces_handlers(self, restore_logger):
        """Calling configure twice does not duplicate handlers."""
        configure_analysis_logging()
        configure_analysis_logging()
        assert len(restore_logger.handlers) == 1
