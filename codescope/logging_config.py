"""
Logging configuration for analysis runs.

This module provides structured (JSON) logging of engine activity: run
lifecycle events, per-file stage failures, skipped files and degraded
sections.
"""

import json
import logging
from logging.handlers import TimedRotatingFileHandler
from typing import Any

ANALYSIS_LOGGER_NAME = "codescope"


class AnalysisLogFormatter(logging.Formatter):
    """Custom formatter for analysis logs."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log records with structured data."""
        log_entry: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if hasattr(record, "event"):
            log_entry["event"] = record.event

        # Per-file fields
        for field in ["file_path", "stage", "strategy", "rule_id", "language"]:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        # Run-level fields
        for field in ["files", "skipped", "status", "duration_ms", "workers"]:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if hasattr(record, "error"):
            log_entry["error"] = record.error

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


def get_analysis_logger() -> logging.Logger:
    """Get the root codescope logger."""
    return logging.getLogger(ANALYSIS_LOGGER_NAME)


def configure_analysis_logging(
    log_file: str | None = None,
    log_level: str = "INFO",
    enable_console: bool = True,
) -> None:
    """
    Configure logging for analysis runs.

    Args:
        log_file: Path to log file (optional)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_console: Whether to also log to console
    """
    logger = get_analysis_logger()
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.propagate = False

    logger.handlers.clear()

    formatter = AnalysisLogFormatter()

    if log_file:
        # Daily rotation, one week of history
        file_handler = TimedRotatingFileHandler(
            log_file,
            when="D",
            interval=1,
            backupCount=7,
            encoding="utf-8",
            utc=False,
        )
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if enable_console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)
