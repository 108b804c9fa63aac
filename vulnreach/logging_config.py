"""
Logging configuration for reachability scans.

Scan events (advisory queries, skipped files and dependencies, fallback
matches) are emitted on the ``vulnreach.scan_events`` logger with structured
fields passed through ``extra=``. This module formats them as one JSON
object per line and reads such files back for a quick summary.
"""

import json
import logging
from collections import Counter
from collections.abc import Iterable, Iterator
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import Any

SCAN_EVENTS_LOGGER = "vulnreach.scan_events"

# Structured fields copied from the record when present
_EVENT_FIELDS = (
    "event",
    "package",
    "ecosystem",
    "module_path",
    "version",
    "advisory_id",
    "file",
    "mode",
    "calls",
    "count",
    "reason",
    "error",
    "attempt",
)

LOG_RETENTION_DAYS = 7


class ScanEventFormatter(logging.Formatter):
    """Formatter rendering scan events as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (name, getattr(record, name)) for name in _EVENT_FIELDS if hasattr(record, name)
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _handlers(log_file: str | None, enable_console: bool) -> list[logging.Handler]:
    handlers: list[logging.Handler] = []
    if log_file:
        handlers.append(
            TimedRotatingFileHandler(
                log_file,
                when="D",
                backupCount=LOG_RETENTION_DAYS,
                encoding="utf-8",
            )
        )
    if enable_console:
        handlers.append(logging.StreamHandler())
    return handlers


def configure_logging(
    log_file: str | None = None,
    log_level: str = "INFO",
    enable_console: bool = True,
) -> logging.Logger:
    """
    Configure the scan-event logger.

    Calling this again replaces the previously installed handlers.

    Args:
        log_file: Path to a log file, rotated daily (optional)
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_console: Whether to also log to stderr

    Returns:
        The configured logger
    """
    logger = logging.getLogger(SCAN_EVENTS_LOGGER)
    logger.setLevel(log_level.upper())
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = ScanEventFormatter()
    for handler in _handlers(log_file, enable_console):
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


def get_scan_logger() -> logging.Logger:
    """Get the scan-event logger."""
    return logging.getLogger(SCAN_EVENTS_LOGGER)


def read_scan_events(log_file: str | Path) -> Iterator[dict[str, Any]]:
    """Yield the JSON events in a scan log, skipping lines that are not JSON objects."""
    with open(log_file, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(entry, dict):
                yield entry


def summarize_scan_events(events: Iterable[dict[str, Any]]) -> dict[str, Any]:
    """Count events by type and collect the advisories matched by fallback."""
    counts: Counter[str] = Counter()
    fallback_advisories: list[str] = []
    skipped_packages: list[str] = []

    for entry in events:
        event = entry.get("event")
        if not event:
            continue
        counts[event] += 1
        if event == "fallback_match" and entry.get("advisory_id") not in fallback_advisories:
            fallback_advisories.append(entry.get("advisory_id"))
        elif event == "dependency_skipped" and entry.get("package") not in skipped_packages:
            skipped_packages.append(entry.get("package"))

    return {
        "event_counts": dict(counts),
        "fallback_advisories": fallback_advisories,
        "skipped_packages": skipped_packages,
    }
