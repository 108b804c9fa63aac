import json
import logging
import sys

from vulnreach.logging_config import (
    SCAN_EVENTS_LOGGER,
    ScanEventFormatter,
    configure_logging,
    get_scan_logger,
    read_scan_events,
    summarize_scan_events,
)
from vulnreach.reachability import analyzer as analyzer_module


def _record(**extra):
    record = logging.LogRecord(
        name=SCAN_EVENTS_LOGGER,
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="DEPENDENCY_SKIPPED",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestScanEventFormatter:
    def test_formats_json_with_event_fields(self):
        output = ScanEventFormatter().format(
            _record(event="dependency_skipped", package="lodash", ecosystem="npm")
        )
        entry = json.loads(output)

        assert entry["message"] == "DEPENDENCY_SKIPPED"
        assert entry["level"] == "WARNING"
        assert entry["logger"] == SCAN_EVENTS_LOGGER
        assert entry["event"] == "dependency_skipped"
        assert entry["package"] == "lodash"
        assert entry["ecosystem"] == "npm"
        assert "advisory_id" not in entry

    def test_includes_exception(self):
        try:
            raise ValueError("broken")
        except ValueError:
            record = _record(event="file_skipped")
            record.exc_info = sys.exc_info()

        entry = json.loads(ScanEventFormatter().format(record))
        assert "ValueError: broken" in entry["exception"]


class TestConfigureLogging:
    def test_console_only(self):
        logger = configure_logging(log_level="DEBUG")
        assert logger is get_scan_logger()
        assert logger.level == logging.DEBUG
        assert logger.propagate is False
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0].formatter, ScanEventFormatter)

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "scan.log"
        logger = configure_logging(str(log_file), log_level="INFO", enable_console=False)

        logger.info("ADVISORY_QUERY", extra={"event": "advisory_query", "package": "x"})
        for handler in logger.handlers:
            handler.flush()

        entry = json.loads(log_file.read_text().strip().splitlines()[-1])
        assert entry["event"] == "advisory_query"

        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)

    def test_reconfigure_replaces_handlers(self):
        configure_logging(enable_console=True)
        logger = configure_logging(enable_console=True)
        assert len(logger.handlers) == 1


class TestScanEventSummary:
    def test_read_skips_blank_and_non_json_lines(self, tmp_path):
        log_file = tmp_path / "scan.log"
        log_file.write_text(
            '{"event": "advisory_query", "package": "lodash"}\n'
            "\n"
            "not json\n"
            "[1, 2]\n"
            '{"event": "file_skipped", "file": "a.js"}\n'
        )

        events = list(read_scan_events(log_file))
        assert [e["event"] for e in events] == ["advisory_query", "file_skipped"]

    def test_summary_counts_and_collects(self):
        events = [
            {"event": "advisory_query", "package": "lodash"},
            {"event": "advisory_query", "package": "lodash"},
            {"event": "fallback_match", "advisory_id": "GHSA-1"},
            {"event": "fallback_match", "advisory_id": "GHSA-1"},
            {"event": "dependency_skipped", "package": "express"},
            {"message": "no event field"},
        ]

        summary = summarize_scan_events(events)
        assert summary["event_counts"] == {
            "advisory_query": 2,
            "fallback_match": 2,
            "dependency_skipped": 1,
        }
        assert summary["fallback_advisories"] == ["GHSA-1"]
        assert summary["skipped_packages"] == ["express"]

    def test_configured_log_round_trips(self, tmp_path):
        log_file = tmp_path / "scan.log"
        logger = configure_logging(str(log_file), enable_console=False)
        logger.warning(
            "DEPENDENCY_SKIPPED",
            extra={"event": "dependency_skipped", "package": "left-pad"},
        )
        for handler in list(logger.handlers):
            handler.close()
            logger.removeHandler(handler)

        summary = summarize_scan_events(read_scan_events(log_file))
        assert summary["skipped_packages"] == ["left-pad"]


class TestScanLogger:
    def test_analyzer_emits_on_scan_event_logger(self):
        assert analyzer_module.scan_logger is get_scan_logger()
