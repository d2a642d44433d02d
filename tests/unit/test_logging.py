"""Tests for the verbosity logger and the log bus."""

import io

import pytest

from draftdesk.core.log_bus import LogBus, LogRecord, get_log_bus
from draftdesk.core.logging import (
    VerbosityLevel,
    get_logger,
    get_verbosity,
    set_stream,
    set_verbosity,
)


def test_verbosity_filters_console_and_bus():
    stream = io.StringIO()
    set_stream(stream)
    set_verbosity("normal")
    logger = get_logger("test.filter")

    logger.debug("hidden")
    logger.verbose("hidden too")
    logger.info("shown")
    logger.error("always")

    assert stream.getvalue().splitlines() == ["[info] shown", "[error] always"]
    lines = [r.plain for r in get_log_bus().tail(10)]
    assert lines == ["[info] shown", "[error] always"]


def test_quiet_still_reports_warnings():
    stream = io.StringIO()
    set_stream(stream)
    set_verbosity(VerbosityLevel.QUIET)

    get_logger("test.quiet").info("nope")
    get_logger("test.quiet").warning("careful")

    assert stream.getvalue() == "[warning] careful\n"


def test_set_verbosity_accepts_names_and_ints():
    set_verbosity(3)
    assert get_verbosity() is VerbosityLevel.DEBUG
    set_verbosity("Verbose")
    assert get_verbosity() is VerbosityLevel.VERBOSE
    with pytest.raises(ValueError):
        set_verbosity("chatty")


def test_get_logger_is_cached():
    assert get_logger("same") is get_logger("same")


class TestLogBus:
    def test_tail_filters_by_level_and_limit(self):
        bus = LogBus(history=3)
        for i, level in enumerate(["INFO", "ERROR", "INFO", "INFO"]):
            bus.publish(LogRecord(level_name=level, plain=f"line {i}", logger_name="t"))

        assert [r.plain for r in bus.tail(10)] == ["line 1", "line 2", "line 3"]
        assert [r.plain for r in bus.tail(1, "info")] == ["line 3"]
        assert bus.tail(0) == []

    def test_failing_subscriber_does_not_break_publishing(self):
        bus = LogBus()
        seen = []

        def broken(record):
            raise RuntimeError("boom")

        bus.subscribe(broken)
        bus.subscribe(seen.append)
        bus.publish(LogRecord(level_name="INFO", plain="x", logger_name="t"))

        assert [r.plain for r in seen] == ["x"]

    def test_record_to_dict(self):
        record = LogRecord(level_name="WARNING", plain="[warning] w", logger_name="t", created=1.0)
        assert record.to_dict() == {
            "level": "warning",
            "logger": "t",
            "line": "[warning] w",
            "created": 1.0,
        }
