#!/usr/bin/env python3
"""
Tests for time expression resolution.
Every test pins "now" so results are exact.
"""

import logging

import pytest

from src.signoz.time_utils import (
    TimeRangeError,
    TimeRangeErrorKind,
    detect_timestamp_unit,
    format_iso_millis,
    format_timestamp,
    is_reasonable_timestamp,
    parse_duration_seconds,
    resolve_range,
    resolve_step,
    resolve_time,
    to_milliseconds,
)

# 2024-01-15T10:30:00Z
NOW = 1705314600000


def test_relative_durations():
    """Relative inputs count back from now."""
    assert resolve_time("30m", NOW) == NOW - 1_800_000
    assert resolve_time("45s", NOW) == NOW - 45_000
    assert resolve_time("2h", NOW) == NOW - 7_200_000
    assert resolve_time("1d", NOW) == NOW - 86_400_000


def test_legacy_now_prefix():
    assert resolve_time("now-1h", NOW) == NOW - 3_600_000
    assert resolve_time("now-15m", NOW) == NOW - 900_000


def test_now_and_empty_resolve_to_now():
    assert resolve_time("now", NOW) == NOW
    assert resolve_time("", NOW) == NOW
    assert resolve_time(None, NOW) == NOW


def test_iso_strings():
    assert resolve_time("2024-01-15T10:30:00Z", NOW) == 1705314600000
    assert resolve_time("2024-01-15T10:30:00.250Z", NOW) == 1705314600250
    assert resolve_time("2024-01-15T11:30:00+01:00", NOW) == 1705314600000


def test_naive_iso_is_read_as_utc():
    assert resolve_time("2024-01-15T10:30:00", NOW) == 1705314600000


def test_epoch_millisecond_strings():
    assert resolve_time("1705314600000", NOW) == 1705314600000
    # Ten digits are taken literally, no unit conversion
    assert resolve_time("1705314600", NOW) == 1705314600


def test_numbers_pass_through():
    assert resolve_time(1705314600000, NOW) == 1705314600000
    assert resolve_time(1705314600000.9, NOW) == 1705314600000


def test_unparsable_input_becomes_now():
    assert resolve_time("yesterday-ish", NOW) == NOW
    assert resolve_time("5 weeks", NOW) == NOW
    assert resolve_time(float("nan"), NOW) == NOW


def test_results_are_never_negative():
    assert resolve_time("100000d", 1000) == 0
    assert resolve_time(-5, NOW) == 0


def test_range_defaults():
    time_range = resolve_range(now_ms=NOW)
    assert time_range.start_ms == NOW - 3_600_000
    assert time_range.end_ms == NOW
    assert time_range.duration_ms == 3_600_000


def test_range_with_relative_start():
    time_range = resolve_range("30m", "now", now_ms=NOW)
    assert time_range.start_ms == NOW - 1_800_000
    assert time_range.end_ms == NOW


def test_empty_range_is_rejected():
    with pytest.raises(TimeRangeError) as exc_info:
        resolve_range("now", "now", now_ms=NOW)

    message = str(exc_info.value)
    assert message.startswith("Invalid time range:")
    assert "same" in message
    assert "start=now" in message
    assert exc_info.value.kind is TimeRangeErrorKind.INVERTED


def test_inverted_range_is_rejected():
    with pytest.raises(TimeRangeError) as exc_info:
        resolve_range("now", "1h", now_ms=NOW)

    message = str(exc_info.value)
    assert "must be before" in message
    assert "(now)" in message
    assert "(1h)" in message
    assert exc_info.value.start_ms == NOW
    assert exc_info.value.end_ms == NOW - 3_600_000


def test_range_error_is_a_value_error():
    with pytest.raises(ValueError):
        resolve_range("2024-01-15T11:00:00Z", "2024-01-15T10:00:00Z", now_ms=NOW)


def test_step_parsing():
    assert resolve_step("30s") == 30
    assert resolve_step("5m") == 300
    assert resolve_step("2h") == 7200
    assert resolve_step("1d") == 86400


def test_step_falls_back_to_one_minute():
    assert resolve_step("bogus") == 60
    assert resolve_step("") == 60
    assert resolve_step(None) == 60


def test_strict_duration_parsing():
    assert parse_duration_seconds("1h") == 3600
    assert parse_duration_seconds("30m") == 1800

    with pytest.raises(ValueError) as exc_info:
        parse_duration_seconds("an hour")
    assert "Invalid time range format" in str(exc_info.value)


def test_iso_rendering():
    assert format_iso_millis(1705314600000) == "2024-01-15T10:30:00.000Z"
    assert format_iso_millis(1705314600123) == "2024-01-15T10:30:00.123Z"


def test_timestamp_rendering():
    # Nanoseconds above the threshold, milliseconds below it
    assert format_timestamp(1705314600000000000) == "2024-01-15T10:30:00.000Z"
    assert format_timestamp(1705314600000) == "2024-01-15T10:30:00.000Z"
    assert format_timestamp("2024-01-15T10:30:00.123456789Z") == "2024-01-15T10:30:00.123456789Z"
    assert format_timestamp(None, now_ms=NOW) == "2024-01-15T10:30:00.000Z"


def test_timestamp_unit_detection():
    assert detect_timestamp_unit(1705314600) == "seconds"
    assert detect_timestamp_unit(1705314600000) == "milliseconds"
    assert detect_timestamp_unit(1705314600000000000) == "nanoseconds"
    assert detect_timestamp_unit(42) == "unknown"

    assert to_milliseconds(1705314600, "seconds") == 1705314600000
    with pytest.raises(ValueError):
        to_milliseconds(1, "fortnights")


def test_reasonable_timestamp():
    assert is_reasonable_timestamp(NOW - 3_600_000, now_ms=NOW)
    assert not is_reasonable_timestamp(1705314600, now_ms=NOW)
    assert not is_reasonable_timestamp(NOW + 2 * 86_400_000, now_ms=NOW)


class _RecordingHandler(logging.Handler):
    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.messages = []

    def emit(self, record):
        self.messages.append(record.getMessage())


@pytest.fixture
def query_log():
    handler = _RecordingHandler()
    logger = logging.getLogger('QUERY')
    previous_level = logger.level
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)
    yield handler.messages
    logger.removeHandler(handler)
    logger.setLevel(previous_level)


def test_epoch_seconds_input_is_flagged(query_log):
    time_range = resolve_range(1705311000, NOW, now_ms=NOW)

    assert time_range.start_ms == 1705311000
    assert any("start timestamp looks like epoch seconds" in m for m in query_log)


def test_plausible_range_is_not_flagged(query_log):
    resolve_range("30m", "now", now_ms=NOW)
    assert not any("epoch seconds" in m or "far in the future" in m for m in query_log)


def test_far_future_input_only_warns(query_log):
    time_range = resolve_range(0, 10 ** 20, now_ms=NOW)

    assert time_range.end_ms == 10 ** 20
    assert any("far in the future" in m and "100000000000000000000ms" in m for m in query_log)
