"""
Time expression resolution for SigNoz queries

Turns the time inputs accepted by the tools (relative durations such as
"30m", legacy "now-1h" forms, ISO-8601 strings, epoch-millisecond strings and
plain numbers) into absolute epoch milliseconds, and renders timestamps back
to ISO text.

Parsing is lenient on purpose: an unparsable time silently becomes "now".
The only hard failure is an empty or inverted range.
"""

import enum
import math
import re
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Optional, Union

from src.logging import get_logger

logger = get_logger('QUERY')

TimeInput = Union[str, int, float, None]

TIME_MULTIPLIERS = {
    's': 1000,
    'm': 60 * 1000,
    'h': 60 * 60 * 1000,
    'd': 24 * 60 * 60 * 1000,
}

STEP_MULTIPLIERS = {
    's': 1,
    'm': 60,
    'h': 3600,
    'd': 86400,
}

DEFAULT_STEP_SECONDS = 60
NANOSECOND_THRESHOLD = 1e15
ONE_DAY_MS = TIME_MULTIPLIERS['d']
ONE_YEAR_MS = 365 * ONE_DAY_MS

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_RELATIVE_PATTERN = re.compile(r'^(\d+)([smhd])$')
_EPOCH_MILLIS_PATTERN = re.compile(r'^\d{10,13}$')

_UNIT_BY_DIGITS = {
    10: 'seconds',
    13: 'milliseconds',
    16: 'microseconds',
    19: 'nanoseconds',
}

_MS_PER_UNIT = {
    'seconds': 1000,
    'milliseconds': 1,
    'microseconds': 1 / 1000,
    'nanoseconds': 1 / 1_000_000,
}


class TimeRangeErrorKind(enum.Enum):
    INVERTED = "inverted"


class TimeRangeError(ValueError):
    """Resolved start does not strictly precede resolved end."""

    def __init__(self, message: str, start_input: TimeInput, end_input: TimeInput,
                 start_ms: int, end_ms: int, kind: TimeRangeErrorKind = TimeRangeErrorKind.INVERTED):
        super().__init__(message)
        self.kind = kind
        self.start_input = start_input
        self.end_input = end_input
        self.start_ms = start_ms
        self.end_ms = end_ms


@dataclass(frozen=True)
class TimeRange:
    """Absolute query window in epoch milliseconds."""
    start_ms: int
    end_ms: int

    @property
    def duration_ms(self) -> int:
        return self.end_ms - self.start_ms


def current_time_ms() -> int:
    """Wall clock in epoch milliseconds."""
    return int(time.time() * 1000)


def resolve_time(value: TimeInput = None, now_ms: Optional[int] = None) -> int:
    """
    Resolve a time input to epoch milliseconds.

    Args:
        value: "", None, "30m", "now-1h", "2024-01-15T10:30:00Z", "1705314600000" or a number
        now_ms: Reference instant, defaults to the wall clock

    Returns:
        Epoch milliseconds, never negative
    """
    if now_ms is None:
        now_ms = current_time_ms()

    if value is None or value == "":
        return now_ms

    if isinstance(value, (int, float)) and not isinstance(value, bool):
        # Already absolute, no unit inference here
        if isinstance(value, float) and not math.isfinite(value):
            return now_ms
        return max(0, int(value))

    text = str(value).strip()

    # "now-" is the legacy spelling of a relative duration
    relative = text[4:] if text.startswith("now-") else text
    match = _RELATIVE_PATTERN.match(relative)
    if match:
        amount, unit = match.groups()
        return max(0, now_ms - int(amount) * TIME_MULTIPLIERS[unit])

    if _EPOCH_MILLIS_PATTERN.match(text):
        return int(text)

    parsed = _parse_date_string(text)
    if parsed is None:
        logger.debug(f"unparsable time input, using now | input:{text}")
        return now_ms
    return max(0, parsed)


def _parse_date_string(text: str) -> Optional[int]:
    """ISO-8601 first, RFC 2822 second. Naive values are read as UTC."""
    candidate = text[:-1] + "+00:00" if text.endswith(("Z", "z")) else text
    try:
        parsed = datetime.fromisoformat(candidate)
    except ValueError:
        try:
            parsed = parsedate_to_datetime(text)
        except (TypeError, ValueError, IndexError):
            return None
        if parsed is None:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return (parsed - _EPOCH) // timedelta(milliseconds=1)


def resolve_range(start: TimeInput = None, end: TimeInput = None,
                  default_start: TimeInput = "1h", default_end: TimeInput = "now",
                  now_ms: Optional[int] = None) -> TimeRange:
    """
    Resolve and validate a start/end pair.

    Both ends are resolved against the same reference instant so that
    ("now", "now") is reliably an empty range.

    Raises:
        TimeRangeError: If start is not strictly before end
    """
    if now_ms is None:
        now_ms = current_time_ms()

    start_input = default_start if start is None or start == "" else start
    end_input = default_end if end is None or end == "" else end

    start_ms = resolve_time(start_input, now_ms)
    end_ms = resolve_time(end_input, now_ms)

    if start_ms == end_ms:
        raise TimeRangeError(
            f"Invalid time range: start and end are the same (start={start_input}, end={end_input})",
            start_input, end_input, start_ms, end_ms
        )
    if start_ms > end_ms:
        raise TimeRangeError(
            f"Invalid time range: start ({start_input}) must be before end ({end_input})",
            start_input, end_input, start_ms, end_ms
        )

    _warn_about_timestamp_units(start_ms, end_ms, start_input, end_input, now_ms)
    return TimeRange(start_ms=start_ms, end_ms=end_ms)


def _describe_ms(ms: int) -> str:
    try:
        return format_iso_millis(ms)
    except (OverflowError, ValueError):
        return f"{ms}ms"


def _warn_about_timestamp_units(start_ms: int, end_ms: int, start_input: TimeInput,
                                end_input: TimeInput, now_ms: int) -> None:
    one_year_ahead = now_ms + ONE_YEAR_MS

    for label, value, raw in (("start", start_ms, start_input), ("end", end_ms, end_input)):
        if is_reasonable_timestamp(value, now_ms) or detect_timestamp_unit(value) != 'seconds':
            continue
        as_millis = to_milliseconds(value, 'seconds')
        if is_reasonable_timestamp(as_millis, now_ms):
            logger.warning(
                f"{label} timestamp looks like epoch seconds | input:{raw} | "
                f"resolved:{_describe_ms(value)} | as_seconds:{_describe_ms(as_millis)}"
            )

    if start_ms > one_year_ahead or end_ms > one_year_ahead:
        logger.warning(f"timestamp far in the future | resolved:{_describe_ms(max(start_ms, end_ms))}")


def resolve_step(value: Optional[str]) -> int:
    """
    Parse a metrics step such as "30s" or "5m" into seconds.

    Anything unparsable falls back to one minute.
    """
    if not isinstance(value, str):
        return DEFAULT_STEP_SECONDS

    match = _RELATIVE_PATTERN.match(value.strip())
    if not match:
        return DEFAULT_STEP_SECONDS

    amount, unit = match.groups()
    return int(amount) * STEP_MULTIPLIERS[unit]


def parse_duration_seconds(value: str) -> int:
    """
    Strict duration parser for discovery windows.

    Raises:
        ValueError: If value is not like '1h', '30m', '2d'
    """
    match = _RELATIVE_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Invalid time range format: {value}. Expected format like '1h', '30m', '2d'")

    amount, unit = match.groups()
    return int(amount) * STEP_MULTIPLIERS[unit]


def format_iso_millis(ms: Union[int, float]) -> str:
    """Epoch milliseconds to '2024-01-15T10:30:00.000Z'."""
    moment = _EPOCH + timedelta(milliseconds=int(ms))
    return moment.isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def format_timestamp(value, now_ms: Optional[int] = None) -> str:
    """
    Render a SigNoz timestamp as ISO text.

    Strings are returned untouched, numbers above 1e15 are nanoseconds,
    other numbers are milliseconds. Missing values render as now.
    """
    if not value:
        return format_iso_millis(now_ms if now_ms is not None else current_time_ms())

    if isinstance(value, str):
        return value

    try:
        numeric = int(value)
        ms = numeric / 1_000_000 if numeric > NANOSECOND_THRESHOLD else numeric
        return format_iso_millis(ms)
    except (TypeError, ValueError, OverflowError):
        return f"<invalid timestamp: {value}>"


def detect_timestamp_unit(value: Union[int, float]) -> str:
    """Guess the unit of an epoch value from its digit count."""
    digits = len(str(abs(int(value))))
    return _UNIT_BY_DIGITS.get(digits, 'unknown')


def to_milliseconds(value: Union[int, float], unit: str) -> int:
    """Convert an epoch value in the given unit to milliseconds."""
    if unit not in _MS_PER_UNIT:
        raise ValueError(f"Unknown timestamp unit: {unit}")
    return int(value * _MS_PER_UNIT[unit])


def is_reasonable_timestamp(ms: int, now_ms: Optional[int] = None) -> bool:
    """Within one year back and one day ahead of now."""
    if now_ms is None:
        now_ms = current_time_ms()
    return now_ms - ONE_YEAR_MS <= ms <= now_ms + ONE_DAY_MS
