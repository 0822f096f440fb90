"""Duration arithmetic for time entries.

All arithmetic is done on integer milliseconds. Timestamps may be
`datetime`/`date` values or ISO-8601 strings; naive values are read as UTC.
Failures raise the errors in `errors`; callers are expected to run
`forms.validate_time_entry` first when the input comes from a user.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date as _date, datetime, timedelta, timezone as _timezone, tzinfo as _tzinfo
from typing import Any, Union

from .config import display_timezone
from .errors import InvalidFormat, InvalidOrdering, InvalidRange, InvalidTimestamp

log = logging.getLogger("time_tracker.duration")

Timestamp = Union[datetime, _date, str]

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE

_EPOCH = datetime(1970, 1, 1, tzinfo=_timezone.utc)
_ONE_MS = timedelta(milliseconds=1)
_DIGITS = re.compile(r"\s*[0-9]+\s*")
_CAMEL_KEYS = {"start_time": "startTime", "end_time": "endTime"}


@dataclass(frozen=True)
class Duration:
    """A non-negative span of time stored as whole milliseconds.

    Hours do not roll over into days, so a 30 hour span reads as
    ``hours == 30``. Sub-second remainders are truncated in the h/m/s view.
    """

    milliseconds: int = 0

    @property
    def total_hours(self) -> float:
        return self.milliseconds / MS_PER_HOUR

    @property
    def hours(self) -> int:
        return self.milliseconds // MS_PER_HOUR

    @property
    def minutes(self) -> int:
        return (self.milliseconds % MS_PER_HOUR) // MS_PER_MINUTE

    @property
    def seconds(self) -> int:
        return (self.milliseconds % MS_PER_MINUTE) // MS_PER_SECOND

    @property
    def formatted(self) -> str:
        return format_duration(self.hours, self.minutes, self.seconds)

    def as_dict(self) -> dict[str, Any]:
        return {
            "milliseconds": self.milliseconds,
            "total_hours": self.total_hours,
            "hours": self.hours,
            "minutes": self.minutes,
            "seconds": self.seconds,
            "formatted": self.formatted,
        }


def parse_timestamp(value: Any) -> datetime:
    """Return an aware `datetime` for a timestamp, or raise `InvalidFormat`."""
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=_timezone.utc)
    if isinstance(value, _date):
        return datetime(value.year, value.month, value.day, tzinfo=_timezone.utc)
    if isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            log.debug("Unparseable timestamp: %r", value)
            raise InvalidFormat("Invalid date format") from None
        return parse_timestamp(parsed)
    raise InvalidFormat("Invalid date format")


def to_milliseconds(value: Any) -> int:
    """Milliseconds since the Unix epoch, truncating microseconds."""
    return (parse_timestamp(value) - _EPOCH) // _ONE_MS


def calculate_duration(start: Timestamp, end: Timestamp) -> Duration:
    """Duration between two timestamps.

    Raises `InvalidFormat` if either side does not parse and `InvalidOrdering`
    unless ``end`` is strictly after ``start``; equal instants are rejected.
    """
    start_ms = to_milliseconds(start)
    end_ms = to_milliseconds(end)
    if end_ms <= start_ms:
        raise InvalidOrdering("End time must be after start time")
    return Duration(end_ms - start_ms)


def format_duration(hours: int, minutes: int, seconds: int = 0) -> str:
    """Render ``HH:MM:SS``; hours widen past two digits instead of wrapping."""
    return f"{hours:02d}:{minutes:02d}:{seconds:02d}"


def parse_duration(text: str) -> int:
    """Parse ``HH:MM`` or ``HH:MM:SS`` into milliseconds.

    Hours are unbounded; minutes and seconds must be below 60.
    """
    parts = text.split(":") if isinstance(text, str) else []
    if len(parts) not in (2, 3):
        raise InvalidFormat("Invalid duration format. Expected HH:MM or HH:MM:SS")
    if not all(_DIGITS.fullmatch(p) for p in parts):
        raise InvalidFormat("Invalid duration format. All parts must be numbers")
    try:
        hours = int(parts[0])
        minutes = int(parts[1])
        seconds = int(parts[2]) if len(parts) == 3 else 0
    except ValueError:
        # int() refuses digit strings past the interpreter's conversion limit.
        raise InvalidFormat("Invalid duration format. All parts must be numbers") from None
    if minutes >= 60 or seconds >= 60:
        raise InvalidRange("Invalid duration format. Minutes and seconds must be less than 60")
    return (hours * 3600 + minutes * 60 + seconds) * MS_PER_SECOND


def entry_field(entry: Any, name: str) -> Any:
    """Read ``start_time``/``end_time``/``description`` from an entry.

    Mappings may use snake_case or camelCase keys; anything else is read by
    attribute.
    """
    if isinstance(entry, Mapping):
        value = entry.get(name)
        if value is None and name in _CAMEL_KEYS:
            value = entry.get(_CAMEL_KEYS[name])
        return value
    return getattr(entry, name, None)


def is_active_entry(entry: Any) -> bool:
    """True when the entry has started and not yet stopped."""
    return bool(entry_field(entry, "start_time")) and not entry_field(entry, "end_time")


def calculate_total_time(entries: Iterable[Any]) -> Duration:
    """Sum the durations of entries that have both a start and an end.

    Active or otherwise incomplete entries are skipped rather than treated as
    errors. A complete entry with bad timestamps still raises.
    """
    total_ms = 0
    skipped = 0
    for entry in entries:
        start = entry_field(entry, "start_time")
        end = entry_field(entry, "end_time")
        if not start or not end:
            skipped += 1
            continue
        total_ms += calculate_duration(start, end).milliseconds
    if skipped:
        log.debug("Skipped %d incomplete entries while totalling", skipped)
    return Duration(total_ms)


def now() -> datetime:
    """Current UTC time. The only place the engine reads the wall clock."""
    return datetime.now(_timezone.utc)


def get_current_timestamp() -> str:
    """Current time as ISO-8601 UTC with milliseconds, e.g. ``2023-01-15T14:30:45.123Z``."""
    current = now().astimezone(_timezone.utc)
    return current.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_timestamp(
    timestamp: Timestamp,
    fmt: str = "datetime",
    *,
    timezone: str | _tzinfo | None = None,
) -> str:
    """Render a timestamp for display.

    Formats:
    - ``date``: ``01/15/2023``
    - ``time``: ``02:30:45 PM``
    - ``datetime`` (default, also used for unknown selectors): ``01/15/2023, 02:30:45 PM``

    Args:
        timestamp: The instant to render.
        fmt: One of ``date``, ``time``, ``datetime``.
        timezone: IANA name or tzinfo. Defaults to TIME_TRACKER_TZ, then the system zone.
    """
    try:
        moment = parse_timestamp(timestamp)
    except InvalidFormat:
        raise InvalidTimestamp("Invalid timestamp") from None
    # With no zone configured, astimezone() applies the host's DST rules for this instant.
    local = moment.astimezone(display_timezone(timezone))
    day = local.strftime("%m/%d/%Y")
    clock = local.strftime("%I:%M:%S %p")
    if fmt == "date":
        return day
    if fmt == "time":
        return clock
    return f"{day}, {clock}"
