"""Schema and validation for time entries.

Entries are plain dataclasses. `validate_time_entry` never raises; it runs
every check and reports the failures in a fixed order so callers can show
them all at once.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .duration import MS_PER_HOUR, Timestamp, entry_field, to_milliseconds
from .errors import InvalidFormat
from .fields import ValidationResult

MAX_DESCRIPTION_LENGTH = 500
MAX_ENTRY_MS = 24 * MS_PER_HOUR


@dataclass
class TimeEntry:
    """A tracked span of work. No ``end_time`` means it is still running."""

    description: str
    start_time: Timestamp | None = None
    end_time: Timestamp | None = None
    user: str | None = None
    project: str | None = None


def from_dict(data: Mapping[str, Any]) -> TimeEntry:
    """Convert a mapping (snake_case or camelCase keys) to a `TimeEntry`."""
    return TimeEntry(
        description=str(data.get("description") or ""),
        start_time=entry_field(data, "start_time") or None,
        end_time=entry_field(data, "end_time") or None,
        user=(str(data["user"]) if data.get("user") is not None else None),
        project=(str(data["project"]) if data.get("project") is not None else None),
    )


def validate_time_entry(entry: TimeEntry | Mapping[str, Any]) -> ValidationResult:
    """Return a verdict listing every problem with the entry."""
    if isinstance(entry, Mapping):
        entry = from_dict(entry)
    errors: list[str] = []
    description = entry.description or ""

    if not description.strip():
        errors.append("Description is required")
    if len(description) > MAX_DESCRIPTION_LENGTH:
        errors.append("Description must be less than 500 characters")

    start_ms = _millis_or_none(entry.start_time)
    end_ms = _millis_or_none(entry.end_time)
    if start_ms is None:
        errors.append("Valid start time is required")
    if entry.end_time and end_ms is None:
        errors.append("Valid end time is required")

    # An unparseable bound makes both comparisons inapplicable.
    if start_ms is not None and end_ms is not None:
        if end_ms <= start_ms:
            errors.append("End time must be after start time")
        if end_ms - start_ms > MAX_ENTRY_MS:
            errors.append("Time entry cannot exceed 24 hours")

    return ValidationResult(errors=errors)


def _millis_or_none(value: Any) -> int | None:
    if not value:
        return None
    try:
        return to_milliseconds(value)
    except InvalidFormat:
        return None
