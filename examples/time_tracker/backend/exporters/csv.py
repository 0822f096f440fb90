"""CSV export for tracked time entries."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Sequence
from datetime import tzinfo
from typing import Any

from ..duration import calculate_duration, entry_field, format_timestamp, is_active_entry

ENTRY_FIELDS = ["description", "project", "start", "end", "duration", "status"]


def entry_row(entry: Any, timezone: str | tzinfo | None = None) -> dict[str, object]:
    """Flatten one entry into display columns.

    Active entries have blank ``end`` and ``duration`` columns; entries with
    no start are marked ``incomplete``.
    """
    start = entry_field(entry, "start_time")
    end = entry_field(entry, "end_time")
    if is_active_entry(entry):
        status = "active"
    else:
        status = "closed" if start and end else "incomplete"
    return {
        "description": entry_field(entry, "description") or "",
        "project": entry_field(entry, "project") or "",
        "start": format_timestamp(start, timezone=timezone) if start else "",
        "end": format_timestamp(end, timezone=timezone) if end else "",
        "duration": calculate_duration(start, end).formatted if status == "closed" else "",
        "status": status,
    }


def render_entries_csv(
    entries: Iterable[Any],
    timezone: str | tzinfo | None = None,
    fieldnames: Sequence[str] = ENTRY_FIELDS,
) -> str:
    """Render entries as CSV text with a header row.

    ``fieldnames`` selects and orders the columns; timestamps are shown in
    ``timezone`` (see `format_timestamp` for the fallback order).
    """
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=list(fieldnames), extrasaction="ignore")
    writer.writeheader()
    writer.writerows(entry_row(e, timezone) for e in entries)
    return buf.getvalue()
