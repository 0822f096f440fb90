from __future__ import annotations

from .config import get_full_day_hours
from .duration import MS_PER_HOUR, Duration


def classify_day(total: Duration, full_day: float | None = None) -> str | None:
    """Return a standardized note comparing a day's total against a full day.

    - Exactly a full day: None.
    - Less: "Partial day - Xh short of {full_day}h".
    - More: "Overtime - +Xh over {full_day}h".

    The difference is shown in hours to two decimals without trailing zeros.
    """
    full = full_day if full_day is not None else get_full_day_hours()
    delta_ms = total.milliseconds - round(full * MS_PER_HOUR)
    if delta_ms == 0:
        return None
    amount = f"{abs(delta_ms) / MS_PER_HOUR:.2f}".rstrip("0").rstrip(".")
    if delta_ms < 0:
        return f"Partial day - {amount}h short of {full:g}h"
    return f"Overtime - +{amount}h over {full:g}h"
