"""Exceptions raised by the duration engine.

The entry validators never raise; they collect messages into a
`ValidationResult` instead. These errors signal contract violations from
callers that skipped validation.
"""

from __future__ import annotations


class TimeTrackingError(ValueError):
    """Base class for duration and timestamp failures."""


class InvalidFormat(TimeTrackingError):
    """A timestamp or duration string could not be parsed."""


class InvalidOrdering(TimeTrackingError):
    """End time is not strictly after start time."""


class InvalidRange(TimeTrackingError):
    """A duration component is outside its allowed range."""


class InvalidTimestamp(InvalidFormat):
    """A timestamp given for display could not be parsed."""
