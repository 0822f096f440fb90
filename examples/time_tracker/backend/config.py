from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .fields import validate_email, validate_name

log = logging.getLogger("time_tracker.config")

DEFAULT_FULL_DAY_HOURS = 8.0


@dataclass
class User:
    name: str
    email: str | None = None


@dataclass
class Project:
    code: str
    name: str


@dataclass
class TrackerConfig:
    name: str
    timezone: str | None = None  # IANA name used for display, e.g. Europe/Berlin
    full_day_hours: float | None = None
    users: list[User] = field(default_factory=list)
    projects: list[Project] = field(default_factory=list)

    def user_exists(self, name: str) -> bool:
        target = (name or "").strip().lower()
        return any(u.name.lower() == target for u in self.users)

    def find_project(self, value: str) -> Project | None:
        """Match a project by code or name, ignoring case."""
        v = (value or "").strip().lower()
        return next((p for p in self.projects if v in (p.code.lower(), p.name.lower())), None)


def load_tracker_config(path: str) -> TrackerConfig:
    """Read a workspace config file.

    Roster users whose name or email fail validation are dropped with a
    warning rather than failing the whole load. Projects need a code.
    """
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    workspace = data.get("workspace") or {}
    users = [u for u in (_load_user(raw) for raw in data.get("users") or []) if u is not None]
    projects: list[Project] = []
    for raw in data.get("projects") or []:
        code = str(raw.get("code") or "").strip() if isinstance(raw, dict) else ""
        if not code:
            log.warning("Ignoring project without a code: %r", raw)
            continue
        projects.append(Project(code=code, name=str(raw.get("name") or code).strip()))
    tz_name = workspace.get("timezone")
    return TrackerConfig(
        name=str(workspace.get("name") or ""),
        timezone=str(tz_name) if tz_name else None,
        full_day_hours=_positive_hours(workspace.get("full_day_hours"), "workspace.full_day_hours"),
        users=users,
        projects=projects,
    )


def _load_user(raw: object) -> User | None:
    if isinstance(raw, str):
        raw = {"name": raw}
    if not isinstance(raw, dict):
        log.warning("Ignoring roster entry of type %s", type(raw).__name__)
        return None
    name_check = validate_name(str(raw.get("name") or ""))
    if not name_check.is_valid:
        log.warning("Ignoring roster user %r: %s", raw.get("name"), "; ".join(name_check.errors))
        return None
    email: str | None = None
    if raw.get("email"):
        email_check = validate_email(str(raw["email"]))
        if not email_check.is_valid:
            log.warning("Ignoring roster user %r: %s", name_check.sanitized, "; ".join(email_check.errors))
            return None
        email = email_check.sanitized
    return User(name=name_check.sanitized or "", email=email)


def _positive_hours(raw: Any, source: str) -> float | None:
    if raw is None or raw == "":
        return None
    try:
        hours = float(raw)
    except (TypeError, ValueError):
        log.warning("%s is not a number: %r", source, raw)
        return None
    if hours <= 0:
        log.warning("%s must be positive, got %r", source, raw)
        return None
    return hours


def load_from_env(default_path: str | None = None) -> TrackerConfig | None:
    """Load the workspace config from TIME_TRACKER_CONFIG_PATH or a default path."""
    path = os.environ.get("TIME_TRACKER_CONFIG_PATH") or default_path
    if not path or not os.path.isfile(path):
        return None
    try:
        return load_tracker_config(path)
    except (OSError, json.JSONDecodeError) as exc:
        log.warning("Could not load config from %s: %s", path, exc)
        return None


def display_timezone(value: str | tzinfo | None = None) -> tzinfo | None:
    """Resolve the zone timestamps are rendered in.

    Order: explicit argument, TIME_TRACKER_TZ, then the host zone. The host
    zone is returned as None so `datetime.astimezone()` picks the local offset
    that applies at each instant, DST included.
    """
    if isinstance(value, tzinfo):
        return value
    name = value or os.environ.get("TIME_TRACKER_TZ")
    if name:
        try:
            return ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError):
            log.warning("Unknown timezone %r, falling back to the system zone", name)
    return None


def get_full_day_hours(config: TrackerConfig | None = None) -> float:
    """Length of a full working day: workspace setting, TIME_TRACKER_FULL_DAY_HOURS, then 8."""
    if config is not None and config.full_day_hours:
        return config.full_day_hours
    hours = _positive_hours(os.environ.get("TIME_TRACKER_FULL_DAY_HOURS"), "TIME_TRACKER_FULL_DAY_HOURS")
    return hours if hours is not None else DEFAULT_FULL_DAY_HOURS
