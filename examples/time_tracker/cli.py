from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from agents import Agent, ModelSettings, RunContextWrapper, function_tool, run_demo_loop
from dotenv import load_dotenv

from .backend.config import TrackerConfig, get_full_day_hours, load_from_env
from .backend.duration import (
    calculate_duration,
    calculate_total_time,
    get_current_timestamp,
    is_active_entry,
    parse_duration,
    parse_timestamp,
)
from .backend.errors import TimeTrackingError
from .backend.exporters.csv import render_entries_csv
from .backend.forms import TimeEntry, validate_time_entry
from .backend.utils import classify_day

load_dotenv()

log = logging.getLogger("time_tracker.cli")


@dataclass
class TimeTrackerContext:
    """Per-run context holding the entries recorded so far."""

    entries: list[TimeEntry] = field(default_factory=list)
    config: TrackerConfig | None = None

    def active_entry(self) -> TimeEntry | None:
        return next((e for e in self.entries if is_active_entry(e)), None)


def _entry_payload(entry: TimeEntry) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "description": entry.description,
        "start_time": str(entry.start_time) if entry.start_time else None,
        "end_time": str(entry.end_time) if entry.end_time else None,
        "user": entry.user,
        "project": entry.project,
        "active": is_active_entry(entry),
    }
    if entry.start_time and entry.end_time:
        payload["duration"] = calculate_duration(entry.start_time, entry.end_time).formatted
    return payload


def _problems(context: TimeTrackerContext, entry: TimeEntry) -> list[str]:
    problems = list(validate_time_entry(entry).errors)
    cfg = context.config
    if cfg and entry.user and not cfg.user_exists(entry.user):
        problems.append(f"Unknown user: {entry.user} (not in roster)")
    if cfg and cfg.projects:
        if not entry.project:
            problems.append("Project is required (workspace has configured projects).")
        else:
            match = cfg.find_project(entry.project)
            if match is None:
                problems.append(f"Unknown project: {entry.project} (not in config)")
            else:
                entry.project = match.code
    return problems


def _start_entry(
    context: TimeTrackerContext,
    description: str,
    start_time: str | None = None,
    user: str | None = None,
    project: str | None = None,
) -> dict[str, Any]:
    """Open a new entry. Only one entry may be running at a time."""
    running = context.active_entry()
    if running is not None:
        return {
            "status": "error",
            "problems": [f"An entry is already running: {running.description}"],
        }
    entry = TimeEntry(
        description=description,
        start_time=start_time or get_current_timestamp(),
        user=user,
        project=project,
    )
    problems = _problems(context, entry)
    if problems:
        return {"status": "error", "problems": problems}
    context.entries.append(entry)
    log.info("Started entry %r", entry.description)
    return {"status": "ok", "count": len(context.entries), "entry": _entry_payload(entry)}


def _stop_entry(context: TimeTrackerContext, end_time: str | None = None) -> dict[str, Any]:
    """Close the running entry, validating the finished span before committing it."""
    running = context.active_entry()
    if running is None:
        return {"status": "error", "problems": ["No entry is currently running."]}
    candidate = TimeEntry(
        description=running.description,
        start_time=running.start_time,
        end_time=end_time or get_current_timestamp(),
        user=running.user,
        project=running.project,
    )
    problems = _problems(context, candidate)
    if problems:
        return {"status": "error", "problems": problems}
    running.end_time = candidate.end_time
    log.info("Stopped entry %r", running.description)
    return {"status": "ok", "entry": _entry_payload(running)}


def _submit_entry(
    context: TimeTrackerContext,
    description: str,
    start_time: str,
    end_time: str,
    user: str | None = None,
    project: str | None = None,
) -> dict[str, Any]:
    """Record a completed entry in one step."""
    entry = TimeEntry(
        description=description,
        start_time=start_time,
        end_time=end_time,
        user=user,
        project=project,
    )
    problems = _problems(context, entry)
    if not end_time:
        problems.append("End time is required for a completed entry.")
    if problems:
        return {"status": "error", "problems": problems}
    context.entries.append(entry)
    return {"status": "ok", "count": len(context.entries), "entry": _entry_payload(entry)}


def _log_duration(
    context: TimeTrackerContext,
    description: str,
    duration: str,
    end_time: str | None = None,
    user: str | None = None,
    project: str | None = None,
) -> dict[str, Any]:
    """Record an entry of a given HH:MM[:SS] length that ended at ``end_time`` (default now)."""
    try:
        length_ms = parse_duration(duration)
        end = parse_timestamp(end_time or get_current_timestamp())
    except TimeTrackingError as exc:
        return {"status": "error", "problems": [str(exc)]}
    start = end - timedelta(milliseconds=length_ms)
    return _submit_entry(
        context, description, start.isoformat(), end.isoformat(), user=user, project=project
    )


def _total_time(context: TimeTrackerContext) -> dict[str, Any]:
    total = calculate_total_time(context.entries)
    running = context.active_entry()
    return {
        "status": "ok",
        **total.as_dict(),
        "completed": sum(1 for e in context.entries if e.start_time and e.end_time),
        "running": running.description if running else None,
        "note": classify_day(total, get_full_day_hours(context.config)),
    }


@function_tool
def start_entry(
    ctx: RunContextWrapper[TimeTrackerContext],
    description: str,
    start_time: str | None = None,
    user: str | None = None,
    project: str | None = None,
) -> dict[str, Any]:
    """Start tracking a new piece of work.

    Args:
        description: What is being worked on.
        start_time: Optional ISO-8601 start time. Defaults to now.
        user: Optional full name exactly as on the roster.
        project: Project code or name; required when the workspace lists projects.
    """
    return _start_entry(ctx.context, description, start_time=start_time, user=user, project=project)


@function_tool
def stop_entry(ctx: RunContextWrapper[TimeTrackerContext], end_time: str | None = None) -> dict[str, Any]:
    """Stop the currently running entry.

    Args:
        end_time: Optional ISO-8601 end time. Defaults to now.
    """
    return _stop_entry(ctx.context, end_time=end_time)


@function_tool
def submit_entry(
    ctx: RunContextWrapper[TimeTrackerContext],
    description: str,
    start_time: str,
    end_time: str,
    user: str | None = None,
    project: str | None = None,
) -> dict[str, Any]:
    """Record a finished entry once its description, start and end are known.

    Args:
        description: What was worked on.
        start_time: ISO-8601 start time, e.g. 2025-09-09T09:00:00-07:00.
        end_time: ISO-8601 end time; must be after the start and within 24 hours of it.
        user: Optional full name exactly as on the roster.
        project: Project code or name; required when the workspace lists projects.
    """
    return _submit_entry(ctx.context, description, start_time, end_time, user=user, project=project)


@function_tool
def log_duration(
    ctx: RunContextWrapper[TimeTrackerContext],
    description: str,
    duration: str,
    end_time: str | None = None,
    user: str | None = None,
    project: str | None = None,
) -> dict[str, Any]:
    """Record work given as a length rather than start/end times.

    Args:
        description: What was worked on.
        duration: Length as HH:MM or HH:MM:SS (e.g. 01:30).
        end_time: Optional ISO-8601 time the work ended. Defaults to now.
        user: Optional full name exactly as on the roster.
        project: Project code or name; required when the workspace lists projects.
    """
    return _log_duration(ctx.context, description, duration, end_time=end_time, user=user, project=project)


@function_tool
def total_time(ctx: RunContextWrapper[TimeTrackerContext]) -> dict[str, Any]:
    """Return the total tracked time over completed entries, formatted as HH:MM:SS."""
    return _total_time(ctx.context)


@function_tool
def list_entries(ctx: RunContextWrapper[TimeTrackerContext]) -> list[dict[str, Any]]:
    """List all entries recorded in this session, including a running one."""
    return [_entry_payload(e) for e in ctx.context.entries]


def _export_csv(context: TimeTrackerContext) -> str:
    """Render the session as CSV in the workspace zone and optionally save it.

    The workspace timezone takes precedence over TIME_TRACKER_TZ.
    """
    cfg = context.config
    csv_text = render_entries_csv(context.entries, timezone=cfg.timezone if cfg else None)
    save_path = os.environ.get("TIME_TRACKER_SAVE_PATH")
    if save_path:
        try:
            folder = os.path.dirname(save_path)
            if folder:
                os.makedirs(folder, exist_ok=True)
            with open(save_path, "w", encoding="utf-8") as f:
                f.write(csv_text)
        except OSError as exc:
            # Tool output stays pure CSV; the failure only goes to the log.
            log.warning("Could not save CSV to %s: %s", save_path, exc)
    return csv_text


@function_tool
def export_csv(ctx: RunContextWrapper[TimeTrackerContext]) -> str:
    """Export all entries as CSV with headers: description,project,start,end,duration,status."""
    return _export_csv(ctx.context)


def _workspace_info(context: TimeTrackerContext) -> dict[str, Any]:
    cfg = context.config
    if not cfg:
        return {"status": "empty", "users": [], "projects": []}
    return {
        "status": "ok",
        "workspace": cfg.name,
        "timezone": cfg.timezone,
        "full_day_hours": get_full_day_hours(cfg),
        "users": [{"name": u.name, "email": u.email} for u in cfg.users],
        "projects": [{"code": p.code, "name": p.name} for p in cfg.projects],
    }


@function_tool
def list_workspace_info(ctx: RunContextWrapper[TimeTrackerContext]) -> dict[str, Any]:
    """Return the workspace name, display timezone, full-day length, user roster and projects."""
    return _workspace_info(ctx.context)


def build_agent(model_name: str) -> Agent[TimeTrackerContext]:
    instructions = (
        "You are a careful time-tracking assistant. "
        "Help the user record what they worked on and for how long. "
        "When they say they are starting something, call start_entry; when they stop, call stop_entry. "
        "If they describe finished work with start and end times, call submit_entry with ISO-8601 timestamps. "
        "If they only give a length (e.g. 'an hour and a half on reviews'), call log_duration with HH:MM. "
        "Never invent times; ask a short follow-up question when a time or description is missing. "
        "If a tool returns problems, explain them plainly and ask for a correction. "
        "Entries cannot exceed 24 hours and must end after they start. "
        "Use list_workspace_info to check users against the roster and to see the project codes. "
        "When the workspace lists projects, every entry needs one; ask which project if unclear. "
        "When asked for a summary, call total_time; when the user is done, call export_csv and return only the CSV. "
        "Be concise and ask one question at a time."
    )

    return Agent[TimeTrackerContext](
        name="Time Tracker",
        instructions=instructions,
        tools=[
            list_workspace_info,
            start_entry,
            stop_entry,
            submit_entry,
            log_duration,
            list_entries,
            total_time,
            export_csv,
        ],
        model=model_name,
        model_settings=ModelSettings(),
    )


async def main() -> None:
    logging.basicConfig(
        level=os.environ.get("TIME_TRACKER_LOG_LEVEL", "WARNING").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    model = os.environ.get("OPENAI_MODEL", "gpt-4o-mini")

    if not os.environ.get("OPENAI_API_KEY"):
        print("Warning: OPENAI_API_KEY is not set. Set it in your shell or a .env file.")

    agent = build_agent(model)
    print("Time Tracker ready. Say what you're working on, or 'done' to export. Ctrl+C to exit.")

    context = TimeTrackerContext()
    context.config = load_from_env(
        default_path=os.path.join(os.path.dirname(__file__), "workspace.example.json")
    )
    await run_demo_loop(agent, stream=True, context=context)


if __name__ == "__main__":
    asyncio.run(main())
