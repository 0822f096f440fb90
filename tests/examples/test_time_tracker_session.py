from datetime import datetime, timezone

from examples.time_tracker.backend import duration
from examples.time_tracker.backend.config import Project, TrackerConfig, User
from examples.time_tracker.cli import (
    TimeTrackerContext,
    _export_csv,
    _log_duration,
    _start_entry,
    _stop_entry,
    _submit_entry,
    _total_time,
    _workspace_info,
)


def test_start_and_stop_entry(monkeypatch):
    monkeypatch.delenv("TIME_TRACKER_FULL_DAY_HOURS", raising=False)
    ctx = TimeTrackerContext()
    started = _start_entry(ctx, "Write report", start_time="2025-09-09T09:00:00Z")
    assert started["status"] == "ok"
    assert started["entry"]["active"] is True

    # Only one running entry at a time.
    again = _start_entry(ctx, "Something else", start_time="2025-09-09T09:05:00Z")
    assert again == {"status": "error", "problems": ["An entry is already running: Write report"]}

    stopped = _stop_entry(ctx, end_time="2025-09-09T11:30:00Z")
    assert stopped["status"] == "ok"
    assert stopped["entry"]["duration"] == "02:30:00"

    summary = _total_time(ctx)
    assert summary["formatted"] == "02:30:00"
    assert summary["completed"] == 1
    assert summary["running"] is None
    assert summary["note"] == "Partial day - 5.5h short of 8h"


def test_stop_rejects_invalid_span_and_keeps_entry_running():
    ctx = TimeTrackerContext()
    _start_entry(ctx, "Overnight", start_time="2025-09-09T09:00:00Z")
    result = _stop_entry(ctx, end_time="2025-09-10T10:00:00Z")
    assert result == {"status": "error", "problems": ["Time entry cannot exceed 24 hours"]}
    assert ctx.active_entry() is not None

    assert _stop_entry(ctx, end_time="2025-09-09T08:00:00Z")["problems"] == [
        "End time must be after start time"
    ]


def test_stop_without_running_entry():
    assert _stop_entry(TimeTrackerContext())["status"] == "error"


def test_start_defaults_to_clock(monkeypatch):
    fixed = datetime(2025, 9, 9, 8, 0, tzinfo=timezone.utc)
    monkeypatch.setattr(duration, "now", lambda: fixed)
    ctx = TimeTrackerContext()
    result = _start_entry(ctx, "Email triage")
    assert result["entry"]["start_time"] == "2025-09-09T08:00:00.000Z"


def test_submit_entry_validation_and_totals():
    ctx = TimeTrackerContext()
    bad = _submit_entry(ctx, "", "2025-09-09T09:00:00Z", "invalid-date")
    assert bad["problems"] == ["Description is required", "Valid end time is required"]
    assert ctx.entries == []

    _submit_entry(ctx, "Morning", "2025-09-09T09:00:00Z", "2025-09-09T12:00:00Z")
    _submit_entry(ctx, "Afternoon", "2025-09-09T13:00:00Z", "2025-09-09T17:30:00Z")
    _start_entry(ctx, "Evening", start_time="2025-09-09T18:00:00Z")
    summary = _total_time(ctx)
    assert summary["formatted"] == "07:30:00"
    assert summary["total_hours"] == 7.5
    assert summary["running"] == "Evening"


def test_log_duration():
    ctx = TimeTrackerContext()
    result = _log_duration(ctx, "Code review", "01:30", end_time="2025-09-09T17:00:00Z")
    assert result["status"] == "ok"
    assert result["entry"]["duration"] == "01:30:00"
    assert ctx.entries[0].start_time == "2025-09-09T15:30:00+00:00"

    assert _log_duration(ctx, "Review", "01:75")["problems"] == [
        "Invalid duration format. Minutes and seconds must be less than 60"
    ]
    assert _log_duration(ctx, "Review", "90")["problems"] == [
        "Invalid duration format. Expected HH:MM or HH:MM:SS"
    ]
    assert _log_duration(ctx, "Review", "9" * 5000 + ":00")["problems"] == [
        "Invalid duration format. All parts must be numbers"
    ]


def test_unknown_user_against_roster():
    ctx = TimeTrackerContext(config=TrackerConfig(name="Studio", users=[User(name="Alice Doe")]))
    ok = _submit_entry(ctx, "Work", "2025-09-09T09:00:00Z", "2025-09-09T10:00:00Z", user="Alice Doe")
    assert ok["status"] == "ok"
    bad = _submit_entry(ctx, "Work", "2025-09-09T09:00:00Z", "2025-09-09T10:00:00Z", user="Zed")
    assert bad["problems"] == ["Unknown user: Zed (not in roster)"]


def _studio_with_projects():
    return TrackerConfig(
        name="Studio",
        projects=[Project(code="WEB-24", name="Website Refresh"), Project(code="ADM", name="Administration")],
    )


def test_project_checked_against_config():
    ctx = TimeTrackerContext(config=_studio_with_projects())
    ok = _submit_entry(
        ctx, "Mockups", "2025-09-09T09:00:00Z", "2025-09-09T10:00:00Z", project="website refresh"
    )
    assert ok["status"] == "ok"
    assert ok["entry"]["project"] == "WEB-24"

    bad = _submit_entry(ctx, "Mockups", "2025-09-09T10:00:00Z", "2025-09-09T11:00:00Z", project="Marketing")
    assert bad["problems"] == ["Unknown project: Marketing (not in config)"]
    missing = _log_duration(ctx, "Mockups", "00:30", end_time="2025-09-09T12:00:00Z")
    assert missing["problems"] == ["Project is required (workspace has configured projects)."]

    started = _start_entry(ctx, "Filing", start_time="2025-09-09T13:00:00Z", project="adm")
    assert started["entry"]["project"] == "ADM"
    assert _stop_entry(ctx, end_time="2025-09-09T13:45:00Z")["entry"]["project"] == "ADM"


def test_project_optional_without_configured_projects():
    ctx = TimeTrackerContext(config=TrackerConfig(name="Studio"))
    result = _submit_entry(ctx, "Work", "2025-09-09T09:00:00Z", "2025-09-09T10:00:00Z", project="Anything")
    assert result["status"] == "ok"
    assert result["entry"]["project"] == "Anything"


def test_total_time_uses_workspace_full_day(monkeypatch):
    monkeypatch.setenv("TIME_TRACKER_FULL_DAY_HOURS", "8")
    ctx = TimeTrackerContext(config=TrackerConfig(name="Studio", full_day_hours=2.5))
    _submit_entry(ctx, "Work", "2025-09-09T09:00:00Z", "2025-09-09T11:00:00Z")
    assert _total_time(ctx)["note"] == "Partial day - 0.5h short of 2.5h"


def test_export_csv_prefers_workspace_zone_over_env(tmp_path, monkeypatch):
    save_path = tmp_path / "out" / "entries.csv"
    monkeypatch.setenv("TIME_TRACKER_TZ", "Asia/Tokyo")
    monkeypatch.setenv("TIME_TRACKER_SAVE_PATH", str(save_path))
    ctx = TimeTrackerContext(config=TrackerConfig(name="Studio", timezone="UTC"))
    _submit_entry(ctx, "Deploy", "2023-01-15T14:30:45Z", "2023-01-15T15:30:45Z")

    out = _export_csv(ctx)
    lines = out.splitlines()
    assert lines[0] == "description,project,start,end,duration,status"
    assert lines[1] == 'Deploy,,"01/15/2023, 02:30:45 PM","01/15/2023, 03:30:45 PM",01:00:00,closed'
    assert save_path.read_text(encoding="utf-8") == out

    # Without a workspace zone the env zone applies.
    ctx.config = None
    assert '"01/15/2023, 11:30:45 PM"' in _export_csv(ctx)


def test_workspace_info_lists_projects_and_full_day():
    info = _workspace_info(TimeTrackerContext(config=_studio_with_projects()))
    assert info["projects"] == [
        {"code": "WEB-24", "name": "Website Refresh"},
        {"code": "ADM", "name": "Administration"},
    ]
    assert info["users"] == []
    assert _workspace_info(TimeTrackerContext())["status"] == "empty"
