from __future__ import annotations

import datetime as dt

import pytest

from mdjournal.markdown import parse_report
from mdjournal.models import DailyReport, ScheduleItem, TodoItem
from mdjournal.stats import calculate_stats, derive_durations, project_minutes, total_minutes, with_durations


def _item(time: str, task: str = "作業", project: str = "P99") -> ScheduleItem:
    if not task:
        return ScheduleItem(id=time, time=time)
    return ScheduleItem(id=time, time=time, project=project, task=task)


def test_stats_for_sample_report(sample_text: str) -> None:
    now = dt.datetime(2025, 1, 15, 18, 0, tzinfo=dt.timezone.utc)

    stats = calculate_stats(parse_report(sample_text), now=now)

    assert stats.plan_hours == 8.0
    assert stats.result_hours == 7.5
    assert stats.todo_count == 4
    assert stats.todo_completed == 1
    assert stats.todo_in_progress == 1
    assert stats.project_hours == {"P99": 0.5, "P34": 7.0}
    assert stats.updated_at == "2025-01-15T18:00:00+00:00"


def test_naive_timestamp_is_treated_as_utc() -> None:
    stats = calculate_stats(DailyReport(date="2025-01-15"), now=dt.datetime(2025, 1, 15, 9, 30))

    assert stats.updated_at == "2025-01-15T09:30:00+00:00"
    assert stats.plan_hours == 0
    assert stats.project_hours == {}


def test_durations_run_to_next_start() -> None:
    items = [_item("13:00"), _item("08:00"), _item("12:00", task=""), _item("09:15")]

    assert derive_durations(items) == [75, 165, None, 60]
    assert total_minutes(items) == 300


def test_same_start_time_items_share_next_boundary() -> None:
    items = [_item("09:00", "A"), _item("09:00", "B"), _item("11:00", "C")]

    assert derive_durations(items) == [120, 120, 60]


def test_durations_are_not_negative() -> None:
    items = [_item(time) for time in ("08:00", "08:00", "08:30", "23:45", "25:00")]

    assert all(duration >= 0 for duration in derive_durations(items))


def test_with_durations_returns_sorted_copies() -> None:
    items = [_item("10:00"), _item("09:00")]

    timed = with_durations(items)

    assert [(item.time, item.duration) for item in timed] == [("09:00", 60), ("10:00", 60)]
    assert items[0].duration is None
    assert "duration" not in timed[0].model_dump()


def test_project_minutes_skip_breaks() -> None:
    items = [_item("09:00", project="P34"), _item("10:30", project="P99"), _item("12:00", task="")]

    assert project_minutes(items) == {"P34": 90, "P99": 90}


def test_project_hours_come_from_result_only() -> None:
    report = DailyReport(
        date="2025-01-15",
        plan=[_item("09:00", project="P01")],
        result=[_item("09:00", project="P02"), _item("09:45", task="")],
        todos=[TodoItem(id="t0", project="P99", task="x", status="completed")],
    )

    stats = calculate_stats(report)

    assert stats.project_hours == {"P02": pytest.approx(0.75)}
    assert stats.plan_hours == 1.0
    assert stats.todo_completed == 1
