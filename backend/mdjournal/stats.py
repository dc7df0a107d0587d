from __future__ import annotations

import datetime as dt
from typing import Dict, List, Optional

from .models import DailyReport, ReportStats, ScheduleItem, utcnow
from .utils import time_to_minutes

DEFAULT_DURATION_MINUTES = 60


def sort_schedule(items: List[ScheduleItem]) -> List[ScheduleItem]:
    return sorted(items, key=lambda item: time_to_minutes(item.time))


def derive_durations(items: List[ScheduleItem]) -> List[Optional[int]]:
    """Return one duration per item of the time-sorted list.

    Break markers get ``None``. Any other item lasts until the first later item
    with a strictly later start, or ``DEFAULT_DURATION_MINUTES`` when there is
    none. Items sharing a start time therefore both run to the next distinct
    time.
    """
    ordered = sort_schedule(items)
    starts = [time_to_minutes(item.time) for item in ordered]
    durations: List[Optional[int]] = []
    for index, item in enumerate(ordered):
        if item.is_break:
            durations.append(None)
            continue
        duration = DEFAULT_DURATION_MINUTES
        for later in starts[index + 1:]:
            if later > starts[index]:
                duration = later - starts[index]
                break
        durations.append(duration)
    return durations


def with_durations(items: List[ScheduleItem]) -> List[ScheduleItem]:
    """Return sorted copies of ``items`` carrying their derived ``duration``."""
    ordered = sort_schedule(items)
    return [
        item.model_copy(update={"duration": duration})
        for item, duration in zip(ordered, derive_durations(ordered))
    ]


def total_minutes(items: List[ScheduleItem]) -> int:
    return sum(duration or 0 for duration in derive_durations(items))


def project_minutes(items: List[ScheduleItem]) -> Dict[str, int]:
    totals: Dict[str, int] = {}
    for item in with_durations(items):
        if item.is_break:
            continue
        totals[item.project] = totals.get(item.project, 0) + (item.duration or 0)
    return totals


def calculate_stats(report: DailyReport, *, now: Optional[dt.datetime] = None) -> ReportStats:
    timestamp = now or utcnow()
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=dt.timezone.utc)
    return ReportStats(
        plan_hours=total_minutes(report.plan) / 60,
        result_hours=total_minutes(report.result) / 60,
        todo_count=len(report.todos),
        todo_completed=sum(1 for todo in report.todos if todo.status == "completed"),
        todo_in_progress=sum(1 for todo in report.todos if todo.status == "in_progress"),
        project_hours={project: minutes / 60 for project, minutes in project_minutes(report.result).items()},
        updated_at=timestamp.astimezone(dt.timezone.utc).isoformat(),
    )
