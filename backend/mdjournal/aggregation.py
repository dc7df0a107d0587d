from __future__ import annotations

import calendar
from typing import Dict, List, Mapping, Optional

from pydantic import BaseModel, Field

from .errors import InvalidInputError
from .models import ReportStats

MIN_YEAR = 2000
MAX_YEAR = 2100


class DayStats(BaseModel):
    date: str
    has_report: bool
    plan_hours: Optional[float] = None
    result_hours: Optional[float] = None
    todo_count: Optional[int] = None
    todo_completed: Optional[int] = None


class CalendarSummary(BaseModel):
    total_plan_hours: float = 0.0
    total_result_hours: float = 0.0
    work_days: int = 0
    todo_completed: int = 0
    project_hours: Dict[str, float] = Field(default_factory=dict)


class CalendarData(BaseModel):
    year: int
    month: int
    days: List[DayStats]
    summary: CalendarSummary


class YearMonth(BaseModel):
    year: int
    month: int


def validate_year_month(year: int, month: int) -> None:
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise InvalidInputError(f"year must be between {MIN_YEAR} and {MAX_YEAR}")
    if not 1 <= month <= 12:
        raise InvalidInputError("month must be between 1 and 12")


def summarize(stats: Mapping[str, ReportStats]) -> CalendarSummary:
    summary = CalendarSummary()
    for entry in stats.values():
        summary.total_plan_hours += entry.plan_hours
        summary.total_result_hours += entry.result_hours
        summary.work_days += 1
        summary.todo_completed += entry.todo_completed
        for project, hours in entry.project_hours.items():
            summary.project_hours[project] = summary.project_hours.get(project, 0.0) + hours
    return summary


def build_calendar(year: int, month: int, stats: Mapping[str, ReportStats]) -> CalendarData:
    """Per-day entries for one month plus a summary over the days that have a report."""
    validate_year_month(year, month)
    days: List[DayStats] = []
    for day in range(1, calendar.monthrange(year, month)[1] + 1):
        date = f"{year:04d}-{month:02d}-{day:02d}"
        entry = stats.get(date)
        if entry is None:
            days.append(DayStats(date=date, has_report=False))
            continue
        days.append(
            DayStats(
                date=date,
                has_report=True,
                plan_hours=entry.plan_hours,
                result_hours=entry.result_hours,
                todo_count=entry.todo_count,
                todo_completed=entry.todo_completed,
            )
        )
    in_month = {date: entry for date, entry in stats.items() if date.startswith(f"{year:04d}-{month:02d}-")}
    return CalendarData(year=year, month=month, days=days, summary=summarize(in_month))
