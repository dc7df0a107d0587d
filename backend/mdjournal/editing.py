from __future__ import annotations

import datetime as dt
import uuid
from typing import Iterable, List, Optional

from .models import (
    PRIORITIES,
    TODO_STATUSES,
    DailyReport,
    RoutineItem,
    ScheduleItem,
    Section,
    TodoItem,
    TodoStatus,
    check_project_code,
    check_single_line,
)
from .stats import sort_schedule
from .utils import normalize_time

STATUS_CYCLE = TODO_STATUSES
NEAR_DEADLINE_DAYS = 2


def new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _require_time(value: str) -> str:
    time = normalize_time(value)
    if time is None:
        raise ValueError(f"invalid time: {value!r}")
    return time


def _clean_task(task: str) -> str:
    return check_single_line(task).strip()


def _clean_project(project: str) -> str:
    return check_project_code(check_single_line(project, "project")).strip()


def _resort(report: DailyReport, section: Section) -> None:
    if section == "plan":
        report.plan = sort_schedule(report.plan)
    else:
        report.result = sort_schedule(report.result)


def find_schedule_item(report: DailyReport, section: Section, item_id: str) -> ScheduleItem:
    for item in report.schedule(section):
        if item.id == item_id:
            return item
    raise KeyError(item_id)


def find_todo(report: DailyReport, todo_id: str) -> TodoItem:
    for todo in report.todos:
        if todo.id == todo_id:
            return todo
    raise KeyError(todo_id)


def new_report(date: str, author: str = "") -> DailyReport:
    return DailyReport(date=date, author=author)


# Schedule


def add_schedule_item(
    report: DailyReport,
    section: Section,
    time: str,
    project: str,
    task: str,
    description: Optional[str] = None,
) -> ScheduleItem:
    if not task.strip():
        raise ValueError("task must not be empty; use add_break_marker for breaks")
    item = ScheduleItem(
        id=new_id(section[0]),
        time=_require_time(time),
        project=_clean_project(project),
        task=_clean_task(task),
        description=description or None,
    )
    report.schedule(section).append(item)
    _resort(report, section)
    return item


def add_break_marker(report: DailyReport, section: Section, time: str) -> ScheduleItem:
    item = ScheduleItem(id=new_id(section[0]), time=_require_time(time), project="", task="")
    report.schedule(section).append(item)
    _resort(report, section)
    return item


def move_schedule_item(report: DailyReport, section: Section, item_id: str, time: str) -> ScheduleItem:
    item = find_schedule_item(report, section, item_id)
    item.time = _require_time(time)
    _resort(report, section)
    return item


def set_schedule_task(report: DailyReport, section: Section, item_id: str, task: str) -> ScheduleItem:
    item = find_schedule_item(report, section, item_id)
    item.task = _clean_task(task)
    if item.is_break:
        item.project = ""
        item.description = None
    return item


def set_schedule_project(report: DailyReport, section: Section, item_id: str, project: str) -> ScheduleItem:
    item = find_schedule_item(report, section, item_id)
    item.project = _clean_project(project)
    return item


def set_schedule_description(
    report: DailyReport, section: Section, item_id: str, description: Optional[str]
) -> ScheduleItem:
    item = find_schedule_item(report, section, item_id)
    item.description = description or None
    return item


def delete_schedule_item(report: DailyReport, section: Section, item_id: str) -> ScheduleItem:
    item = find_schedule_item(report, section, item_id)
    report.schedule(section).remove(item)
    return item


def copy_plan_to_result(report: DailyReport) -> List[ScheduleItem]:
    """Replace the result list with a copy of the plan."""
    report.result = [item.model_copy(update={"id": new_id("r")}) for item in sort_schedule(report.plan)]
    return report.result


def apply_routine(report: DailyReport, routine: Iterable[RoutineItem]) -> List[ScheduleItem]:
    added = [
        ScheduleItem(
            id=new_id("p"),
            time=_require_time(entry.time),
            project=_clean_project(entry.project),
            task=_clean_task(entry.task),
        )
        for entry in routine
    ]
    report.plan = sort_schedule(report.plan + added)
    return added


# TODO


def add_todo(
    report: DailyReport,
    project: str,
    task: str,
    *,
    status: TodoStatus = "pending",
    deadline: Optional[str] = None,
    priority: Optional[str] = None,
    description: Optional[str] = None,
) -> TodoItem:
    if not task.strip():
        raise ValueError("task must not be empty")
    todo = TodoItem(
        id=new_id("t"),
        project=_clean_project(project),
        task=_clean_task(task),
        status=status,
        deadline=deadline or None,
        priority=priority or None,
        description=description or None,
    )
    report.todos.append(todo)
    return todo


def set_todo_task(report: DailyReport, todo_id: str, task: str) -> TodoItem:
    if not task.strip():
        raise ValueError("task must not be empty")
    todo = find_todo(report, todo_id)
    todo.task = _clean_task(task)
    return todo


def set_todo_project(report: DailyReport, todo_id: str, project: str) -> TodoItem:
    todo = find_todo(report, todo_id)
    todo.project = _clean_project(project)
    return todo


def set_todo_status(report: DailyReport, todo_id: str, status: TodoStatus) -> TodoItem:
    if status not in STATUS_CYCLE:
        raise ValueError(f"unknown status: {status!r}")
    todo = find_todo(report, todo_id)
    todo.status = status
    return todo


def next_status(status: str) -> str:
    return STATUS_CYCLE[(STATUS_CYCLE.index(status) + 1) % len(STATUS_CYCLE)]


def toggle_todo_status(report: DailyReport, todo_id: str) -> TodoItem:
    todo = find_todo(report, todo_id)
    todo.status = next_status(todo.status)  # type: ignore[assignment]
    return todo


def set_todo_deadline(report: DailyReport, todo_id: str, deadline: Optional[str]) -> TodoItem:
    todo = find_todo(report, todo_id)
    todo.deadline = deadline or None
    return todo


def set_todo_priority(report: DailyReport, todo_id: str, priority: Optional[str]) -> TodoItem:
    if priority and priority not in PRIORITIES:
        raise ValueError(f"unknown priority: {priority!r}")
    todo = find_todo(report, todo_id)
    todo.priority = priority or None  # type: ignore[assignment]
    return todo


def set_todo_description(report: DailyReport, todo_id: str, description: Optional[str]) -> TodoItem:
    todo = find_todo(report, todo_id)
    todo.description = description or None
    return todo


def delete_todo(report: DailyReport, todo_id: str) -> TodoItem:
    todo = find_todo(report, todo_id)
    report.todos.remove(todo)
    return todo


def carry_over_todos(previous: Optional[DailyReport]) -> List[TodoItem]:
    """Copy the unfinished TODOs of the previous day under fresh ids."""
    if previous is None:
        return []
    return [
        todo.model_copy(update={"id": new_id("t")})
        for todo in previous.todos
        if todo.status != "completed"
    ]


def _days_until(deadline: Optional[str], today: Optional[dt.date]) -> Optional[int]:
    if not deadline:
        return None
    try:
        target = dt.date.fromisoformat(deadline)
    except ValueError:
        return None
    return (target - (today or dt.date.today())).days


def is_overdue(deadline: Optional[str], today: Optional[dt.date] = None) -> bool:
    days = _days_until(deadline, today)
    return days is not None and days < 0


def is_near_deadline(deadline: Optional[str], today: Optional[dt.date] = None) -> bool:
    days = _days_until(deadline, today)
    return days is not None and 0 <= days <= NEAR_DEADLINE_DAYS
