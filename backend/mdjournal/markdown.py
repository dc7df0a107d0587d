"""Daily report Markdown dialect.

    # [日報] <author> <YYYY-MM-DD>

    ## [PLAN]
    * HH:MM [PROJECT] task
      description
    * HH:MM

    ## [RESULT]
    ...

    ## [TODO]
    ### PROJECT
    - [ ] @YYYY-MM-DD !!! task

    ## [NOTE]
    free text
"""

from __future__ import annotations

import datetime as dt
import re
from typing import Dict, List, Optional

from .models import DailyReport, ScheduleItem, TodoItem
from .utils import time_to_minutes

DEFAULT_PROJECT = "P99"
DEFAULT_AUTHOR_PLACEHOLDER = "名前"

HEADER_PATTERN = re.compile(r"^#\s+\[日報\]\s+(.+?)\s+(\d{4}-\d{2}-\d{2})")
SECTION_PATTERN = re.compile(r"^##\s+\[(PLAN|RESULT|TODO|NOTE)\]", re.IGNORECASE)
H2_PATTERN = re.compile(r"^##\s")
SCHEDULE_ITEM_PATTERN = re.compile(r"^[*-]\s+(\d{1,2}:\d{2})\s+\[([^\]]+)\]\s+(.+)$")
SCHEDULE_BREAK_PATTERN = re.compile(r"^[*-]\s+(\d{1,2}:\d{2})\s*$")
FOOTNOTE_PATTERN = re.compile(r"\s*\[\^[^\]]+\]$")
PROJECT_HEADER_PATTERN = re.compile(r"^###\s+(\S+)")
TODO_PATTERN = re.compile(r"^[-*]\s+\[([ xX*\->])\]\s*(.*)$")
DEADLINE_TOKEN = re.compile(r"^@(\d{4}-\d{2}-\d{2}|\d{2}-\d{2})(?:\s+|$)")
TRAILING_DEADLINE_TOKEN = re.compile(r"\s+@(\d{4}-\d{2}-\d{2}|\d{2}-\d{2})\s*$")
PRIORITY_TOKEN = re.compile(r"^(!!!|!!|!)\s*")
PROJECT_TOKEN = re.compile(r"^\[([^\]]+)\]\s*")
DESCRIPTION_INDENT = "  "

STATUS_BY_MARK: Dict[str, str] = {
    " ": "pending",
    "*": "in_progress",
    "x": "completed",
    "X": "completed",
    "-": "on_hold",
    ">": "on_hold",
}
MARK_BY_STATUS: Dict[str, str] = {
    "pending": " ",
    "in_progress": "*",
    "completed": "x",
    "on_hold": "-",
}
PRIORITY_BY_MARK: Dict[str, str] = {"!!!": "high", "!!": "medium", "!": "low"}
MARK_BY_PRIORITY: Dict[str, str] = {value: key for key, value in PRIORITY_BY_MARK.items()}


def _expand_deadline(value: str, today: dt.date) -> str:
    if len(value) == 5:
        return f"{today.year}-{value}"
    return value


def _sort_schedule(items: List[ScheduleItem]) -> List[ScheduleItem]:
    return sorted(items, key=lambda item: time_to_minutes(item.time))


def parse_todo_line(
    line: str,
    todo_id: str,
    current_project: str,
    today: Optional[dt.date] = None,
) -> Optional[TodoItem]:
    """Parse one ``- [mark] ...`` line, or return ``None`` when it is not a TODO."""
    match = TODO_PATTERN.match(line)
    if not match:
        return None
    status = STATUS_BY_MARK[match.group(1)]
    remainder = match.group(2).strip()
    today = today or dt.date.today()

    deadline: Optional[str] = None
    priority: Optional[str] = None
    project: Optional[str] = None
    # Deadline, priority and project prefixes come in either order in older files.
    while remainder:
        token = DEADLINE_TOKEN.match(remainder) if deadline is None else None
        if token:
            deadline = _expand_deadline(token.group(1), today)
            remainder = remainder[token.end():]
            continue
        token = PRIORITY_TOKEN.match(remainder) if priority is None else None
        if token:
            priority = PRIORITY_BY_MARK[token.group(1)]
            remainder = remainder[token.end():]
            continue
        token = PROJECT_TOKEN.match(remainder) if project is None else None
        if token:
            project = token.group(1).strip()
            remainder = remainder[token.end():]
            continue
        break

    trailing = TRAILING_DEADLINE_TOKEN.search(remainder)
    if trailing:
        deadline = _expand_deadline(trailing.group(1), today)
        remainder = remainder[: trailing.start()]

    task = remainder.strip()
    if not task:
        return None
    return TodoItem(
        id=todo_id,
        project=project or current_project,
        task=task,
        status=status,
        deadline=deadline,
        priority=priority,
    )


def parse_report(
    text: str,
    date: Optional[str] = None,
    *,
    default_project: str = DEFAULT_PROJECT,
    today: Optional[dt.date] = None,
) -> DailyReport:
    """Parse report Markdown. Lines that match nothing are skipped, never rejected."""
    lines = [line.rstrip("\r") for line in (text or "").split("\n")]
    report = DailyReport(date=date or "")

    header = HEADER_PATTERN.match(lines[0]) if lines else None
    if header:
        report.author = header.group(1).strip()
        report.date = header.group(2)

    section: Optional[str] = None
    current_project = default_project
    counters = {"plan": 0, "result": 0, "todo": 0}
    note_lines: List[str] = []
    description_target = None
    description_lines: List[str] = []

    def flush_description() -> None:
        nonlocal description_target, description_lines
        if description_target is not None and description_lines:
            description_target.description = "\n".join(description_lines)
        description_target = None
        description_lines = []

    for line in lines[1:] if header else lines:
        section_match = SECTION_PATTERN.match(line)
        if section_match:
            flush_description()
            section = section_match.group(1).lower()
            if section == "todo":
                current_project = default_project
            continue

        if section == "note":
            if not H2_PATTERN.match(line):
                note_lines.append(line)
            continue

        if description_target is not None and line.startswith(DESCRIPTION_INDENT):
            description_lines.append(line[len(DESCRIPTION_INDENT):])
            continue
        flush_description()

        if section in ("plan", "result"):
            items = report.schedule(section)  # type: ignore[arg-type]
            item_match = SCHEDULE_ITEM_PATTERN.match(line)
            if item_match:
                task = FOOTNOTE_PATTERN.sub("", item_match.group(3).strip())
                item = ScheduleItem(
                    id=f"{section[0]}{counters[section]}",
                    time=item_match.group(1).zfill(5),
                    project=item_match.group(2).strip(),
                    task=task.strip(),
                )
                counters[section] += 1
                items.append(item)
                if not item.is_break:
                    description_target = item
                continue
            break_match = SCHEDULE_BREAK_PATTERN.match(line)
            if break_match:
                items.append(
                    ScheduleItem(
                        id=f"{section[0]}{counters[section]}",
                        time=break_match.group(1).zfill(5),
                        project="",
                        task="",
                    )
                )
                counters[section] += 1
            continue

        if section == "todo":
            project_match = PROJECT_HEADER_PATTERN.match(line)
            if project_match:
                current_project = project_match.group(1)
                continue
            todo = parse_todo_line(line, f"t{counters['todo']}", current_project, today)
            if todo is not None:
                counters["todo"] += 1
                report.todos.append(todo)
                description_target = todo

    flush_description()
    report.plan = _sort_schedule(report.plan)
    report.result = _sort_schedule(report.result)
    report.notes = "\n".join(note_lines).strip()
    return report


def _description_lines(description: Optional[str]) -> List[str]:
    if not description:
        return []
    return [f"{DESCRIPTION_INDENT}{line}" for line in description.split("\n")]


def generate_schedule_lines(items: List[ScheduleItem], default_project: str = DEFAULT_PROJECT) -> List[str]:
    lines: List[str] = []
    for item in _sort_schedule(items):
        if item.is_break:
            lines.append(f"* {item.time}")
            continue
        lines.append(f"* {item.time} [{item.project or default_project}] {item.task}")
        lines.extend(_description_lines(item.description))
    return lines


def format_todo_line(todo: TodoItem) -> str:
    mark = MARK_BY_STATUS.get(todo.status, " ")
    deadline = f"@{todo.deadline} " if todo.deadline else ""
    priority = f"{MARK_BY_PRIORITY[todo.priority]} " if todo.priority else ""
    return f"- [{mark}] {deadline}{priority}{todo.task}"


def generate_todo_lines(todos: List[TodoItem], default_project: str = DEFAULT_PROJECT) -> List[str]:
    groups: Dict[str, List[TodoItem]] = {}
    for todo in todos:
        groups.setdefault(todo.project or default_project, []).append(todo)

    lines: List[str] = []
    for project, items in groups.items():
        if lines:
            lines.append("")
        lines.append(f"### {project}")
        for todo in items:
            lines.append(format_todo_line(todo))
            lines.extend(_description_lines(todo.description))
    return lines


def _section(title: str, body: List[str]) -> str:
    if not body:
        return title
    return "\n".join([title, ""] + body)


def generate_report(
    report: DailyReport,
    *,
    author_placeholder: str = DEFAULT_AUTHOR_PLACEHOLDER,
    default_project: str = DEFAULT_PROJECT,
) -> str:
    """Render a report back into the Markdown dialect understood by :func:`parse_report`."""
    header = f"# [日報] {report.author or author_placeholder} {report.date}".rstrip()
    notes = (report.notes or "").strip()
    blocks = [
        header,
        _section("## [PLAN]", generate_schedule_lines(report.plan, default_project)),
        _section("## [RESULT]", generate_schedule_lines(report.result, default_project)),
        _section("## [TODO]", generate_todo_lines(report.todos, default_project)),
        _section("## [NOTE]", [notes] if notes else []),
    ]
    return "\n\n".join(blocks) + "\n"
