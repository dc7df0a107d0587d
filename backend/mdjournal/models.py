from __future__ import annotations

import datetime as dt
import re
from typing import Any, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from typing_extensions import Literal

TodoStatus = Literal["pending", "in_progress", "completed", "on_hold"]
Priority = Literal["high", "medium", "low"]
Section = Literal["plan", "result"]

TODO_STATUSES: tuple[str, ...] = ("pending", "in_progress", "completed", "on_hold")
PRIORITIES: tuple[str, ...] = ("high", "medium", "low")

# Project codes are written as `[P34]` and `### P34`, task text as one line.
_PROJECT_CODE_FORBIDDEN = re.compile(r"[\s\[\]]")


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def check_single_line(value: str, name: str = "task") -> str:
    if "\n" in value or "\r" in value:
        raise ValueError(f"{name} must be a single line")
    return value


def check_project_code(value: str) -> str:
    if _PROJECT_CODE_FORBIDDEN.search(value.strip()):
        raise ValueError(f"project code must not contain whitespace or brackets: {value!r}")
    return value


class ScheduleItem(BaseModel):
    """One planned or actual time box, or a break marker when ``task`` is empty."""

    id: str
    time: str
    project: str = ""
    task: str = ""
    description: Optional[str] = None
    # Transient cache for renderers; recomputed from neighbouring start times.
    duration: Optional[int] = Field(default=None, exclude=True)

    @property
    def is_break(self) -> bool:
        return self.task == ""


class TodoItem(BaseModel):
    id: str
    project: str
    task: str
    status: TodoStatus = "pending"
    deadline: Optional[str] = None
    priority: Optional[Priority] = None
    description: Optional[str] = None


class RoutineItem(BaseModel):
    time: str
    project: str
    task: str


class ReportStats(BaseModel):
    """Derived numbers stored as frontmatter beside each report.

    Older report files carry camelCase keys, so both spellings are accepted on
    input; output always uses the attribute names.
    """

    model_config = ConfigDict(populate_by_name=True)

    plan_hours: float = Field(default=0.0, validation_alias=AliasChoices("plan_hours", "planHours"))
    result_hours: float = Field(default=0.0, validation_alias=AliasChoices("result_hours", "resultHours"))
    todo_count: int = Field(default=0, validation_alias=AliasChoices("todo_count", "todoCount"))
    todo_completed: int = Field(default=0, validation_alias=AliasChoices("todo_completed", "todoCompleted"))
    todo_in_progress: int = Field(
        default=0, validation_alias=AliasChoices("todo_in_progress", "todoInProgress")
    )
    project_hours: Dict[str, float] = Field(
        default_factory=dict, validation_alias=AliasChoices("project_hours", "projectHours")
    )
    updated_at: str = Field(default="", validation_alias=AliasChoices("updated_at", "updatedAt"))

    @field_validator("updated_at", mode="before")
    @classmethod
    def _coerce_timestamp(cls, value: Any) -> Any:
        # YAML loads unquoted ISO timestamps as datetime objects
        if isinstance(value, dt.datetime):
            if value.tzinfo is None:
                value = value.replace(tzinfo=dt.timezone.utc)
            return value.isoformat()
        if isinstance(value, dt.date):
            return value.isoformat()
        if value is None:
            return ""
        return value

    @field_validator("project_hours", mode="before")
    @classmethod
    def _coerce_project_hours(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {str(key): hours for key, hours in value.items()}
        return value


class DailyReport(BaseModel):
    date: str
    author: str = ""
    plan: List[ScheduleItem] = Field(default_factory=list)
    result: List[ScheduleItem] = Field(default_factory=list)
    todos: List[TodoItem] = Field(default_factory=list)
    notes: str = ""
    stats: Optional[ReportStats] = None

    def schedule(self, section: Section) -> List[ScheduleItem]:
        return self.plan if section == "plan" else self.result

    def activities(self, section: Section) -> List[ScheduleItem]:
        """Return the items of a schedule list that are not break markers."""
        return [item for item in self.schedule(section) if not item.is_break]
