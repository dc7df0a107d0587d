from __future__ import annotations

from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from .aggregation import YearMonth
from .models import DailyReport, Priority, ReportStats, RoutineItem, TodoStatus, check_project_code, check_single_line
from .slack import SlackConfig
from .state import ProjectConfig, RoutineConfig
from .timeline import TimelineConfig
from .utils import is_valid_date, normalize_time


class ReportResponse(BaseModel):
    date: str
    content: str
    stats: Optional[ReportStats] = None


class GitOptions(BaseModel):
    commit: bool = False
    push: bool = False
    message: Optional[str] = None


class SlackOptions(BaseModel):
    post: bool = False


class ReportSaveRequest(BaseModel):
    content: str
    git: Optional[GitOptions] = None
    slack: Optional[SlackOptions] = None


class GitOutcome(BaseModel):
    committed: bool = False
    pushed: bool = False
    commit_hash: Optional[str] = None
    error: Optional[str] = None


class SlackOutcome(BaseModel):
    posted: bool = False
    error: Optional[str] = None


class ReportSaveResponse(BaseModel):
    date: str
    saved: bool
    stats: ReportStats
    git: Optional[GitOutcome] = None
    slack: Optional[SlackOutcome] = None


class ReportDeleteResponse(BaseModel):
    date: str
    deleted: bool


class StructuredReportResponse(BaseModel):
    exists: bool
    report: DailyReport


class TodoCreateRequest(BaseModel):
    task: str = Field(min_length=1)
    project: Optional[str] = None
    status: TodoStatus = "pending"
    deadline: Optional[str] = None
    priority: Optional[Priority] = None
    description: Optional[str] = None

    @field_validator("task")
    @classmethod
    def _check_task(cls, value: str) -> str:
        return check_single_line(value)

    @field_validator("project")
    @classmethod
    def _check_project(cls, value: Optional[str]) -> Optional[str]:
        return check_project_code(check_single_line(value, "project")) if value else value

    @field_validator("deadline")
    @classmethod
    def _check_deadline(cls, value: Optional[str]) -> Optional[str]:
        if value and not is_valid_date(value):
            raise ValueError("deadline must be YYYY-MM-DD")
        return value or None


class ScheduleItemCreateRequest(BaseModel):
    """An empty ``task`` adds a break marker."""

    time: str
    project: Optional[str] = None
    task: str = ""
    description: Optional[str] = None

    @field_validator("time")
    @classmethod
    def _check_time(cls, value: str) -> str:
        normalized = normalize_time(value)
        if normalized is None:
            raise ValueError("time must be HH:MM between 00:00 and 36:00")
        return normalized

    @field_validator("task")
    @classmethod
    def _check_task(cls, value: str) -> str:
        return check_single_line(value)

    @field_validator("project")
    @classmethod
    def _check_project(cls, value: Optional[str]) -> Optional[str]:
        return check_project_code(check_single_line(value, "project")) if value else value


class RoutineApplyRequest(BaseModel):
    weekday: Optional[str] = None
    items: Optional[List[RoutineItem]] = None


class ConfigResponse(BaseModel):
    author: str
    default_project: str
    projects: List[ProjectConfig]
    timeline: TimelineConfig
    slack: SlackConfig
    routines: RoutineConfig


class ConfigUpdateRequest(BaseModel):
    author: Optional[str] = None
    default_project: Optional[str] = None
    projects: Optional[List[ProjectConfig]] = None
    timeline: Optional[Dict[str, int]] = None
    slack: Optional[Dict[str, object]] = None
    routines: Optional[RoutineConfig] = None


class ValidateRequest(BaseModel):
    content: str
    file_name: str = "report.md"
    strict: bool = False
    skip_rules: List[str] = Field(default_factory=list)


class YearMonthsResponse(BaseModel):
    year_months: List[YearMonth]
