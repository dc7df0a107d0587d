from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import Depends, FastAPI, Query, Request, status
from fastapi.middleware.cors import CORSMiddleware

from . import editing
from .aggregation import CalendarData
from .config import settings
from .gitops import GitStatus
from .models import DailyReport, ScheduleItem
from .schemas import (
    ConfigResponse,
    ConfigUpdateRequest,
    ReportDeleteResponse,
    ReportResponse,
    ReportSaveRequest,
    ReportSaveResponse,
    RoutineApplyRequest,
    ScheduleItemCreateRequest,
    StructuredReportResponse,
    TodoCreateRequest,
    ValidateRequest,
    YearMonthsResponse,
)
from .services import (
    available_months,
    calendar_for_month,
    delete_report,
    load_structured_report,
    read_report,
    report_timeline,
    repository_status,
    require_section,
    save_report,
    update_report,
    update_runtime_config,
    weekday_of,
)
from .state import RuntimeState
from .storage import ReportStore, get_store
from .timeline import TimelineLayout
from .validator import ValidationResult, validate_report

logger = logging.getLogger(__name__)

runtime_state = RuntimeState(settings)
try:
    runtime_state.load_from_file()
except (OSError, ValueError) as exc:
    logger.warning("Could not load %s, using defaults: %s", settings.config_file, exc)

app = FastAPI(title=settings.app_name)
app.state.runtime_state = runtime_state
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)


def get_runtime_state(request: Request) -> RuntimeState:
    return request.app.state.runtime_state


@app.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/reports/{date}", response_model=ReportResponse)
def get_report(
    date: str,
    store: ReportStore = Depends(get_store),
    state: RuntimeState = Depends(get_runtime_state),
) -> ReportResponse:
    stored = read_report(store, state, date)
    return ReportResponse(date=stored.date, content=stored.content, stats=stored.stats)


@app.put("/api/reports/{date}", response_model=ReportSaveResponse)
def put_report(
    date: str,
    payload: ReportSaveRequest,
    store: ReportStore = Depends(get_store),
    state: RuntimeState = Depends(get_runtime_state),
) -> ReportSaveResponse:
    return save_report(store, state, date, payload.content, git=payload.git, slack=payload.slack)


@app.delete("/api/reports/{date}", response_model=ReportDeleteResponse)
def remove_report(date: str, store: ReportStore = Depends(get_store)) -> ReportDeleteResponse:
    return ReportDeleteResponse(date=date, deleted=delete_report(store, date))


@app.get("/api/reports/{date}/structured", response_model=StructuredReportResponse)
def get_structured_report(
    date: str,
    store: ReportStore = Depends(get_store),
    state: RuntimeState = Depends(get_runtime_state),
) -> StructuredReportResponse:
    report, exists = load_structured_report(store, state, date)
    return StructuredReportResponse(exists=exists, report=report)


@app.get("/api/reports/{date}/timeline/{section}", response_model=TimelineLayout)
def get_timeline(
    date: str,
    section: str,
    store: ReportStore = Depends(get_store),
    state: RuntimeState = Depends(get_runtime_state),
) -> TimelineLayout:
    return report_timeline(store, state, date, section)


@app.post("/api/reports/{date}/todos", response_model=DailyReport, status_code=status.HTTP_201_CREATED)
def create_todo(
    date: str,
    payload: TodoCreateRequest,
    store: ReportStore = Depends(get_store),
    state: RuntimeState = Depends(get_runtime_state),
) -> DailyReport:
    return update_report(
        store,
        state,
        date,
        lambda report: editing.add_todo(
            report,
            payload.project or state.default_project,
            payload.task,
            status=payload.status,
            deadline=payload.deadline,
            priority=payload.priority,
            description=payload.description,
        ),
    )


@app.post("/api/reports/{date}/todos/{todo_id}/toggle", response_model=DailyReport)
def toggle_todo(
    date: str,
    todo_id: str,
    store: ReportStore = Depends(get_store),
    state: RuntimeState = Depends(get_runtime_state),
) -> DailyReport:
    return update_report(store, state, date, lambda report: editing.toggle_todo_status(report, todo_id))


@app.delete("/api/reports/{date}/todos/{todo_id}", response_model=DailyReport)
def remove_todo(
    date: str,
    todo_id: str,
    store: ReportStore = Depends(get_store),
    state: RuntimeState = Depends(get_runtime_state),
) -> DailyReport:
    return update_report(store, state, date, lambda report: editing.delete_todo(report, todo_id))


@app.post(
    "/api/reports/{date}/schedule/{section}",
    response_model=DailyReport,
    status_code=status.HTTP_201_CREATED,
)
def create_schedule_item(
    date: str,
    section: str,
    payload: ScheduleItemCreateRequest,
    store: ReportStore = Depends(get_store),
    state: RuntimeState = Depends(get_runtime_state),
) -> DailyReport:
    checked = require_section(section)

    def add(report: DailyReport) -> ScheduleItem:
        if not payload.task.strip():
            return editing.add_break_marker(report, checked, payload.time)
        return editing.add_schedule_item(
            report,
            checked,
            payload.time,
            payload.project or state.default_project,
            payload.task,
            payload.description,
        )

    return update_report(store, state, date, add)


@app.delete("/api/reports/{date}/schedule/{section}/{item_id}", response_model=DailyReport)
def remove_schedule_item(
    date: str,
    section: str,
    item_id: str,
    store: ReportStore = Depends(get_store),
    state: RuntimeState = Depends(get_runtime_state),
) -> DailyReport:
    checked = require_section(section)
    return update_report(
        store, state, date, lambda report: editing.delete_schedule_item(report, checked, item_id)
    )


@app.post("/api/reports/{date}/copy-plan", response_model=DailyReport)
def copy_plan(
    date: str,
    store: ReportStore = Depends(get_store),
    state: RuntimeState = Depends(get_runtime_state),
) -> DailyReport:
    return update_report(store, state, date, editing.copy_plan_to_result)


@app.post("/api/reports/{date}/routine", response_model=DailyReport)
def apply_routine(
    date: str,
    payload: Optional[RoutineApplyRequest] = None,
    store: ReportStore = Depends(get_store),
    state: RuntimeState = Depends(get_runtime_state),
) -> DailyReport:
    payload = payload or RoutineApplyRequest()

    def apply(report: DailyReport) -> List[ScheduleItem]:
        if payload.items is not None:
            items = payload.items
        else:
            items = state.routine_for(payload.weekday or weekday_of(date))
        return editing.apply_routine(report, items)

    return update_report(store, state, date, apply)


@app.get("/api/calendar", response_model=CalendarData)
def get_calendar(
    year: int = Query(...),
    month: int = Query(...),
    store: ReportStore = Depends(get_store),
) -> CalendarData:
    return calendar_for_month(store, year, month)


@app.get("/api/calendar/months", response_model=YearMonthsResponse)
def get_calendar_months(store: ReportStore = Depends(get_store)) -> YearMonthsResponse:
    return YearMonthsResponse(year_months=available_months(store))


@app.get("/api/git/status", response_model=GitStatus)
def get_git_status(store: ReportStore = Depends(get_store)) -> GitStatus:
    return repository_status(store)


@app.get("/api/config", response_model=ConfigResponse)
def read_config(state: RuntimeState = Depends(get_runtime_state)) -> ConfigResponse:
    return ConfigResponse.model_validate(state.snapshot())


@app.put("/api/config", response_model=ConfigResponse)
def write_config(
    payload: ConfigUpdateRequest,
    state: RuntimeState = Depends(get_runtime_state),
) -> ConfigResponse:
    updates = payload.model_dump(exclude_unset=True)
    return ConfigResponse.model_validate(update_runtime_config(state, updates))


@app.post("/api/validate", response_model=ValidationResult)
def validate(payload: ValidateRequest) -> ValidationResult:
    return validate_report(
        payload.content,
        payload.file_name,
        strict=payload.strict,
        skip_rules=payload.skip_rules,
    )
