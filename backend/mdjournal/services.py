from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from .aggregation import CalendarData, YearMonth, build_calendar, validate_year_month
from .config import settings
from .editing import carry_over_todos, new_report
from .errors import InvalidInputError, ReportNotFoundError
from .gitops import GitStatus, git_commit, git_push, git_status
from .markdown import generate_report, parse_report
from .models import DailyReport, Section
from .schemas import GitOptions, GitOutcome, ReportSaveResponse, SlackOptions, SlackOutcome
from .slack import post_to_slack
from .state import WEEKDAYS, RuntimeState
from .stats import calculate_stats
from .storage import ReportStore, StoredReport
from .timeline import TimelineLayout, build_timeline
from .utils import is_valid_date

logger = logging.getLogger(__name__)

DEFAULT_COMMIT_MESSAGE = "日報更新: {date}"


def _require_date(date: str) -> str:
    if not is_valid_date(date):
        raise InvalidInputError(f"date must be a valid YYYY-MM-DD string: {date!r}")
    return date


def require_section(section: str) -> Section:
    if section not in ("plan", "result"):
        raise InvalidInputError(f"section must be 'plan' or 'result', not {section!r}")
    return section  # type: ignore[return-value]


def _parse(state: RuntimeState, date: str, content: str) -> DailyReport:
    return parse_report(content, date, default_project=state.default_project)


def read_report(store: ReportStore, state: RuntimeState, date: str) -> StoredReport:
    _require_date(date)
    stored = store.read(date)
    if stored is None:
        raise ReportNotFoundError(f"no report for {date}")
    if stored.stats is None:
        stored.stats = calculate_stats(_parse(state, date, stored.content))
    return stored


def save_report(
    store: ReportStore,
    state: RuntimeState,
    date: str,
    content: str,
    *,
    git: Optional[GitOptions] = None,
    slack: Optional[SlackOptions] = None,
) -> ReportSaveResponse:
    """Write the report, then run the optional side effects.

    The file is durable before Git or Slack are touched; their failures are
    reported in the response instead of failing the save.
    """
    _require_date(date)
    if not content or not content.strip():
        raise InvalidInputError("content must not be empty")

    stats = calculate_stats(_parse(state, date, content))
    path = store.write(date, content, stats)
    logger.info("Saved report %s to %s", date, path)
    response = ReportSaveResponse(date=date, saved=True, stats=stats)

    if git and (git.commit or git.push):
        outcome = GitOutcome()
        message = git.message or DEFAULT_COMMIT_MESSAGE.format(date=date)
        committed = git_commit(path, message, timeout=settings.git_timeout)
        outcome.committed = committed.success
        outcome.commit_hash = committed.commit_hash
        outcome.error = committed.error
        if git.push and committed.success:
            pushed = git_push(path, timeout=settings.git_timeout)
            outcome.pushed = pushed.success
            outcome.error = pushed.error
        response.git = outcome

    if slack and slack.post:
        posted = post_to_slack(date, content, state.slack_config(), timeout=settings.slack_timeout)
        response.slack = SlackOutcome(posted=posted.success, error=posted.error)

    return response


def delete_report(store: ReportStore, date: str) -> bool:
    _require_date(date)
    if not store.delete(date):
        raise ReportNotFoundError(f"no report for {date}")
    logger.info("Deleted report %s", date)
    return True


def previous_date(date: str) -> str:
    return (dt.date.fromisoformat(date) - dt.timedelta(days=1)).isoformat()


def load_structured_report(store: ReportStore, state: RuntimeState, date: str) -> Tuple[DailyReport, bool]:
    """Return the parsed report and whether it exists on disk.

    A missing report is a fresh one carrying over the unfinished TODOs of the
    previous day.
    """
    _require_date(date)
    stored = store.read(date)
    if stored is not None:
        report = _parse(state, date, stored.content)
        report.stats = stored.stats
        return report, True

    report = new_report(date, state.author)
    previous = store.read(previous_date(date))
    if previous is not None:
        report.todos = carry_over_todos(_parse(state, previous.date, previous.content))
        # Same positional ids the parser assigns once the report is saved.
        for index, todo in enumerate(report.todos):
            todo.id = f"t{index}"
    return report, False


def update_report(
    store: ReportStore,
    state: RuntimeState,
    date: str,
    mutate: Callable[[DailyReport], Any],
) -> DailyReport:
    """Load, apply one typed mutation, regenerate the Markdown and save.

    The saved text is parsed again so the returned ids address the items the
    next read will see; regeneration regroups TODOs by project.
    """
    report, _ = load_structured_report(store, state, date)
    try:
        mutate(report)
    except KeyError as exc:
        raise ReportNotFoundError(f"item {exc.args[0]!r} not found in report {date}") from exc
    except ValueError as exc:
        raise InvalidInputError(str(exc)) from exc

    content = generate_report(
        report,
        author_placeholder=state.author_placeholder,
        default_project=state.default_project,
    )
    saved = _parse(state, date, content)
    saved.stats = calculate_stats(saved)
    store.write(date, content, saved.stats)
    logger.info("Updated report %s", date)
    return saved


def report_timeline(store: ReportStore, state: RuntimeState, date: str, section: str) -> TimelineLayout:
    checked = require_section(section)
    report, _ = load_structured_report(store, state, date)
    return build_timeline(report.schedule(checked), state.timeline_config())


def weekday_of(date: str) -> str:
    return WEEKDAYS[dt.date.fromisoformat(date).weekday()]


def calendar_for_month(store: ReportStore, year: int, month: int) -> CalendarData:
    validate_year_month(year, month)
    return build_calendar(year, month, store.month_stats(year, month))


def available_months(store: ReportStore) -> List[YearMonth]:
    return [YearMonth(year=year, month=month) for year, month in store.available_year_months()]


def repository_status(store: ReportStore) -> GitStatus:
    return git_status(store.reports_dir, timeout=settings.git_timeout)


def update_runtime_config(state: RuntimeState, updates: Dict[str, Any]) -> Dict[str, Any]:
    normalized = dict(updates)
    if normalized.get("default_project") is not None and not str(normalized["default_project"]).strip():
        raise InvalidInputError("default_project must not be empty")
    try:
        state.apply(normalized)
    except ValueError as exc:
        raise InvalidInputError(str(exc)) from exc
    state.persist()
    return state.snapshot()
