from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml
from pydantic import ValidationError

from .config import settings
from .models import ReportStats

logger = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(r"^---\s*\n(.*?)\n---\s*(?:\n|$)", re.DOTALL)
_REPORT_FILE_RE = re.compile(r"^(\d{4}-\d{2}-\d{2})\.md$")


@dataclass
class StoredReport:
    date: str
    content: str
    stats: Optional[ReportStats]


def split_frontmatter(text: str) -> Tuple[dict, str]:
    """Return the frontmatter mapping and the remaining Markdown body."""
    text = text.replace("\r\n", "\n")
    match = _FRONTMATTER_RE.match(text)
    if not match:
        return {}, text
    data = yaml.safe_load(match.group(1)) or {}
    if not isinstance(data, dict):
        data = {}
    return data, text[match.end():]


def stats_from_frontmatter(data: dict) -> Optional[ReportStats]:
    if "plan_hours" not in data and "planHours" not in data:
        return None
    return ReportStats.model_validate(data)


def render_document(content: str, stats: ReportStats) -> str:
    frontmatter = yaml.safe_dump(stats.model_dump(), sort_keys=False, allow_unicode=True).strip()
    return f"---\n{frontmatter}\n---\n\n{content.strip()}\n"


class ReportStore:
    """Report files laid out as ``<root>/<YYYY>/<MM>/<YYYY-MM-DD>.md``."""

    def __init__(self, reports_dir: Path):
        self.reports_dir = Path(reports_dir)

    def file_path(self, date: str) -> Path:
        year, month, _ = date.split("-")
        return self.reports_dir / year / month / f"{date}.md"

    def exists(self, date: str) -> bool:
        return self.file_path(date).is_file()

    def read(self, date: str) -> Optional[StoredReport]:
        path = self.file_path(date)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        try:
            data, body = split_frontmatter(raw)
            stats = stats_from_frontmatter(data)
        except (yaml.YAMLError, ValidationError) as exc:
            logger.warning("Ignoring malformed frontmatter in %s: %s", path, exc)
            body, stats = _FRONTMATTER_RE.sub("", raw.replace("\r\n", "\n"), count=1), None
        return StoredReport(date=date, content=body.strip(), stats=stats)

    def write(self, date: str, content: str, stats: ReportStats) -> Path:
        path = self.file_path(date)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f".{path.name}.tmp")
        tmp_path.write_text(render_document(content, stats), encoding="utf-8")
        os.replace(tmp_path, path)
        return path

    def delete(self, date: str) -> bool:
        try:
            self.file_path(date).unlink()
        except FileNotFoundError:
            return False
        return True

    def month_stats(self, year: int, month: int) -> Dict[str, ReportStats]:
        month_dir = self.reports_dir / f"{year:04d}" / f"{month:02d}"
        if not month_dir.is_dir():
            return {}
        collected: Dict[str, ReportStats] = {}
        for path in sorted(month_dir.iterdir()):
            match = _REPORT_FILE_RE.match(path.name)
            if not match:
                continue
            try:
                data, _ = split_frontmatter(path.read_text(encoding="utf-8"))
                stats = stats_from_frontmatter(data)
            except (OSError, UnicodeDecodeError, yaml.YAMLError, ValidationError) as exc:
                logger.warning("Skipping unreadable report %s: %s", path, exc)
                continue
            collected[match.group(1)] = stats or ReportStats()
        return collected

    def available_year_months(self) -> List[Tuple[int, int]]:
        found: List[Tuple[int, int]] = []
        if not self.reports_dir.is_dir():
            return found
        for year_dir in self.reports_dir.iterdir():
            if not (year_dir.is_dir() and year_dir.name.isdigit() and len(year_dir.name) == 4):
                continue
            for month_dir in year_dir.iterdir():
                if not (month_dir.is_dir() and month_dir.name.isdigit()):
                    continue
                if any(_REPORT_FILE_RE.match(path.name) for path in month_dir.iterdir()):
                    found.append((int(year_dir.name), int(month_dir.name)))
        return sorted(found, reverse=True)


def get_store() -> ReportStore:
    return ReportStore(settings.reports_dir)
