from __future__ import annotations

import logging
import os
from pathlib import Path
from threading import RLock
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field
from typing_extensions import Literal

from .config import Settings
from .models import RoutineItem
from .slack import SlackConfig
from .timeline import TimelineConfig

logger = logging.getLogger(__name__)

WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class ProjectConfig(BaseModel):
    code: str = Field(min_length=1)
    name: str = Field(min_length=1)
    color: str = Field(pattern=r"^#[0-9A-Fa-f]{6}$")
    category: Literal["internal", "client", "personal"]
    client: Optional[str] = None
    active: bool = True


class RoutineConfig(BaseModel):
    weekly: Dict[str, List[RoutineItem]] = Field(default_factory=dict)

    def for_weekday(self, weekday: str) -> List[RoutineItem]:
        return list(self.weekly.get(weekday.lower(), []))


def _normalize_weekly(value: Any) -> Dict[str, List[RoutineItem]]:
    weekly: Dict[str, List[RoutineItem]] = {}
    if not isinstance(value, dict):
        return weekly
    for day, items in value.items():
        key = str(day).strip().lower()
        if key not in WEEKDAYS:
            continue
        weekly[key] = [RoutineItem.model_validate(item) for item in items or []]
    return weekly


class RuntimeState:
    """Mutable runtime configuration that can be adjusted at runtime."""

    def __init__(self, base_settings: Settings):
        self._lock = RLock()
        self.config_file: Path = Path(base_settings.config_file)
        self.author: str = base_settings.author
        self.default_project: str = base_settings.default_project or "P99"
        self.author_placeholder: str = base_settings.author_placeholder
        self.projects: List[ProjectConfig] = []
        self.timeline: TimelineConfig = TimelineConfig()
        self.slack: SlackConfig = SlackConfig(webhook_url=base_settings.slack_webhook_url)
        self.routines: RoutineConfig = RoutineConfig()

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "author": self.author,
                "default_project": self.default_project,
                "projects": [project.model_dump() for project in self.projects],
                "timeline": self.timeline.model_dump(),
                "slack": self.slack.model_dump(),
                "routines": self.routines.model_dump(),
            }

    def slack_config(self) -> SlackConfig:
        with self._lock:
            return self.slack.model_copy(deep=True)

    def timeline_config(self) -> TimelineConfig:
        with self._lock:
            return self.timeline.model_copy()

    def routine_for(self, weekday: str) -> List[RoutineItem]:
        with self._lock:
            return self.routines.for_weekday(weekday)

    def apply(self, updates: Dict[str, Any]) -> None:
        """Merge ``updates`` into the current configuration.

        Every section is validated before any is assigned, so a rejected
        update leaves the state untouched.
        """
        with self._lock:
            changes: Dict[str, Any] = {}
            if "author" in updates:
                changes["author"] = (updates.get("author") or "").strip()
            if "default_project" in updates and updates["default_project"]:
                changes["default_project"] = str(updates["default_project"]).strip()
            if "projects" in updates and updates["projects"] is not None:
                changes["projects"] = [ProjectConfig.model_validate(project) for project in updates["projects"]]
            if "timeline" in updates and updates["timeline"] is not None:
                merged = {**self.timeline.model_dump(), **updates["timeline"]}
                changes["timeline"] = TimelineConfig.model_validate(merged)
            if "slack" in updates and updates["slack"] is not None:
                merged = {**self.slack.model_dump(), **updates["slack"]}
                changes["slack"] = SlackConfig.model_validate(merged)
            if "routines" in updates and updates["routines"] is not None:
                weekly = (updates["routines"] or {}).get("weekly")
                changes["routines"] = RoutineConfig(weekly=_normalize_weekly(weekly))
            for name, value in changes.items():
                setattr(self, name, value)

    def load_from_file(self, path: Optional[Path] = None) -> None:
        path = Path(path or self.config_file)
        if not path.is_file():
            return
        with open(path, "r", encoding="utf-8") as handle:
            try:
                data = yaml.safe_load(handle) or {}
            except yaml.YAMLError as exc:
                logger.warning("Ignoring malformed config file %s: %s", path, exc)
                return
        if not isinstance(data, dict):
            logger.warning("Ignoring config file %s: top level is not a mapping", path)
            return
        self.apply(data)
        logger.info("Loaded runtime configuration from %s", path)

    def persist(self, path: Optional[Path] = None) -> None:
        path = Path(path or self.config_file)
        path.parent.mkdir(parents=True, exist_ok=True)
        snapshot = self.snapshot()
        # Resolved from the environment at post time, never written back.
        if self.slack.webhook_url and os.getenv("SLACK_WEBHOOK_URL") == self.slack.webhook_url:
            snapshot["slack"]["webhook_url"] = "${SLACK_WEBHOOK_URL}"
        tmp_path = path.with_name(f".{path.name}.tmp")
        with open(tmp_path, "w", encoding="utf-8") as handle:
            yaml.safe_dump(snapshot, handle, allow_unicode=True, default_flow_style=False, sort_keys=False)
        os.replace(tmp_path, path)
