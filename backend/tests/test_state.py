from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from mdjournal.config import settings
from mdjournal.state import RuntimeState


def test_defaults(runtime_state: RuntimeState) -> None:
    snapshot = runtime_state.snapshot()

    assert snapshot["default_project"] == "P99"
    assert snapshot["timeline"]["hour_height"] == 60
    assert snapshot["slack"]["enabled"] is False
    assert snapshot["routines"] == {"weekly": {}}


def test_apply_merges_nested_sections(runtime_state: RuntimeState) -> None:
    runtime_state.apply(
        {
            "timeline": {"hour_height": 80},
            "slack": {"enabled": True, "sections": {"plan": True, "result": True, "todo": False, "note": True}},
            "projects": [{"code": "P34", "name": "Client A", "color": "#336699", "category": "client"}],
        }
    )

    assert runtime_state.timeline.hour_height == 80
    assert runtime_state.timeline.snap_minutes == 15
    assert runtime_state.slack.enabled is True
    assert runtime_state.slack.sections.todo is False
    assert runtime_state.slack.username == "日報ダッシュボード"
    assert runtime_state.projects[0].active is True


def test_apply_rejects_invalid_values(runtime_state: RuntimeState) -> None:
    with pytest.raises(ValidationError):
        runtime_state.apply({"projects": [{"code": "P1", "name": "x", "color": "blue", "category": "client"}]})
    with pytest.raises(ValidationError):
        runtime_state.apply({"timeline": {"snap_minutes": 0}})


def test_routines_are_keyed_by_lowercase_weekday(runtime_state: RuntimeState) -> None:
    runtime_state.apply(
        {
            "routines": {
                "weekly": {
                    "Monday": [{"time": "09:00", "project": "P99", "task": "朝会"}],
                    "holiday": [{"time": "10:00", "project": "P99", "task": "休み"}],
                }
            }
        }
    )

    assert [item.task for item in runtime_state.routine_for("monday")] == ["朝会"]
    assert runtime_state.routine_for("tuesday") == []
    assert "holiday" not in runtime_state.routines.weekly


def test_persist_and_reload(runtime_state: RuntimeState, tmp_path: Path) -> None:
    runtime_state.apply({"author": " 佐藤 ", "default_project": "P01", "timeline": {"default_start_hour": 7}})
    runtime_state.persist()

    reloaded = RuntimeState(settings)
    reloaded.load_from_file(runtime_state.config_file)

    assert reloaded.author == "佐藤"
    assert reloaded.default_project == "P01"
    assert reloaded.timeline.default_start_hour == 7
    assert not list(tmp_path.glob(".*.tmp"))


def test_env_webhook_is_not_written(runtime_state: RuntimeState, monkeypatch) -> None:
    monkeypatch.setenv("SLACK_WEBHOOK_URL", "https://hooks.example/secret")
    runtime_state.apply({"slack": {"enabled": True, "webhook_url": "https://hooks.example/secret"}})

    runtime_state.persist()

    text = runtime_state.config_file.read_text(encoding="utf-8")
    assert "https://hooks.example/secret" not in text
    assert "${SLACK_WEBHOOK_URL}" in text


def test_load_ignores_missing_and_non_mapping_files(runtime_state: RuntimeState, tmp_path: Path) -> None:
    runtime_state.load_from_file(tmp_path / "absent.yaml")
    path = tmp_path / "list.yaml"
    path.write_text("- just\n- a list\n", encoding="utf-8")

    runtime_state.load_from_file(path)

    assert runtime_state.default_project == "P99"


def test_failed_apply_leaves_state_untouched(runtime_state: RuntimeState) -> None:
    before = runtime_state.snapshot()

    with pytest.raises(ValidationError):
        runtime_state.apply({"author": "CHANGED", "default_project": "P01", "timeline": {"snap_minutes": 0}})

    assert runtime_state.snapshot() == before


def test_load_ignores_malformed_yaml(runtime_state: RuntimeState, tmp_path: Path, caplog) -> None:
    path = tmp_path / "broken.yaml"
    path.write_text("author: [unclosed\n", encoding="utf-8")

    with caplog.at_level("WARNING", logger="mdjournal.state"):
        runtime_state.load_from_file(path)

    assert runtime_state.author == "山田"
    assert "Ignoring malformed config file" in caplog.text
