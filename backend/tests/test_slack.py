from __future__ import annotations

import requests

from mdjournal import slack
from mdjournal.slack import (
    SlackConfig,
    SlackSections,
    TodoIcons,
    build_slack_message,
    format_section_content,
    post_to_slack,
    resolve_webhook_url,
    split_text_by_lines,
)


class FakeResponse:
    def __init__(self, status_code: int = 200, text: str = "ok"):
        self.status_code = status_code
        self.text = text

    @property
    def ok(self) -> bool:
        return self.status_code < 400


def _texts(blocks: list) -> list:
    return [block["text"]["text"] for block in blocks if block["type"] == "section"]


def test_message_blocks(sample_text: str) -> None:
    fallback, blocks = build_slack_message("2025-01-15", sample_text)

    assert fallback == ":clipboard: [日報] 山田 2025-01-15"
    assert blocks[0]["type"] == "header"
    assert [block["type"] for block in blocks[1:]] == [
        "section", "divider", "section", "divider", "section", "divider", "section",
    ]
    plan, result, todo, note = _texts(blocks)
    assert plan.startswith("*[PLAN]*\n• `08:00` `P99` 朝礼\n  全体連絡\n")
    assert "• `12:00`\n• `13:00` `P34` レビュー" in plan
    assert result.startswith("*[RESULT]*\n")
    assert "*P99*\n:black_square_button: @2025-01-20 !!! 週報作成\n:arrow_forward: 環境構築" in todo
    assert ":white_check_mark: API設計" in todo
    assert ":double_vertical_bar: 性能改善" in todo
    assert note == "*[NOTE]*\n特になし"


def test_frontmatter_is_stripped() -> None:
    content = "---\nplan_hours: 1\n---\n# [日報] 山田 2025-01-15\n\n## [NOTE]\n\nメモ\n"

    fallback, blocks = build_slack_message("2025-01-15", content)

    assert fallback == ":clipboard: [日報] 山田 2025-01-15"
    assert _texts(blocks) == ["*[NOTE]*\nメモ"]


def test_disabled_sections_and_schedule_headers(sample_text: str) -> None:
    _, blocks = build_slack_message("2025-01-15", sample_text, SlackSections(plan=False, note=False))

    texts = _texts(blocks)
    assert len(texts) == 2
    assert texts[0].startswith("• `08:00` `P99` 朝礼")
    assert texts[1].startswith("*[TODO]*")


def test_inline_project_and_custom_icons() -> None:
    icons = TodoIcons(pending="[ ]", completed="[x]")

    text = format_section_content("- [ ] [P34] 見積\n- [X] 提出", icons)

    assert text == "[ ] `P34` 見積\n[x] 提出"


def test_long_section_is_split() -> None:
    note = "\n".join(f"{index:03d} " + "あ" * 46 for index in range(100))
    content = f"# [日報] 山田 2025-01-15\n\n## [NOTE]\n\n{note}\n"

    _, blocks = build_slack_message("2025-01-15", content)

    texts = _texts(blocks)
    assert texts[0] == "*[NOTE]*"
    assert len(texts) > 2
    assert all(len(text) <= 2800 for text in texts[1:])
    assert "\n".join(texts[1:]).split("\n") == note.split("\n")


def test_split_text_by_lines() -> None:
    chunks = split_text_by_lines("\n".join(["x" * 10] * 5), max_length=25)

    assert chunks == ["x" * 10 + "\n" + "x" * 10] * 2 + ["x" * 10]


def test_resolve_webhook_url(monkeypatch) -> None:
    config = SlackConfig(webhook_url="https://hooks.example/config")
    assert resolve_webhook_url(config) == "https://hooks.example/config"

    placeholder = SlackConfig(webhook_url="${SLACK_WEBHOOK_URL}")
    assert resolve_webhook_url(placeholder) is None

    monkeypatch.setenv("SLACK_WEBHOOK_URL", "https://hooks.example/env")
    assert resolve_webhook_url(config) == "https://hooks.example/env"
    assert resolve_webhook_url(placeholder) == "https://hooks.example/env"


def test_post_when_disabled(monkeypatch, sample_text: str) -> None:
    def unexpected(*args, **kwargs):
        raise AssertionError("no request expected")

    monkeypatch.setattr(slack.requests, "post", unexpected)

    result = post_to_slack("2025-01-15", sample_text, SlackConfig(webhook_url="https://hooks.example/x"))

    assert not result.success
    assert "disabled" in result.error


def test_post_without_webhook(sample_text: str) -> None:
    result = post_to_slack("2025-01-15", sample_text, SlackConfig(enabled=True))

    assert not result.success
    assert "SLACK_WEBHOOK_URL" in result.error


def test_post_success(monkeypatch, sample_text: str) -> None:
    calls = []

    def fake_post(url, json=None, timeout=None):
        calls.append((url, json, timeout))
        return FakeResponse()

    monkeypatch.setattr(slack.requests, "post", fake_post)
    config = SlackConfig(enabled=True, webhook_url="https://hooks.example/x", channel="#daily")

    result = post_to_slack("2025-01-15", sample_text, config, timeout=3)

    assert result.success
    url, payload, timeout = calls[0]
    assert url == "https://hooks.example/x"
    assert timeout == 3
    assert payload["channel"] == "#daily"
    assert payload["username"] == "日報ダッシュボード"
    assert payload["icon_emoji"] == ":memo:"
    assert payload["blocks"][0]["type"] == "header"


def test_post_failures(monkeypatch, sample_text: str) -> None:
    config = SlackConfig(enabled=True, webhook_url="https://hooks.example/x")

    monkeypatch.setattr(slack.requests, "post", lambda *args, **kwargs: FakeResponse(500, "boom"))
    rejected = post_to_slack("2025-01-15", sample_text, config)
    assert rejected.error == "Slack API error: 500 boom"

    def broken(*args, **kwargs):
        raise requests.ConnectionError("unreachable")

    monkeypatch.setattr(slack.requests, "post", broken)
    failed = post_to_slack("2025-01-15", sample_text, config)
    assert not failed.success
    assert "unreachable" in failed.error
