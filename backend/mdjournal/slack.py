from __future__ import annotations

import logging
import os
import re
from typing import Any, Dict, List, Optional, Tuple

import requests
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

SECTION_TEXT_LIMIT = 3000
CHUNK_LENGTH = 2800
WEBHOOK_ENV = "SLACK_WEBHOOK_URL"


class SlackSections(BaseModel):
    plan: bool = True
    result: bool = True
    todo: bool = True
    note: bool = True


class TodoIcons(BaseModel):
    pending: str = ":black_square_button:"
    in_progress: str = ":arrow_forward:"
    on_hold: str = ":double_vertical_bar:"
    completed: str = ":white_check_mark:"


class SlackConfig(BaseModel):
    enabled: bool = False
    webhook_url: Optional[str] = None
    channel: Optional[str] = None
    username: str = "日報ダッシュボード"
    icon_emoji: str = ":memo:"
    sections: SlackSections = Field(default_factory=SlackSections)
    todo_icons: TodoIcons = Field(default_factory=TodoIcons)


class SlackResult(BaseModel):
    success: bool
    error: Optional[str] = None


_FRONTMATTER_RE = re.compile(r"^---[\s\S]*?---\n")
_TITLE_RE = re.compile(r"^# (.+)$", re.MULTILINE)
_H2_RE = re.compile(r"^## (.+)$")
_H3_RE = re.compile(r"^### (.+)$", re.MULTILINE)
_SCHEDULE_RE = re.compile(r"^\* (\d{2}:\d{2})[ \t]*(?:\[([^\]]+)\][ \t]*)?(.*)$", re.MULTILINE)


def resolve_webhook_url(config: SlackConfig) -> Optional[str]:
    """``SLACK_WEBHOOK_URL`` wins over the configured URL; ``${...}`` placeholders read it too."""
    url = os.getenv(WEBHOOK_ENV) or config.webhook_url
    if url and url.startswith("${"):
        return os.getenv(WEBHOOK_ENV)
    return url or None


def _section_key(title: str) -> Optional[str]:
    key = title.replace("[", "").replace("]", "").strip().lower()
    return key if key in SlackSections.model_fields else None


def _split_sections(body: str) -> List[Tuple[str, str]]:
    sections: List[Tuple[str, str]] = []
    title = ""
    lines: List[str] = []
    for line in body.split("\n"):
        match = _H2_RE.match(line)
        if match:
            if title or any(part.strip() for part in lines):
                sections.append((title, "\n".join(lines).strip()))
            title, lines = match.group(1).strip(), []
            continue
        lines.append(line)
    if title or any(part.strip() for part in lines):
        sections.append((title, "\n".join(lines).strip()))
    return [(title, content) for title, content in sections if content]


def _checkbox(icon: str):
    def replace(match: re.Match) -> str:
        code = match.group(1)
        return f"{icon} `{code}` " if code else f"{icon} "

    return replace


def format_section_content(content: str, icons: TodoIcons) -> str:
    text = _H3_RE.sub(r"*\1*", content)
    for mark, icon in (
        (r"[xX]", icons.completed),
        (r"\*", icons.in_progress),
        (r"-", icons.on_hold),
        (r" ", icons.pending),
    ):
        pattern = re.compile(rf"^- \[{mark}\][ \t]*(?:\[([^\]]+)\][ \t]*)?", re.MULTILINE)
        text = pattern.sub(_checkbox(icon), text)

    def schedule(match: re.Match) -> str:
        time, code, task = match.groups()
        return f"• `{time}`" + (f" `{code}`" if code else "") + (f" {task}" if task else "")

    return _SCHEDULE_RE.sub(schedule, text)


def split_text_by_lines(text: str, max_length: int = CHUNK_LENGTH) -> List[str]:
    chunks: List[str] = []
    current = ""
    for line in text.split("\n"):
        if current and len(current) + len(line) + 1 > max_length:
            chunks.append(current.strip())
            current = ""
        current = f"{current}\n{line}" if current else line
    if current.strip():
        chunks.append(current.strip())
    return chunks


def _mrkdwn(text: str) -> Dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def build_slack_message(
    date: str,
    content: str,
    sections: Optional[SlackSections] = None,
    todo_icons: Optional[TodoIcons] = None,
) -> Tuple[str, List[Dict[str, Any]]]:
    """Return the fallback text and Block Kit blocks for a report."""
    sections = sections or SlackSections()
    todo_icons = todo_icons or TodoIcons()
    content = _FRONTMATTER_RE.sub("", content.replace("\r\n", "\n"), count=1)
    title_match = _TITLE_RE.search(content)
    title = title_match.group(1) if title_match else f"日報 {date}"
    body = _TITLE_RE.sub("", content, count=1).strip()

    # plan/result headings are only useful when both are posted
    show_schedule_headers = sections.plan and sections.result

    blocks: List[Dict[str, Any]] = [
        {"type": "header", "text": {"type": "plain_text", "text": f":clipboard: {title}", "emoji": True}}
    ]
    for section_title, section_content in _split_sections(body):
        key = _section_key(section_title)
        if key and not getattr(sections, key):
            continue
        if len(blocks) > 1:
            blocks.append({"type": "divider"})

        formatted = format_section_content(section_content, todo_icons)
        show_header = show_schedule_headers if key in ("plan", "result") else True
        text = f"*{section_title}*\n{formatted}" if show_header else formatted
        if len(text) <= SECTION_TEXT_LIMIT:
            blocks.append(_mrkdwn(text))
            continue
        if show_header:
            blocks.append(_mrkdwn(f"*{section_title}*"))
        blocks.extend(_mrkdwn(chunk) for chunk in split_text_by_lines(formatted))

    return f":clipboard: {title}", blocks


def post_to_slack(date: str, content: str, config: SlackConfig, *, timeout: float = 10.0) -> SlackResult:
    """Post a report to the incoming webhook. Failures are returned, not raised."""
    if not config.enabled:
        return SlackResult(success=False, error="Slack integration is disabled")
    webhook_url = resolve_webhook_url(config)
    if not webhook_url:
        return SlackResult(success=False, error=f"Slack webhook URL is not configured (set {WEBHOOK_ENV})")

    fallback, blocks = build_slack_message(date, content, config.sections, config.todo_icons)
    payload: Dict[str, Any] = {
        "text": fallback,
        "blocks": blocks,
        "username": config.username or "日報ダッシュボード",
        "icon_emoji": config.icon_emoji or ":memo:",
    }
    if config.channel:
        payload["channel"] = config.channel

    try:
        response = requests.post(webhook_url, json=payload, timeout=timeout)
    except requests.RequestException as exc:
        logger.warning("Slack post for %s failed: %s", date, exc)
        return SlackResult(success=False, error=str(exc))
    if not response.ok:
        logger.warning("Slack rejected post for %s: %s %s", date, response.status_code, response.text)
        return SlackResult(success=False, error=f"Slack API error: {response.status_code} {response.text}")
    logger.info("Posted report %s to Slack", date)
    return SlackResult(success=True)
