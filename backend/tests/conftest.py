from __future__ import annotations

import datetime as dt
import os
import tempfile
from pathlib import Path
from typing import Generator

# Settings are read at import time; keep them away from the working directory.
_TEST_ROOT = Path(tempfile.mkdtemp(prefix="mdjournal-tests-"))
os.environ.setdefault("MDJ_REPORTS_DIR", str(_TEST_ROOT / "reports"))
os.environ.setdefault("MDJ_CONFIG_FILE", str(_TEST_ROOT / "mdjournal.config.yaml"))
os.environ.pop("SLACK_WEBHOOK_URL", None)

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from mdjournal.config import settings  # noqa: E402
from mdjournal.main import app, get_runtime_state  # noqa: E402
from mdjournal.slack import SlackConfig  # noqa: E402
from mdjournal.state import RuntimeState  # noqa: E402
from mdjournal.storage import ReportStore, get_store  # noqa: E402


SAMPLE_REPORT = """# [日報] 山田 2025-01-15

## [PLAN]

* 08:00 [P99] 朝礼
  全体連絡
* 09:00 [P34] 開発
* 12:00
* 13:00 [P34] レビュー
* 17:00

## [RESULT]

* 08:00 [P99] 朝礼
* 08:30 [P34] 開発
* 12:00
* 13:00 [P34] レビュー
* 16:30

## [TODO]

### P99
- [ ] @2025-01-20 !!! 週報作成
- [*] 環境構築

### P34
- [x] API設計
- [-] 性能改善

## [NOTE]

特になし
"""


@pytest.fixture(autouse=True)
def _no_webhook_env(monkeypatch) -> None:
    monkeypatch.delenv("SLACK_WEBHOOK_URL", raising=False)


@pytest.fixture()
def store(tmp_path: Path) -> ReportStore:
    return ReportStore(tmp_path / "reports")


@pytest.fixture()
def runtime_state(tmp_path: Path) -> RuntimeState:
    state = RuntimeState(settings)
    state.config_file = tmp_path / "mdjournal.config.yaml"
    state.author = "山田"
    state.slack = SlackConfig()
    return state


@pytest.fixture()
def client(store: ReportStore, runtime_state: RuntimeState) -> Generator[TestClient, None, None]:
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_runtime_state] = lambda: runtime_state
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def sample_text() -> str:
    return SAMPLE_REPORT


@pytest.fixture()
def sample_day() -> dt.date:
    return dt.date(2025, 1, 15)
