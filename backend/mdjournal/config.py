from __future__ import annotations

import os
from pathlib import Path
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")
    """Application runtime configuration."""

    app_name: str = "mdjournal"
    host: str = os.getenv("MDJ_HOST", "127.0.0.1")
    port: int = int(os.getenv("MDJ_PORT", "3001"))
    log_level: str = os.getenv("MDJ_LOG_LEVEL", "INFO")
    cors_origins: List[str] = Field(
        default_factory=lambda: [
            origin.strip()
            for origin in os.getenv("MDJ_CORS_ORIGINS", "http://127.0.0.1:5173,http://localhost:5173").split(",")
            if origin.strip()
        ]
    )

    reports_dir: Path = Path(os.getenv("MDJ_REPORTS_DIR", "./data/reports"))
    config_file: Path = Path(os.getenv("MDJ_CONFIG_FILE", "./data/mdjournal.config.yaml"))

    author: str = os.getenv("MDJ_AUTHOR", "")
    default_project: str = os.getenv("MDJ_DEFAULT_PROJECT", "P99")
    author_placeholder: str = os.getenv("MDJ_AUTHOR_PLACEHOLDER", "名前")

    slack_webhook_url: Optional[str] = os.getenv("SLACK_WEBHOOK_URL")
    git_timeout: float = float(os.getenv("MDJ_GIT_TIMEOUT", "30"))
    slack_timeout: float = float(os.getenv("MDJ_SLACK_TIMEOUT", "10"))

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: str | List[str]) -> List[str]:
        if isinstance(value, list):
            return value
        if not value:
            return []
        return [origin.strip() for origin in value.split(",") if origin.strip()]


settings = Settings()

# Ensure essential directories exist
settings.reports_dir.mkdir(parents=True, exist_ok=True)
