from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Environment variables the app refuses to start without
REQUIRED_ENV = {
    "database_url": "DATABASE_URL",
    "auth_secret": "AUTH_SECRET",
    "auth_url": "AUTH_URL",
    "allowed_emails": "ALLOWED_EMAILS",
}


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = Field(default="")

    # Auth
    auth_secret: str = Field(default="")
    auth_url: str = Field(default="")
    allowed_emails: str = Field(default="")  # Comma-separated sign-in allow-list

    # Cron endpoints (x-cron-secret header)
    cron_sync_secret: str = Field(default="")

    # Application
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Google service account (first present wins: inline JSON, base64 JSON, file)
    google_service_account_json: str = Field(default="")
    google_service_account_json_base64: str = Field(default="")
    google_service_account_file: str = Field(default="")

    # Texas Authors spreadsheet
    google_sheets_texas_authors_spreadsheet_id: str = Field(default="")
    google_sheets_spreadsheet_id: str = Field(default="")
    google_sheets_texas_authors_range_a1: str = Field(default="")
    google_sheets_range: str = Field(default="")
    google_sheets_texas_authors_sheet_name: str = Field(default="")

    # Email (Resend)
    resend_api_key: str = Field(default="")
    email_from: str = Field(default="Ops Desk <ops@localhost>")
    digest_to: str = Field(default="")  # Comma-separated
    admin_email: str = Field(default="")

    # Webhooks
    slack_webhook_url: str = Field(default="")
    slack_error_webhook_url: str = Field(default="")
    ghl_digest_webhook_url: str = Field(default="")

    # Timeouts
    job_timeout_seconds: float = Field(default=120.0)
    external_timeout_seconds: float = Field(default=30.0)

    # Hosting platform (Cloud Run)
    k_revision: str = Field(default="")
    k_service: str = Field(default="")

    @property
    def allowed_email_list(self) -> list[str]:
        return _split_emails(self.allowed_emails)

    @property
    def digest_recipients(self) -> list[str]:
        return _split_emails(self.digest_to)

    def missing_required(self) -> list[str]:
        """Names of required environment variables that are unset or blank."""
        return [
            env_name
            for field_name, env_name in REQUIRED_ENV.items()
            if not str(getattr(self, field_name) or "").strip()
        ]


def _split_emails(raw: str) -> list[str]:
    return [part.strip().lower() for part in raw.split(",") if part.strip()]


class SyncConfig:
    """Directory sync configuration from config.yml."""

    def __init__(self, data: dict[str, Any]) -> None:
        self.cooldown_minutes: float = data.get("cooldown_minutes", 5)

    @property
    def cooldown_seconds(self) -> float:
        return self.cooldown_minutes * 60


class DigestConfig:
    """Daily digest configuration from config.yml."""

    def __init__(self, data: dict[str, Any]) -> None:
        self.due_soon_days: int = data.get("due_soon_days", 3)
        self.blocked_days: int = data.get("blocked_days", 3)
        self.slack_max_items: int = data.get("slack_max_items", 10)


class DeadlinesConfig:
    """Recurring deadline generation configuration from config.yml."""

    def __init__(self, data: dict[str, Any]) -> None:
        self.lookahead_days: int = data.get("lookahead_days", 35)


class RemindersConfig:
    """SER reminder configuration from config.yml."""

    def __init__(self, data: dict[str, Any]) -> None:
        self.overdue_resend_days: int = data.get("overdue_resend_days", 3)


class AdminConfig:
    """Admin dashboard windows from config.yml."""

    def __init__(self, data: dict[str, Any]) -> None:
        self.upcoming_deadline_days: int = data.get("upcoming_deadline_days", 28)
        self.sync_failure_window_hours: int = data.get("sync_failure_window_hours", 24)


class AppConfig:
    """Combined application configuration from .env and config.yml."""

    def __init__(self, config_path: Path | None = None) -> None:
        self.settings = Settings()
        self._load_yaml(config_path or Path("config.yml"))

    def _load_yaml(self, config_path: Path) -> None:
        if config_path.exists():
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        else:
            data = {}

        self.sync = SyncConfig(data.get("sync", {}))
        self.digest = DigestConfig(data.get("digest", {}))
        self.deadlines = DeadlinesConfig(data.get("deadlines", {}))
        self.reminders = RemindersConfig(data.get("reminders", {}))
        self.admin = AdminConfig(data.get("admin", {}))


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


@lru_cache
def get_config() -> AppConfig:
    """Get cached full config instance."""
    return AppConfig()
