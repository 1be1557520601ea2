from __future__ import annotations

from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = "dev"
    log_level: str = "INFO"
    cors_allow_origins: list[str] = ["*"]

    # Club
    club_name: str = "Rotaract Club"
    member_code_prefix: str = Field(default="RC", min_length=1, max_length=4)

    # Persistence
    database_url: str = "sqlite:///./club_finance.db"
    database_timeout_s: float = 10.0

    # Bills
    local_storage_path: Path = Path(".local_storage")
    max_bill_bytes: int = 5 * 1024 * 1024
    allowed_bill_types: list[str] = ["image/jpeg", "image/png", "image/gif", "application/pdf"]

    # Listing and reports
    default_page_size: int = 10
    max_page_size: int = 100
    leaderboard_size: int = 20
    summary_top_n: int = 10
    dashboard_recent_size: int = 5
    audit_page_size: int = 100

    # Auth; INIT_ADMIN_EMAIL may list several addresses separated by commas.
    secret_key: str = "change-me"
    access_token_exp_minutes: int = 60 * 24 * 7
    init_admin_email: str | None = None
    init_admin_password: str | None = None

    @field_validator("member_code_prefix")
    @classmethod
    def _upper_prefix(cls, v: str) -> str:
        return v.upper()

    @property
    def init_admin_emails(self) -> list[str]:
        raw = self.init_admin_email or ""
        return [e.strip().lower() for e in raw.split(",") if e.strip()]


settings = Settings()
