from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PLANNER_", env_file=".env", extra="ignore")

    database_url: str = "sqlite:///./planner.db"
    log_level: str = "INFO"

    # Grid editing
    text_commit_delay_seconds: float = 5.0
    ghost_rows_per_employee: int = 2
    suggestion_limit: int = 5
    suggestion_min_chars: int = 2

    # Defaults for entities created from the grid
    default_member_role: str = "member"
    default_project_status: str = "in_progress"

    # Outbound change webhook (push channel)
    notify_webhook_url: str = ""
    notify_webhook_token: str = ""
    notify_timeout_seconds: float = 3.0

    stream_ping_seconds: int = 15


settings = Settings()
