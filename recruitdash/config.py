"""RecruitDash — Central Configuration via Pydantic Settings."""

import os
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # ── Database ──
    database_url: str = ""

    # ── App ──
    app_version: str = "1.0.0"
    log_level: str = "INFO"
    scheduler_enabled: bool = True
    alert_check_hour: int = 9  # Daily view-rate sweep at 9 AM
    timezone: str = "Asia/Tokyo"  # Clinic-local calendar for "today"

    # ── Metrics ──
    view_rate_abnormal_threshold: float = 0.30
    default_contract_duration_months: int = 12

    @property
    def effective_database_url(self) -> str:
        """Return PostgreSQL URL if set, otherwise fall back to SQLite."""
        if self.database_url:
            return self.database_url
        # Vercel has a read-only filesystem; use /tmp for SQLite
        if os.environ.get("VERCEL"):
            return "sqlite:////tmp/recruitdash.db"
        return "sqlite:///./recruitdash.db"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
