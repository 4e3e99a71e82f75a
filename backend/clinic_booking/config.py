# backend/clinic_booking/config.py

from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[2]  # repository root


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/sqlite/clinic.db"
    redis_url: Optional[str] = None

    # Reminder scheduler
    reminders_enabled: bool = True
    reminder_interval_seconds: int = 3600

    # Slot grid used when listing bookable start times
    slot_step_minutes: int = 30

    # Shared booking policy cache (Redis only)
    policy_cache_ttl_seconds: int = 300

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @field_validator("slot_step_minutes")
    @classmethod
    def _check_step(cls, value: int) -> int:
        if value not in (15, 30, 60):
            raise ValueError(f"slot_step_minutes must be 15, 30, or 60, got {value}")
        return value

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            # Relative SQLite paths are anchored at the repository root
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
