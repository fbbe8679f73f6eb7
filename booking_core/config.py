# booking_core/config.py

from pathlib import Path
from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    database_url: str = "sqlite:///./booking.db"
    redis_url: str = "redis://localhost:6379/0"

    # Slots grid
    slot_step_minutes: int = 30
    horizon_days: int = 60
    min_advance_minutes: int = 0
    default_open: str = "08:00"
    default_close: str = "19:00"
    suggestion_limit: int = 5

    # Commit lock: "redis" for multi-process, "local" for a single process
    lock_backend: Literal["redis", "local"] = "redis"
    lock_ttl_seconds: float = 30.0
    lock_wait_seconds: float | None = None

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )

    @property
    def resolved_database_url(self) -> str:
        url = self.database_url
        if url.startswith("sqlite:///./"):
            relative_path = url.replace("sqlite:///./", "")
            absolute_path = BASE_DIR / relative_path
            return f"sqlite:///{absolute_path}"
        return url


settings = Settings()
