from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Go up two levels from core/config.py → project root
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        extra="ignore",
    )

    DATABASE_URL: str = "sqlite:///./matchday.db"
    DB_POOL_SIZE: int = 30
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_RECYCLE: int = 1800  # recycle every 30 min to avoid stale connections

    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = ["*"]

    # Role forwarded by the auth gateway in front of the API
    ROLE_HEADER: str = "X-User-Role"
    WRITE_ROLES: List[str] = ["admin", "editor"]

    # Nightly standings repair job
    SCHEDULER_ENABLED: bool = True
    RECALC_CRON_HOUR: int = 4
    RECALC_CRON_MINUTE: int = 0

    FORM_LENGTH: int = 5
    TEAM_MATCH_THRESHOLD: int = 85


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
