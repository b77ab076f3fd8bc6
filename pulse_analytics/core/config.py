# pulse_analytics/core/config.py
from __future__ import annotations

from pathlib import Path
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict

ROOT_DIR = Path(__file__).resolve().parents[2]  # repo root
ENV_FILE = ROOT_DIR / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # App
    APP_NAME: str = "Survey Pulse Analytics API"
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # CORS (comma separated, empty = any origin)
    CORS_ORIGINS: str = ""

    # DB URLs (either one is accepted)
    DATABASE_URL: str | None = None
    SQLALCHEMY_DATABASE_URI: str | None = None

    # Report cache
    CACHE_BACKEND: str = "memory"  # memory | redis
    REDIS_URL: str = "redis://localhost:6379/0"
    CACHE_TIME: int = 1800
    MIRROR_TTL: int = 3600

    # Dashboard defaults resolved once per request by the caller
    DEFAULT_PERIOD: str = "last-365-days"
    DEFAULT_ACTIVE_MODULES: str = "parent,student,employee"

    @property
    def cors_list(self) -> list[str]:
        if not self.CORS_ORIGINS:
            return ["*"]
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

    @property
    def active_modules(self) -> list[str]:
        return [m.strip() for m in self.DEFAULT_ACTIVE_MODULES.split(",") if m.strip()]

    @property
    def db_url(self) -> str:
        """
        Unified SQLAlchemy URL. Accepts DATABASE_URL or SQLALCHEMY_DATABASE_URI,
        falls back to a local SQLite file for development.
        """
        url = (self.DATABASE_URL or self.SQLALCHEMY_DATABASE_URI or "").strip()
        if not url:
            return f"sqlite:///{ROOT_DIR / 'pulse_analytics.db'}"
        # Heroku style URLs are not accepted by SQLAlchemy 2
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        return url


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
