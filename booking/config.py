"""Service settings loaded from the environment or a .env file."""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

BASE_DIR = Path(__file__).resolve().parents[1]


class Settings(BaseSettings):
    mapbox_access_token: str = ""
    mapbox_base_url: str = "https://api.mapbox.com"
    http_timeout_seconds: float = 10.0
    default_timezone: str = "UTC"
    log_level: str = "INFO"
    calendar_first_hour: int = 8
    calendar_last_hour: int = 20

    model_config = SettingsConfigDict(
        env_file=BASE_DIR / ".env",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    settings = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
