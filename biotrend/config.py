"""Application configuration loaded from environment variables."""

import logging
import sys
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is loaded from environment variables (or .env file)."""

    # --- App ---
    app_name: str = "BioTrend"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    environment: str = "development"  # development | staging | production

    # --- Junction (Vital) aggregation API ---
    junction_api_key: str = ""
    junction_region: str = "us"  # us | eu
    junction_env: str = "sandbox"  # sandbox | production
    junction_base_url: str = ""  # overrides the region/env lookup when set
    http_timeout_seconds: float = 30.0

    # --- Analysis windows (days) ---
    default_insights_days: int = 30
    default_history_days: int = 90
    sync_lookback_days: int = 7

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(settings: Settings | None = None) -> None:
    """Install the root log handler used by every ``biotrend.*`` logger."""
    s = settings or get_settings()
    logging.basicConfig(
        level=getattr(logging, s.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )
    logging.getLogger("biotrend").debug(
        "Logging configured for %s v%s [%s]", s.app_name, s.app_version, s.environment
    )
