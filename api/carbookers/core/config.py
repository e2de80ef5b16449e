"""Application configuration from environment variables."""

import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "CarBookers"
    debug: bool = True
    api_prefix: str = "/api/v1"
    log_level: str = "INFO"

    # External REST backend (authoritative store for bookings, cars, users)
    backend_url: str = "http://localhost:5000/api"
    backend_timeout_seconds: float = 10.0
    backend_fetch_limit: int = 1000  # page size for bookings, cars and users

    # Booking rules
    lateness_threshold_minutes: int = 60
    admin_min_duration_minutes: int = 15
    website_min_duration_minutes: int = 1440

    # All booking dates/times are wall-clock times at the rental location.
    # The zone is only used to work out "today".
    rental_timezone: str = "Africa/Casablanca"

    model_config = {"env_prefix": "CB_", "env_file": ".env", "extra": "ignore"}

    def rental_today(self) -> date:
        return datetime.now(ZoneInfo(self.rental_timezone)).date()


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


settings = Settings()
