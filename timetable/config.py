"""Runtime settings for the timetable service, read from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    default_quantum: int = 50
    default_color: str = "#3B82F6"
    academic_year: str = "2024-25"
    save_retries: int = 3
    activity_limit: int = 500
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Build a Settings instance from ``TIMETABLE_*`` environment variables."""
    return Settings(
        default_quantum=int(os.getenv("TIMETABLE_DEFAULT_QUANTUM", "50")),
        default_color=os.getenv("TIMETABLE_DEFAULT_COLOR", "#3B82F6"),
        academic_year=os.getenv("TIMETABLE_ACADEMIC_YEAR", "2024-25"),
        save_retries=int(os.getenv("TIMETABLE_SAVE_RETRIES", "3")),
        activity_limit=int(os.getenv("TIMETABLE_ACTIVITY_LIMIT", "500")),
        log_level=os.getenv("TIMETABLE_LOG_LEVEL", "INFO").upper(),
    )


settings = load_settings()


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=getattr(logging, level or settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
