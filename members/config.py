"""
Runtime settings, read from environment variables.

Values are read when ``Settings.from_env()`` is called, so tests can
construct ``Settings(...)`` directly with whatever they need.
"""

import logging
import os
from dataclasses import dataclass

LOG_FORMAT = "%(asctime)s | %(name)-24s | %(levelname)-5s | %(message)s"
LOG_DATEFMT = "%H:%M:%S"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


@dataclass
class Settings:
    """Application settings."""

    log_level: str = "INFO"
    notify_async: bool = True
    notify_workers: int = 4
    mail_sender: str = "noreply@members.local"
    mail_fail_rate: float = 0.0
    mail_delay_seconds: float = 0.0
    default_page_size: int = 10

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            log_level=os.getenv("MEMBERS_LOG_LEVEL", "INFO").upper(),
            notify_async=_env_bool("MEMBERS_NOTIFY_ASYNC", True),
            notify_workers=int(os.getenv("MEMBERS_NOTIFY_WORKERS", "4")),
            mail_sender=os.getenv("MEMBERS_MAIL_SENDER", "noreply@members.local"),
            mail_fail_rate=float(os.getenv("MEMBERS_MAIL_FAIL_RATE", "0.0")),
            mail_delay_seconds=float(os.getenv("MEMBERS_MAIL_DELAY_SECONDS", "0.0")),
            default_page_size=int(os.getenv("MEMBERS_DEFAULT_PAGE_SIZE", "10")),
        )


def configure_logging(settings: Settings) -> None:
    """Install the root log format and level."""
    logging.basicConfig(
        level=settings.log_level,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
    )
