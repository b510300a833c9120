"""Logging setup: console, ``app.log``, and a per-run ``dispatch.log`` audit trail."""
from __future__ import annotations

from logging.config import dictConfig
from pathlib import Path

from pydantic import ValidationError

from ticket_notifier.config import get_settings

FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DISPATCH_LOGGER = "ticket_notifier.services.dispatcher"

_configured = False


def _file_handler(path: Path, level: str) -> dict:
    return {
        "class": "logging.FileHandler",
        "filename": str(path),
        "encoding": "utf-8",
        "formatter": "standard",
        "level": level,
    }


def build_logging_config(log_dir: Path, level: str) -> dict:
    """
    Dictionary for :func:`logging.config.dictConfig`.

    Dispatch outcomes also go to ``dispatch.log`` at INFO whatever the global
    level is, so sent-but-not-marked tickets can be traced after the fact.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"standard": {"format": FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "standard",
                "level": level,
            },
            "app_file": _file_handler(log_dir / "app.log", level),
            "dispatch_file": _file_handler(log_dir / "dispatch.log", "INFO"),
        },
        "loggers": {
            DISPATCH_LOGGER: {"level": "INFO", "handlers": ["dispatch_file"]},
            # Resend and Supabase clients log every request through httpx/urllib3.
            "httpx": {"level": "WARNING"},
            "urllib3": {"level": "WARNING"},
        },
        "root": {"level": level, "handlers": ["console", "app_file"]},
    }


def configure_logging() -> None:
    """Configure application logging once per process."""

    global _configured
    if _configured:
        return

    try:
        settings = get_settings()
        log_dir, level = settings.log_dir, settings.log_level
    except ValidationError:
        # Settings may be incomplete in tooling contexts; still log somewhere.
        log_dir, level = Path("logs"), "INFO"
    log_dir.mkdir(parents=True, exist_ok=True)

    dictConfig(build_logging_config(log_dir, level))
    _configured = True
