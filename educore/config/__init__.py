"""EDucore configuration: environment settings and logging setup."""

from __future__ import annotations

import logging

from .settings import Settings, settings

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int | None = None) -> None:
    """Configure root logging once for the API process or the CLI."""
    if level is None:
        level = settings.LOG_LEVEL
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(level=level, format=_LOG_FORMAT)
    logging.getLogger("educore").setLevel(level)


__all__ = [
    "Settings",
    "configure_logging",
    "settings",
]
