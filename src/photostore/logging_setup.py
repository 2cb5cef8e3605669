"""Logging configuration for the Photostore CLI."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

from photostore.config.models import LoggingSettings

LOGGER_NAME = "photostore"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(
    settings: LoggingSettings,
    *,
    quiet: bool = False,
    console: Console | None = None,
) -> logging.Logger:
    """Route package diagnostics to stderr and, optionally, a rotating log file.

    Args:
        settings: Logging section of the loaded configuration.
        quiet: Raise the console level to WARNING.
        console: Console used for diagnostics; defaults to a stderr console.

    Returns:
        logging.Logger: The configured package logger.
    """
    level = logging.getLevelName(settings.level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    stream_handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    stream_handler.setLevel(max(level, logging.WARNING) if quiet else level)
    logger.addHandler(stream_handler)

    if settings.file:
        log_path = Path(settings.file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            log_path,
            maxBytes=max(settings.max_size_mb, 1) * 1024 * 1024,
            backupCount=settings.backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        file_handler.setLevel(level)
        logger.addHandler(file_handler)

    logger.setLevel(level)
    return logger


__all__ = ["LOGGER_NAME", "configure_logging"]
