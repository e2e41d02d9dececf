"""Logging for the catalog taxonomy.

Every record goes to the console and to a per-day log file. CRITICAL
records (broken ancestor chains, integrity halts) are also appended to
catalog-integrity.log, which is never rotated, so the history of
structural corruption outlives the daily files.
"""

import logging
from datetime import date
from pathlib import Path
from typing import Optional
from config import Config

LOGGER_NAME = "catalog"
INTEGRITY_LOG_FILENAME = "catalog-integrity.log"

_FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_CONSOLE_FORMAT = "%(levelname)s - %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def daily_log_path(log_dir: Path, day: Optional[date] = None) -> Path:
    """Path of the log file for a given day (today by default)."""
    day = day or date.today()
    return log_dir / f"catalog-{day.isoformat()}.log"


def _with_format(handler: logging.Handler, level, fmt: str) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt, datefmt=_DATE_FORMAT))
    return handler


def reset_handlers(logger: logging.Logger):
    """Detach and close every handler on the logger."""
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def setup_logging(config: Config) -> logging.Logger:
    """Attach the daily, integrity and console handlers to the catalog logger.

    Safe to call more than once: handlers from an earlier call are closed
    and replaced.

    Args:
        config: Application configuration containing log settings.

    Returns:
        Configured logger instance.
    """
    config.log_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(config.log_level)
    reset_handlers(logger)

    logger.addHandler(
        _with_format(
            logging.FileHandler(daily_log_path(config.log_dir)),
            config.log_level,
            _FILE_FORMAT,
        )
    )
    logger.addHandler(
        _with_format(
            logging.FileHandler(config.log_dir / INTEGRITY_LOG_FILENAME),
            logging.CRITICAL,
            _FILE_FORMAT,
        )
    )
    logger.addHandler(
        _with_format(logging.StreamHandler(), config.log_level, _CONSOLE_FORMAT)
    )

    return logger


def get_logger() -> logging.Logger:
    return logging.getLogger(LOGGER_NAME)
