"""Logging configuration for relaycmd."""

import logging
from pathlib import Path
from typing import Optional

from config import LOG_DATE_FORMAT, LOG_FORMAT

ROOT_LOGGER = "relaycmd"


def setup_logger(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    console: bool = False,
) -> logging.Logger:
    """Set up and return the relaycmd logger.

    Writes to ``log_file`` when given. ``console`` adds a Rich handler on
    stderr so operator output printed via Console stays readable.
    """
    logger = logging.getLogger(ROOT_LOGGER)

    if logger.handlers:
        return logger

    logger.setLevel(level)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if console:
        from rich.console import Console
        from rich.logging import RichHandler

        rich_handler = RichHandler(
            console=Console(stderr=True),
            show_path=False,
            log_time_format="[%X]",
        )
        rich_handler.setLevel(level)
        logger.addHandler(rich_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a child of the relaycmd logger for a module."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def log_exception(msg: str = "Exception occurred"):
    """Log an exception with full traceback."""
    logging.getLogger(ROOT_LOGGER).exception(msg)
