"""Logging configuration for sia.

Library modules only call :func:`get_logger` and never install handlers.
The CLI calls :func:`setup_logging` once per invocation: messages go to
stderr through Rich, and optionally to a log file with full detail.
"""

import logging
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler


# Global console for rich output
console = Console()

FILE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "WARNING", log_file: Optional[Path] = None) -> logging.Logger:
    """
    Configure the ``sia`` logger.

    Calling this again replaces the handlers of the previous call.

    Args:
        level: Console log level (DEBUG, INFO, WARNING, ERROR)
        log_file: Optional file that receives every message down to DEBUG

    Returns:
        Configured package logger
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    logger = logging.getLogger("sia")
    logger.setLevel(logging.DEBUG if log_file else log_level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=Console(stderr=True),
        show_time=False,
        show_path=False,
    )
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    console_handler.setLevel(log_level)
    logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        file_handler.setLevel(logging.DEBUG)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger for a module, e.g. ``get_logger(__name__)``."""
    return logging.getLogger(name)
