"""
Logging setup for CodeCanvas.
"""

import logging

from rich.console import Console
from rich.logging import RichHandler

ROOT_LOGGER = "codecanvas"


def setup_logging(
    level: str | int = "INFO",
    console: Console | None = None,
    log_file: str | None = None,
) -> logging.Logger:
    """
    Configure the package logger.

    Args:
        level: Log level name or number
        console: Optional Rich console to log to (stderr by default)
        log_file: Optional file that receives a plain-text copy of the log

    Returns:
        The configured package logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    rich_handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
        markup=False,
    )
    rich_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(rich_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
        )
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger

