"""Logging setup for dustbuster: console output plus an optional log file."""

import logging
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from dustbuster.display import console

LOGGER_NAME = "dustbuster"


def setup_logging(log_file: Optional[Path] = None, verbose: bool = False) -> logging.Logger:
    """
    Configure the package logger.

    Status lines go to the rich console. When log_file is set every line is
    also appended to it as plain text.

    Args:
        log_file: Optional file to append log lines to
        verbose: Include debug messages

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    console_handler = RichHandler(
        console=console,
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(console_handler)

    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(file_handler)

    return logger
