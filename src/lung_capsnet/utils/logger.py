"""Logging utilities."""

import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(
    name: str,
    log_file: Optional[Path] = None,
    level: int | str = logging.INFO,
) -> logging.Logger:
    """Set up a logger with file and console handlers.

    Calling this again for the same logger replaces its handlers instead of
    stacking new ones, so every record is emitted once.

    Args:
        name: Logger name
        log_file: Optional log file path
        level: Logging level, as an int or a level name such as ``"DEBUG"``

    Returns:
        Configured logger
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    logger = logging.getLogger(name)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    # Console handler
    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler
    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger
