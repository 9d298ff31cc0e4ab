"""
================================================================================
Logging Setup
================================================================================

Centralized Loguru configuration for the examples and their test runs.

Author: Automation Team
License: MIT
================================================================================
"""

import sys
from pathlib import Path

from loguru import logger

from .config_loader import ConfigLoader


DEFAULT_LOG_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"
)

_logger_initialized: bool = False


def init_logger(level: str = None, format_str: str = None, config: ConfigLoader = None) -> None:
    """
    Initializes the global Loguru logger with consistent configuration.

    Safe to call more than once; only the first call configures sinks.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to logging.level.
        format_str: Custom log format string. Defaults to logging.format.
        config: ConfigLoader to read logging settings from.
    """
    global _logger_initialized

    if _logger_initialized:
        return

    config = config or ConfigLoader()

    log_level = str(level or config.get("logging.level", "INFO")).upper()
    log_format = format_str or config.get("logging.format", DEFAULT_LOG_FORMAT)

    logger.remove()
    logger.add(
        sys.stderr,
        level=log_level,
        format=log_format,
        colorize=True,
        backtrace=True,
        diagnose=False,
    )

    log_file = config.get("logging.file")
    if log_file:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_file,
            level=log_level,
            format=log_format.replace("{level: <8}", "{level}"),
            rotation=config.get("logging.rotation", "10 MB"),
            retention=config.get("logging.retention", "7 days"),
            compression="zip",
        )

    _logger_initialized = True
    logger.debug(f"Logger initialized with level: {log_level}")


def reset_logger() -> None:
    """Allow init_logger() to run again (for tests)."""
    global _logger_initialized
    _logger_initialized = False


__all__ = ["DEFAULT_LOG_FORMAT", "init_logger", "reset_logger"]
