"""Logging Utilities for the Recipe Batch Importer
================================================

Centralized logging configuration and utilities.

Usage:
    from tools.logging_utils import get_logger

    logger = get_logger(__name__)
    logger.info("Operation completed successfully")
    logger.error("Operation failed")

Standards:
    - Backend/operational code: MUST use logger
    - User-facing output: Use print() for CLI
    - Log levels: CRITICAL, ERROR, WARNING, INFO, DEBUG
    - Configuration: config.build_logging_config()
    - Location: <data_dir>/logs/recipe_import.log (10MB rotation, 5 backups)
"""

import logging
import logging.config
from pathlib import Path
from typing import Optional

from config import build_logging_config

_configured_log_dir: Optional[Path] = None


def setup_logging(log_dir: Path) -> bool:
    """
    Initialize logging configuration for a run.

    Idempotent - calling again with the same directory is a no-op.

    Returns:
        True if logging is configured, False if setup failed
    """
    global _configured_log_dir

    log_dir = Path(log_dir)
    if _configured_log_dir == log_dir:
        return True

    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        logging.config.dictConfig(build_logging_config(log_dir))
    except (OSError, ValueError) as e:
        print(f"Warning: Logging setup failed: {e}")
        return False

    _configured_log_dir = log_dir
    return True


def get_logger(name: str) -> logging.Logger:
    """
    Get logger for module.

    Handlers are attached by setup_logging(); until then records propagate
    to whatever the root logger has (e.g. pytest's capture handler).

    Args:
        name: Module name (use __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def echo(logger: logging.Logger, message: str = ""):
    """Print a user-facing CLI line and mirror it to the log file."""
    print(message)
    if message.strip():
        logger.info(message.strip())
