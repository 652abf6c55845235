"""Centralized logging configuration for drive-organizer."""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def setup_logging(
    level: str = "info",
    log_dir: Path | None = Path("./logs"),
    log_file_prefix: str = "drive_organizer",
) -> logging.Logger:
    """
    Configure logging for the application.

    Console output goes to stderr so it does not interleave with the
    interactive prompts on stdout. The rotating file handler always records
    DEBUG and keeps at most 4 previous log files.
    Only configures if not already configured to avoid duplicate handlers.

    Args:
        level: Console level name (debug, info, warn, error)
        log_dir: Directory for the log file, or None to skip file logging
        log_file_prefix: Prefix for the log file name

    Returns:
        Logger instance for the calling module
    """
    root_logger = logging.getLogger()

    # Only configure if not already configured (avoid duplicate handlers)
    if root_logger.handlers:
        return logging.getLogger(__name__)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(LOG_LEVELS.get(level.lower(), logging.INFO))
    console_handler.setFormatter(formatter)

    root_logger.setLevel(logging.DEBUG)
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / f"{log_file_prefix}.log",
            mode="a",
            maxBytes=10 * 1024 * 1024,
            backupCount=4,
            encoding="utf-8",
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    # googleapiclient logs every discovery/cache lookup at INFO
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)

    return logging.getLogger(__name__)
