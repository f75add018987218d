"""Logging for the charge payment API.

Payment and finalization events go to stdout and to a file; the file is
where operators look for "preference lock failed" lines to reconcile.
Level comes from LOG_LEVEL (default from settings). Gateway HTTP chatter
(urllib3) and per-request access lines stay at WARNING unless LOG_LEVEL=DEBUG.
"""

import logging
import os
import sys
from pathlib import Path

# Map string level names to logging constants
LOG_LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}

# Library loggers that would otherwise print every gateway call and request
LIBRARY_LOGGERS = ("urllib3", "uvicorn.access")


def get_log_level(default: str = "INFO") -> int:
    """Get logging level from LOG_LEVEL environment variable.

    Args:
        default: Level name used when LOG_LEVEL is not set

    Returns:
        Logging level constant (unknown names fall back to INFO)
    """
    level_str = os.getenv("LOG_LEVEL", default).upper()
    return LOG_LEVEL_MAP.get(level_str, logging.INFO)


def setup_server_logging(log_file: str = "logs/server.log", default_level: str = "INFO") -> None:
    """
    Configure root logger for the API server.

    Args:
        log_file: Path to log file (default: logs/server.log)
        default_level: Level used when LOG_LEVEL is unset

    Behavior:
        - Sets up all loggers to output to both stdout and file
        - ISO format timestamps for consistency
        - Partial finalization errors land in the file for manual reconciliation
    """
    log_path = Path(log_file)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    # ISO format: [YYYY-MM-DD HH:MM:SS]
    formatter = logging.Formatter(
        fmt="[%(asctime)s] %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    log_level = get_log_level(default_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Remove any existing handlers to avoid duplicates
    root_logger.handlers.clear()

    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(log_level)
    stdout_handler.setFormatter(formatter)
    root_logger.addHandler(stdout_handler)

    file_handler = logging.FileHandler(log_path)
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    root_logger.addHandler(file_handler)

    library_level = logging.DEBUG if log_level == logging.DEBUG else logging.WARNING
    for name in LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)
