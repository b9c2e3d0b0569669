"""Centralized logging configuration for IssueBoard.

All components log under the ``issueboard`` namespace. The API process gets a
rotating log file plus an optional console stream.
"""

from __future__ import annotations

import logging
import os
import re
from logging.handlers import RotatingFileHandler
from pathlib import Path

DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_FILE = "issueboard.log"
DEFAULT_MAX_BYTES = 10 * 1024 * 1024  # 10MB
DEFAULT_BACKUP_COUNT = 5
DEFAULT_LOG_LEVEL = "INFO"

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

ROOT_LOGGER = "issueboard"

_SENSITIVE_PATTERNS = [
    (re.compile(r"ib_[A-Za-z0-9_-]{20,}"), "[API_TOKEN]"),
    (re.compile(r"Bearer [A-Za-z0-9._-]+"), "Bearer [REDACTED]"),
    (re.compile(r"token=[A-Za-z0-9._-]+"), "token=[REDACTED]"),
]


def setup_logging(
    log_dir: str | Path | None = None,
    log_file: str = DEFAULT_LOG_FILE,
    max_bytes: int = DEFAULT_MAX_BYTES,
    backup_count: int = DEFAULT_BACKUP_COUNT,
    level: str | None = None,
    console: bool = True,
) -> logging.Logger:
    """Configure the ``issueboard`` logger.

    Args:
        log_dir: Directory for log files. Falls back to ISSUEBOARD_LOG_DIR,
                 then 'logs' in the current directory.
        log_file: Log file name.
        max_bytes: Size at which the file is rotated.
        backup_count: Number of rotated files to keep.
        level: Log level name. Falls back to ISSUEBOARD_LOG_LEVEL, then INFO.
        console: Whether to also log to stderr.

    Returns:
        The root issueboard logger.
    """
    if log_dir is None:
        log_dir = os.environ.get("ISSUEBOARD_LOG_DIR", DEFAULT_LOG_DIR)
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    if level is None:
        level = os.environ.get("ISSUEBOARD_LOG_LEVEL", DEFAULT_LOG_LEVEL)
    log_level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(log_level)
    # setup_logging may run once per app instance (tests build several)
    logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    log_path = log_dir / log_file
    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=max_bytes,
        backupCount=backup_count,
        encoding="utf-8",
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    logger.info("IssueBoard logging initialized (level=%s, file=%s)", level, log_path)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a component logger, e.g. ``get_logger("tracker")``."""
    if not name.startswith(f"{ROOT_LOGGER}."):
        name = f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(name)


def truncate_text(text: str, max_length: int = 200) -> str:
    """Shorten user-supplied text (titles, comments) for log lines."""
    if len(text) <= max_length:
        return text
    return text[:max_length] + f"... [truncated, {len(text) - max_length} more chars]"


def sanitize_for_log(text: str) -> str:
    """Redact API tokens from text before it is logged."""
    result = text
    for pattern, replacement in _SENSITIVE_PATTERNS:
        result = pattern.sub(replacement, result)
    return result
