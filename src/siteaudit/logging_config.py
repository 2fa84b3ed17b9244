"""Logging configuration for the site auditor."""

import logging
import os
import sys
from pathlib import Path
from typing import Optional

DEFAULT_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(
    level: Optional[str] = None,
    log_file: Optional[str] = None,
    format_string: Optional[str] = None
) -> None:
    """Configure logging for audit runs.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL). Falls back
            to SITE_AUDIT_LOG_LEVEL, then INFO.
        log_file: Optional log file path
        format_string: Optional custom format string
    """
    if level is None:
        level = os.getenv("SITE_AUDIT_LOG_LEVEL", "INFO")

    numeric_level = getattr(logging, level.upper(), logging.INFO)

    handlers = [logging.StreamHandler(sys.stdout)]

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    logging.basicConfig(
        level=numeric_level,
        format=format_string or DEFAULT_FORMAT,
        handlers=handlers,
        force=True  # Override any existing configuration
    )

    # Browser driver and event loop internals are noisy at DEBUG
    logging.getLogger('asyncio').setLevel(logging.WARNING)
    logging.getLogger('playwright').setLevel(logging.WARNING)
