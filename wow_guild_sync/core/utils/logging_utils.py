"""
Centralized logging configuration for the worker and API processes
"""

import logging
from typing import Optional

NOISY_LOGGERS = ["httpx", "httpcore", "sse_starlette", "arq.jobs"]


def setup_logging(level: int = logging.INFO, format_string: Optional[str] = None):
    """
    Configure application-wide logging

    Args:
        level: Logging level (default: INFO)
        format_string: Custom format string (optional)
    """
    if format_string is None:
        format_string = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    logging.basicConfig(
        level=level,
        format=format_string,
        handlers=[logging.StreamHandler()],
        force=True
    )

    for logger_name in NOISY_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
