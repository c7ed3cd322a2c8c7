"""
Core Utilities

Logging setup, time helpers and secret redaction.
"""

from .logging_utils import setup_logging
from .datetime_utils import utc_now, timestamp_ms, days_since
from .redaction import redact_secrets

__all__ = [
    "setup_logging",
    "utc_now",
    "timestamp_ms",
    "days_since",
    "redact_secrets",
]
