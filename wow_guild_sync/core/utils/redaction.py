"""
Secret redaction for messages that get persisted, published or alerted.
"""

import re

BEARER_PATTERN = re.compile(r"Bearer\s+\S+")
MAX_MESSAGE_LENGTH = 500


def redact_secrets(message: object, max_length: int = MAX_MESSAGE_LENGTH) -> str:
    """
    Replace bearer tokens and truncate.

    Args:
        message: Error message or exception
        max_length: Maximum length of the returned text

    Returns:
        Redacted message
    """
    text = BEARER_PATTERN.sub("Bearer [REDACTED]", str(message))
    return text[:max_length]
