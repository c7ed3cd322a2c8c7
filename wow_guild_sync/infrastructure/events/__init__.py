"""
Event Infrastructure

Per-guild sync lifecycle events over Redis pub/sub.
"""

from .publisher import EventPublisher, guild_channel, AGGREGATE_PATTERN
from .relay import StreamRelay

__all__ = [
    "EventPublisher",
    "StreamRelay",
    "guild_channel",
    "AGGREGATE_PATTERN",
]
