"""
Raider.IO API Infrastructure

Character statistics from the public Raider.IO API.
"""

from .client import RaiderIOClient

__all__ = [
    "RaiderIOClient",
]
