"""
WoW Guild Sync - Synchronization Orchestrator

Keeps World of Warcraft guild rosters and member statistics in sync with
Blizzard and Raider.IO, and streams sync lifecycle events to clients.
"""

__version__ = "1.0.0"
__author__ = "WoW Guild Sync Team"

# Public API exports
from .core.config import Settings
from .core.exceptions import GuildSyncError

__all__ = [
    "Settings",
    "GuildSyncError",
]
