"""
Sync Workers

Queue consumers for discovery, scheduling, character sync and activity
checks.
"""

from .activity_check import ActivityCheckWorker, apply_activity_results
from .character_sync import CharacterSyncWorker
from .discovery import DiscoveryWorker
from .scheduler import SyncScheduler, split_batches

__all__ = [
    "ActivityCheckWorker",
    "apply_activity_results",
    "CharacterSyncWorker",
    "DiscoveryWorker",
    "SyncScheduler",
    "split_batches",
]
