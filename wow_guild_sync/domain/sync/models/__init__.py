"""
Sync Domain Models

Sync runs and per-character failures.
"""

from .sync_job import SyncJob, SyncJobType, SyncJobStatus, SyncError

__all__ = [
    "SyncJob",
    "SyncJobType",
    "SyncJobStatus",
    "SyncError",
]
