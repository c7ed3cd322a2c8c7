"""
Worker Presentation

arq job functions, per-queue worker settings and the worker process entry
point.
"""

from .tasks import (
    WORKER_SETTINGS,
    DiscoveryWorkerSettings,
    CharacterSyncWorkerSettings,
    ActivityCheckWorkerSettings,
    SchedulerWorkerSettings,
)

__all__ = [
    "WORKER_SETTINGS",
    "DiscoveryWorkerSettings",
    "CharacterSyncWorkerSettings",
    "ActivityCheckWorkerSettings",
    "SchedulerWorkerSettings",
]
