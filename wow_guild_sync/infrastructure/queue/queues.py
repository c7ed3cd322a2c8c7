"""
Queue and job names shared by producers and consumers.
"""


class QueueName:
    """arq queue keys, one consumer pool each."""

    DISCOVERY = "arq:guild-discovery"
    CHARACTER_SYNC = "arq:character-sync"
    ACTIVITY_CHECK = "arq:activity-check"
    SCHEDULER = "arq:sync-scheduler"


class JobName:
    """Registered arq function names."""

    DISCOVERY = "guild_discovery"
    CHARACTER_SYNC = "character_sync"
    ACTIVITY_CHECK = "activity_check"
    SCHEDULE_ACTIVE_SYNC = "schedule_active_sync"
    DISPATCH_SCHEDULES = "dispatch_due_schedules"


class Priority:
    """Lower runs first."""

    HIGHEST = 1
    CHARACTER_SYNC = 5
    DEFAULT = 10
