"""
Job Queue Infrastructure

Durable queues on arq/Redis, the recurring schedule registry and the retry
policy for upstream failures.
"""

from .queues import QueueName, JobName, Priority
from .job_queue import JobQueue, priority_defer_until
from .retry import retry_upstream_errors, retry_delay

__all__ = [
    "QueueName",
    "JobName",
    "Priority",
    "JobQueue",
    "priority_defer_until",
    "retry_upstream_errors",
    "retry_delay",
]
