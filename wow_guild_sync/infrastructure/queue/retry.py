"""
Retry policy for queued jobs.

Retryable upstream failures are handed back to arq with exponential backoff;
anything else fails the job on the spot.
"""

import logging
from functools import wraps
from typing import Callable

from arq import Retry

from ...core.exceptions import UpstreamError

logger = logging.getLogger(__name__)


def retry_delay(job_try: int, base_delay: int = 30, max_delay: int = 600) -> int:
    """Seconds to wait before try ``job_try + 1``."""
    return min(base_delay * 2 ** (max(job_try, 1) - 1), max_delay)


def retry_upstream_errors(func: Callable) -> Callable:
    """
    Wrap an arq job function.

    Reads ``job_try`` from the arq context and retry settings from
    ``ctx["settings"]`` when present.
    """

    @wraps(func)
    async def wrapper(ctx: dict, *args, **kwargs):
        try:
            return await func(ctx, *args, **kwargs)
        except UpstreamError as e:
            job_try = ctx.get("job_try", 1)
            settings = ctx.get("settings")
            max_tries = settings.sync.max_tries if settings else 3

            if not e.retryable or job_try >= max_tries:
                logger.error(
                    f"{func.__name__} failed on try {job_try}/{max_tries}, "
                    f"not retrying: {e}"
                )
                raise

            if settings:
                delay = retry_delay(
                    job_try, settings.sync.retry_base_delay, settings.sync.retry_max_delay
                )
            else:
                delay = retry_delay(job_try)

            logger.warning(
                f"{func.__name__} failed on try {job_try}/{max_tries}, "
                f"retrying in {delay}s: {e}"
            )
            raise Retry(defer=delay) from e

    return wrapper
