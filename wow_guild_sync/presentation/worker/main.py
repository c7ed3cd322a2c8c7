"""
Worker Process

Runs the four queue consumers in one process, sharing a single container.
"""

import asyncio
import logging
import signal
import sys

from arq.worker import create_worker

from .tasks import WORKER_SETTINGS
from ...core.config import ConfigLoader
from ...core.container import initialize_container, shutdown_container
from ...core.utils import setup_logging, redact_secrets
from ...infrastructure.alerts import AlertLevel

logger = logging.getLogger(__name__)


async def register_guild_schedules(container) -> int:
    """Install recurring runs for every sync-enabled guild."""
    guilds = await container.guild_repository().list_sync_enabled()
    job_queue = container.job_queue()

    for guild in guilds:
        await job_queue.register_schedules(
            guild.id,
            guild.discovery_interval_hours,
            guild.active_sync_interval_min,
        )

    logger.info(f"Registered schedules for {len(guilds)} guilds")
    return len(guilds)


async def run_workers(container) -> None:
    """Run every queue consumer until one stops or a signal arrives."""
    settings = container.settings()
    workers = [
        create_worker(
            worker_settings,
            ctx={"container": container, "settings": settings},
            handle_signals=False,
        )
        for worker_settings in WORKER_SETTINGS
    ]

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    consumers = asyncio.gather(*(worker.async_run() for worker in workers))
    stopper = asyncio.ensure_future(stop.wait())

    try:
        done, _ = await asyncio.wait(
            {consumers, stopper}, return_when=asyncio.FIRST_COMPLETED
        )
        if consumers in done:
            # Surface a consumer crash
            consumers.result()
        else:
            logger.info("Shutdown requested")
    finally:
        stopper.cancel()
        for worker in workers:
            await worker.close()
        if not consumers.done():
            consumers.cancel()


async def main() -> None:
    settings = ConfigLoader.load_config()
    setup_logging(logging.DEBUG if settings.debug else logging.INFO)

    if not ConfigLoader.validate_config():
        logger.error("Configuration validation failed")
        sys.exit(1)

    container = await initialize_container()
    try:
        await register_guild_schedules(container)
        await run_workers(container)
    except Exception as e:
        logger.error(f"Worker process crashed: {e}", exc_info=True)
        await container.alerts().send_alert(
            title="Worker Process Crashed",
            message=redact_secrets(e),
            level=AlertLevel.ERROR,
            source="worker/main",
        )
        raise
    finally:
        await shutdown_container()


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
