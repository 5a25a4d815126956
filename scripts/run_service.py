"""
Run the refresh scheduler without the HTTP API
"""

import asyncio
import signal
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import create_engine
from core.logging import setup_logging
from ingestion.coordinator import RefreshCoordinator
from ingestion.scheduler import RefreshScheduler
from models.crime_record import create_tables

logger = logging.getLogger(__name__)


async def run_service():
    """Refresh on the configured interval until SIGINT/SIGTERM"""
    setup_logging()

    engine = create_engine(settings)
    await create_tables(engine, [settings.BLUE_TABLE, settings.GREEN_TABLE])

    coordinator = RefreshCoordinator.from_settings(settings, engine)
    scheduler = RefreshScheduler(
        coordinator,
        interval_seconds=settings.check_interval_seconds,
        run_on_startup=settings.RUN_ON_STARTUP
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    scheduler.start()
    logger.info(f"Service running; refreshing every {settings.CHECK_INTERVAL}")

    try:
        await stop_event.wait()
        logger.info("Shutdown signal received")
    finally:
        scheduler.stop()
        await engine.dispose()
        logger.info("Service stopped")


if __name__ == "__main__":
    asyncio.run(run_service())
