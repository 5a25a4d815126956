"""
Script to run a single blue/green refresh cycle and exit
"""

import asyncio
import sys
import os
import logging

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import create_engine
from core.exceptions import ConfigurationError
from core.logging import setup_logging
from ingestion.coordinator import RefreshCoordinator
from models.crime_record import create_tables

logger = logging.getLogger(__name__)


async def run_refresh() -> int:
    """Run one refresh cycle; returns the process exit code"""
    setup_logging()

    engine = create_engine(settings)

    try:
        await create_tables(engine, [settings.BLUE_TABLE, settings.GREEN_TABLE])
        coordinator = RefreshCoordinator.from_settings(settings, engine)

        result = await coordinator.refresh()

        if not result.succeeded:
            logger.error(
                f"Refresh into {result.target_table} failed: {result.error_message}"
            )
            return 1

        logger.info(
            f"Refresh completed: table={result.target_table}, "
            f"Fetched={result.rows_fetched}, Loaded={result.records_loaded}, "
            f"Discarded={result.records_discarded}"
        )
        return 0

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return 2
    finally:
        await engine.dispose()


if __name__ == "__main__":
    sys.exit(asyncio.run(run_refresh()))
