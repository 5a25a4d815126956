import asyncio
import logging
import sys
import os

# Add current directory to path to allow imports from core, models, etc.
sys.path.append(os.getcwd())

from core.config import settings
from core.database import create_engine
from core.logging import setup_logging
from models.crime_record import create_tables

logger = logging.getLogger(__name__)


async def init_database():
    setup_logging()
    logger.info(f"Connecting to database {settings.redacted_database_url()}...")
    engine = create_engine(settings)

    try:
        logger.info("Creating blue/green tables...")
        await create_tables(engine, [settings.BLUE_TABLE, settings.GREEN_TABLE])
        logger.info("Tables created successfully.")
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(init_database())
