"""
Database engine management with SQLAlchemy async
"""

from typing import Any, Dict

from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine
from sqlalchemy.pool import StaticPool

from core.config import Settings
import logging

logger = logging.getLogger(__name__)


def create_engine(settings: Settings) -> AsyncEngine:
    """
    Create the async engine shared by the loader and the readers.

    The pool is sized so a bulk load holding one connection for its whole
    transaction never starves concurrent readers. SQLite (used in tests)
    gets a single shared connection instead.
    """
    url = settings.DATABASE_URL

    if url.startswith("sqlite"):
        engine_kwargs: Dict[str, Any] = {
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        }
    else:
        engine_kwargs = {
            "pool_size": settings.DB_POOL_SIZE,
            "max_overflow": settings.DB_MAX_OVERFLOW,
            "pool_pre_ping": True,
        }

    engine = create_async_engine(url, echo=False, future=True, **engine_kwargs)
    logger.info(f"Database engine created for {settings.redacted_database_url()}")
    return engine
