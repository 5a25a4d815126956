"""
Health check endpoint with database and refresh status
"""

from datetime import datetime, timezone
from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine
from api.dependencies import get_coordinator, get_engine, active_table_response
from ingestion.coordinator import RefreshCoordinator
from schemas.api import HealthCheckResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Health"])


def determine_status(database_connected: bool, has_data: bool, last_refresh_failed: bool) -> str:
    """Determine overall health status"""
    if not database_connected:
        return "unhealthy"
    if not has_data or last_refresh_failed:
        return "degraded"
    return "healthy"


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(
    engine: AsyncEngine = Depends(get_engine),
    coordinator: RefreshCoordinator = Depends(get_coordinator)
):
    """
    Health check endpoint.

    Returns:
    - Database connectivity status
    - Active table and whether any data has been loaded yet
    - Current refresh state and last cycle outcome
    """
    db_connected = False

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        db_connected = True
    except Exception as e:
        logger.error(f"Database connection failed: {str(e)}")

    active = coordinator.active_table()
    last_refresh = coordinator.last_result

    return HealthCheckResponse(
        status=determine_status(
            db_connected,
            active.has_data,
            last_refresh is not None and not last_refresh.succeeded
        ),
        timestamp=datetime.now(timezone.utc),
        database_connected=db_connected,
        active_table=active_table_response(active),
        refresh_state=coordinator.state,
        last_refresh=last_refresh
    )
