"""
Blue/green table endpoints: which table readers should query
"""

from fastapi import APIRouter, Depends
from api.dependencies import get_coordinator, active_table_response
from ingestion.coordinator import RefreshCoordinator
from schemas.api import ActiveTableResponse, TableInfo, TablesResponse
from core.exceptions import DatabaseError
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Tables"])


@router.get("/tables/active", response_model=ActiveTableResponse)
async def get_active_table(coordinator: RefreshCoordinator = Depends(get_coordinator)):
    """
    Name of the table currently holding authoritative data.

    Call this before issuing any query. ``has_data`` is false until the first
    refresh cycle succeeds.
    """
    return active_table_response(coordinator.active_table())


@router.get("/tables", response_model=TablesResponse)
async def get_tables(coordinator: RefreshCoordinator = Depends(get_coordinator)):
    """Both tables with their load timestamps and row counts"""
    blue, green, active = coordinator.snapshot()
    active_name = active.name

    tables = []
    for color, descriptor in (("blue", blue), ("green", green)):
        try:
            row_count = await coordinator.loader.row_count(descriptor.name)
        except DatabaseError as e:
            logger.error(f"Failed to count rows in {descriptor.name}: {e.message}")
            row_count = None

        tables.append(TableInfo(
            name=descriptor.name,
            color=color,
            last_updated=descriptor.last_updated if descriptor.has_data else None,
            has_data=descriptor.has_data,
            active=descriptor.name == active_name,
            row_count=row_count
        ))

    return TablesResponse(active_table=active_name, tables=tables)
