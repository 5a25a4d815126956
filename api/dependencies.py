"""
FastAPI dependencies resolving the service objects wired at startup
"""

from typing import Optional

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine

from ingestion.coordinator import ActiveTable, RefreshCoordinator
from ingestion.scheduler import RefreshScheduler
from schemas.api import ActiveTableResponse


def get_engine(request: Request) -> AsyncEngine:
    return request.app.state.engine


def get_coordinator(request: Request) -> RefreshCoordinator:
    return request.app.state.coordinator


def get_scheduler(request: Request) -> Optional[RefreshScheduler]:
    return getattr(request.app.state, "scheduler", None)


def active_table_response(active: ActiveTable) -> ActiveTableResponse:
    """Hide the internal epoch value behind an explicit ``has_data`` flag"""
    return ActiveTableResponse(
        table_name=active.name,
        last_updated=active.last_updated if active.has_data else None,
        has_data=active.has_data
    )
