"""
Refresh statistics endpoint
"""
from fastapi import APIRouter, Depends, Query, Request
from typing import Optional
from api.dependencies import get_coordinator, get_scheduler, active_table_response
from api.middleware import request_id
from ingestion.coordinator import RefreshCoordinator
from ingestion.scheduler import RefreshScheduler
from schemas.api import StatsResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Statistics"])


@router.get("/stats", response_model=StatsResponse)
async def get_stats(
    request: Request,
    limit: int = Query(10, ge=1, le=100, description="Number of recent runs to return"),
    coordinator: RefreshCoordinator = Depends(get_coordinator),
    scheduler: Optional[RefreshScheduler] = Depends(get_scheduler)
):
    """
    Get refresh statistics.

    Returns:
    - Cycle totals, success and failure counts
    - Last success/failure times and average successful duration
    - Recent refresh history, newest first
    """
    logger.info(f"[{request_id(request)}] GET /stats")

    stats = coordinator.stats()
    recent_runs = list(reversed(coordinator.history()))[:limit]

    return StatsResponse(
        total_cycles=stats["total_cycles"],
        successful_cycles=stats["successful_cycles"],
        failed_cycles=stats["failed_cycles"],
        skipped_ticks=scheduler.skipped_ticks if scheduler else 0,
        last_success_at=stats["last_success_at"],
        last_failure_at=stats["last_failure_at"],
        avg_duration_seconds=stats["avg_duration_seconds"],
        active_table=active_table_response(coordinator.active_table()),
        recent_runs=recent_runs
    )
