"""
Manual refresh trigger
"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from api.dependencies import get_coordinator
from ingestion.coordinator import RefreshCoordinator
from schemas.api import RefreshAcceptedResponse
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Refresh"])


@router.post(
    "/refresh",
    response_model=RefreshAcceptedResponse,
    status_code=status.HTTP_202_ACCEPTED
)
async def trigger_refresh(
    background_tasks: BackgroundTasks,
    coordinator: RefreshCoordinator = Depends(get_coordinator)
):
    """Start a refresh cycle in the background; 409 if one is already running"""
    if coordinator.is_running:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Refresh already in progress ({coordinator.state.value})"
        )

    target = coordinator.inactive_table().name
    logger.info(f"Manual refresh requested into {target}")
    background_tasks.add_task(coordinator.try_refresh)

    return RefreshAcceptedResponse(message="Refresh started", target_table=target)
