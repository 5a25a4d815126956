"""
Data retrieval endpoint with pagination and filtering over the active table
"""

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlalchemy import select, func, and_
from api.dependencies import get_coordinator, get_engine
from api.middleware import request_id as current_request_id
from ingestion.coordinator import RefreshCoordinator
from models.crime_record import crime_record_table
from schemas.api import DataResponse, CrimeRecordResponse, PaginationMetadata
from typing import Optional
from datetime import datetime
import time
import math
import logging

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Data"])


@router.get("/data", response_model=DataResponse)
async def get_data(
    request: Request,
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=1000, description="Items per page"),
    neighborhood: Optional[str] = Query(None, description="Filter by neighborhood"),
    offense_category: Optional[str] = Query(None, description="Filter by offense category"),
    crime_against: Optional[str] = Query(None, description="Filter by crime against"),
    case_number: Optional[str] = Query(None, description="Filter by case number"),
    occurred_after: Optional[datetime] = Query(None, description="Occurred at or after"),
    occurred_before: Optional[datetime] = Query(None, description="Occurred at or before"),
    engine: AsyncEngine = Depends(get_engine),
    coordinator: RefreshCoordinator = Depends(get_coordinator)
):
    """
    Retrieve paginated and filtered records from the active table.

    The active table is resolved once per request. Before the first
    successful refresh this returns an empty page with ``has_data: false``.
    """
    start_time = time.time()
    request_id = current_request_id(request)

    active = coordinator.active_table()

    logger.info(
        f"[{request_id}] GET /data - table={active.name}, page={page}, page_size={page_size}, "
        f"filters: neighborhood={neighborhood}, offense_category={offense_category}"
    )

    filters_applied = {k: v for k, v in {
        "neighborhood": neighborhood,
        "offense_category": offense_category,
        "crime_against": crime_against,
        "case_number": case_number,
        "occurred_after": occurred_after,
        "occurred_before": occurred_before,
    }.items() if v is not None}

    if not active.has_data:
        return DataResponse(
            table_name=active.name,
            has_data=False,
            items=[],
            pagination=PaginationMetadata(
                current_page=page,
                page_size=page_size,
                total_items=0,
                total_pages=0,
                has_next=False,
                has_previous=page > 1
            ),
            filters_applied=filters_applied
        )

    table = crime_record_table(active.name)

    # Build filters
    filters = []

    if neighborhood:
        filters.append(table.c.neighborhood == neighborhood)

    if offense_category:
        filters.append(table.c.offense_category == offense_category)

    if crime_against:
        filters.append(table.c.crime_against == crime_against)

    if case_number:
        filters.append(table.c.case_number == case_number)

    if occurred_after:
        filters.append(table.c.occur_datetime >= occurred_after)

    if occurred_before:
        filters.append(table.c.occur_datetime <= occurred_before)

    query = select(table)
    count_query = select(func.count()).select_from(table)
    if filters:
        query = query.where(and_(*filters))
        count_query = count_query.where(and_(*filters))

    offset = (page - 1) * page_size
    query = query.order_by(table.c.occur_datetime.desc(), table.c.id).offset(offset).limit(page_size)

    query_start = time.time()
    async with engine.connect() as conn:
        total_items = (await conn.execute(count_query)).scalar_one()
        rows = (await conn.execute(query)).mappings().all()
    query_time_ms = (time.time() - query_start) * 1000

    total_pages = math.ceil(total_items / page_size) if total_items > 0 else 0
    items = [CrimeRecordResponse.model_validate(dict(row)) for row in rows]

    api_latency_ms = (time.time() - start_time) * 1000
    logger.info(
        f"[{request_id}] Returned {len(items)} records from {active.name} "
        f"(query: {query_time_ms:.2f}ms, total: {api_latency_ms:.2f}ms)"
    )

    return DataResponse(
        table_name=active.name,
        has_data=True,
        items=items,
        pagination=PaginationMetadata(
            current_page=page,
            page_size=page_size,
            total_items=total_items,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_previous=page > 1
        ),
        filters_applied=filters_applied
    )
