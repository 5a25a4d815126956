"""
Pydantic schemas for API request/response models
"""

from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
from datetime import datetime, timezone
from models.base import RefreshState
from schemas.refresh import RefreshResult


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Table Schemas
# ============================================================================

class ActiveTableResponse(BaseModel):
    """Which physical table currently holds authoritative data"""
    table_name: str
    last_updated: Optional[datetime] = Field(
        None, description="Time of the last successful load; null until the first one"
    )
    has_data: bool

    class Config:
        json_schema_extra = {
            "example": {
                "table_name": "crime_records_green",
                "last_updated": "2024-01-15T10:00:00Z",
                "has_data": True
            }
        }


class TableInfo(BaseModel):
    """State of one blue/green table"""
    name: str
    color: str
    last_updated: Optional[datetime] = None
    has_data: bool
    active: bool
    row_count: Optional[int] = None


class TablesResponse(BaseModel):
    active_table: str
    tables: List[TableInfo]


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Health check response model"""
    status: str = Field(..., description="Overall system status: healthy, degraded, unhealthy")
    timestamp: datetime = Field(default_factory=_utcnow)
    database_connected: bool
    active_table: ActiveTableResponse
    refresh_state: RefreshState
    last_refresh: Optional[RefreshResult] = None

    class Config:
        use_enum_values = True
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "timestamp": "2024-01-15T10:30:00Z",
                "database_connected": True,
                "active_table": {
                    "table_name": "crime_records_green",
                    "last_updated": "2024-01-15T10:00:00Z",
                    "has_data": True
                },
                "refresh_state": "idle"
            }
        }


# ============================================================================
# Data Query Schemas
# ============================================================================

class CrimeRecordResponse(BaseModel):
    """One row of the active crime record table"""
    id: int
    address: str
    case_number: str
    crime_against: str
    neighborhood: str
    occur_datetime: Optional[datetime]
    offense_category: str
    offense_type: str
    open_data_lat: Optional[float]
    open_data_lon: Optional[float]
    open_data_x: Optional[float]
    open_data_y: Optional[float]
    report_date: Optional[datetime]
    offense_count: Optional[int]

    class Config:
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": 1,
                "address": "123 Main St",
                "case_number": "24-000001",
                "crime_against": "Person",
                "neighborhood": "Downtown",
                "occur_datetime": "2024-01-05T14:30:00Z",
                "offense_category": "Assault Offenses",
                "offense_type": "Simple Assault",
                "open_data_lat": 45.5,
                "open_data_lon": -122.6,
                "open_data_x": None,
                "open_data_y": None,
                "report_date": "2024-01-06T00:00:00Z",
                "offense_count": 1
            }
        }


class PaginationMetadata(BaseModel):
    """Pagination metadata"""
    total_items: int
    total_pages: int
    current_page: int
    page_size: int
    has_next: bool
    has_previous: bool


class DataResponse(BaseModel):
    """Paginated data response"""
    table_name: str
    has_data: bool
    items: List[CrimeRecordResponse]
    pagination: PaginationMetadata
    filters_applied: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Statistics Schemas
# ============================================================================

class StatsResponse(BaseModel):
    """Refresh statistics response model"""
    timestamp: datetime = Field(default_factory=_utcnow)

    total_cycles: int
    successful_cycles: int
    failed_cycles: int
    skipped_ticks: int = 0

    last_success_at: Optional[datetime]
    last_failure_at: Optional[datetime]
    avg_duration_seconds: Optional[float]

    active_table: ActiveTableResponse
    recent_runs: List[RefreshResult] = Field(default_factory=list)


# ============================================================================
# Refresh Trigger Schemas
# ============================================================================

class RefreshAcceptedResponse(BaseModel):
    message: str
    target_table: str


# ============================================================================
# Error Response Schema
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response"""
    error: str
    detail: Optional[str] = None
    timestamp: datetime = Field(default_factory=_utcnow)
