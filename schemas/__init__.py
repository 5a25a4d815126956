"""
Pydantic schemas for data validation and serialization.

Schemas:
    record: The immutable Record produced by the record mapper
    refresh: RefreshResult describing one refresh cycle
    api: API endpoint request/response schemas

Usage:
    from schemas.record import Record
    from schemas.refresh import RefreshResult
    from schemas.api import DataResponse, HealthCheckResponse

Example:
    record = Record(case_number="24-000001", neighborhood="Downtown")
    assert record.open_data_x is None   # absent, not zero
    assert not record.is_empty
"""

__all__ = [
    "Record",
    "RefreshResult",
    "ActiveTableResponse",
    "DataResponse",
    "HealthCheckResponse",
    "StatsResponse",
]
