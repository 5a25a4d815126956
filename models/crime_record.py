from typing import Iterable, Optional
from sqlalchemy import (
    Table, Column, BigInteger, Integer, String, Float, DateTime, Index, MetaData
)
from sqlalchemy.ext.asyncio import AsyncEngine
from models.base import metadata as default_metadata
import logging

logger = logging.getLogger(__name__)


def crime_record_table(name: str, metadata: Optional[MetaData] = None) -> Table:
    """
    Build (or fetch the already-registered) table definition for one of the
    blue/green crime record tables.

    Both tables share this exact schema; only the name differs. There is no
    natural key in the source data, so rows only get a surrogate id.

    Field Mapping (source column -> table column):
    - Address -> address
    - CaseNumber -> case_number
    - CrimeAgainst -> crime_against
    - Neighborhood -> neighborhood
    - OccurDate + OccurTime -> occur_datetime
    - OffenseCategory -> offense_category
    - OffenseType -> offense_type
    - OpenDataLat / OpenDataLon -> open_data_lat / open_data_lon
    - OpenDataX / OpenDataY -> open_data_x / open_data_y
    - ReportDate -> report_date
    - OffenseCount -> offense_count
    """
    metadata = metadata if metadata is not None else default_metadata

    if name in metadata.tables:
        return metadata.tables[name]

    return Table(
        name,
        metadata,
        Column("id", BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True),

        Column("address", String(255), nullable=False, default=""),
        Column("case_number", String(50), nullable=False, default=""),
        Column("crime_against", String(50), nullable=False, default=""),
        Column("neighborhood", String(100), nullable=False, default=""),
        Column("occur_datetime", DateTime(timezone=True), nullable=True),
        Column("offense_category", String(100), nullable=False, default=""),
        Column("offense_type", String(100), nullable=False, default=""),

        # Absent values stay NULL, never 0
        Column("open_data_lat", Float, nullable=True),
        Column("open_data_lon", Float, nullable=True),
        Column("open_data_x", Float, nullable=True),
        Column("open_data_y", Float, nullable=True),

        Column("report_date", DateTime(timezone=True), nullable=True),
        Column("offense_count", Integer, nullable=True),

        Index(f"idx_{name}_case_number", "case_number"),
        Index(f"idx_{name}_neighborhood", "neighborhood"),
        Index(f"idx_{name}_occur_datetime", "occur_datetime"),
    )


async def create_tables(engine: AsyncEngine, names: Iterable[str]):
    """Create the given crime record tables if they do not exist yet"""
    tables = [crime_record_table(name) for name in names]

    async with engine.begin() as conn:
        await conn.run_sync(default_metadata.create_all, tables=tables)

    logger.info(f"Ensured tables exist: {', '.join(t.name for t in tables)}")
