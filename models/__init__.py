"""
SQLAlchemy table definitions.

Models:
    base: Shared metadata and enums (RefreshState, RefreshStatus)
    crime_record: Table factory for the blue/green crime record tables

Database Schema:
    The blue and green tables are built from one factory at runtime because
    their names come from configuration. They are plain Core tables; rows are
    only ever bulk inserted and bulk deleted, never individually updated.

Usage:
    from models.crime_record import crime_record_table, create_tables
    from models.base import RefreshState

Example:
    await create_tables(engine, [settings.BLUE_TABLE, settings.GREEN_TABLE])
"""

__all__ = [
    "metadata",
    "RefreshState",
    "RefreshStatus",
    "crime_record_table",
    "create_tables",
]
