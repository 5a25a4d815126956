"""
Refresh pipeline components for the blue/green crime record tables.

Modules:
    base: Abstract ports for row sources and dataset loaders
    coordinator: Blue/green descriptor pair and the refresh cycle
    scheduler: APScheduler integration for periodic refresh

Subpackages:
    extractors: HTTP CSV fetcher with retry logic
    transformers: Raw CSV row to Record mapping
    loaders: Transactional full-table reload

Architecture:
    Every cycle fetches all configured CSV sources, maps rows to records
    (unparseable rows are logged and discarded), replaces the contents of
    the inactive table in one transaction and then promotes it by stamping
    its last-updated time. A failed fetch or load never promotes.

Usage:
    from ingestion.coordinator import RefreshCoordinator
    from ingestion.scheduler import RefreshScheduler

    coordinator = RefreshCoordinator.from_settings(settings, engine)
    result = await coordinator.refresh()

    print(f"Loaded {result.records_loaded} records into {result.target_table}")
"""

__all__ = [
    "RowSource",
    "DatasetLoader",
    "RefreshCoordinator",
    "RefreshScheduler",
    "CSVFetcher",
    "RecordMapper",
    "TableLoader",
]
