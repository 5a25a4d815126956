"""
End-to-end refresh cycles: HTTP CSV -> mapper -> SQLite -> promotion
"""

import logging
import httpx
import pytest
from sqlalchemy import select
from core.config import Settings
from core.exceptions import ConfigurationError
from ingestion.coordinator import EPOCH, RefreshCoordinator
from ingestion.extractors.csv_extractor import CSVFetcher
from ingestion.loaders.table_loader import TableLoader
from ingestion.scheduler import RefreshScheduler
from models.base import RefreshStatus
from models.crime_record import crime_record_table

pytestmark = pytest.mark.integration

BLUE = "crime_records_blue"
GREEN = "crime_records_green"
URL = "https://data.example.com/crime.csv"

HEADER_LINE = (
    "Address,CaseNumber,CrimeAgainst,Neighborhood,OccurDate,OccurTime,"
    "OffenseCategory,OffenseType,OpenDataLat,OpenDataLon,OpenDataX,OpenDataY,"
    "ReportDate,OffenseCount"
)

FIRST_DATASET = "\r\n".join([
    HEADER_LINE,
    "123 Main St,24-000001,Person,Downtown,01/05/2024,1430,Assault,Simple Assault,45.5,-122.6,,,01/06/2024,1",
    "9 Oak Ave,24-000002,Property,Hillside,02/10/2024,0915,Larceny,Theft,45.51,-122.61,,,02/10/2024,2",
    "55 Pine Rd,24-000003,Society,Riverside,03/15/2024,2359,Drug Offenses,Drug Violations,,,,,03/16/2024,",
    "truncated,row",
]) + "\r\n"

SECOND_DATASET = "\r\n".join([
    HEADER_LINE,
    "1 River Rd,24-000100,Person,Riverside,04/01/2024,0100,Assault,Aggravated Assault,45.4,-122.5,,,04/01/2024,1",
    "2 River Rd,24-000101,Property,Riverside,04/02/2024,,Burglary,Burglary,45.4,-122.5,,,04/02/2024,1",
]) + "\r\n"


class DatasetServer:
    """MockTransport handler serving a swappable payload"""

    def __init__(self, body):
        self.body = body
        self.status_code = 200
        self.requests = 0

    def __call__(self, request):
        self.requests += 1
        if self.status_code != 200:
            return httpx.Response(self.status_code)
        return httpx.Response(200, content=self.body.encode("utf-8"))


def make_coordinator(engine, server):
    fetcher = CSVFetcher(
        timeout=5.0,
        max_retries=2,
        retry_delay=0,
        transport=httpx.MockTransport(server)
    )
    return RefreshCoordinator(
        blue_table=BLUE,
        green_table=GREEN,
        sources=[URL],
        fetcher=fetcher,
        loader=TableLoader(engine, batch_size=2)
    )


async def case_numbers(engine, table_name):
    table = crime_record_table(table_name)
    async with engine.connect() as conn:
        result = await conn.execute(select(table.c.case_number).order_by(table.c.case_number))
        return [row[0] for row in result]


@pytest.mark.asyncio
async def test_full_refresh_cycle(test_engine, caplog):
    server = DatasetServer(FIRST_DATASET)
    coordinator = make_coordinator(test_engine, server)

    with caplog.at_level(logging.INFO):
        result = await coordinator.refresh()

    assert result.status == RefreshStatus.SUCCESS
    assert result.records_loaded == 3
    assert result.records_discarded == 1
    assert coordinator.last_updated_table() == GREEN
    assert await case_numbers(test_engine, GREEN) == ["24-000001", "24-000002", "24-000003"]
    assert await case_numbers(test_engine, BLUE) == []
    assert coordinator.tables()[0].last_updated == EPOCH


@pytest.mark.asyncio
async def test_second_cycle_swaps_to_blue(test_engine):
    server = DatasetServer(FIRST_DATASET)
    coordinator = make_coordinator(test_engine, server)
    await coordinator.refresh()

    server.body = SECOND_DATASET
    result = await coordinator.refresh()

    assert result.target_table == BLUE
    assert coordinator.last_updated_table() == BLUE
    # the previously active table keeps its data until it is the target again
    assert await case_numbers(test_engine, GREEN) == ["24-000001", "24-000002", "24-000003"]
    assert await case_numbers(test_engine, BLUE) == ["24-000100", "24-000101"]


@pytest.mark.asyncio
async def test_failed_fetch_keeps_serving_previous_table(test_engine, caplog):
    """Server errors after retries leave the active table and its rows untouched"""
    server = DatasetServer(FIRST_DATASET)
    coordinator = make_coordinator(test_engine, server)
    await coordinator.refresh()
    before = coordinator.tables()

    server.status_code = 503
    with caplog.at_level(logging.ERROR):
        result = await coordinator.refresh()

    assert result.status == RefreshStatus.FAILED
    assert result.error_type == "NetworkError"
    assert coordinator.tables() == before
    assert coordinator.last_updated_table() == GREEN
    assert await case_numbers(test_engine, BLUE) == []
    assert any("Refresh cycle failed" in r.getMessage() for r in caplog.records)


@pytest.mark.asyncio
async def test_scheduler_job_runs_cycle(test_engine):
    server = DatasetServer(FIRST_DATASET)
    coordinator = make_coordinator(test_engine, server)
    scheduler = RefreshScheduler(coordinator, interval_seconds=3600, run_on_startup=False)

    result = await scheduler.run_refresh_job()

    assert result.succeeded
    assert server.requests == 1
    assert coordinator.last_updated_table() == GREEN


@pytest.mark.asyncio
async def test_from_settings_wires_components(test_engine):
    settings = Settings(
        _env_file=None,
        CSV_URLS=[URL],
        BLUE_TABLE=BLUE,
        GREEN_TABLE=GREEN,
        HTTP_RETRIES=2,
        ETL_BATCH_SIZE=100
    )

    coordinator = RefreshCoordinator.from_settings(settings, test_engine)

    assert coordinator.sources == [URL]
    assert isinstance(coordinator.fetcher, CSVFetcher)
    assert coordinator.fetcher.max_retries == 2
    assert coordinator.loader.batch_size == 100


@pytest.mark.asyncio
async def test_from_settings_requires_sources(test_engine):
    settings = Settings(_env_file=None, CSV_URLS=[])

    with pytest.raises(ConfigurationError):
        RefreshCoordinator.from_settings(settings, test_engine)
