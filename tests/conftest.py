"""
Pytest configuration and fixtures
"""

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool
from typing import Dict, List

from ingestion.base import RowSource
from models.crime_record import create_tables

# In-memory SQLite shared over a single connection
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

BLUE = "crime_records_blue"
GREEN = "crime_records_green"

HEADER = [
    "Address", "CaseNumber", "CrimeAgainst", "Neighborhood", "OccurDate",
    "OccurTime", "OffenseCategory", "OffenseType", "OpenDataLat", "OpenDataLon",
    "OpenDataX", "OpenDataY", "ReportDate", "OffenseCount",
]


class FakeRowSource(RowSource):
    """Serves canned rows per URL, or raises the configured exception"""

    def __init__(self, rows_by_url: Dict[str, List[List[str]]] = None, error: Exception = None):
        self.rows_by_url = rows_by_url or {}
        self.error = error
        self.calls: List[str] = []

    async def fetch_rows(self, url: str) -> List[List[str]]:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.rows_by_url[url]


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create test database engine with both tables"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    await create_tables(engine, [BLUE, GREEN])

    yield engine

    await engine.dispose()


@pytest.fixture
def csv_header():
    return list(HEADER)


@pytest.fixture
def sample_row():
    """A complete row with the projected X/Y columns left empty"""
    return [
        "123 Main St", "24-000001", "Person", "Downtown", "01/05/2024", "1430",
        "Assault", "Simple Assault", "45.5", "-122.6", "", "", "01/06/2024", "1",
    ]


@pytest.fixture
def valid_rows():
    """Three well-formed rows"""
    return [
        [
            "123 Main St", "24-000001", "Person", "Downtown", "01/05/2024", "1430",
            "Assault", "Simple Assault", "45.5", "-122.6", "", "", "01/06/2024", "1",
        ],
        [
            "9 Oak Ave", "24-000002", "Property", "Hillside", "02/10/2024", "0915",
            "Larceny", "Theft From Motor Vehicle", "45.51", "-122.61", "7650000.5",
            "680000.25", "02/10/2024", "2",
        ],
        [
            "55 Pine Rd", "24-000003", "Society", "Riverside", "03/15/2024", "2359",
            "Drug Offenses", "Drug/Narcotic Violations", "", "", "", "",
            "03/16/2024", "",
        ],
    ]


@pytest.fixture
def malformed_row():
    """Row with too few columns"""
    return ["123 Main St", "24-000009", "Person"]


@pytest.fixture
def source_rows(csv_header, valid_rows, malformed_row):
    """One CSV source: header, three valid rows and one malformed row"""
    return [csv_header] + valid_rows + [malformed_row]


@pytest.fixture
def fake_source():
    """Factory for FakeRowSource"""
    return FakeRowSource
