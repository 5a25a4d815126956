"""
Map raw CSV rows into typed crime records
"""

from typing import Optional, Sequence
from datetime import datetime, timezone
import logging
import math
import re

from schemas.record import Record

logger = logging.getLogger(__name__)

EXPECTED_COLUMN_COUNT = 14

DATE_ONLY_FORMAT = "%m/%d/%Y"
DATE_TIME_FORMAT = "%m/%d/%Y %H%M"

# strptime accepts single-digit fields; the source format does not
_DATE_ONLY_SHAPE = re.compile(r"^\d{2}/\d{2}/\d{4}$")
_DATE_TIME_SHAPE = re.compile(r"^\d{2}/\d{2}/\d{4} \d{4}$")
_FLOAT_SHAPE = re.compile(r"^[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?\Z")
_INT_SHAPE = re.compile(r"^[+-]?[0-9]+\Z")

SENTINEL_TIMESTAMP = datetime(1900, 1, 1, 0, 0, 0, tzinfo=timezone.utc)


class RecordMapper:
    """
    Convert one 14-column source row into a Record.

    Never raises for bad data:
    - Wrong column count: logs one error, returns ``Record.empty()``
    - Bad date or date-time: logs the raw value, uses SENTINEL_TIMESTAMP
    - Empty or non-numeric optional number: the field is ``None``
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def map(self, row: Sequence[str], logger: Optional[logging.Logger] = None) -> Record:
        log = logger or self.logger

        if len(row) != EXPECTED_COLUMN_COUNT:
            log.error(
                f"Bad data format - expected {EXPECTED_COLUMN_COUNT} columns, got {len(row)}",
                extra={"row_length": len(row), "expected_length": EXPECTED_COLUMN_COUNT}
            )
            return Record.empty()

        return Record(
            address=row[0],
            case_number=row[1],
            crime_against=row[2],
            neighborhood=row[3],
            occur_datetime=parse_date_time(row[4], row[5], log),
            offense_category=row[6],
            offense_type=row[7],
            open_data_lat=parse_float(row[8]),
            open_data_lon=parse_float(row[9]),
            open_data_x=parse_float(row[10]),
            open_data_y=parse_float(row[11]),
            report_date=parse_date(row[12], log),
            offense_count=parse_int(row[13]),
        )


def map_row(row: Sequence[str], logger: Optional[logging.Logger] = None) -> Record:
    """Map a single row with a default RecordMapper"""
    return _default_mapper.map(row, logger)


def parse_date(value: str, log: logging.Logger) -> datetime:
    """
    Parse a "MM/DD/YYYY" date as midnight UTC.

    Falls back to SENTINEL_TIMESTAMP (and logs the raw value) when the string
    is empty or malformed.
    """
    try:
        if not _DATE_ONLY_SHAPE.match(value):
            raise ValueError("does not match format 'MM/DD/YYYY'")
        return datetime.strptime(value, DATE_ONLY_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError as e:
        log.error(
            "Failed to parse date; using default value '01/01/1900'",
            extra={"date": value, "error": str(e)}
        )
        return SENTINEL_TIMESTAMP


def parse_date_time(date_value: str, time_value: str, log: logging.Logger) -> datetime:
    """
    Parse a "MM/DD/YYYY" date plus a four digit "HHMM" time as UTC.

    Falls back to SENTINEL_TIMESTAMP (and logs the raw values) when either
    part is empty or malformed.
    """
    combined = f"{date_value} {time_value}"
    try:
        if not _DATE_TIME_SHAPE.match(combined):
            raise ValueError("does not match format 'MM/DD/YYYY HHMM'")
        return datetime.strptime(combined, DATE_TIME_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError as e:
        log.error(
            "Failed to parse date and time; using default value '01/01/1900 00:00'",
            extra={"date": date_value, "time": time_value, "error": str(e)}
        )
        return SENTINEL_TIMESTAMP


def parse_float(value: str) -> Optional[float]:
    """Parse a float; empty, malformed or non-finite input is absent"""
    if not value or not _FLOAT_SHAPE.match(value):
        return None
    try:
        result = float(value)
    except (ValueError, TypeError):
        return None
    if not math.isfinite(result):
        return None
    return result


def parse_int(value: str) -> Optional[int]:
    """Parse an integer; empty or malformed input is absent"""
    if not value or not _INT_SHAPE.match(value):
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


_default_mapper = RecordMapper()
