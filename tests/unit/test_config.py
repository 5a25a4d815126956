"""
Unit tests for settings validation and logging setup
"""

import json
import logging
import pytest
from pydantic import ValidationError
from core.config import Settings, parse_duration
from core.exceptions import ConfigurationError
from core.logging import JSONFormatter, setup_logging


class TestParseDuration:

    @pytest.mark.parametrize("value,expected", [
        ("90s", 90.0),
        ("15m", 900.0),
        ("24h", 86400.0),
        ("1h30m", 5400.0),
        ("45", 45.0),
        ("0.5h", 1800.0),
    ])
    def test_valid_durations(self, value, expected):
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "10x", "h1", "1h 30m"])
    def test_invalid_durations(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)


class TestSettings:

    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.BLUE_TABLE == "crime_records_blue"
        assert settings.GREEN_TABLE == "crime_records_green"
        assert settings.check_interval_seconds == 86400.0
        assert settings.LOG_FORMAT == "text"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("CHECK_INTERVAL", "15m")
        monkeypatch.setenv("CSV_URLS", '["https://a.example.com/x.csv", "https://b.example.com/y.csv"]')
        monkeypatch.setenv("LOG_FORMAT", "JSON")

        settings = Settings(_env_file=None)

        assert settings.check_interval_seconds == 900.0
        assert settings.require_sources() == [
            "https://a.example.com/x.csv", "https://b.example.com/y.csv"
        ]
        assert settings.LOG_FORMAT == "json"

    def test_same_blue_and_green_rejected(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, BLUE_TABLE="records", GREEN_TABLE="records")

    @pytest.mark.parametrize("name", ["", "1table", "drop table;", "a-b"])
    def test_invalid_table_name_rejected(self, name):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, BLUE_TABLE=name)

    @pytest.mark.parametrize("field,value", [
        ("CHECK_INTERVAL", "0s"),
        ("CHECK_INTERVAL", "soon"),
        ("CHECK_INTERVAL", "nan"),
        ("CHECK_INTERVAL", "inf"),
        ("CHECK_INTERVAL", "-5"),
        ("HTTP_TIMEOUT", 0),
        ("HTTP_TIMEOUT", float("nan")),
        ("HTTP_RETRIES", 0),
        ("LOG_FORMAT", "xml"),
    ])
    def test_invalid_values_rejected(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_require_sources_without_urls(self):
        settings = Settings(_env_file=None, CSV_URLS=[])

        with pytest.raises(ConfigurationError):
            settings.require_sources()

    def test_redacted_database_url(self):
        settings = Settings(
            _env_file=None,
            DATABASE_URL="postgresql+asyncpg://user:secret@db:5432/crime"
        )

        assert settings.redacted_database_url() == "db:5432/crime"


class TestLogging:

    def test_json_formatter_includes_extra_fields(self):
        record = logging.LogRecord(
            "tests", logging.ERROR, __file__, 1, "Bad data format", None, None
        )
        record.row_length = 3

        data = json.loads(JSONFormatter().format(record))

        assert data["message"] == "Bad data format"
        assert data["level"] == "ERROR"
        assert data["row_length"] == 3

    def test_invalid_log_format(self):
        with pytest.raises(ConfigurationError):
            setup_logging("INFO", "xml")
