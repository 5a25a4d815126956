"""
Unit tests for the HTTP CSV fetcher
"""

import httpx
import pytest
from ingestion.extractors.csv_extractor import CSVFetcher
from core.exceptions import (
    AuthenticationError,
    CSVExtractionError,
    NetworkError,
    RateLimitError,
    ResourceNotFoundError,
)

URL = "https://data.example.com/crime.csv"

CSV_BODY = (
    "Address,CaseNumber,CrimeAgainst,Neighborhood,OccurDate,OccurTime,"
    "OffenseCategory,OffenseType,OpenDataLat,OpenDataLon,OpenDataX,OpenDataY,"
    "ReportDate,OffenseCount\r\n"
    '"123 Main St, Apt 2",24-000001,Person,Downtown,01/05/2024,1430,'
    "Assault,Simple Assault,45.5,-122.6,,,01/06/2024,1\r\n"
    "\r\n"
    "short,row\r\n"
)


def make_fetcher(handler, max_retries=3):
    return CSVFetcher(
        timeout=5.0,
        max_retries=max_retries,
        retry_delay=0,
        transport=httpx.MockTransport(handler)
    )


class TestCSVFetcher:
    """Test CSV fetcher functionality"""

    @pytest.mark.asyncio
    async def test_fetch_rows_success(self):
        """Test rows are returned with header and ragged rows intact"""
        def handler(request):
            return httpx.Response(200, content=CSV_BODY.encode("utf-8"))

        rows = await make_fetcher(handler).fetch_rows(URL)

        assert len(rows) == 3
        assert rows[0][0] == "Address"
        assert len(rows[0]) == 14
        assert rows[1][0] == "123 Main St, Apt 2"
        assert rows[1][10] == ""
        assert rows[2] == ["short", "row"]

    @pytest.mark.asyncio
    async def test_fetch_rows_strips_bom(self):
        def handler(request):
            return httpx.Response(200, content=b"\xef\xbb\xbfAddress,CaseNumber\r\na,b\r\n")

        rows = await make_fetcher(handler).fetch_rows(URL)

        assert rows[0] == ["Address", "CaseNumber"]

    @pytest.mark.asyncio
    async def test_retries_server_errors_then_succeeds(self):
        """Test 5xx responses are retried"""
        calls = []

        def handler(request):
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, content=b"a,b\r\n")

        rows = await make_fetcher(handler).fetch_rows(URL)

        assert len(calls) == 3
        assert rows == [["a", "b"]]

    @pytest.mark.asyncio
    async def test_server_error_after_max_retries(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500, text="boom")

        with pytest.raises(NetworkError) as exc_info:
            await make_fetcher(handler, max_retries=2).fetch_rows(URL)

        assert len(calls) == 2
        assert exc_info.value.context["status_code"] == 500

    @pytest.mark.asyncio
    async def test_timeout_after_max_retries(self):
        """Test timeouts surface as a retryable NetworkError"""
        calls = []

        def handler(request):
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(NetworkError) as exc_info:
            await make_fetcher(handler).fetch_rows(URL)

        assert len(calls) == 3
        assert exc_info.value.context["retry_count"] == 3
        assert isinstance(exc_info.value.original_exception, httpx.TimeoutException)

    @pytest.mark.asyncio
    async def test_connection_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(NetworkError):
            await make_fetcher(handler, max_retries=1).fetch_rows(URL)

    @pytest.mark.asyncio
    async def test_not_found_is_not_retried(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        with pytest.raises(ResourceNotFoundError):
            await make_fetcher(handler).fetch_rows(URL)

        assert len(calls) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403])
    async def test_auth_errors(self, status_code):
        def handler(request):
            return httpx.Response(status_code)

        with pytest.raises(AuthenticationError):
            await make_fetcher(handler).fetch_rows(URL)

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(429, headers={"Retry-After": "0"})

        with pytest.raises(RateLimitError) as exc_info:
            await make_fetcher(handler, max_retries=2).fetch_rows(URL)

        assert len(calls) == 2
        assert exc_info.value.retry_after == 0

    @pytest.mark.asyncio
    async def test_unexpected_client_error(self):
        def handler(request):
            return httpx.Response(418)

        with pytest.raises(CSVExtractionError) as exc_info:
            await make_fetcher(handler).fetch_rows(URL)

        assert exc_info.value.context["status_code"] == 418

    @pytest.mark.asyncio
    async def test_invalid_encoding(self):
        def handler(request):
            return httpx.Response(200, content=b"\xff\xfe\x00bad")

        with pytest.raises(CSVExtractionError):
            await make_fetcher(handler).fetch_rows(URL)

    @pytest.mark.asyncio
    async def test_malformed_csv(self):
        """Unterminated quote is a hard parse error in strict mode"""
        def handler(request):
            return httpx.Response(200, content=b'a,"b\r\nc,d')

        with pytest.raises(CSVExtractionError):
            await make_fetcher(handler).fetch_rows(URL)
