"""
Remote CSV fetcher with timeout, retry and backoff.

This module downloads a published CSV dataset and tokenizes it into raw rows:
- Exponential backoff retry logic for transient failures
- Rate limiting protection (honours Retry-After)
- Non-retryable handling of 401/403/404
- Raw row shapes are preserved so the record mapper can reject bad rows
"""

import asyncio
import csv
import io
from typing import List, Optional

import httpx

from ingestion.base import RowSource
from core.exceptions import (
    CSVExtractionError,
    NetworkError,
    RateLimitError,
    AuthenticationError,
    ResourceNotFoundError,
)
import logging

logger = logging.getLogger(__name__)


class CSVFetcher(RowSource):
    """
    Fetch CSV files over HTTP(S) and return their rows.

    Attributes:
        timeout: Request timeout in seconds (default: 30.0)
        max_retries: Total attempts per URL before giving up (default: 3)
        retry_delay: Initial retry delay in seconds, doubled per attempt (default: 1.0)
    """

    def __init__(
        self,
        timeout: float = 30.0,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        headers: Optional[dict] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.timeout = timeout
        self.transport = transport
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.headers = headers or {"Accept": "text/csv,text/plain,*/*;q=0.1"}

    async def fetch_rows(self, url: str) -> List[List[str]]:
        """
        Download ``url`` and return every CSV row, header included.

        Raises:
            NetworkError: Timeouts, transport errors or 5xx after all retries
            RateLimitError: HTTP 429 on every attempt
            AuthenticationError: HTTP 401/403
            ResourceNotFoundError: HTTP 404
            CSVExtractionError: Undecodable or malformed CSV payload
        """
        logger.info(f"Fetching CSV from {url}", extra={"url": url})

        async with httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True, transport=self.transport
        ) as client:
            response = await self._make_request_with_retry(client, url)

        rows = self._parse_csv(url, response.content)
        logger.info(
            f"Fetched {len(rows)} rows from {url}",
            extra={"url": url, "rows": len(rows)}
        )
        return rows

    async def _make_request_with_retry(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        """
        Make HTTP request with retry logic and exponential backoff.

        Raises:
            CSVExtractionError: For non-retryable errors
            NetworkError: For retryable network errors after max retries
        """
        for attempt in range(self.max_retries):
            last_attempt = attempt == self.max_retries - 1
            delay = self.retry_delay * (2 ** attempt)

            try:
                logger.debug(f"Request attempt {attempt + 1}/{self.max_retries} to {url}")

                response = await client.get(url, headers=self.headers, timeout=self.timeout)

                if response.status_code in (401, 403):
                    raise AuthenticationError(
                        f"Authentication failed for {url}",
                        context={"status_code": response.status_code, "url": url}
                    )

                if response.status_code == 404:
                    raise ResourceNotFoundError(
                        f"Resource not found: {url}",
                        context={"status_code": 404, "url": url}
                    )

                if response.status_code == 429:
                    retry_after = self._retry_after(response, delay)
                    if not last_attempt:
                        logger.warning(f"Rate limited. Retrying after {retry_after} seconds")
                        await asyncio.sleep(retry_after)
                        continue
                    raise RateLimitError(
                        f"Rate limit exceeded for {url}",
                        context={"status_code": 429, "url": url, "retry_count": attempt + 1},
                        retry_after=retry_after
                    )

                if response.status_code >= 500:
                    if not last_attempt:
                        logger.warning(
                            f"Server error {response.status_code}. "
                            f"Retrying in {delay} seconds (attempt {attempt + 1}/{self.max_retries})"
                        )
                        await asyncio.sleep(delay)
                        continue
                    raise NetworkError(
                        f"Server error after {self.max_retries} attempts",
                        context={
                            "status_code": response.status_code,
                            "url": url,
                            "retry_count": attempt + 1,
                            "response_body": response.text[:500]
                        }
                    )

                response.raise_for_status()
                return response

            except httpx.TimeoutException as e:
                if not last_attempt:
                    logger.warning(f"Request timeout. Retrying in {delay} seconds")
                    await asyncio.sleep(delay)
                    continue
                raise NetworkError(
                    f"Request timeout after {self.max_retries} attempts",
                    context={"url": url, "timeout": self.timeout, "retry_count": attempt + 1},
                    original_exception=e
                )

            except httpx.TransportError as e:
                if not last_attempt:
                    logger.warning(f"Network error. Retrying in {delay} seconds: {e}")
                    await asyncio.sleep(delay)
                    continue
                raise NetworkError(
                    f"Network error after {self.max_retries} attempts",
                    context={"url": url, "retry_count": attempt + 1},
                    original_exception=e
                )

            except httpx.HTTPStatusError as e:
                raise CSVExtractionError(
                    f"Unexpected HTTP status {e.response.status_code} from {url}",
                    context={"status_code": e.response.status_code, "url": url},
                    original_exception=e
                )

        raise NetworkError(
            "Max retries exceeded",
            context={"url": url, "retry_count": self.max_retries}
        )

    def _retry_after(self, response: httpx.Response, default: float) -> float:
        try:
            return float(response.headers.get("Retry-After", default))
        except ValueError:
            return default

    def _parse_csv(self, url: str, content: bytes) -> List[List[str]]:
        """Tokenize the payload, skipping blank lines but keeping ragged rows"""
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise CSVExtractionError(
                "CSV payload is not valid UTF-8",
                context={"url": url},
                original_exception=e
            )

        try:
            reader = csv.reader(io.StringIO(text, newline=""), strict=True)
            return [row for row in reader if row]
        except csv.Error as e:
            raise CSVExtractionError(
                "Malformed CSV payload",
                context={"url": url, "line_number": reader.line_num},
                original_exception=e
            )
