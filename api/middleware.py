"""
Per-request correlation id and latency headers
"""

import logging
import time
import uuid
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"
LATENCY_HEADER = "X-API-Latency-ms"
MAX_REQUEST_ID_LENGTH = 64


def new_request_id() -> str:
    return f"req_{uuid.uuid4().hex[:12]}"


def request_id(request: Request) -> str:
    """Correlation id assigned by the middleware, or a fresh one outside it"""
    return getattr(request.state, "request_id", None) or new_request_id()


def _incoming_id(request: Request):
    value = request.headers.get(REQUEST_ID_HEADER, "").strip()
    if not value or len(value) > MAX_REQUEST_ID_LENGTH or not value.isprintable():
        return None
    return value


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Tags every request with a correlation id and reports handler latency.

    A caller-supplied ``X-Request-ID`` is reused so a refresh trigger can be
    traced across services; oversized or non-printable values are replaced.
    """

    async def dispatch(self, request: Request, call_next):
        rid = _incoming_id(request) or new_request_id()
        request.state.request_id = rid
        started = time.perf_counter()

        response = await call_next(request)

        elapsed_ms = int((time.perf_counter() - started) * 1000)
        response.headers[REQUEST_ID_HEADER] = rid
        response.headers[LATENCY_HEADER] = str(elapsed_ms)

        logger.debug(
            f"{request.method} {request.url.path} -> {response.status_code}",
            extra={
                "request_id": rid,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "latency_ms": elapsed_ms,
            }
        )
        return response
