"""
Users API — Access Log Middleware
==================================

What:  One access-log line per request: method, path, status, duration,
       request ID and client address.
Why:   uvicorn's access log lacks the request ID and duration.
How:   Times the downstream call and hands the outcome to log_access().
       Requests that raise are logged as 500 before the error propagates
       to the fallback handler.

Request bodies are never logged (they contain names, emails and birth dates).
"""

import logging
import time
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from userapi.middleware.request_id import request_id_var

logger = logging.getLogger("userapi.access")

# Polled every few seconds by Docker; only failures are worth a line
QUIET_PATHS = {"/health"}

# docker-compose and most proxies put the original client first
FORWARDED_FOR_HEADER = "X-Forwarded-For"


def access_log_level(status: int) -> int:
    """5xx → ERROR, 4xx → WARNING (bad input, unknown user), else INFO."""
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


def client_address(request: Request) -> str:
    forwarded = request.headers.get(FORWARDED_FOR_HEADER)
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def should_log(path: str, status: int) -> bool:
    return path not in QUIET_PATHS or status >= 400


def log_access(request: Request, status: int, duration_ms: float,
               request_id: Optional[str] = None) -> None:
    rid = request_id if request_id is not None else request_id_var.get("")
    address = client_address(request)
    logger.log(
        access_log_level(status),
        "%s %s %d %.1fms [%s] from %s",
        request.method,
        request.url.path,
        status,
        duration_ms,
        rid,
        address,
        extra={
            "request_id": rid,
            "method": request.method,
            "path": request.url.path,
            "status": status,
            "duration_ms": round(duration_ms, 2),
            "client_ip": address,
        },
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request once its outcome is known."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            log_access(request, 500, (time.perf_counter() - start_time) * 1000)
            raise

        if should_log(request.url.path, response.status_code):
            log_access(request, response.status_code, (time.perf_counter() - start_time) * 1000)
        return response
