"""
BeeBark Backend — Access Log Middleware
=========================================

What:  One log line per HTTP request on the `beebark.access` logger.
How:   Times the downstream call and logs method, path, status, duration,
       request id, caller id and client address. Severity follows the
       status: 5xx ERROR, 4xx WARNING, everything else INFO.

Example:
    PUT /api/post/5c1e.../like 200 12.4ms [9f2a61c0d3b4] user=2b7d... from 10.0.0.7

Request and response bodies are never logged (they carry user content).
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.config import settings
from app.middleware.request_id import request_id_var

logger = logging.getLogger("beebark.access")

QUIET_PATHS = {"/health"}


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        started = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - started) * 1000

        status = response.status_code
        if status >= 500:
            level = logging.ERROR
        elif status >= 400:
            level = logging.WARNING
        else:
            level = logging.INFO

        rid = request_id_var.get("")
        user_id = request.headers.get(settings.auth_user_header, "-")
        logger.log(
            level,
            "%s %s %d %.1fms [%s] user=%s from %s",
            request.method,
            request.url.path,
            status,
            duration_ms,
            rid,
            user_id,
            _client_ip(request),
            extra={
                "request_id": rid,
                "status": status,
                "duration_ms": round(duration_ms, 2),
            },
        )
        return response
