"""
Bus Pass Backend — Access Log Middleware
========================================

What:  One log line per HTTP request on the `buspass.access` logger.
How:   Measures wall time around the downstream call and logs method, path,
       status, duration, request ID, caller role and client IP. The level
       follows the status: 5xx ERROR, 4xx WARNING, otherwise INFO.

Not logged: request bodies and uploaded documents (personal data), and the
/health endpoint (probed every few seconds by orchestrators).
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from buspass.middleware.request_id import request_id_var

logger = logging.getLogger("buspass.access")

SKIP_PATHS = {"/health"}


def _level_for(status: int) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in SKIP_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        client_ip = request.client.host if request.client else "unknown"
        role = request.headers.get("X-User-Role", "-")
        rid = request_id_var.get("")
        status = response.status_code

        logger.log(
            _level_for(status),
            "%s %s %d %.1fms [%s] role=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            rid,
            role,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "client_ip": client_ip,
            },
        )
        return response
