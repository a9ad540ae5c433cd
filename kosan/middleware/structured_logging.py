# kosan/middleware/structured_logging.py
from __future__ import annotations

import logging
import time
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .request_context import current_context

log = logging.getLogger("kosan.request")


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Emits one log line per request with:
      method, path, status_code, latency_ms and the admin who made the call

    Runs inside RequestContextMiddleware; request_id and the admin are read
    from the shared request context once the handler has finished.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        t0 = time.time()

        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            ctx = current_context()
            latency_ms = int((time.time() - t0) * 1000)
            log.info(
                "http_request",
                extra={
                    "event": "http_request",
                    "http": {
                        "method": request.method,
                        "path": request.url.path,
                        "query": str(request.url.query) if request.url.query else "",
                        "status_code": status_code,
                        "latency_ms": latency_ms,
                        "admin_email": ctx.admin_email if ctx else None,
                    },
                },
            )
