"""Request context middleware: a request id and a summary line per request.

The id is kept in a ContextVar (not a thread-local, since many requests
share one thread under asyncio) and copied onto every LogRecord by a
filter on the root logger, so any log line written while serving the
request can be tied back to it. Clients may send their own X-Request-ID;
it is echoed back on the response either way.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

_QUIET_PATHS = frozenset({"/health", "/ready", "/metrics"})


class _RequestContextFilter(logging.Filter):
    """Adds request_id to every LogRecord; formatters can only read fields."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        return True


# Guard against duplicate installation across module reloads
root_logger = logging.getLogger()
if not any(isinstance(f, _RequestContextFilter) for f in root_logger.filters):
    root_logger.addFilter(_RequestContextFilter())


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        # Probes and scrapes arrive every few seconds
        log = logger.debug if request.url.path in _QUIET_PATHS else logger.info
        log(
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
