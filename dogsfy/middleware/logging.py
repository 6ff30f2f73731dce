"""
Dogsfy Backend — Access Log Middleware
========================================

What:  Writes one `dogsfy.access` line per request.
How:   Wraps the downstream call with a perf_counter timer. The level follows
       the outcome:

           handler raised            → ERROR (logged as 500, then re-raised)
           5xx                       → ERROR
           4xx                       → WARNING
           slower than threshold     → WARNING (a friend listing that
                                       hydrates many profiles lands here)
           otherwise                 → INFO

       Quiet paths (/health by default) are passed through unlogged.

Never logged: bodies and query strings, which carry emails and credential
hashes.
"""

import logging
import time
from typing import Iterable, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from dogsfy.config import settings
from dogsfy.middleware.request_id import current_request_id

logger = logging.getLogger("dogsfy.access")

DEFAULT_QUIET_PATHS = frozenset({"/health"})


def _level_for(status: int, duration_ms: float, slow_ms: float) -> int:
    if status >= 500:
        return logging.ERROR
    if status >= 400 or duration_ms >= slow_ms:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Args:
        quiet_paths: Exact paths that are not logged.
        slow_request_ms: Duration from which a successful request is a WARNING.
    """

    def __init__(
        self,
        app: ASGIApp,
        quiet_paths: Iterable[str] = DEFAULT_QUIET_PATHS,
        slow_request_ms: Optional[float] = None,
    ):
        super().__init__(app)
        self.quiet_paths = frozenset(quiet_paths)
        self.slow_request_ms = slow_request_ms if slow_request_ms is not None else settings.slow_request_ms

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in self.quiet_paths:
            return await call_next(request)

        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self._log(request, 500, start, logging.ERROR)
            raise

        duration_ms = (time.perf_counter() - start) * 1000
        self._log(
            request,
            response.status_code,
            start,
            _level_for(response.status_code, duration_ms, self.slow_request_ms),
        )
        return response

    def _log(self, request: Request, status: int, start: float, level: int) -> None:
        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        rid = current_request_id()
        client_ip = request.client.host if request.client else "unknown"
        logger.log(
            level,
            "%s %s %d %.1fms [%s] from %s",
            request.method,
            request.url.path,
            status,
            duration_ms,
            rid,
            client_ip,
            extra={
                "request_id": rid,
                "method": request.method,
                "path": request.url.path,
                "status": status,
                "duration_ms": duration_ms,
                "client_ip": client_ip,
            },
        )
