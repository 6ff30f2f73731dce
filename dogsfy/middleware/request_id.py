"""
Dogsfy Backend — Request ID Middleware
========================================

What:  Gives every request a correlation id and echoes it in X-Request-ID.
How:   A well-formed client id is reused; anything else (missing, too long,
       odd characters) is replaced by a fresh 8-char hex id. The id lives in
       a ContextVar so the access log, the exception handlers and any service
       logging during the request can read it without passing it around.
"""

import re
import uuid
from contextvars import ContextVar
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"

# Client ids end up in log lines and JSON bodies, so only a plain token is accepted.
_ACCEPTED_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def current_request_id() -> str:
    """Id of the request being served, or "" outside a request."""
    return request_id_var.get()


def _choose_request_id(supplied: Optional[str]) -> str:
    if supplied and _ACCEPTED_ID.match(supplied):
        return supplied
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Outermost middleware: binds the id before anything else logs."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = _choose_request_id(request.headers.get(REQUEST_ID_HEADER))
        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = rid
        return response
