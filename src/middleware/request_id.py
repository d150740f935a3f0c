"""Request ID middleware — tags each request/response pair for log correlation."""
from __future__ import annotations

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Read by the logging filter in src.logging_config
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

_VALID_ID = re.compile(r"^[A-Za-z0-9._\-]{1,64}$")


def _incoming_id(request: Request) -> str:
    rid = request.headers.get("x-request-id", "")
    return rid if _VALID_ID.match(rid) else str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Honor a well-formed client X-Request-ID, otherwise mint a UUID4.

    The ID is exposed through ``request_id_var`` for the duration of the
    request and echoed back in the X-Request-ID response header.
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        rid = _incoming_id(request)
        token = request_id_var.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)
        response.headers["X-Request-ID"] = rid
        return response
