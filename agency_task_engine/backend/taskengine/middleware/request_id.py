# backend/taskengine/middleware/request_id.py
from __future__ import annotations

import uuid
from contextvars import ContextVar
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

HEADER = "X-Request-ID"
MAX_INBOUND_LEN = 128

request_id_ctx: ContextVar[Optional[str]] = ContextVar("taskengine_request_id", default=None)


def get_request_id() -> Optional[str]:
    return request_id_ctx.get()


def inbound_request_id(request: Request) -> Optional[str]:
    """Caller-supplied id, if usable. Header lookup is case-insensitive."""
    rid = (request.headers.get(HEADER) or "").strip()
    if not rid or len(rid) > MAX_INBOUND_LEN:
        return None
    return rid


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Tags each request with an id that log lines and the response header share."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = inbound_request_id(request) or uuid.uuid4().hex
        request.state.request_id = rid
        token = request_id_ctx.set(rid)
        try:
            response = await call_next(request)
        finally:
            request_id_ctx.reset(token)
        response.headers[HEADER] = rid
        return response
