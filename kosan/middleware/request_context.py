# kosan/middleware/request_context.py
from __future__ import annotations

import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass
class RequestContext:
    """
    Per-request facts every log line should carry.

    The object is shared by reference, so the admin bound by the route guard
    (which runs in a worker thread) is visible to the access log line too.
    """
    request_id: str
    admin_id: Optional[int] = None
    admin_email: Optional[str] = None


_current: ContextVar[Optional[RequestContext]] = ContextVar("kosan_request", default=None)


def current_context() -> Optional[RequestContext]:
    return _current.get()


def get_request_id() -> Optional[str]:
    ctx = _current.get()
    return ctx.request_id if ctx else None


def bind_admin(admin_id: int, email: str) -> None:
    ctx = _current.get()
    if ctx is not None:
        ctx.admin_id = admin_id
        ctx.admin_email = email


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Takes the caller's X-Request-ID (or mints one) and echoes it back."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        rid = (request.headers.get(REQUEST_ID_HEADER) or "").strip() or uuid.uuid4().hex

        ctx = RequestContext(request_id=rid)
        request.state.context = ctx
        token = _current.set(ctx)
        try:
            resp = await call_next(request)
            resp.headers[REQUEST_ID_HEADER] = rid
            return resp
        finally:
            _current.reset(token)
