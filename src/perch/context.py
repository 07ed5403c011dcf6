"""Request-scoped context via ContextVar.

Provides:
- ``request_var``: the current ``Request`` for this task.
- ``handler_var``: the route handler the current request was dispatched to.

Both are set by the request pipeline. ``handler_var`` is set only once
routing succeeds, so middleware can tell a routing miss from a handler
fault.

``ContextVar`` is task-local under asyncio. No locks needed.
"""

from contextvars import ContextVar

from perch._internal.types import Handler
from perch.http.request import Request

request_var: ContextVar[Request] = ContextVar("perch_request")
"""The current request. Set by the ASGI handler before dispatch."""

handler_var: ContextVar[Handler | None] = ContextVar("perch_handler", default=None)
"""The matched route handler. Set right before the handler is invoked."""


def get_request() -> Request:
    """Return the current request.

    Raises ``LookupError`` if called outside a request context.
    """
    return request_var.get()
