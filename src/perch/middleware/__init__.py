"""Middleware: Protocol-based, no inheritance required.

A middleware is any callable matching:
    async def mw(request: Request, next: Next) -> Response

Built-in middleware:
    Recoverer -- converts unhandled handler exceptions into structured 500s
"""

from perch.middleware.protocol import Middleware, Next
from perch.middleware.recovery import Recoverer

__all__ = ["Middleware", "Next", "Recoverer"]
