"""ASGI handler: translate ASGI scope/messages to perch types.

Converts the scope to a ``Request``, runs it through the middleware
chain to the router, and sends the resulting ``Response`` back through
ASGI ``send()``.
"""

from collections.abc import Callable
from contextvars import Token
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch.context import handler_var, request_var
from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Next
from perch.routing.router import Router
from perch.server.errors import handle_http_error
from perch.server.negotiation import negotiate
from perch.server.sender import send_response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: Router,
    middleware: tuple[Callable[..., Any], ...],
) -> None:
    """Process a single HTTP request through the full pipeline."""
    request = Request.from_asgi(scope, receive)
    token: Token[Request] = request_var.set(request)
    handler_token = handler_var.set(None)

    try:

        async def dispatch(req: Request) -> Response:
            match = router.match(req.method, req.path)
            handler_var.set(match.route.handler)
            result = await invoke(match.route.handler, req.with_path_params(match.path_params))
            return negotiate(result)

        handler: Next = dispatch
        for mw in reversed(middleware):

            async def make_next(req: Request, _mw: Any = mw, _next: Next = handler) -> Response:
                return await _mw(req, _next)

            handler = make_next

        try:
            response = await handler(request)
        except HTTPError as exc:
            response = handle_http_error(exc, request)
    finally:
        handler_var.reset(handler_token)
        request_var.reset(token)

    await send_response(response, send, method=request.method)
