"""Recovery middleware: the fault boundary between the server and handlers.

An exception escaping a handler becomes a logged, structured 500
instead of a dropped connection. ``HTTPError`` is a handler's deliberate
choice of response and passes through untouched so the pipeline renders
it exactly once.
"""

import logging

from perch._internal.invoke import handler_name
from perch.context import handler_var
from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import Response
from perch.middleware.protocol import Next
from perch.server.errors import error_response

logger = logging.getLogger("perch.server")


class Recoverer:
    """Turn unhandled handler exceptions into ``{code: 500, message}`` responses.

    Install it first so it wraps every other middleware and the handler::

        engine.add_middleware(Recoverer())

    If the error payload itself cannot be encoded the resulting
    ``SerializationError`` is not caught here; there is nothing left to
    recover with.
    """

    __slots__ = ()

    async def __call__(self, request: Request, next: Next) -> Response:
        try:
            return await next(request)
        except HTTPError:
            raise
        except Exception as exc:
            handler = handler_var.get()
            name = handler_name(handler) if handler is not None else "<middleware>"
            logger.exception("recover from %s, err: %s", name, exc)
            return error_response(500, str(exc) or type(exc).__name__)
