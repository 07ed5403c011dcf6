"""Error responses for the request pipeline.

Every error perch renders itself is an ``ErrorPayload`` encoded as
YAML, whatever produced it: a routing miss, a deliberate ``HTTPError``
from a handler, or a recovered fault.
"""

import logging

from perch.errors import HTTPError
from perch.http.request import Request
from perch.http.response import Response
from perch.server.codec import YAML_CONTENT_TYPE, ErrorPayload, encode_error

logger = logging.getLogger("perch.server")


def error_response(code: int, message: str) -> Response:
    """Build a YAML ``{code, message}`` response with status *code*.

    Raises ``SerializationError`` if the payload cannot be encoded.
    """
    body = encode_error(ErrorPayload(code=code, message=message))
    return Response(body=body, status=code, content_type=YAML_CONTENT_TYPE)


def handle_http_error(exc: HTTPError, request: Request) -> Response:
    """Map an HTTPError to its error response, keeping its headers."""
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)
    response = error_response(exc.status, exc.detail or f"Error {exc.status}")
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response
