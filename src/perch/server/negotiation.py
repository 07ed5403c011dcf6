"""Content negotiation: map handler return values to Response objects.

Plain isinstance dispatch on the returned value.
"""

from typing import Any

from perch.errors import ConfigurationError
from perch.http.response import Response
from perch.server.codec import YAML_CONTENT_TYPE, encode


def negotiate(value: Any) -> Response:
    """Convert a route handler's return value to a Response.

    Dispatch order:

    1. ``Response``          -> pass through
    2. ``None``              -> 204, empty body
    3. ``str``               -> 200, text/plain
    4. ``bytes``             -> 200, application/octet-stream
    5. ``dict`` / ``list``   -> 200, YAML
    6. ``(value, int)``      -> negotiate value, override status
    """
    match value:
        case Response():
            return value
        case None:
            return Response(status=204)
        case str():
            return Response(body=value)
        case bytes():
            return Response(body=value, content_type="application/octet-stream")
        case dict() | list():
            return Response(body=encode(value), content_type=YAML_CONTENT_TYPE)
        case (inner, int() as status):
            return negotiate(inner).with_status(status)
        case _:
            msg = (
                f"Cannot convert {type(value).__name__} to a response. "
                "Return a Response, str, bytes, dict, list, None, or (value, status)."
            )
            raise ConfigurationError(msg)
