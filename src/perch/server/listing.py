"""Introspection endpoint: ``GET /`` lists every registered route."""

from perch.http.request import Request
from perch.http.response import Response
from perch.registry import RouteRegistry
from perch.routing.route import Method, RouteEntry
from perch.server.codec import YAML_CONTENT_TYPE, encode_routes


class ListRoutes:
    """Route handler rendering the registry as a YAML sequence.

    Each item is ``{path, method}``; handlers are never included.
    """

    __slots__ = ("_registry",)

    def __init__(self, registry: RouteRegistry) -> None:
        self._registry = registry

    async def __call__(self, request: Request) -> Response:
        body = encode_routes(self._registry.list())
        return Response(body=body, content_type=YAML_CONTENT_TYPE)


def listing_entry(registry: RouteRegistry, path: str = "/") -> RouteEntry:
    """The route entry a server registers for its own listing."""
    return RouteEntry(path=path, method=Method.GET, handler=ListRoutes(registry))
