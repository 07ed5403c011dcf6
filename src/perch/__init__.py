"""Perch: a small control-plane HTTP server.

Subsystems register routes at runtime; the server lists them on
``GET /`` and keeps handler failures from taking the process down.

Basic usage::

    from perch import Method, RouteEntry, Server

    def ping(request):
        return "pong"

    server = Server(9090)
    server.register_routes([RouteEntry("/ping", Method.GET, ping)])
    server.start()
    ...
    server.close()
"""

__version__ = "0.1.0"
__all__ = [
    "ConfigurationError",
    "HTTPError",
    "Method",
    "MethodNotAllowed",
    "Middleware",
    "Next",
    "NotFound",
    "PerchError",
    "Request",
    "Response",
    "RouteEntry",
    "RouteView",
    "SerializationError",
    "Server",
    "ServerConfig",
    "ServerState",
    "ServerStateError",
    "UnsupportedMethod",
    "get_request",
    "new_server",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` from importing uvicorn until a server is needed.
    """
    if name in ("Server", "ServerState", "new_server"):
        from perch import lifecycle as _lifecycle

        return getattr(_lifecycle, name)

    if name == "ServerConfig":
        from perch.config import ServerConfig

        return ServerConfig

    if name == "Request":
        from perch.http.request import Request

        return Request

    if name == "Response":
        from perch.http.response import Response

        return Response

    if name in ("Method", "RouteEntry", "RouteView"):
        from perch.routing import route as _route

        return getattr(_route, name)

    if name in ("Middleware", "Next"):
        from perch.middleware import protocol as _mw

        return getattr(_mw, name)

    if name == "get_request":
        from perch.context import get_request

        return get_request

    if name in (
        "ConfigurationError",
        "HTTPError",
        "MethodNotAllowed",
        "NotFound",
        "PerchError",
        "SerializationError",
        "ServerStateError",
        "UnsupportedMethod",
    ):
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
