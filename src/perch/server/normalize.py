"""Trailing-slash normalization at the transport boundary.

Runs before routing and before any middleware, so ``/foo/`` and
``/foo`` reach the same handler with the same ``request.path``.
Registered route paths are never rewritten.
"""

from perch._internal.asgi import ASGIApp, Receive, Scope, Send


def normalize_path(path: str) -> str:
    """Strip one trailing slash, except from ``/`` and from ``...//``."""
    if len(path) > 1 and path[-1] == "/" and path[-2] != "/":
        return path[:-1]
    return path


def strip_trailing_slash(app: ASGIApp) -> ASGIApp:
    """Wrap an ASGI app so HTTP request paths are normalized first."""

    async def wrapped(scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            path = scope["path"]
            normalized = normalize_path(path)
            if normalized != path:
                scope = dict(scope)
                scope["path"] = normalized
                raw_path = scope.get("raw_path")
                if raw_path:
                    scope["raw_path"] = normalize_path(raw_path.decode("latin-1")).encode("latin-1")
        await app(scope, receive, send)

    return wrapped
