"""Perch exception hierarchy.

Shared across the registry, router, pipeline and lifecycle so every
module raises and catches the same types.
"""

from dataclasses import dataclass


class PerchError(Exception):
    """Base for all perch-specific errors."""


class ConfigurationError(PerchError):
    """Raised when a route or server is configured incorrectly."""


class UnsupportedMethod(ConfigurationError):  # noqa: N818
    """A route entry names a method outside the supported set.

    The whole registration batch is rejected; nothing is applied.
    """

    def __init__(self, method: object, path: str) -> None:
        self.method = method
        self.path = path
        super().__init__(f"Unsupported method {method!r} for route {path!r}")


class SerializationError(PerchError):
    """A listing or error payload could not be encoded.

    Indicates a programming defect. Not recovered by the pipeline.
    """


class ServerStateError(PerchError):
    """A lifecycle operation was called in the wrong server state."""


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by the router or by handlers that want to finish a request
    with a specific status. The pipeline renders it as an error payload;
    the recovery middleware never treats it as a fault.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405: route exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )
