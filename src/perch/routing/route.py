"""Route entries, their serializable views, and router-internal types."""

from dataclasses import dataclass
from enum import StrEnum

from perch._internal.types import Handler
from perch.errors import UnsupportedMethod


class Method(StrEnum):
    """The HTTP methods a route can be bound to."""

    GET = "GET"
    HEAD = "HEAD"
    PUT = "PUT"
    POST = "POST"
    PATCH = "PATCH"
    DELETE = "DELETE"
    CONNECT = "CONNECT"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"

    @classmethod
    def resolve(cls, value: "Method | str", path: str = "") -> "Method":
        """Return the member for *value* or raise ``UnsupportedMethod``.

        Spelling is exact: ``"get"`` is not ``GET``.
        """
        try:
            return cls(value)
        except ValueError:
            raise UnsupportedMethod(value, path) from None


@dataclass(frozen=True, slots=True)
class RouteView:
    """The external representation of a route: no handler."""

    path: str
    method: str

    def as_dict(self) -> dict[str, str]:
        return {"path": self.path, "method": self.method}


@dataclass(frozen=True, slots=True)
class RouteEntry:
    """One registered route: a path pattern, a method and a handler.

    ``handler`` is any callable that takes a ``Request`` and returns a
    response value. It never leaves the process; use ``view()`` for
    anything that gets serialized.
    """

    path: str
    method: Method | str
    handler: Handler

    def view(self) -> RouteView:
        return RouteView(path=self.path, method=str(self.method))


@dataclass(frozen=True, slots=True)
class PathSegment:
    """A parsed segment of a route path.

    Static:  ``/users``  (is_param=False)
    Param:   ``/{id}``   (is_param=True, param_name="id")
    Typed:   ``/{id:int}`` (is_param=True, param_name="id", param_type="int")
    """

    value: str
    is_param: bool = False
    param_name: str | None = None
    param_type: str = "str"


@dataclass(frozen=True, slots=True)
class Route:
    """A route bound into the router for exactly one method."""

    path: str
    handler: Handler
    method: Method


@dataclass(frozen=True, slots=True)
class RouteMatch:
    """Result of a successful route match."""

    route: Route
    path_params: dict[str, str]
