"""Trie router with an explicit refresh step.

Routes are bound one at a time with ``add()`` (or the per-method
binders), then ``refresh()`` compiles everything bound so far into a
fresh trie and swaps it in. Callers batch their bindings and refresh
once per batch.

``match()`` reads the current trie reference once, so a request is
matched against either the table before a refresh or the one after it,
never a half-built one.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from perch._internal.types import Handler
from perch.errors import ConfigurationError, MethodNotAllowed, NotFound
from perch.routing.params import CONVERTERS
from perch.routing.route import Method, PathSegment, Route, RouteMatch


def parse_path(path: str) -> list[PathSegment]:
    """Parse a route path string into segments.

    Examples::

        "/users"          -> [PathSegment("users")]
        "/users/{id}"     -> [PathSegment("users"), PathSegment("{id}", is_param=True, ...)]
        "/users/{id:int}" -> [PathSegment("{id:int}", is_param=True, param_type="int")]
        "/files/{path:path}" -> [PathSegment("{path:path}", is_param=True, param_type="path")]
    """
    segments: list[PathSegment] = []
    for part in path.strip("/").split("/"):
        if not part:
            continue
        if segments and segments[-1].param_type == "path":
            msg = f"A path parameter must be the last segment of route path {path!r}"
            raise ConfigurationError(msg)
        if part.startswith("{") and part.endswith("}"):
            inner = part[1:-1]
            if ":" in inner:
                param_name, param_type = inner.split(":", 1)
            else:
                param_name = inner
                param_type = "str"
            if param_type not in CONVERTERS:
                msg = f"Unknown converter {param_type!r} in route path {path!r}"
                raise ConfigurationError(msg)
            segments.append(
                PathSegment(
                    value=part,
                    is_param=True,
                    param_name=param_name,
                    param_type=param_type,
                )
            )
        else:
            segments.append(PathSegment(value=part))
    return segments


def _check_params(path: str, other: str) -> None:
    """Raise if *path* and *other* declare different parameters on a shared edge.

    Routes sharing a prefix share trie nodes, and a node has one parameter
    edge (and one catch-all). Both must agree on name and converter.
    """
    for seg, prior in zip(parse_path(path), parse_path(other), strict=False):
        if not (seg.is_param and prior.is_param):
            if seg.is_param or prior.is_param or seg.value != prior.value:
                return
            continue
        if (seg.param_type == "path") != (prior.param_type == "path"):
            return
        if (seg.param_name, seg.param_type) != (prior.param_name, prior.param_type):
            msg = (
                f"Route path {path!r} declares {seg.value} where {other!r} "
                f"already declares {prior.value}"
            )
            raise ConfigurationError(msg)


class _TrieNode:
    """A node in the route trie. Mutable during compilation only."""

    __slots__ = ("catch_all_route", "children", "param_child", "routes_by_method")

    def __init__(self) -> None:
        # Static segment children: "users" -> node
        self.children: dict[str, _TrieNode] = {}
        # Single parameter child (only one param pattern per level)
        self.param_child: _ParamEdge | None = None
        # Catch-all route (path converter)
        self.catch_all_route: _CatchAllEdge | None = None
        # Routes at this node, keyed by HTTP method
        self.routes_by_method: dict[str, Route] = {}


@dataclass(slots=True)
class _ParamEdge:
    """A parameter edge in the trie."""

    param_name: str
    param_type: str
    regex: re.Pattern[str]
    node: _TrieNode


@dataclass(slots=True)
class _CatchAllEdge:
    """A catch-all (path) edge consuming the remaining path."""

    param_name: str
    route_by_method: dict[str, Route]


def _insert(root: _TrieNode, route: Route) -> None:
    """Insert one route; a later route replaces an earlier one for the same method."""
    node = root

    for seg in parse_path(route.path):
        if seg.is_param and seg.param_type == "path":
            # Catch-all: consumes rest of path, must be last segment
            if node.catch_all_route is None:
                node.catch_all_route = _CatchAllEdge(
                    param_name=seg.param_name or "path",
                    route_by_method={},
                )
            node.catch_all_route.route_by_method[route.method] = route
            return

        if seg.is_param:
            if node.param_child is None:
                pattern = CONVERTERS[seg.param_type]
                node.param_child = _ParamEdge(
                    param_name=seg.param_name or "",
                    param_type=seg.param_type,
                    regex=re.compile(f"^{pattern}$"),
                    node=_TrieNode(),
                )
            node = node.param_child.node
        else:
            if seg.value not in node.children:
                node.children[seg.value] = _TrieNode()
            node = node.children[seg.value]

    node.routes_by_method[route.method] = route


class Router:
    """Trie router recompiled on demand.

    Usage::

        router = Router()
        router.get("/users", list_users)
        router.post("/users", create_user)
        router.refresh()
        match = router.match("GET", "/users")

    Not thread-safe for writers: ``add()`` and ``refresh()`` must be
    serialized by the caller. ``match()`` is safe to call concurrently
    with both.
    """

    __slots__ = ("_bound", "_root")

    def __init__(self) -> None:
        self._bound: list[Route] = []
        self._root = _TrieNode()

    def check(self, path: str, pending: Iterable[str] = ()) -> None:
        """Validate *path* against every bound route and *pending* paths.

        Raises ``ConfigurationError`` for a malformed path, or for a
        parameter that clashes in name or converter with one already
        declared at the same position.
        """
        parse_path(path)
        for other in (*(route.path for route in self._bound), *pending):
            _check_params(path, other)

    def add(self, route: Route) -> None:
        """Bind a route. Not matchable until the next ``refresh()``."""
        self.check(route.path)
        self._bound.append(route)

    def _bind(self, method: Method, path: str, handler: Handler) -> None:
        self.add(Route(path=path, handler=handler, method=method))

    def get(self, path: str, handler: Handler) -> None:
        self._bind(Method.GET, path, handler)

    def head(self, path: str, handler: Handler) -> None:
        self._bind(Method.HEAD, path, handler)

    def put(self, path: str, handler: Handler) -> None:
        self._bind(Method.PUT, path, handler)

    def post(self, path: str, handler: Handler) -> None:
        self._bind(Method.POST, path, handler)

    def patch(self, path: str, handler: Handler) -> None:
        self._bind(Method.PATCH, path, handler)

    def delete(self, path: str, handler: Handler) -> None:
        self._bind(Method.DELETE, path, handler)

    def connect(self, path: str, handler: Handler) -> None:
        self._bind(Method.CONNECT, path, handler)

    def options(self, path: str, handler: Handler) -> None:
        self._bind(Method.OPTIONS, path, handler)

    def trace(self, path: str, handler: Handler) -> None:
        self._bind(Method.TRACE, path, handler)

    @property
    def routes(self) -> list[Route]:
        """All bound routes in binding order, refreshed or not."""
        return list(self._bound)

    def refresh(self) -> None:
        """Compile every bound route into a new trie and swap it in."""
        root = _TrieNode()
        for route in self._bound:
            _insert(root, route)
        self._root = root

    def match(self, method: str, path: str) -> RouteMatch:
        """Match a request path and method against the current table.

        Returns a ``RouteMatch`` on success.
        Raises ``NotFound`` if no route matches the path.
        Raises ``MethodNotAllowed`` if the path matches but the method doesn't.
        """
        root = self._root
        # Strict: "/foo/" keeps an empty last segment and does not match "/foo"
        parts = path.split("/")[1:] if path != "/" else []
        result = self._match_node(root, parts, 0, {})

        if result is None:
            raise NotFound(f"No route matches {method} {path!r}")

        node, params = result

        if method in node.routes_by_method:
            return RouteMatch(route=node.routes_by_method[method], path_params=params)

        if node.routes_by_method:
            raise MethodNotAllowed(frozenset(node.routes_by_method))

        raise NotFound(f"No route matches {method} {path!r}")

    def _match_node(
        self,
        node: _TrieNode,
        parts: list[str],
        index: int,
        params: dict[str, str],
    ) -> tuple[_TrieNode, dict[str, str]] | None:
        """Recursively match path parts against the trie."""
        # all parts consumed
        if index == len(parts):
            if node.routes_by_method:
                return node, params
            return None

        part = parts[index]

        # 1. Try static child first (exact match)
        if part in node.children:
            result = self._match_node(node.children[part], parts, index + 1, params)
            if result is not None:
                return result

        # 2. Try parameter child
        if node.param_child is not None:
            edge = node.param_child
            if edge.regex.match(part):
                new_params = {**params, edge.param_name: part}
                result = self._match_node(edge.node, parts, index + 1, new_params)
                if result is not None:
                    return result

        # 3. Try catch-all
        if node.catch_all_route is not None:
            remaining = "/".join(parts[index:])
            new_params = {**params, node.catch_all_route.param_name: remaining}
            synthetic = _TrieNode()
            synthetic.routes_by_method = node.catch_all_route.route_by_method
            return synthetic, new_params

        return None
