"""Route registry: the ordered, append-only set of routes a server serves.

Registration happens in batches. A batch is validated up front, then
appended and bound into the router under the write lock, and the router
is refreshed once at the end. Listing takes the read lock, so a reader
sees every committed batch in full and no part of an uncommitted one.
"""

import logging
from collections.abc import Callable, Iterable
from typing import TypeAlias

from perch._internal.invoke import handler_name
from perch._internal.rwlock import RWLock
from perch._internal.types import Handler
from perch.routing.route import Method, RouteEntry, RouteView
from perch.routing.router import Router

logger = logging.getLogger("perch.registry")

_Binder: TypeAlias = Callable[[Router, str, Handler], None]

_BINDERS: dict[Method, _Binder] = {
    Method.GET: Router.get,
    Method.HEAD: Router.head,
    Method.PUT: Router.put,
    Method.POST: Router.post,
    Method.PATCH: Router.patch,
    Method.DELETE: Router.delete,
    Method.CONNECT: Router.connect,
    Method.OPTIONS: Router.options,
    Method.TRACE: Router.trace,
}


class RouteRegistry:
    """Thread-safe registry bound to one router.

    The same write lock serializes changes to the entry list and to the
    router's table. Entries are never removed or modified.

    Usage::

        registry = RouteRegistry(engine.router)
        registry.register([RouteEntry("/ping", Method.GET, ping)])
        registry.list()  # (RouteView(path="/ping", method="GET"),)
    """

    __slots__ = ("_entries", "_keys", "_lock", "_router")

    def __init__(self, router: Router) -> None:
        self._router = router
        self._entries: list[RouteEntry] = []
        self._keys: set[tuple[Method, str]] = set()
        self._lock = RWLock()

    def register(self, entries: Iterable[RouteEntry]) -> None:
        """Append and bind a batch of routes.

        Raises ``UnsupportedMethod`` if any entry's method is not a
        ``Method``; raises ``ConfigurationError`` for a malformed path or
        for parameters that clash with an already registered route.
        Either way nothing from the batch is applied.
        """
        batch = list(entries)
        if not batch:
            return

        methods = [Method.resolve(entry.method, entry.path) for entry in batch]

        with self._lock.write():
            for index, entry in enumerate(batch):
                self._router.check(entry.path, (e.path for e in batch[:index]))
            self._entries.extend(batch)
            for entry, method in zip(batch, methods, strict=True):
                key = (method, entry.path)
                if key in self._keys:
                    logger.warning(
                        "api method: %s, path: %s shadows an earlier registration",
                        method,
                        entry.path,
                    )
                self._keys.add(key)
                logger.info(
                    "api method: %s, path: %s, handler %s",
                    method,
                    entry.path,
                    handler_name(entry.handler),
                )
                _BINDERS[method](self._router, entry.path, entry.handler)
            self._router.refresh()

    def list(self) -> tuple[RouteView, ...]:
        """Snapshot of every registered route, in registration order."""
        with self._lock.read():
            return tuple(entry.view() for entry in self._entries)

    def __len__(self) -> int:
        with self._lock.read():
            return len(self._entries)
