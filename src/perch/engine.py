"""The embedded HTTP engine: router plus middleware behind one ASGI callable.

Routes can be bound and the router refreshed at any time; the
middleware chain is fixed once the engine starts serving.
"""

import threading

from perch._internal.asgi import Receive, Scope, Send
from perch.middleware.protocol import Middleware
from perch.routing.router import Router
from perch.server.handler import handle_request


class Engine:
    """ASGI application dispatching through a refreshable ``Router``.

    Thread safety:
        The middleware tuple is captured exactly once, under a Lock with
        a double-check, on the first lifespan or HTTP scope. The router
        is shared with whoever binds routes into it; its ``match()`` is
        safe against a concurrent ``refresh()``.
    """

    __slots__ = ("_freeze_lock", "_frozen", "_middleware", "_middleware_list", "router")

    def __init__(self, router: Router | None = None) -> None:
        self.router: Router = router or Router()
        self._middleware_list: list[Middleware] = []
        self._middleware: tuple[Middleware, ...] = ()
        self._frozen = False
        self._freeze_lock = threading.Lock()

    def add_middleware(self, middleware: Middleware) -> None:
        """Append a middleware. The first one added is the outermost."""
        if self._frozen:
            msg = "Cannot add middleware after the engine has started serving requests."
            raise RuntimeError(msg)
        self._middleware_list.append(middleware)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI 3.0 entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        self._ensure_frozen()
        await handle_request(
            scope,
            receive,
            send,
            router=self.router,
            middleware=self._middleware,
        )

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Acknowledge the ASGI lifespan protocol; freeze at startup."""
        self._ensure_frozen()
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    def _ensure_frozen(self) -> None:
        if self._frozen:
            return
        with self._freeze_lock:
            if self._frozen:
                return
            self._middleware = tuple(self._middleware_list)
            self._frozen = True
