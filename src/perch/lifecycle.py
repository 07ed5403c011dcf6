"""Server lifecycle: build the engine, listen, drain, stop.

States move one way only::

    CONSTRUCTED --run()--> RUNNING --close()--> CLOSED

``run()`` blocks its thread for the life of the listener, so embedders
call it from a dedicated thread (``start()`` does exactly that).
"""

import asyncio
import logging
import socket
import threading
from collections.abc import Iterable
from dataclasses import replace
from enum import Enum

import uvicorn

from perch._internal.asgi import ASGIApp, Receive, Scope, Send
from perch._internal.invoke import in_worker_handler
from perch.config import ServerConfig
from perch.engine import Engine
from perch.errors import SerializationError, ServerStateError
from perch.middleware.recovery import Recoverer
from perch.registry import RouteRegistry
from perch.routing.route import RouteEntry, RouteView
from perch.server.listing import listing_entry
from perch.server.normalize import strip_trailing_slash

logger = logging.getLogger("perch.lifecycle")

_ENGINE_LOGGERS = ("uvicorn", "uvicorn.error", "uvicorn.access")


class ServerState(Enum):
    CONSTRUCTED = "constructed"
    RUNNING = "running"
    CLOSED = "closed"


def _silence_engine_logging() -> None:
    """Keep uvicorn's own log records out of the application's handlers."""
    for name in _ENGINE_LOGGERS:
        engine_logger = logging.getLogger(name)
        engine_logger.handlers = [logging.NullHandler()]
        engine_logger.propagate = False


class Server:
    """A control-plane HTTP server with runtime route registration.

    Construction wires everything but binds nothing::

        server = Server(9090)
        server.register_routes([RouteEntry("/ping", Method.GET, ping)])
        server.start()          # or server.run() on a thread you own
        ...
        server.close()

    The registry stays private to the server. Hand subsystems
    ``server.register_routes`` rather than the server itself.
    """

    def __init__(self, port: int | None = None, *, config: ServerConfig | None = None) -> None:
        config = config or ServerConfig()
        if port is not None:
            config = replace(config, port=port)
        self.config = config

        self._engine = Engine()
        self._engine.add_middleware(Recoverer())
        self._app = (
            strip_trailing_slash(self._engine) if config.strip_trailing_slash else self._engine
        )
        _silence_engine_logging()

        self._registry = RouteRegistry(self._engine.router)

        self._state = ServerState.CONSTRUCTED
        self._state_lock = threading.Lock()
        self._uvicorn: uvicorn.Server | None = None
        self._bound_port: int | None = None
        self._serve_thread: int | None = None
        self._fatal: SerializationError | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._listening = threading.Event()
        self._stopped = threading.Event()

        self._registry.register([listing_entry(self._registry, config.listing_path)])

    # -- Registration --

    def register_routes(self, entries: Iterable[RouteEntry]) -> None:
        """Register a batch of routes. See ``RouteRegistry.register``."""
        self._registry.register(entries)

    def routes(self) -> tuple[RouteView, ...]:
        """Snapshot of every registered route, in registration order."""
        return self._registry.list()

    # -- State --

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def port(self) -> int:
        """The bound port once listening, else the configured one."""
        if self._bound_port is not None:
            return self._bound_port
        return self.config.port

    @property
    def asgi_app(self) -> ASGIApp:
        """The full request pipeline as an ASGI callable, without a listener."""
        return self._guarded

    @property
    def address(self) -> str:
        return f"{self.config.host}:{self.port}"

    def wait_started(self, timeout: float | None = None) -> bool:
        """Block until the socket is listening. False on timeout or failure."""
        self._listening.wait(timeout)
        return self._listening.is_set() and not self._stopped.is_set()

    # -- Lifecycle --

    def run(self) -> None:
        """Bind, listen and serve until ``close()``.

        Returns normally after a requested shutdown. Raises
        ``SystemExit(1)`` if the address cannot be bound or if an
        unrecoverable serialization fault stopped the server.
        """
        with self._state_lock:
            if self._state is not ServerState.CONSTRUCTED:
                msg = f"Cannot run a server in state {self._state.value!r}."
                raise ServerStateError(msg)
            self._state = ServerState.RUNNING
            self._serve_thread = threading.get_ident()

        try:
            try:
                sock = self._bind()
            except OSError as exc:
                logger.error("run api server on %s failed: %s", self.address, exc)
                raise SystemExit(1) from exc

            self._bound_port = sock.getsockname()[1]
            server = uvicorn.Server(
                uvicorn.Config(
                    self._guarded,
                    host=self.config.host,
                    port=self._bound_port,
                    backlog=self.config.backlog,
                    lifespan="on",
                    ws="none",
                    log_config=None,
                    access_log=False,
                    timeout_keep_alive=self.config.timeout_keep_alive,
                    timeout_graceful_shutdown=self.config.graceful_timeout,
                )
            )
            with self._state_lock:
                self._uvicorn = server
                if self._state is ServerState.CLOSED:
                    server.should_exit = True

            logger.info("api server running in %s", self.address)
            self._listening.set()
            try:
                server.run(sockets=[sock])
            finally:
                sock.close()
        finally:
            with self._state_lock:
                self._state = ServerState.CLOSED
            self._stopped.set()
            self._listening.set()

        if self._fatal is not None:
            raise SystemExit(1)
        logger.info("api server in %s closed", self.address)

    def start(self, timeout: float | None = 10.0) -> threading.Thread:
        """Run the server on a daemon thread and wait until it listens.

        Raises ``ServerStateError`` if the server has already run or been
        closed, or if it is not listening within *timeout*.
        """
        with self._state_lock:
            if self._state is not ServerState.CONSTRUCTED:
                msg = f"Cannot start a server in state {self._state.value!r}."
                raise ServerStateError(msg)
        thread = threading.Thread(target=self.run, name="perch-server", daemon=True)
        thread.start()
        if not self.wait_started(timeout):
            msg = f"api server on {self.address} did not start"
            raise ServerStateError(msg)
        return thread

    def close(self, *, wait: bool = True, timeout: float | None = None) -> None:
        """Stop accepting connections and let in-flight requests finish.

        With *wait*, blocks until the listener has stopped. It never
        blocks when called from inside a request, whether an async handler
        on the serving thread or a sync handler on a worker thread: the
        drain waits for that request, so the call returns once shutdown
        is requested.

        Calling it again, or on a server that never ran, is a no-op
        beyond the state change.
        """
        with self._state_lock:
            previous = self._state
            self._state = ServerState.CLOSED
            server = self._uvicorn
        if previous is ServerState.CONSTRUCTED:
            self._stopped.set()
            logger.info("api server closed before running")
            return
        if previous is ServerState.CLOSED and self._stopped.is_set():
            return
        if server is not None:
            self._stop_accepting(server)
            server.should_exit = True
        if wait and not self._in_request():
            self._stopped.wait(timeout)

    # -- Internal --

    def _in_request(self) -> bool:
        return threading.get_ident() == self._serve_thread or in_worker_handler()

    def _stop_accepting(self, server: uvicorn.Server) -> None:
        """Close the listening sockets now; uvicorn only polls should_exit.

        Connections already accepted are left to finish.
        """
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        if threading.get_ident() == self._serve_thread:
            for listener in server.servers:
                listener.close()
            return
        closed = threading.Event()

        def close_listeners() -> None:
            for listener in server.servers:
                listener.close()
            closed.set()

        try:
            loop.call_soon_threadsafe(close_listeners)
        except RuntimeError:
            # loop closed in the meantime: the listeners are gone with it
            return
        closed.wait(1.0)

    def _bind(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.config.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.config.host, self.config.port))
            sock.listen(self.config.backlog)
        except OSError:
            sock.close()
            raise
        return sock

    async def _guarded(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI entry: a serialization fault here takes the server down."""
        if scope["type"] == "lifespan":
            self._loop = asyncio.get_running_loop()
        try:
            await self._app(scope, receive, send)
        except SerializationError as exc:
            logger.critical("unrecoverable fault, shutting down api server: %s", exc)
            self._fatal = exc
            if self._uvicorn is not None:
                self._uvicorn.should_exit = True
            raise


def new_server(port: int, *, config: ServerConfig | None = None) -> Server:
    """Build a server for *port*; nothing is bound until it runs."""
    return Server(port, config=config)
