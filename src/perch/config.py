"""Server configuration.

ServerConfig is a frozen dataclass fixed at construction. Fields map onto
the listener settings the lifecycle hands to uvicorn.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Server configuration. Immutable after creation.

    All fields have defaults. Override what you need::

        config = ServerConfig(port=9090, graceful_timeout=10.0)
    """

    # Listener: loopback only unless told otherwise
    host: str = "127.0.0.1"
    port: int = 0  # 0 = pick a free port; read it back from Server.port
    backlog: int = 2048

    # Shutdown: seconds to wait for in-flight requests (None = wait for all)
    graceful_timeout: float | None = None
    timeout_keep_alive: int = 5

    # Introspection endpoint
    listing_path: str = "/"

    # Treat "/foo/" as "/foo" before routing
    strip_trailing_slash: bool = True
