"""HTTP server wrapper around FastAPI and uvicorn.

This module provides the `Server` class that owns a FastAPI application,
exposes route and middleware registration, and runs the application on
uvicorn with graceful shutdown.

## Usage

```python
from config import ServerConfig
from server import Server

srv = Server(ServerConfig.from_env())
srv.register_routes(lambda group: group.get("/ping", lambda: {"message": "pong"}))
srv.start()  # blocks until shutdown() is called from another thread
```

## Lifecycle

- `start()` binds the configured address and serves until the listener stops.
- `shutdown(timeout)` stops accepting connections and waits for in-flight
  requests, cancelling them once the deadline passes.

A server owns at most one listener at a time.
"""

from __future__ import annotations

import logging
import socket
import threading
import time
from collections.abc import Callable, Iterable

import attrs
import uvicorn
from fastapi import FastAPI

from config import ServerConfig
from foundation.exceptions import ShutdownTimeoutError
from server.app import create_app
from server.routes import Handler, Middleware, RouteConfig, RouteGroup

logger = logging.getLogger("httpkit.server")

# Extra time allowed for uvicorn to cancel tasks and close connections
# after the graceful shutdown deadline has passed.
_SHUTDOWN_GRACE_S = 5.0


@attrs.define(frozen=False, slots=True)
class Server:
    """HTTP server wrapping a FastAPI application and a uvicorn listener.

    Attributes:
        config: Server configuration (address, run mode, metrics, shutdown
            deadline).

    Example:
        ```python
        srv = Server(ServerConfig(host="0.0.0.0", port="8080", mode="release"))

        def register(group: RouteGroup) -> None:
            group.get("/profile", get_profile)

        srv.register_private_routes(register, require_token)
        ```

    Note:
        `start()` blocks, so `shutdown()` must be called from another thread
        (or a signal handler installed by uvicorn on the main thread).
    """

    config: ServerConfig
    _middleware: list[Middleware] = attrs.field(init=False, factory=list)
    _app: FastAPI = attrs.field(init=False)
    _uvicorn: uvicorn.Server | None = attrs.field(init=False, default=None)
    _socket: socket.socket | None = attrs.field(init=False, default=None)
    _stopped: threading.Event = attrs.field(init=False, factory=threading.Event)
    _lock: threading.Lock = attrs.field(init=False, factory=threading.Lock)

    def __attrs_post_init__(self) -> None:
        """Build the FastAPI application with logging and recovery attached."""
        self._app = create_app(self.config, self._middleware)

    @property
    def app(self) -> FastAPI:
        """Return the underlying FastAPI application."""
        return self._app

    @property
    def bound_address(self) -> str | None:
        """Return the `host:port` the listener is bound to, or None if not running.

        IPv6 hosts are bracketed (`[::1]:8080`) so the value can be used in a URL.
        """
        sock = self._socket
        if sock is None:
            return None
        host, port = sock.getsockname()[:2]
        if ":" in host:
            host = f"[{host}]"
        return f"{host}:{port}"

    # =========================================================================
    # Registration
    # =========================================================================

    def register_middleware(self, *middleware: Middleware) -> None:
        """Add app-wide middleware, run after request logging and recovery.

        Args:
            *middleware: Middleware in the order they should run.
        """
        self._middleware.extend(middleware)

    def register_route(self, method: str, path: str, handler: Handler) -> bool:
        """Register a single route on the application.

        Args:
            method: One of GET, POST, PUT, PATCH, DELETE (case-insensitive).
            path: Route path.
            handler: FastAPI endpoint function.

        Returns:
            True if the route was registered. Unsupported methods are logged
            as a warning and ignored, returning False.
        """
        return RouteGroup(self._app.router, "/").handle(method, path, handler)

    def register_routes(self, register: Callable[[RouteGroup], None]) -> None:
        """Register public routes through a group rooted at "/".

        Args:
            register: Callback receiving the route group.
        """
        register(RouteGroup(self._app.router, "/"))

    def register_private_routes(self, register: Callable[[RouteGroup], None], *middleware: Middleware) -> None:
        """Register routes under "/private" guarded by middleware.

        Args:
            register: Callback receiving the route group.
            *middleware: Middleware run before every handler in the group,
                e.g. an authentication check.
        """
        register(RouteGroup(self._app.router, "/private", middleware))

    def routes(self, route_configs: Iterable[RouteConfig]) -> None:
        """Register a batch of routes, each with its own middleware.

        Each route is mounted at its own path and wrapped by its own
        middleware only.

        Args:
            route_configs: Route descriptions to register.
        """
        for route in route_configs:
            RouteGroup(self._app.router, "/", route.middleware).handle(route.method, route.path, route.handler)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def start(self) -> None:
        """Bind the configured address and serve until the listener stops.

        Raises:
            RuntimeError: If the server is already running.
            OSError: If the address cannot be bound.
        """
        with self._lock:
            if self._uvicorn is not None and not self._stopped.is_set():
                raise RuntimeError("server is already running")

            family = socket.AF_INET6 if ":" in self.config.host else socket.AF_INET
            sock = socket.create_server((self.config.host, int(self.config.port)), family=family)
            server = uvicorn.Server(
                uvicorn.Config(
                    self._app,
                    log_config=None,
                    log_level=self.config.log_level.lower(),
                    access_log=False,
                )
            )
            self._socket = sock
            self._uvicorn = server
            self._stopped.clear()

        logger.info("server is running", extra={"address": self.bound_address})
        try:
            server.run(sockets=[sock])
        finally:
            sock.close()
            self._socket = None
            self._stopped.set()
            logger.info("server stopped", extra={"address": self.config.address})

    def shutdown(self, timeout: float | None = None) -> None:
        """Gracefully stop the server.

        New connections are refused immediately; in-flight requests get until
        the deadline to finish. Returns immediately if the server was never
        started.

        Args:
            timeout: Deadline in seconds for in-flight requests. Defaults to
                `config.shutdown_timeout`; None waits indefinitely.

        Raises:
            ShutdownTimeoutError: If requests were still running at the
                deadline. They have been cancelled and the listener is stopped.
        """
        logger.info("shutting down server")
        server = self._uvicorn
        if server is None or self._stopped.is_set():
            return

        deadline = self.config.shutdown_timeout if timeout is None else timeout
        server.config.timeout_graceful_shutdown = deadline  # type: ignore[assignment]
        in_flight = bool(server.server_state.tasks)
        started_at = time.monotonic()
        server.should_exit = True

        wait = None if deadline is None else deadline + _SHUTDOWN_GRACE_S
        if not self._stopped.wait(wait):
            server.force_exit = True
            msg = f"server did not stop within {deadline}s"
            raise ShutdownTimeoutError(msg)

        if in_flight and deadline is not None and time.monotonic() - started_at >= deadline:
            msg = f"in-flight requests cancelled after {deadline}s"
            raise ShutdownTimeoutError(msg)
