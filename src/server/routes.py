"""Route registration helpers for the server wrapper.

This module provides the pieces callers use to attach handlers to the
FastAPI application owned by `Server`:

- `RouteGroup`: a path prefix plus an ordered list of middleware. Routes
  registered through a group are mounted under the prefix and wrapped by
  the group's middleware.
- `RouteConfig`: a declarative route description consumed by
  `Server.routes()`.
- `Middleware`: the callable signature shared by app-wide and group
  middleware, identical to a Starlette `dispatch` function.

## Middleware

```python
async def require_token(request: Request, call_next: CallNext) -> Response:
    if request.headers.get("Authorization") != "Bearer secret":
        return JSONResponse(status_code=401, content={"error": "Unauthorized"})
    return await call_next(request)
```

Group middleware only wraps routes registered after it was added, runs in
registration order (first added is outermost) and runs after the app-wide
middleware.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Sequence
from functools import partial
from typing import Any

import attrs
from fastapi import APIRouter, Request, Response
from fastapi.routing import APIRoute

logger = logging.getLogger("httpkit.server")

CallNext = Callable[[Request], Awaitable[Response]]
Middleware = Callable[[Request, CallNext], Awaitable[Response]]
Handler = Callable[..., Any]

SUPPORTED_METHODS: frozenset[str] = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})


def chain(middleware: Sequence[Middleware], handler: CallNext) -> CallNext:
    """Wrap a request handler in middleware, first item outermost.

    Args:
        middleware: Middleware in registration order.
        handler: The innermost request handler.

    Returns:
        A request handler that runs the middleware chain.
    """
    for mw in reversed(middleware):
        handler = _bind(mw, handler)
    return handler


def _bind(mw: Middleware, call_next: CallNext) -> CallNext:
    async def wrapped(request: Request) -> Response:
        return await mw(request, call_next)

    return wrapped


def join_paths(prefix: str, path: str) -> str:
    """Join a group prefix and a route path with exactly one slash."""
    if not path:
        return prefix or "/"
    return prefix.rstrip("/") + "/" + path.lstrip("/")


class MiddlewareRoute(APIRoute):
    """APIRoute whose request handler is wrapped in route-scoped middleware."""

    def __init__(self, path: str, endpoint: Handler, *, middleware: Sequence[Middleware] = (), **kwargs: Any) -> None:
        # get_route_handler() runs inside APIRoute.__init__
        self.middleware = tuple(middleware)
        super().__init__(path, endpoint, **kwargs)

    def get_route_handler(self) -> CallNext:
        return chain(self.middleware, super().get_route_handler())


class RouteGroup:
    """A path-prefixed collection of routes sharing middleware.

    Attributes:
        prefix: Path prefix for every route in the group (e.g. "/private").
        middleware: Middleware applied to routes registered from now on.

    Example:
        ```python
        def register(group: RouteGroup) -> None:
            group.get("/ping", lambda: {"message": "pong"})

        server.register_routes(register)
        ```
    """

    def __init__(self, router: APIRouter, prefix: str = "/", middleware: Sequence[Middleware] = ()) -> None:
        self._router = router
        self.prefix = prefix
        self.middleware: list[Middleware] = list(middleware)

    def use(self, *middleware: Middleware) -> None:
        """Append middleware for routes registered after this call."""
        self.middleware.extend(middleware)

    def group(self, prefix: str, *middleware: Middleware) -> RouteGroup:
        """Create a nested group inheriting this group's prefix and middleware."""
        return RouteGroup(self._router, join_paths(self.prefix, prefix), [*self.middleware, *middleware])

    def handle(self, method: str, path: str, handler: Handler) -> bool:
        """Register a handler for an HTTP method under this group's prefix.

        Args:
            method: One of GET, POST, PUT, PATCH, DELETE (case-insensitive).
            path: Route path relative to the prefix. FastAPI path parameters
                are supported (e.g. "/users/{user_id}").
            handler: FastAPI endpoint function.

        Returns:
            True if the route was registered, False if the method is not
            supported. Unsupported methods are logged and ignored.
        """
        full_path = join_paths(self.prefix, path)
        verb = method.upper()
        if verb not in SUPPORTED_METHODS:
            logger.warning("unsupported method", extra={"method": method, "route": full_path})
            return False

        route_class = partial(MiddlewareRoute, middleware=tuple(self.middleware)) if self.middleware else None
        self._router.add_api_route(
            full_path,
            handler,
            methods=[verb],
            route_class_override=route_class,  # type: ignore[arg-type]
        )
        return True

    def get(self, path: str, handler: Handler) -> bool:
        return self.handle("GET", path, handler)

    def post(self, path: str, handler: Handler) -> bool:
        return self.handle("POST", path, handler)

    def put(self, path: str, handler: Handler) -> bool:
        return self.handle("PUT", path, handler)

    def patch(self, path: str, handler: Handler) -> bool:
        return self.handle("PATCH", path, handler)

    def delete(self, path: str, handler: Handler) -> bool:
        return self.handle("DELETE", path, handler)


@attrs.define(frozen=True, slots=True)
class RouteConfig:
    """Declarative description of a single route.

    Attributes:
        path: Route path (e.g. "/users/{user_id}").
        method: HTTP method; see `SUPPORTED_METHODS`.
        handler: FastAPI endpoint function.
        middleware: Middleware wrapping this route only, outermost first.
    """

    path: str
    method: str
    handler: Handler
    middleware: tuple[Middleware, ...] = attrs.field(default=(), converter=tuple)
