"""App-wide middleware registered through `Server.register_middleware`.

Starlette stacks middleware added later outside of middleware added earlier.
This middleware holds a list that callers extend over time and runs it in
registration order, inside request logging and recovery.
"""

from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from server.routes import Middleware, chain


class MiddlewareChain(BaseHTTPMiddleware):
    """Run a caller-managed list of middleware, first registered outermost.

    Args:
        app: The downstream ASGI application.
        middleware: Shared list of middleware. Items appended after the app
            was built still take effect on later requests.
    """

    def __init__(self, app: ASGIApp, middleware: list[Middleware]) -> None:
        super().__init__(app)
        self.middleware = middleware

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        if not self.middleware:
            return await call_next(request)
        return await chain(self.middleware, call_next)(request)
