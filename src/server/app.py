"""FastAPI application factory for the server wrapper.

This module provides the `create_app()` function that constructs and configures
the FastAPI application ("engine") owned by `Server`. This factory pattern allows:
- Easy testing (create app instances in tests)
- Configuration injection through `ServerConfig`
- Clear separation of app creation from app execution

## Middleware

The app always includes, from outermost to innermost:
1. **LoggerMiddleware**: Structured request start/completion logs
2. **RecoveryMiddleware**: Unhandled exceptions become HTTP 500 responses
3. **MiddlewareChain**: Caller middleware from `Server.register_middleware`

## Metrics

When `ServerConfig.metrics_enabled` is set, Prometheus metrics are exposed at
`/metrics` via prometheus-fastapi-instrumentator.
"""

from __future__ import annotations

import logging
from logging.config import dictConfig

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import ServerConfig
from foundation.http import status_text
from foundation.logger import build_logging_config
from server.middleware import LoggerMiddleware, MiddlewareChain, RecoveryMiddleware
from server.routes import Middleware

logger = logging.getLogger("httpkit.access")


def create_app(config: ServerConfig, middleware: list[Middleware] | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        config: Server configuration. The run mode selects the log level and
            FastAPI's debug flag.
        middleware: Shared list backing app-wide caller middleware. Items
            appended later still apply to later requests.

    Returns:
        A configured `FastAPI` instance with no routes registered.

    Note:
        Starlette wraps middleware added later around middleware added
        earlier, so they are added innermost first below.
    """
    #             ╭─────────────────────────────────────────────────────────╮
    #             │                        Logging                          │
    #             ╰─────────────────────────────────────────────────────────╯

    dictConfig(config=build_logging_config(config.log_level))

    app = FastAPI(
        title="httpkit",
        version="0.1.0",
        debug=config.mode == "debug",
    )

    #             ╭─────────────────────────────────────────────────────────╮
    #             │                        Middleware                       │
    #             ╰─────────────────────────────────────────────────────────╯

    app.add_middleware(MiddlewareChain, middleware=middleware if middleware is not None else [])
    app.add_middleware(RecoveryMiddleware)
    app.add_middleware(LoggerMiddleware)

    #             ╭─────────────────────────────────────────────────────────╮
    #             │                   Exception Handlers                    │
    #             ╰─────────────────────────────────────────────────────────╯

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Render HTTP errors (including 404/405 from routing) as JSON."""
        logger.warning(
            "http exception",
            extra={"error": {"statuscode": exc.status_code, "message": str(exc.detail)}},
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": status_text(exc.status_code), "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    #             ╭─────────────────────────────────────────────────────────╮
    #             │                        Metrics                          │
    #             ╰─────────────────────────────────────────────────────────╯

    if config.metrics_enabled:
        Instrumentator().instrument(app=app).expose(app=app)

    return app
