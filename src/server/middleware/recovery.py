"""Panic recovery for the server wrapper.

Anything a handler (or inner middleware) raises that FastAPI did not turn into
a response ends up here. It is logged with its traceback on `httpkit.error`
and answered with a generic 500, so the connection and the server survive.
"""

import logging
from collections.abc import Awaitable, Callable

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from foundation.http import status_text

logger = logging.getLogger("httpkit.error")

INTERNAL_ERROR_BODY = {
    "error": "Internal Server Error",
    "message": "An unexpected error occurred.",
}


class RecoveryMiddleware(BaseHTTPMiddleware):
    """Turn unhandled exceptions into logged HTTP 500 responses.

    `HTTPException` is rendered by FastAPI before it reaches this layer and
    passes through untouched. The exception text is logged but never sent to
    the client.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.exception(
                "internal error",
                extra={
                    "error": {
                        "statuscode": 500,
                        "status": status_text(500),
                        "type": type(exc).__name__,
                        "message": str(exc),
                        "path": request.url.path,
                        "method": request.method,
                    }
                },
            )
            return JSONResponse(status_code=500, content=INTERNAL_ERROR_BODY)
