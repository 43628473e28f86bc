"""Access logging middleware for the server wrapper.

Every request produces two records on the `httpkit.access` logger: one when
it arrives and one when its response is ready. The completion record's level
follows the status class, so 5xx responses surface as errors and 4xx as
warnings without any extra handler configuration.
"""

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("httpkit.access")


def _level_for(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


def _describe(request: Request) -> dict[str, Any]:
    target = request.url.path
    if request.url.query:
        target = f"{target}?{request.url.query}"
    return {
        "path": target,
        "method": request.method,
        "remoteAddr": request.client.host if request.client else "unknown",
        "userAgent": request.headers.get("user-agent", ""),
    }


class LoggerMiddleware(BaseHTTPMiddleware):
    """Log each request on arrival and on completion.

    The completion record carries the status code and the elapsed time in
    seconds (`since`). Requests that raise past this middleware only get the
    arrival record; `RecoveryMiddleware` sits inside it so handler failures
    still complete as 500s.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        fields = _describe(request)
        logger.info("request started", extra={"request": fields})

        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started

        logger.log(
            _level_for(response.status_code),
            "request completed",
            extra={"response": {**fields, "statuscode": response.status_code, "since": elapsed}},
        )
        return response
