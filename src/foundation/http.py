"""Shared HTTP utilities for session management and response handling.

This module provides the transport-level helpers used by both the blocking
(requests) and async (httpx) code paths of `RestClient`, so both report
URLs and status lines the same way.
"""

from collections.abc import Mapping
from http import HTTPStatus

import requests
from requests.adapters import HTTPAdapter

# Default connection pool configuration
DEFAULT_POOL_CONNECTIONS = 10
DEFAULT_POOL_MAXSIZE = 10


def create_session(
    headers: Mapping[str, str] | None = None,
    pool_connections: int = DEFAULT_POOL_CONNECTIONS,
    pool_maxsize: int = DEFAULT_POOL_MAXSIZE,
) -> requests.Session:
    """Create a requests session with default headers and connection pooling.

    Retries are not configured on the adapter: `RestClient` retries whole
    requests itself so the blocking and async transports behave the same.

    Args:
        headers: Headers sent with every request made through the session.
        pool_connections: Number of connection pools to cache.
        pool_maxsize: Maximum connections kept per pool.

    Returns:
        Configured requests.Session.

    Example:
        ```python
        from foundation.http import create_session

        session = create_session({"Accept": "application/json"})
        response = session.get("http://api.example.com/users/1", timeout=30)
        ```
    """
    session = requests.Session()
    if headers:
        session.headers.update(headers)
    adapter = HTTPAdapter(pool_connections=pool_connections, pool_maxsize=pool_maxsize)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def join_url(base_url: str, path: str) -> str:
    """Resolve a request path against a base URL.

    Absolute URLs in `path` are used as-is. Otherwise exactly one slash
    separates the base URL and the path.

    Args:
        base_url: Base URL, may be empty.
        path: Request path or absolute URL.

    Returns:
        The URL to request.
    """
    if not base_url or path.startswith(("http://", "https://")):
        return path
    if not path:
        return base_url
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"


def status_text(status_code: int, reason: str | None = None) -> str:
    """Format an HTTP status line such as ``"404 Not Found"``.

    Args:
        status_code: Numeric status code.
        reason: Reason phrase reported by the server. Falls back to the
            standard phrase when empty.

    Returns:
        Status code followed by its reason phrase.
    """
    if not reason:
        try:
            reason = HTTPStatus(status_code).phrase
        except ValueError:
            return str(status_code)
    return f"{status_code} {reason}"
