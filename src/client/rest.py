"""REST client wrapping requests (blocking) and httpx (async).

This module provides the `RestClient` class that encapsulates a
`ClientConfig` and exposes JSON verbs with status checking, response
decoding and retries.

## Usage

```python
from client import RestClient
from config import ClientConfig

client = RestClient(ClientConfig(base_url="https://api.example.com"))

user = client.get("/users/1", response_model=User)
created = client.post("/users", CreateUser(name="John"), response_model=User)
client.delete("/users/1")

with open("report.zip", "wb") as f:
    client.download("/files/report.zip", f)
```

## Cancellation

The async verbs honour task cancellation. Wrapping a call in
`asyncio.timeout()` or cancelling the task aborts the in-flight request;
cancellation is never retried.

## Design

The client:
- Builds one `requests.Session` at construction (headers, pooling)
- Opens an `httpx.AsyncClient` per async call, on an injectable transport
- Retries transport errors and 429/5xx responses with exponential backoff
- Propagates transport exceptions unchanged, raises `StatusError` for
  unexpected status codes and `DecodeError` for undecodable bodies
"""

import json
import logging
from typing import Any, TypeVar

import attrs
import httpx
import requests
from pydantic import TypeAdapter
from pydantic_core import to_jsonable_python
from tenacity import AsyncRetrying, Retrying

from config import ClientConfig
from foundation.exceptions import DecodeError, StatusError
from foundation.http import create_session, join_url, status_text
from foundation.retry import HTTPErrorClassifier, retry_options

from .interfaces import BinarySink, Client

T = TypeVar("T")

logger = logging.getLogger("httpkit.client")

_OK = frozenset({200})
_OK_OR_CREATED = frozenset({200, 201})
_OK_OR_NO_CONTENT = frozenset({200, 204})

_CHUNK_SIZE = 64 * 1024


class TransportErrorClassifier(HTTPErrorClassifier):
    """Classify requests/httpx failures for retrying.

    Connection failures and timeouts are retriable. Everything else
    (invalid URLs, certificate or TLS handshake failures, cancellation) fails
    immediately. requests reports TLS failures as a `ConnectionError`
    subclass, so they are ruled out first.
    """

    def is_retriable(self, exc: BaseException) -> bool:
        if isinstance(exc, requests.exceptions.SSLError):
            return False
        return isinstance(
            exc,
            (
                requests.ConnectionError,
                requests.Timeout,
                httpx.TimeoutException,
                httpx.NetworkError,
                httpx.RemoteProtocolError,
            ),
        )

    def get_error_details(self, exc: BaseException) -> dict[str, Any]:
        return {"error": str(exc)}


def _encode(body: Any) -> Any:
    """Convert a request body (pydantic model, dataclass, dict, ...) to JSON-able data."""
    return to_jsonable_python(body)


def _check_status(status_code: int, reason: str | None, expected: frozenset[int]) -> None:
    if status_code not in expected:
        raise StatusError(status_code, status_text(status_code, reason))


def _decode(content: bytes, response_model: type[T] | None) -> Any:
    try:
        if response_model is None:
            return json.loads(content)
        return TypeAdapter(response_model).validate_json(content)
    except ValueError as e:
        # json.JSONDecodeError and pydantic.ValidationError are both ValueErrors
        msg = f"failed to decode response body: {e}"
        raise DecodeError(msg) from e


@attrs.define(frozen=False, slots=True)
class RestClient(Client):
    """JSON REST client with retry and timeout configured once.

    Attributes:
        config: Client configuration (base URL, timeout, retry policy,
            headers).

    Example:
        ```python
        client = RestClient(ClientConfig(base_url="http://localhost:8080"))
        data = client.get("/ping")
        # Returns: {"message": "pong"}
        ```

    Note:
        The blocking verbs share one `requests.Session` built at construction.
        The async verbs open a short-lived `httpx.AsyncClient` per call from
        the same configuration (headers, timeout, transport), so connections
        are not pooled across async calls and no event loop is bound to the
        client.

        This class is not frozen to allow replacing the session or the async
        transport (e.g. with mocks in tests).
    """

    config: ClientConfig
    _session: requests.Session | None = attrs.field(init=False, default=None)
    _async_transport: httpx.AsyncBaseTransport | None = attrs.field(init=False, default=None)
    _classifier: TransportErrorClassifier = attrs.field(init=False, factory=TransportErrorClassifier)

    def __attrs_post_init__(self) -> None:
        """Initialize the requests session."""
        self._session = create_session(self.config.headers)

    @property
    def session(self) -> requests.Session:
        """Get the requests session, creating one if it was closed."""
        if self._session is None:
            self._session = create_session(self.config.headers)
        return self._session

    def set_session(self, session: requests.Session) -> None:
        """Set a custom requests session for the blocking verbs.

        Args:
            session: Requests session to use for API calls.
        """
        self._session = session

    def set_async_transport(self, transport: httpx.AsyncBaseTransport | None) -> None:
        """Set the httpx transport used by the async verbs.

        Args:
            transport: Transport such as `httpx.MockTransport`, or None for
                httpx's default network transport.
        """
        self._async_transport = transport

    def close(self) -> None:
        """Close the HTTP session and release resources."""
        if self._session is not None:
            self._session.close()
            self._session = None

    def __enter__(self) -> "RestClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # =========================================================================
    # Retry
    # =========================================================================

    def _retry_options(self) -> dict[str, Any]:
        return retry_options(
            retry_count=self.config.retry_count,
            wait=self.config.retry_wait,
            max_wait=self.config.retry_max_wait,
            classifier=self._classifier,
            logger=logger,
            retry_on_result=lambda resp: self._classifier.is_retriable_http_status(resp.status_code),
            get_result_details=lambda resp: {"statuscode": resp.status_code},
        )

    # =========================================================================
    # Blocking verbs (requests)
    # =========================================================================

    def _send(self, method: str, path: str, *, json_body: Any = None, stream: bool = False) -> requests.Response:
        url = join_url(self.config.base_url, path)

        def attempt() -> requests.Response:
            resp = self.session.request(method, url, json=json_body, timeout=self.config.timeout, stream=stream)
            if stream and resp.status_code != 200:
                resp.close()
            return resp

        resp: requests.Response = Retrying(**self._retry_options())(attempt)
        logger.debug("request sent", extra={"method": method, "url": url, "statuscode": resp.status_code})
        return resp

    def get(self, path: str, response_model: type[T] | None = None) -> Any:
        resp = self._send("GET", path)
        _check_status(resp.status_code, resp.reason, _OK)
        return _decode(resp.content, response_model)

    def post(self, path: str, body: Any = None, response_model: type[T] | None = None) -> Any:
        resp = self._send("POST", path, json_body=_encode(body))
        _check_status(resp.status_code, resp.reason, _OK_OR_CREATED)
        return _decode(resp.content, response_model)

    def put(self, path: str, body: Any = None, response_model: type[T] | None = None) -> Any:
        resp = self._send("PUT", path, json_body=_encode(body))
        _check_status(resp.status_code, resp.reason, _OK)
        return _decode(resp.content, response_model)

    def delete(self, path: str) -> None:
        resp = self._send("DELETE", path)
        _check_status(resp.status_code, resp.reason, _OK_OR_NO_CONTENT)

    def download(self, path: str, sink: BinarySink) -> int:
        """Stream the body of a GET response into `sink`.

        The body is never buffered in memory. Bytes already written to the sink
        stay there if the transfer fails partway.

        Args:
            path: Request path or absolute URL.
            sink: Binary writable object, e.g. a file opened with "wb".

        Returns:
            Number of bytes written.

        Raises:
            StatusError: If the status code is not 200.
            requests.RequestException: If the transfer fails.
        """
        resp = self._send("GET", path, stream=True)
        with resp:
            _check_status(resp.status_code, resp.reason, _OK)
            written = 0
            for chunk in resp.iter_content(chunk_size=_CHUNK_SIZE):
                sink.write(chunk)
                written += len(chunk)
        return written

    # =========================================================================
    # Async verbs (httpx)
    # =========================================================================

    def _async_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            headers=self.config.headers,
            timeout=self.config.timeout,
            transport=self._async_transport,
        )

    async def _send_async(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        *,
        json_body: Any = None,
        stream: bool = False,
    ) -> httpx.Response:
        url = join_url(self.config.base_url, path)

        async def attempt() -> httpx.Response:
            request = client.build_request(method, url, json=json_body)
            resp = await client.send(request, stream=stream)
            if stream and resp.status_code != 200:
                await resp.aclose()
            return resp

        resp: httpx.Response = await AsyncRetrying(**self._retry_options())(attempt)
        logger.debug("request sent", extra={"method": method, "url": url, "statuscode": resp.status_code})
        return resp

    async def get_async(self, path: str, response_model: type[T] | None = None) -> Any:
        async with self._async_client() as client:
            resp = await self._send_async(client, "GET", path)
        _check_status(resp.status_code, resp.reason_phrase, _OK)
        return _decode(resp.content, response_model)

    async def post_async(self, path: str, body: Any = None, response_model: type[T] | None = None) -> Any:
        async with self._async_client() as client:
            resp = await self._send_async(client, "POST", path, json_body=_encode(body))
        _check_status(resp.status_code, resp.reason_phrase, _OK_OR_CREATED)
        return _decode(resp.content, response_model)

    async def put_async(self, path: str, body: Any = None, response_model: type[T] | None = None) -> Any:
        async with self._async_client() as client:
            resp = await self._send_async(client, "PUT", path, json_body=_encode(body))
        _check_status(resp.status_code, resp.reason_phrase, _OK)
        return _decode(resp.content, response_model)

    async def delete_async(self, path: str) -> None:
        async with self._async_client() as client:
            resp = await self._send_async(client, "DELETE", path)
        _check_status(resp.status_code, resp.reason_phrase, _OK_OR_NO_CONTENT)

    async def download_async(self, path: str, sink: BinarySink) -> int:
        """Async version of `download()`; `sink.write` is called synchronously."""
        async with self._async_client() as client:
            resp = await self._send_async(client, "GET", path, stream=True)
            try:
                _check_status(resp.status_code, resp.reason_phrase, _OK)
                written = 0
                async for chunk in resp.aiter_bytes():
                    sink.write(chunk)
                    written += len(chunk)
            finally:
                await resp.aclose()
        return written
