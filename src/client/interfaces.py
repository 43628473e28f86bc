"""Abstract base class (interface) for REST clients.

Callers that only need to issue requests should depend on `Client` rather
than on `RestClient`, so the transport can be swapped or mocked in tests.
"""

from abc import ABC, abstractmethod
from typing import Any, Protocol, TypeVar

T = TypeVar("T")


class BinarySink(Protocol):
    """Anything downloaded bytes can be written to (files, BytesIO, ...)."""

    def write(self, data: bytes, /) -> Any: ...


class Client(ABC):
    """Abstract base class for JSON REST clients.

    Every verb exists in a blocking form and an async form (`*_async`).
    Verbs that return data decode the JSON response body; when a
    `response_model` is given the data is validated into that type.

    Status expectations:
        - get / put: 200
        - post: 200 or 201
        - delete: 200 or 204
        - download: 200
    """

    @abstractmethod
    def get(self, path: str, response_model: type[T] | None = None) -> Any:
        """Send a GET request and decode the JSON response.

        Raises:
            StatusError: If the status code is not 200.
            DecodeError: If the body is not valid JSON for `response_model`.
        """

    @abstractmethod
    def post(self, path: str, body: Any = None, response_model: type[T] | None = None) -> Any:
        """Send a POST request with a JSON body and decode the JSON response.

        Raises:
            StatusError: If the status code is not 200 or 201.
            DecodeError: If the body is not valid JSON for `response_model`.
        """

    @abstractmethod
    def put(self, path: str, body: Any = None, response_model: type[T] | None = None) -> Any:
        """Send a PUT request with a JSON body and decode the JSON response.

        Raises:
            StatusError: If the status code is not 200.
            DecodeError: If the body is not valid JSON for `response_model`.
        """

    @abstractmethod
    def delete(self, path: str) -> None:
        """Send a DELETE request.

        Raises:
            StatusError: If the status code is not 200 or 204.
        """

    @abstractmethod
    def download(self, path: str, sink: BinarySink) -> int:
        """Stream the body of a GET response into `sink`.

        Returns:
            Number of bytes written.

        Raises:
            StatusError: If the status code is not 200.
        """

    @abstractmethod
    async def get_async(self, path: str, response_model: type[T] | None = None) -> Any:
        """Async version of `get()`."""

    @abstractmethod
    async def post_async(self, path: str, body: Any = None, response_model: type[T] | None = None) -> Any:
        """Async version of `post()`."""

    @abstractmethod
    async def put_async(self, path: str, body: Any = None, response_model: type[T] | None = None) -> Any:
        """Async version of `put()`."""

    @abstractmethod
    async def delete_async(self, path: str) -> None:
        """Async version of `delete()`."""

    @abstractmethod
    async def download_async(self, path: str, sink: BinarySink) -> int:
        """Async version of `download()`."""

    def close(self) -> None:
        """Release transport resources. No-op by default."""
