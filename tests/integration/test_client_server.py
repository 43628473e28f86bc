"""End-to-end tests for RestClient against a live Server.

# Test Coverage

The tests cover:
  - GET bodies decoded verbatim
  - POST with 200 and 201 responses, PUT and DELETE
  - Byte-exact downloads on both transports
  - Retries of retriable statuses, and giving up with StatusError
  - Truncated download bodies surfacing as errors

# Running Tests

Run with: pytest tests/integration/test_client_server.py
"""

import io
import socket
import threading
from collections.abc import Iterator

import pytest
import requests

from client import RestClient, StatusError
from config import ClientConfig

pytestmark = pytest.mark.integration


class TestClientServer:
    """Requests from RestClient served by Server over a real socket."""

    def test_get_returns_body_verbatim(self, live_client: RestClient) -> None:
        assert live_client.get("/echo?x=1") == {"path": "/echo", "query": {"x": "1"}}

    @pytest.mark.parametrize("created", [False, True])
    def test_post_accepts_200_and_201(self, live_client: RestClient, created: bool) -> None:
        body = {"name": "john", "created": created}

        assert live_client.post("/items", body) == {"received": body}

    def test_put(self, live_client: RestClient) -> None:
        assert live_client.put("/items", {"name": "jane"}) == {"replaced": {"name": "jane"}}

    def test_delete(self, live_client: RestClient) -> None:
        live_client.delete("/items/1")

        with pytest.raises(StatusError) as exc_info:
            live_client.delete("/items/404")
        assert exc_info.value.status_code == 404

    def test_unknown_route(self, live_client: RestClient) -> None:
        with pytest.raises(StatusError) as exc_info:
            live_client.get("/nope")

        assert exc_info.value.status == "404 Not Found"

    def test_download_is_byte_exact(self, live_client: RestClient, blob: bytes) -> None:
        sink = io.BytesIO()

        written = live_client.download("/blob", sink)

        assert written == len(blob)
        assert sink.getvalue() == blob

    def test_retry_until_success(self, live_client: RestClient, counter) -> None:
        """Test that two 503s followed by a 200 succeed with retry_count=2.

        **Why this test is important:**
          - Exercises the retry policy against real HTTP responses
        """
        assert live_client.get("/flaky/sync") == {"key": "sync", "ok": True}
        assert counter.calls("sync") == 3

    def test_retry_gives_up(self, live_client: RestClient, counter) -> None:
        with pytest.raises(StatusError) as exc_info:
            live_client.get("/down/gone")

        assert exc_info.value.status_code == 500
        assert counter.calls("gone") == 3


class TestClientServerAsync:
    """The async verbs against the same live server."""

    @pytest.mark.asyncio
    async def test_get_async(self, live_client: RestClient) -> None:
        assert await live_client.get_async("/echo") == {"path": "/echo", "query": {}}

    @pytest.mark.asyncio
    async def test_post_async(self, live_client: RestClient) -> None:
        assert await live_client.post_async("/items", {"created": True}) == {"received": {"created": True}}

    @pytest.mark.asyncio
    async def test_download_async(self, live_client: RestClient, blob: bytes) -> None:
        sink = io.BytesIO()

        assert await live_client.download_async("/blob", sink) == len(blob)
        assert sink.getvalue() == blob

    @pytest.mark.asyncio
    async def test_retry_until_success_async(self, live_client: RestClient, counter) -> None:
        assert await live_client.get_async("/flaky/async") == {"key": "async", "ok": True}
        assert counter.calls("async") == 3


class TestTruncatedDownload:
    """Downloads from a peer that closes the connection mid-body."""

    @pytest.fixture
    def truncating_server(self) -> Iterator[str]:
        """Serve one response announcing 100 bytes but sending only 10."""
        listener = socket.create_server(("127.0.0.1", 0))
        port = listener.getsockname()[1]

        def serve() -> None:
            conn, _ = listener.accept()
            with conn:
                conn.recv(65536)
                conn.sendall(
                    b"HTTP/1.1 200 OK\r\n"
                    b"Content-Type: application/octet-stream\r\n"
                    b"Content-Length: 100\r\n"
                    b"Connection: close\r\n"
                    b"\r\n" + b"0123456789"
                )

        thread = threading.Thread(target=serve, daemon=True)
        thread.start()
        yield f"http://127.0.0.1:{port}"
        thread.join(timeout=5)
        listener.close()

    def test_short_body_raises(self, truncating_server: str) -> None:
        """Test that a body shorter than its Content-Length is an error.

        **Why this test is important:**
          - A silently truncated file would look like a successful download
        """
        config = ClientConfig(base_url=truncating_server, timeout=5.0, retry_count=0)
        sink = io.BytesIO()

        with RestClient(config) as client, pytest.raises(requests.exceptions.ChunkedEncodingError):
            client.download("/blob", sink)

        assert len(sink.getvalue()) <= 10
