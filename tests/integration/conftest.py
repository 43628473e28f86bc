"""Shared fixtures for integration tests.

This module runs a real `Server` on an ephemeral loopback port in a
background thread and points `RestClient` instances at it, so requests go
through uvicorn, the middleware stack and the client transports end to end.

## Scoping

The live server is module-scoped: routes are registered once and every test
in a module shares the listener. Tests that count requests use their own
route paths so counters never collide.
"""

# pylint: disable=redefined-outer-name

import logging
import threading
import time
from collections.abc import Iterator

import pytest
from fastapi import Request, Response
from fastapi.responses import JSONResponse

from client import RestClient
from config import ClientConfig, ServerConfig
from server import RouteGroup, Server

logger = logging.getLogger(__name__)

BLOB = bytes(range(256)) * 4096


class FlakyCounter:
    """Fail the first `failures` calls of each key, then succeed."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._calls: dict[str, int] = {}

    def hit(self, key: str) -> int:
        with self._lock:
            self._calls[key] = self._calls.get(key, 0) + 1
            return self._calls[key]

    def calls(self, key: str) -> int:
        with self._lock:
            return self._calls.get(key, 0)


def register_test_routes(group: RouteGroup, counter: FlakyCounter) -> None:
    async def echo_get(request: Request):
        return {"path": request.url.path, "query": dict(request.query_params)}

    async def create_item(request: Request):
        body = await request.json()
        status = 201 if body.get("created") else 200
        return JSONResponse(status_code=status, content={"received": body})

    async def replace_item(request: Request):
        return {"replaced": await request.json()}

    async def remove_item(item_id: int):
        if item_id == 404:
            return JSONResponse(status_code=404, content={"error": "Not Found"})
        return Response(status_code=204)

    async def download_blob():
        return Response(content=BLOB, media_type="application/octet-stream")

    async def flaky(key: str):
        if counter.hit(key) <= 2:
            return JSONResponse(status_code=503, content={"error": "Service Unavailable"})
        return {"key": key, "ok": True}

    async def always_down(key: str):
        counter.hit(key)
        return JSONResponse(status_code=500, content={"error": "Internal Server Error"})

    group.get("/echo", echo_get)
    group.post("/items", create_item)
    group.put("/items", replace_item)
    group.delete("/items/{item_id}", remove_item)
    group.get("/blob", download_blob)
    group.get("/flaky/{key}", flaky)
    group.get("/down/{key}", always_down)


@pytest.fixture
def blob() -> bytes:
    """Body served by the /blob route."""
    return BLOB


@pytest.fixture(scope="module")
def counter() -> FlakyCounter:
    return FlakyCounter()


@pytest.fixture(scope="module")
def live_server(counter: FlakyCounter) -> Iterator[str]:
    """Start a server on 127.0.0.1 with an ephemeral port.

    Yields:
        Base URL of the running server, e.g. "http://127.0.0.1:54321".
    """
    srv = Server(ServerConfig(host="127.0.0.1", port="0", mode="test", shutdown_timeout=5))
    srv.register_routes(lambda group: register_test_routes(group, counter))
    thread = threading.Thread(target=srv.start, daemon=True)
    thread.start()

    deadline = time.monotonic() + 10
    while srv.bound_address is None:
        if time.monotonic() > deadline:
            pytest.fail("server did not start")
        time.sleep(0.01)

    base_url = f"http://{srv.bound_address}"
    logger.info("live server started at %s", base_url)
    yield base_url

    srv.shutdown()
    thread.join(timeout=10)


@pytest.fixture
def live_client(live_server: str) -> Iterator[RestClient]:
    config = ClientConfig(base_url=live_server, timeout=5.0, retry_count=2, retry_wait=0.0, retry_max_wait=0.0)
    with RestClient(config) as client:
        yield client
