"""Unit tests for the FastAPI application factory.

This file tests `create_app()` and the behaviour every server application
gets out of the box.

# Test Coverage

The tests cover:
  - Application metadata and debug flag
  - JSON error bodies for routing errors (404, 405)
  - Recovery from handler exceptions
  - Request logging around every request
  - App-wide middleware ordering relative to logging and recovery
  - Optional Prometheus metrics endpoint

# Running Tests

Run with: pytest tests/unit/server/test_app.py
"""

import logging

import pytest
from fastapi import FastAPI, HTTPException, Request
from fastapi.testclient import TestClient

from config import ServerConfig
from server.app import create_app


@pytest.fixture
def app() -> FastAPI:
    app = create_app(ServerConfig(mode="test"))

    @app.get("/ok")
    def ok():
        return {"status": "ok"}

    @app.get("/boom")
    def boom():
        raise ValueError("kaboom")

    @app.get("/teapot")
    def teapot():
        raise HTTPException(status_code=418, detail="short and stout", headers={"X-Teapot": "yes"})

    return app


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


class TestCreateApp:
    """Test suite for create_app()."""

    def test_app_metadata(self, app: FastAPI) -> None:
        assert app.title == "httpkit"
        assert app.debug is False

    def test_debug_mode_sets_debug_flag(self) -> None:
        assert create_app(ServerConfig(mode="debug")).debug is True

    def test_applies_log_level_from_mode(self, monkeypatch: pytest.MonkeyPatch) -> None:
        configs = []
        monkeypatch.setattr("server.app.dictConfig", configs.append)

        create_app(ServerConfig(mode="release"))

        assert configs[0]["root"]["level"] == "INFO"

    def test_successful_request(self, client: TestClient) -> None:
        response = client.get("/ok")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_unknown_route_returns_json_404(self, client: TestClient) -> None:
        """Test that routing errors use the same JSON error shape.

        **Why this test is important:**
          - Clients parse a single error format for every failure
        """
        response = client.get("/nope")

        assert response.status_code == 404
        assert response.json() == {"error": "404 Not Found", "message": "Not Found"}

    def test_wrong_method_returns_json_405(self, client: TestClient) -> None:
        response = client.post("/ok")

        assert response.status_code == 405
        assert response.json()["error"] == "405 Method Not Allowed"
        assert "GET" in response.headers["Allow"]

    def test_http_exception_keeps_status_and_headers(self, client: TestClient) -> None:
        response = client.get("/teapot")

        assert response.status_code == 418
        assert response.json() == {"error": "418 I'm a Teapot", "message": "short and stout"}
        assert response.headers["X-Teapot"] == "yes"

    def test_handler_exception_returns_500(self, client: TestClient) -> None:
        response = client.get("/boom")

        assert response.status_code == 500
        assert response.json()["error"] == "Internal Server Error"
        assert client.get("/ok").status_code == 200

    def test_failed_request_is_still_logged(self, client: TestClient, caplog) -> None:
        """Test that request logging wraps recovery.

        **What it tests:**
          - A request whose handler raised is logged as completed with 500
        """
        with caplog.at_level(logging.INFO, logger="httpkit.access"):
            client.get("/boom")

        completed = [r for r in caplog.records if r.message == "request completed"]
        assert len(completed) == 1
        assert completed[0].response["statuscode"] == 500

    def test_app_wide_middleware_runs_inside_recovery(self) -> None:
        """Test that exceptions raised by caller middleware are recovered."""

        async def broken(request: Request, call_next):
            raise RuntimeError("middleware failed")

        app = create_app(ServerConfig(mode="test"), [broken])

        @app.get("/ok")
        def ok():
            return {"status": "ok"}

        response = TestClient(app).get("/ok")

        assert response.status_code == 500

    def test_metrics_disabled_by_default(self, client: TestClient) -> None:
        assert client.get("/metrics").status_code == 404

    def test_metrics_endpoint_when_enabled(self) -> None:
        app = create_app(ServerConfig(mode="test", metrics_enabled=True))

        @app.get("/ok")
        def ok():
            return {"status": "ok"}

        client = TestClient(app)
        client.get("/ok")
        response = client.get("/metrics")

        assert response.status_code == 200
        assert "http_requests_total" in response.text
