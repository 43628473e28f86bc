"""HTTP server wrapper built on FastAPI and uvicorn.

This package contains all server-side code:
- `Server`: configuration, registration and lifecycle
- `RouteGroup` / `RouteConfig`: route registration helpers
- FastAPI application factory and built-in middleware
"""

from server.app import create_app
from server.routes import Middleware, RouteConfig, RouteGroup
from server.server import Server

__all__ = ["Middleware", "RouteConfig", "RouteGroup", "Server", "create_app"]
