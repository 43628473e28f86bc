"""Example HTTP service built on the server wrapper.

This file is the **stable Uvicorn entrypoint**:

- `uvicorn main:app` (uvicorn manages the process and signals)
- `python -m main` (runs `Server.start()` with the configured address)

## Configuration (environment variables)

Configuration is loaded in `src/config.py` (see `ServerConfig`):

- `SERVER_HOST`, `SERVER_PORT`, `GIN_MODE`
- `SERVER_METRICS_ENABLED`, `SERVER_SHUTDOWN_TIMEOUT`

## Code organization

- `src/config.py`: settings + env loading
- `src/server/*`: FastAPI app factory, middleware, routing, lifecycle
- `src/client/*`: REST client over requests/httpx
- `src/foundation/*`: logging, retry, HTTP helpers, exceptions
"""

from config import get_settings
from server import RouteGroup, Server


async def ping() -> dict[str, str]:
    """Liveness endpoint."""
    return {"message": "pong"}


def register(group: RouteGroup) -> None:
    group.get("/ping", ping)


def build_server() -> Server:
    """Create the service with its routes registered."""
    srv = Server(get_settings().server)
    srv.register_routes(register)
    return srv


server = build_server()
app = server.app


def main() -> None:
    server.start()


if __name__ == "__main__":
    main()
