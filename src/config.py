"""Configuration management for the server and client wrappers.

This module provides the configuration system using Pydantic models. All
settings are loaded from environment variables with sensible defaults.

## Configuration Sources

Configuration is read from environment variables by the `from_env()`
classmethods. Library code never reads the environment on its own: build a
config once at process start and pass it into `Server` / `RestClient`.
The `get_settings()` function uses `@lru_cache` to ensure settings are
loaded once per process.

## Environment Variables

The following environment variables are supported (all optional with
defaults):

**Server**
- `SERVER_HOST`: Interface to bind (default: `localhost`)
- `SERVER_PORT`: Port to bind, `0` picks a free port (default: `8080`)
- `GIN_MODE`: Run mode - `debug`, `release` or `test` (default: `debug`)
- `SERVER_METRICS_ENABLED`: Expose Prometheus metrics at `/metrics`
  (default: `false`)
- `SERVER_SHUTDOWN_TIMEOUT`: Default graceful shutdown deadline as a
  duration, e.g. `10s` (default: unset, wait for in-flight requests)

**Client**
- `CLIENT_BASE_URL`: Base URL prepended to request paths (default: empty)
- `CLIENT_TIMEOUT`: Per-attempt request timeout (default: `30s`)
- `CLIENT_RETRY_COUNT`: Retries after the first attempt (default: `3`)
- `CLIENT_RETRY_WAIT`: Backoff before the first retry (default: `1s`)
- `CLIENT_RETRY_MAX_WAIT`: Upper bound for a single backoff (default: `2s`)

Durations are unit-suffixed numbers: `300ms`, `1.5s`, `2m`, `1h30m`.

## Usage

```python
from config import get_settings
from client import RestClient
from server import Server

settings = get_settings()
server = Server(settings.server)
client = RestClient(settings.client)
```
"""

import os
import re
from functools import lru_cache
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import SettingsConfigDict

_DURATION_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # noqa: RUF001
    "μs": 1e-6,  # noqa: RUF001
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")  # noqa: RUF001

DEFAULT_HEADERS: dict[str, str] = {
    "Content-Type": "application/json",
    "Accept": "application/json",
}


def parse_duration(value: str) -> float:
    """Parse a duration string such as "1m30s" into seconds.

    Args:
        value: Duration such as `"30s"`, `"1m30s"`, `"250ms"` or `"0"`.

    Returns:
        Duration in seconds.

    Raises:
        ValueError: If the string is not a valid duration.
    """
    text = value.strip()
    sign = 1.0
    if text[:1] in ("+", "-"):
        sign = -1.0 if text[0] == "-" else 1.0
        text = text[1:]

    if text == "0":
        return 0.0

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        pos = match.end()

    if not text or pos != len(text):
        msg = f"invalid duration: {value!r}"
        raise ValueError(msg)
    return sign * total


def _env(key: str, default: str) -> str:
    """Read an environment variable, treating empty values as unset."""
    return os.getenv(key) or default


class ServerConfig(BaseModel):
    """Configuration for the HTTP server wrapper.

    Attributes:
        host: Interface to bind. Default: "localhost".
        port: Port to bind, kept as a string. Default: "8080".
        mode: Run mode. "debug" enables FastAPI debug output and DEBUG
            logging, "release" logs at INFO, "test" logs at WARNING.
        metrics_enabled: Expose Prometheus metrics at `/metrics`.
        shutdown_timeout: Default graceful shutdown deadline in seconds.
            None waits for in-flight requests indefinitely.
    """

    host: str = "localhost"
    port: str = "8080"
    mode: Literal["debug", "release", "test"] = "debug"
    metrics_enabled: bool = False
    shutdown_timeout: float | None = Field(default=None, ge=0)

    model_config = SettingsConfigDict(frozen=True)

    @field_validator("port")
    @classmethod
    def _validate_port(cls, value: str) -> str:
        if not value.isdigit() or not 0 <= int(value) <= 65535:
            msg = f"invalid port: {value!r}"
            raise ValueError(msg)
        return value

    @property
    def address(self) -> str:
        """Return the listen address as `host:port`."""
        return self.host + ":" + self.port

    @property
    def log_level(self) -> str:
        """Return the logging level implied by the run mode."""
        return {"debug": "DEBUG", "release": "INFO", "test": "WARNING"}[self.mode]

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Create ServerConfig from environment variables.

        Returns:
            Configured ServerConfig instance.

        Raises:
            ValueError: If GIN_MODE, SERVER_PORT or SERVER_SHUTDOWN_TIMEOUT is
                invalid.
        """
        mode = _env("GIN_MODE", "debug").lower()
        valid_modes = ("debug", "release", "test")
        if mode not in valid_modes:
            msg = f"Invalid GIN_MODE: {mode}. Must be one of: {valid_modes}"
            raise ValueError(msg)

        shutdown_timeout_str = os.getenv("SERVER_SHUTDOWN_TIMEOUT")
        shutdown_timeout: float | None = None
        if shutdown_timeout_str:
            shutdown_timeout = parse_duration(shutdown_timeout_str)

        return cls(
            host=_env("SERVER_HOST", "localhost"),
            port=_env("SERVER_PORT", "8080"),
            mode=mode,  # type: ignore[arg-type]
            metrics_enabled=_env("SERVER_METRICS_ENABLED", "false").lower() == "true",
            shutdown_timeout=shutdown_timeout,
        )


class ClientConfig(BaseModel):
    """Configuration for the REST client wrapper.

    Attributes:
        base_url: Base URL prepended to request paths. Default: "".
        timeout: Per-attempt request timeout in seconds. Default: 30.
        retry_count: Retries after the first attempt. Default: 3.
        retry_wait: Backoff before the first retry in seconds. Default: 1.
        retry_max_wait: Upper bound for a single backoff in seconds.
            Default: 2.
        headers: Headers sent with every request. Default: JSON
            Content-Type and Accept.
    """

    base_url: str = ""
    timeout: float = Field(default=30.0, gt=0)
    retry_count: int = Field(default=3, ge=0)
    retry_wait: float = Field(default=1.0, ge=0)
    retry_max_wait: float = Field(default=2.0, ge=0)
    headers: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_HEADERS))

    model_config = SettingsConfigDict(frozen=True)

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Create ClientConfig from environment variables.

        Returns:
            Configured ClientConfig instance.

        Raises:
            ValueError: If a duration or the retry count cannot be parsed.
        """
        return cls(
            base_url=_env("CLIENT_BASE_URL", ""),
            timeout=parse_duration(_env("CLIENT_TIMEOUT", "30s")),
            retry_count=int(_env("CLIENT_RETRY_COUNT", "3")),
            retry_wait=parse_duration(_env("CLIENT_RETRY_WAIT", "1s")),
            retry_max_wait=parse_duration(_env("CLIENT_RETRY_MAX_WAIT", "2s")),
        )


class Settings(BaseModel):
    """Immutable runtime configuration for a process.

    Attributes:
        server: HTTP server configuration.
        client: REST client configuration.
    """

    server: ServerConfig
    client: ClientConfig

    model_config = SettingsConfigDict(frozen=True)

    @classmethod
    def from_env(cls) -> "Settings":
        """Create Settings from environment variables.

        Returns:
            Configured Settings instance.
        """
        return cls(server=ServerConfig.from_env(), client=ClientConfig.from_env())


@lru_cache(maxsize=1)
def get_settings() -> "Settings":
    """Load and return application settings (cached per process).

    Returns:
        A frozen `Settings` instance with all configuration values.

    Note:
        Settings are loaded once per process. Call `get_settings.cache_clear()`
        to pick up changed environment variables (e.g. in tests).
    """
    return Settings.from_env()
