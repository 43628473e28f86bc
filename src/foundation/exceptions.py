"""Exception classes for foundation utilities.

This module provides the exception hierarchy shared by the server and client
wrappers.

## Exception Hierarchy

All exceptions inherit from `FoundationError`:

- `ClientError`: Base class for failures reported by `RestClient`
    - `StatusError`: Response carried an unexpected HTTP status code
    - `DecodeError`: Response body was not valid JSON for the requested shape
- `ShutdownTimeoutError`: Graceful server shutdown exceeded its deadline

Transport failures (connection refused, timeouts, cancellation) are not
wrapped; they propagate as the underlying library raised them.
"""


class FoundationError(Exception):
    """Base exception class for foundation-related errors."""


class ClientError(FoundationError):
    """Base exception class for errors raised by the REST client."""


class StatusError(ClientError):
    """Exception raised when a response has an unexpected status code.

    Attributes:
        status_code: Numeric HTTP status code (e.g., 404).
        status: Status line text (e.g., "404 Not Found").
    """

    def __init__(self, status_code: int, status: str) -> None:
        self.status_code = status_code
        self.status = status
        super().__init__(f"request failed with status: {status}")


class DecodeError(ClientError):
    """Exception raised when a response body cannot be decoded.

    Covers both malformed JSON and JSON that does not match the requested
    response model.
    """


class ShutdownTimeoutError(FoundationError):
    """Exception raised when in-flight requests outlive the shutdown deadline.

    The listener is still stopped; handlers that were running past the deadline
    have been cancelled and their connections closed.
    """
