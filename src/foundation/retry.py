"""Retry policy shared by the blocking and async client transports.

`RestClient` sends every request through `tenacity.Retrying` (requests) or
`tenacity.AsyncRetrying` (httpx). Both are built from `retry_options()` so a
flaky upstream is handled identically whichever verb family the caller uses.

Two kinds of outcome are retried:

- exceptions the classifier accepts (connection refused, timeouts, ...)
- responses whose status the classifier accepts (429, 500, 502, 503, 504)

Once attempts run out the final outcome is returned unchanged, leaving
status handling to the caller.

## Usage

```python
options = retry_options(
    retry_count=3,
    wait=1.0,
    max_wait=2.0,
    classifier=TransportErrorClassifier(),
    logger=logger,
    retry_on_result=lambda resp: classifier.is_retriable_http_status(resp.status_code),
)
response = Retrying(**options)(send_request)
```
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Protocol

from tenacity import (
    RetryCallState,
    retry_if_exception,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

# =============================================================================
# Error Classification
# =============================================================================

# Throttling plus the server/gateway failures that usually clear on their own.
# 501 is not retried.
RETRIABLE_HTTP_STATUS_CODES: frozenset[str] = frozenset({"429", "500", "502", "503", "504"})


class ErrorClassifier(Protocol):
    """What `retry_options()` needs to know about failed attempts."""

    def is_retriable(self, exc: BaseException) -> bool: ...

    def get_error_details(self, exc: BaseException) -> dict[str, Any]: ...


class HTTPErrorClassifier(ABC):
    """Classifier base that also knows which HTTP statuses are transient.

    Transport-specific subclasses decide which exceptions are transient;
    status classification is shared.
    """

    retriable_http_codes: frozenset[str] = RETRIABLE_HTTP_STATUS_CODES

    def is_retriable_http_status(self, status: str | int) -> bool:
        """Return True if a response with this status should be retried."""
        return str(status) in self.retriable_http_codes

    @abstractmethod
    def is_retriable(self, exc: BaseException) -> bool:
        """Return True if the attempt that raised `exc` should be retried."""

    @abstractmethod
    def get_error_details(self, exc: BaseException) -> dict[str, Any]:
        """Return structured fields describing `exc` for the retry log."""


# =============================================================================
# Retry Logging
# =============================================================================


def create_retry_logger(
    logger: logging.Logger,
    get_error_details: Callable[[BaseException], dict[str, Any]] | None = None,
    message: str = "Operation failed, retrying",
    get_result_details: Callable[[Any], dict[str, Any]] | None = None,
) -> Callable[[RetryCallState], None]:
    """Create a retry logging callback for tenacity.

    The callback is suitable for tenacity's `before_sleep` parameter. It logs
    retry attempts with structured context including attempt number, wait
    time, and error or result details.

    Args:
        logger: Logger instance to use for logging.
        get_error_details: Optional function to extract additional details
            from a failed attempt's exception.
        message: Log message.
        get_result_details: Optional function to extract details from an
            attempt that returned a value but was still retried (e.g. a 503
            response).

    Returns:
        Callback function for tenacity's before_sleep parameter.
    """

    def log_retry(retry_state: RetryCallState) -> None:
        outcome = retry_state.outcome
        if outcome is None:
            return

        wait_time = retry_state.next_action.sleep if retry_state.next_action else 0
        extra: dict[str, Any] = {
            "attempt": retry_state.attempt_number,
            "wait_seconds": round(wait_time, 2),
        }

        if outcome.failed:
            exc = outcome.exception()
            extra["error_type"] = type(exc).__name__
            if get_error_details is not None:
                extra.update(get_error_details(exc))
        elif get_result_details is not None:
            extra.update(get_result_details(outcome.result()))

        logger.warning(message, extra=extra)

    return log_retry


def _last_outcome(retry_state: RetryCallState) -> Any:
    """Return the final attempt's result, or re-raise its exception."""
    assert retry_state.outcome is not None
    return retry_state.outcome.result()


# =============================================================================
# Retry Policy
# =============================================================================


def retry_options(
    *,
    retry_count: int,
    wait: float,
    max_wait: float,
    classifier: ErrorClassifier,
    logger: logging.Logger,
    retry_on_result: Callable[[Any], bool] | None = None,
    get_result_details: Callable[[Any], dict[str, Any]] | None = None,
) -> dict[str, Any]:
    """Build keyword arguments for `tenacity.Retrying` / `AsyncRetrying`.

    Args:
        retry_count: Number of retries after the first attempt. Zero disables
            retrying.
        wait: Backoff before the first retry in seconds; doubles afterwards.
        max_wait: Upper bound for a single backoff in seconds.
        classifier: Decides which exceptions are retried.
        logger: Logger used for retry warnings.
        retry_on_result: Optional predicate; a returned value for which it is
            True is retried like a failure.
        get_result_details: Optional extractor for logging retried results.

    Returns:
        Dictionary of tenacity options.

    Note:
        When attempts are exhausted the last outcome is handed back unchanged:
        its exception is re-raised, or its return value is returned. Callers
        are expected to inspect returned values themselves.
    """
    retry = retry_if_exception(classifier.is_retriable)
    if retry_on_result is not None:
        retry = retry | retry_if_result(retry_on_result)

    return {
        "stop": stop_after_attempt(retry_count + 1),
        "wait": wait_exponential(multiplier=wait, max=max(wait, max_wait)),
        "retry": retry,
        "before_sleep": create_retry_logger(
            logger,
            classifier.get_error_details,
            message="Request failed, retrying",
            get_result_details=get_result_details,
        ),
        "retry_error_callback": _last_outcome,
    }
