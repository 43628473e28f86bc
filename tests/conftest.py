"""Shared pytest configuration and fixtures.

This module provides global fixtures and configuration that are available
to all tests in the test suite.

Fixtures defined here are automatically available to all tests without explicit
import statements. Keep fixtures small, composable, and focused on setup/teardown.
Do NOT put business logic in fixtures.
"""

# pylint: disable=redefined-outer-name

import logging

import pytest

from config import get_settings

LOGGER_NAMES = (
    "httpkit.access",
    "httpkit.error",
    "httpkit.server",
    "httpkit.client",
    "uvicorn.error",
)


@pytest.fixture(autouse=True)
def keep_logging_config(monkeypatch: pytest.MonkeyPatch) -> None:
    """Stop `create_app()` from re-running dictConfig during tests.

    dictConfig replaces the handlers of the configured loggers, which would
    detach pytest's caplog handler mid-test.
    """
    monkeypatch.setattr("server.app.dictConfig", lambda config: None)


@pytest.fixture(autouse=True)
def attach_caplog_handler(caplog: pytest.LogCaptureFixture):
    """Attach pytest's caplog handler to the package loggers.

    The production logger config uses non-propagating loggers, so tests need
    to attach caplog's handler directly to capture records. Loggers that still
    propagate already reach caplog through the root logger.
    """
    attached = []
    for name in LOGGER_NAMES:
        logger = logging.getLogger(name)
        if not logger.propagate and caplog.handler not in logger.handlers:
            logger.addHandler(caplog.handler)
            attached.append(logger)

    try:
        yield
    finally:
        for logger in attached:
            logger.removeHandler(caplog.handler)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Make every test read the environment afresh."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
