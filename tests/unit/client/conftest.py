"""Shared fixtures for REST client tests.

This module provides a client configuration whose retries do not sleep and a
mocked requests session.
"""

# pylint: disable=redefined-outer-name

from unittest.mock import MagicMock

import pytest
import requests

from client import RestClient
from config import ClientConfig


@pytest.fixture
def client_config() -> ClientConfig:
    """Client configuration with two fast retries."""
    return ClientConfig(base_url="http://api.test", timeout=5.0, retry_count=2, retry_wait=0.0, retry_max_wait=0.0)


@pytest.fixture
def mock_session() -> MagicMock:
    """Create a mock requests session.

    Returns:
        MagicMock: A session mock; tests set `request.return_value` or
        `request.side_effect` to canned responses.
    """
    return MagicMock(spec=requests.Session)


@pytest.fixture
def rest_client(client_config: ClientConfig, mock_session: MagicMock) -> RestClient:
    client = RestClient(client_config)
    client.set_session(mock_session)
    return client
