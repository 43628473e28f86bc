"""REST client wrapper built on requests and httpx.

This package provides:
- `Client`: the abstract client interface
- `RestClient`: the concrete implementation configured from `ClientConfig`
- The client error types

## Usage

```python
from client import RestClient, StatusError
from config import ClientConfig

with RestClient(ClientConfig.from_env()) as client:
    try:
        user = client.get("/users/1")
    except StatusError as e:
        print(e.status)  # "404 Not Found"
```
"""

from foundation.exceptions import ClientError, DecodeError, StatusError

from .interfaces import BinarySink, Client
from .rest import RestClient, TransportErrorClassifier

__all__ = [
    "BinarySink",
    "Client",
    "ClientError",
    "DecodeError",
    "RestClient",
    "StatusError",
    "TransportErrorClassifier",
]
