"""Middleware for the server wrapper.

This module provides FastAPI middleware for request logging, panic recovery
and caller-registered app-wide middleware.
"""

from server.middleware.chain import MiddlewareChain
from server.middleware.logger import LoggerMiddleware
from server.middleware.recovery import RecoveryMiddleware

__all__ = [
    "LoggerMiddleware",
    "MiddlewareChain",
    "RecoveryMiddleware",
]
