"""Foundation utilities for shared infrastructure components.

This package provides shared utilities including:
- HTTP session and URL helpers
- Structured JSON logging
- Retry policies
- Exception hierarchy
"""
