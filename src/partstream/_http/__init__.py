"""Shared HTTP infrastructure for gateway-backed object stores."""

from .config import DEFAULT_TIMEOUT, HTTPConfig, resolve_token
from .transport import AsyncTransport, BaseTransport, BlockingTransport

__all__ = [
    "DEFAULT_TIMEOUT",
    "HTTPConfig",
    "resolve_token",
    "BaseTransport",
    "BlockingTransport",
    "AsyncTransport",
]
