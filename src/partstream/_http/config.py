"""HTTP configuration for object store gateways."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

DEFAULT_TIMEOUT = 60.0


@dataclass
class HTTPConfig:
    """Configuration for HTTP requests to a multipart upload gateway."""

    base_url: str
    timeout: float = DEFAULT_TIMEOUT
    token: str | None = None
    default_headers: dict[str, str] = field(default_factory=dict)

    def get_headers(self, bearer: str | None) -> dict[str, str]:
        """Build request headers, with authorization when a token is known."""
        headers = {
            "accept": "application/json",
            **self.default_headers,
        }
        if bearer:
            headers["authorization"] = f"Bearer {bearer}"
        return headers


def resolve_token(token: str | None) -> str | None:
    """Resolve token from argument or the PARTSTREAM_TOKEN environment variable."""
    return token or os.getenv("PARTSTREAM_TOKEN") or None


__all__ = ["HTTPConfig", "DEFAULT_TIMEOUT", "resolve_token"]
