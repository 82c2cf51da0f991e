"""Blocking and async httpx transports for gateway-backed stores."""

from __future__ import annotations

import abc
from typing import Any

import httpx

from .config import HTTPConfig, resolve_token

OCTET_STREAM = "application/octet-stream"


class BaseTransport(abc.ABC):
    """POSTs to paths below ``HTTPConfig.base_url``.

    ``content`` is sent raw as an octet stream; ``json`` is encoded by httpx.
    """

    def __init__(self, config: HTTPConfig) -> None:
        self._config = config

    def _prepare(
        self,
        path: str,
        headers: dict[str, str] | None,
        content: bytes | None,
    ) -> tuple[str, dict[str, str]]:
        merged = self._config.get_headers(resolve_token(self._config.token))
        merged.update(headers or {})
        if content is not None:
            merged["content-type"] = OCTET_STREAM
        return self._config.base_url.rstrip("/") + path, merged

    @abc.abstractmethod
    async def post(
        self,
        path: str,
        *,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
        json: Any | None = None,
    ) -> httpx.Response: ...

    @abc.abstractmethod
    def close(self) -> None: ...


class BlockingTransport(BaseTransport):
    """
    Transport over a short-lived httpx.Client per request.

    ``post`` is declared async but never suspends, so worker threads can run
    it through iter_coroutine(). A client per call keeps threads from sharing
    connection pool state.
    """

    async def post(
        self,
        path: str,
        *,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
        json: Any | None = None,
    ) -> httpx.Response:
        url, merged = self._prepare(path, headers, content)
        with httpx.Client(timeout=self._config.timeout) as client:
            return client.post(url, params=params, headers=merged, content=content, json=json)

    def close(self) -> None:
        pass


class AsyncTransport(BaseTransport):
    """Transport sharing one lazily created httpx.AsyncClient."""

    def __init__(self, config: HTTPConfig) -> None:
        super().__init__(config)
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.timeout)
        return self._client

    async def post(
        self,
        path: str,
        *,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        content: bytes | None = None,
        json: Any | None = None,
    ) -> httpx.Response:
        url, merged = self._prepare(path, headers, content)
        return await self.client.post(
            url, params=params, headers=merged, content=content, json=json
        )

    async def aclose(self) -> None:
        client, self._client = self._client, None
        if client is not None:
            await client.aclose()

    def close(self) -> None:
        # the client can only be closed from the event loop, see aclose()
        self._client = None


__all__ = ["BaseTransport", "BlockingTransport", "AsyncTransport"]
