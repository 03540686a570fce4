"""Thin HTTP transport the cache issues its requests through."""

from __future__ import annotations

import logging
from typing import Any, Protocol
from urllib.parse import urlsplit

import aiohttp

from .config_loader import config
from .errors import HttpStatusError, TransportError
from .models import TransportResponse


class Transport(Protocol):
    """
    Interface of the HTTP collaborator.

    Implementations raise HttpStatusError for error responses and
    TransportError when no response was received.
    """

    async def get(self, uri: str) -> TransportResponse: ...

    async def post(self, uri: str, body: Any) -> TransportResponse: ...

    async def patch(self, uri: str, body: Any) -> TransportResponse: ...

    async def delete(self, uri: str) -> TransportResponse: ...


class AiohttpTransport:
    """Encapsulates HAL API calls so the cache stays focused on orchestration."""

    def __init__(
        self,
        base_url: str | None = None,
        *,
        timeout: float | None = None,
        headers: dict[str, str] | None = None,
        logger: logging.Logger | None = None,
    ):
        self.base_url = config.base_url if base_url is None else base_url
        self.timeout = config.transport_timeout if timeout is None else timeout
        self.headers = {
            "Accept": "application/hal+json, application/json",
            "User-Agent": config.transport_user_agent,
            **config.transport_headers,
            **(headers or {}),
        }
        self.logger = logger or logging.getLogger(self.__class__.__module__)

    def build_url(self, uri: str) -> str:
        """Resolve a store URI against the base URL."""
        if urlsplit(uri).scheme or not self.base_url:
            return uri or "/"
        if not uri:
            return self.base_url
        return f"{self.base_url.rstrip('/')}/{uri.lstrip('/')}"

    async def get(self, uri: str) -> TransportResponse:
        return await self._request("GET", uri)

    async def post(self, uri: str, body: Any) -> TransportResponse:
        return await self._request("POST", uri, body)

    async def patch(self, uri: str, body: Any) -> TransportResponse:
        return await self._request("PATCH", uri, body)

    async def delete(self, uri: str) -> TransportResponse:
        return await self._request("DELETE", uri)

    async def _request(self, method: str, uri: str, body: Any = None) -> TransportResponse:
        url = self.build_url(uri)
        async with aiohttp.ClientSession() as session:
            try:
                async with session.request(
                    method,
                    url,
                    json=body,
                    headers=self.headers,
                    timeout=aiohttp.ClientTimeout(total=self.timeout),
                ) as response:
                    if response.status >= 400:
                        self.logger.warning("%s %s returned %s", method, url, response.status)
                        raise HttpStatusError(response.status, await _error_body(response))
                    return TransportResponse(status=response.status, data=await response.json(content_type=None))
            except TimeoutError as exc:
                raise TransportError(f"timeout of {self.timeout}s exceeded") from exc
            except aiohttp.ClientError as exc:
                self.logger.error("%s %s connection error: %s", method, url, exc)
                raise TransportError(str(exc) or type(exc).__name__) from exc
            except ValueError as exc:
                self.logger.error("%s %s returned invalid JSON: %s", method, url, exc)
                raise TransportError(f"invalid JSON in response from {url}") from exc


async def _error_body(response: aiohttp.ClientResponse) -> Any:
    try:
        return await response.json(content_type=None)
    except ValueError:
        return await response.text()


__all__ = ["Transport", "AiohttpTransport"]
