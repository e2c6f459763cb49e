"""Async resource fetching over httpx.

The fetcher streams the body into memory and reports the server-declared
content type, which callers only use as a fallback for format detection.
Bodies over ``max_bytes`` are rejected from their Content-Length when one is
sent, and otherwise as soon as the running total passes the limit.
``data:`` URIs are resolved locally without touching the network.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from assetbitmap.core.config import BitmapConfig
from assetbitmap.core.datauri import is_data_string, parse_data_string
from assetbitmap.core.errors import NetworkFailure

logger = logging.getLogger(__name__)

# Headers that identify the caller and must not leak into anonymous fetches
CREDENTIAL_HEADERS = frozenset({"authorization", "cookie", "proxy-authorization"})


@dataclass(frozen=True)
class FetchedResource:
    """Body and metadata of a fetched resource."""

    url: str
    content: bytes
    content_type: str


def _normalize_content_type(value: str | None) -> str:
    if not value:
        return ""
    return value.split(";", 1)[0].strip().lower()


def _parse_length(value: str | None) -> int | None:
    try:
        return int(value) if value else None
    except ValueError:
        return None


class HttpFetcher:
    """Fetch resources with an httpx AsyncClient.

    A client (or just a transport) can be injected, which is how tests route
    requests to ``httpx.MockTransport``.
    """

    def __init__(
        self,
        config: BitmapConfig | None = None,
        *,
        client: httpx.AsyncClient | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or BitmapConfig()
        self._client = client
        self._transport = transport

    def _headers(self, anonymous: bool) -> dict[str, str]:
        headers = dict(self.config.headers)
        if anonymous:
            headers = {
                k: v for k, v in headers.items() if k.lower() not in CREDENTIAL_HEADERS
            }
        return headers

    def _build_client(self, anonymous: bool) -> httpx.AsyncClient:
        kwargs: dict = {
            "headers": self._headers(anonymous),
            "timeout": httpx.Timeout(self.config.timeout_s),
            "follow_redirects": self.config.follow_redirects,
        }
        if self.config.base_url:
            kwargs["base_url"] = self.config.base_url
        if not anonymous and self.config.cookies:
            kwargs["cookies"] = self.config.cookies
        if self._transport is not None:
            kwargs["transport"] = self._transport
        return httpx.AsyncClient(**kwargs)

    async def fetch(self, url: str, anonymous: bool = True) -> FetchedResource:
        """Fetch the full body of ``url``.

        Args:
            url: Absolute URL, path relative to ``config.base_url``, or data URI
            anonymous: Omit configured credentials (cookies, Authorization)

        Returns:
            FetchedResource with the body and declared content type

        Raises:
            NetworkFailure: On transport errors, non-2xx status, oversized
                bodies or malformed data URIs
        """
        if is_data_string(url):
            try:
                mime_type, content = parse_data_string(url)
            except ValueError as e:
                raise NetworkFailure(str(e)) from e
            return FetchedResource(url=url, content=content, content_type=mime_type)

        logger.debug("GET %s (anonymous=%s)", url, anonymous)
        try:
            if self._client is not None:
                return await self._stream(self._client, url, self._headers(anonymous))
            async with self._build_client(anonymous) as client:
                return await self._stream(client, url)
        except httpx.HTTPError as e:
            raise NetworkFailure(f"Fetching {url} failed: {e}") from e

    async def _stream(
        self, client: httpx.AsyncClient, url: str, headers: dict[str, str] | None = None
    ) -> FetchedResource:
        """Read the body chunk by chunk, stopping as soon as it exceeds max_bytes."""
        limit = self.config.max_bytes
        async with client.stream("GET", url, headers=headers) as response:
            if not response.is_success:
                raise NetworkFailure(f"Fetching {url} returned HTTP {response.status_code}")

            declared = _parse_length(response.headers.get("Content-Length"))
            if declared is not None and declared > limit:
                raise NetworkFailure(
                    f"Response for {url} declares {declared} bytes, limit is {limit}"
                )

            buffer = bytearray()
            async for chunk in response.aiter_bytes():
                buffer.extend(chunk)
                if len(buffer) > limit:
                    raise NetworkFailure(
                        f"Response for {url} exceeds the {limit} byte limit"
                    )

            content_type = _normalize_content_type(response.headers.get("Content-Type"))
            final_url = str(response.url)

        logger.debug("Fetched %s (%d bytes, %s)", url, len(buffer), content_type or "n/a")
        return FetchedResource(url=final_url, content=bytes(buffer), content_type=content_type)
