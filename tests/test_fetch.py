"""Tests for the httpx-backed fetcher."""

import httpx
import pytest

from assetbitmap.core.config import BitmapConfig
from assetbitmap.core.datauri import encode_data_string
from assetbitmap.core.errors import NetworkFailure
from assetbitmap.core.fetch import HttpFetcher

BASE_URL = "https://cdn.test/"


class TestFetch:
    """Tests for successful and failed fetches."""

    @pytest.mark.asyncio
    async def test_relative_url_uses_base(
        self, config: BitmapConfig, origin, png_bytes: bytes
    ) -> None:
        """Test relative sources resolve against base_url."""
        origin.add("/assets/a.png", png_bytes, "image/png; charset=binary")
        resource = await origin.fetcher(config).fetch("assets/a.png?rev=1")

        assert resource.content == png_bytes
        assert resource.content_type == "image/png"
        assert resource.url == f"{BASE_URL}assets/a.png?rev=1"
        assert origin.requests[0].url.params["rev"] == "1"

    @pytest.mark.asyncio
    async def test_missing_content_type(self, config: BitmapConfig, origin) -> None:
        """Test an absent Content-Type is reported as empty."""
        origin.add("/blob", b"abc")
        resource = await origin.fetcher(config).fetch("blob")
        assert resource.content_type == ""

    @pytest.mark.asyncio
    async def test_http_error_status(self, config: BitmapConfig, origin) -> None:
        """Test non-2xx responses raise NetworkFailure."""
        with pytest.raises(NetworkFailure, match="404"):
            await origin.fetcher(config).fetch("missing.png")

    @pytest.mark.asyncio
    async def test_transport_error(self, config: BitmapConfig) -> None:
        """Test connection errors raise NetworkFailure."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = HttpFetcher(config, transport=httpx.MockTransport(refuse))
        with pytest.raises(NetworkFailure, match="connection refused") as exc_info:
            await fetcher.fetch("a.png")
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    @pytest.mark.asyncio
    async def test_body_limit(self, origin) -> None:
        """Test bodies larger than max_bytes are rejected."""
        config = BitmapConfig(base_url=BASE_URL, max_bytes=10)
        origin.add("/big", b"x" * 11)

        with pytest.raises(NetworkFailure, match="limit"):
            await origin.fetcher(config).fetch("big")

    @pytest.mark.asyncio
    async def test_streamed_body_stops_at_limit(self) -> None:
        """Test an oversized chunked body is abandoned once it passes max_bytes."""
        config = BitmapConfig(base_url=BASE_URL, max_bytes=2048)
        served: list[int] = []

        async def chunks():
            for _ in range(100):
                served.append(1024)
                yield b"x" * 1024

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=chunks())

        fetcher = HttpFetcher(config, transport=httpx.MockTransport(handler))
        with pytest.raises(NetworkFailure, match="limit"):
            await fetcher.fetch("huge")
        assert sum(served) <= 4096

    @pytest.mark.asyncio
    async def test_declared_length_rejected_before_reading(self) -> None:
        """Test a Content-Length over max_bytes fails without reading the body."""
        config = BitmapConfig(base_url=BASE_URL, max_bytes=2048)
        served: list[int] = []

        async def chunks():
            served.append(1024)
            yield b"x" * 1024

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, headers={"Content-Length": "100000"}, content=chunks())

        fetcher = HttpFetcher(config, transport=httpx.MockTransport(handler))
        with pytest.raises(NetworkFailure, match="100000"):
            await fetcher.fetch("huge")
        assert served == []

    @pytest.mark.asyncio
    async def test_injected_client_streams_with_limit(self, origin) -> None:
        """Test the size limit also applies to a caller-provided client."""
        origin.add("/big", b"x" * 11)
        async with httpx.AsyncClient(
            base_url=BASE_URL, transport=httpx.MockTransport(origin.handler)
        ) as client:
            fetcher = HttpFetcher(BitmapConfig(max_bytes=10), client=client)
            with pytest.raises(NetworkFailure, match="limit"):
                await fetcher.fetch("big")

    @pytest.mark.asyncio
    async def test_injected_client(self, origin) -> None:
        """Test a caller-provided AsyncClient is used as is."""
        origin.add("/a", b"ok")
        async with httpx.AsyncClient(
            base_url=BASE_URL, transport=httpx.MockTransport(origin.handler)
        ) as client:
            resource = await HttpFetcher(client=client).fetch("a")
        assert resource.content == b"ok"


class TestCredentials:
    """Tests for anonymous and credentialed requests."""

    @pytest.fixture
    def secret_config(self) -> BitmapConfig:
        return BitmapConfig(
            base_url=BASE_URL,
            cookies={"session": "s3cret"},
            headers={"Authorization": "Bearer t0ken", "User-Agent": "tests"},
        )

    @pytest.mark.asyncio
    async def test_anonymous_strips_credentials(
        self, secret_config: BitmapConfig, origin
    ) -> None:
        """Test anonymous fetches send neither cookies nor Authorization."""
        origin.add("/a", b"ok")
        await origin.fetcher(secret_config).fetch("a", anonymous=True)

        request = origin.requests[0]
        assert "cookie" not in request.headers
        assert "authorization" not in request.headers
        assert request.headers["user-agent"] == "tests"

    @pytest.mark.asyncio
    async def test_credentialed_sends_credentials(
        self, secret_config: BitmapConfig, origin
    ) -> None:
        """Test non-anonymous fetches include cookies and Authorization."""
        origin.add("/a", b"ok")
        await origin.fetcher(secret_config).fetch("a", anonymous=False)

        request = origin.requests[0]
        assert "session=s3cret" in request.headers["cookie"]
        assert request.headers["authorization"] == "Bearer t0ken"


class TestDataUri:
    """Tests for locally resolved data URIs."""

    @pytest.mark.asyncio
    async def test_data_uri_skips_network(
        self, config: BitmapConfig, origin, png_bytes: bytes
    ) -> None:
        """Test data URIs never reach the transport."""
        uri = encode_data_string(png_bytes, "image/png")
        resource = await origin.fetcher(config).fetch(uri)

        assert resource.content == png_bytes
        assert resource.content_type == "image/png"
        assert origin.requests == []

    @pytest.mark.asyncio
    async def test_malformed_data_uri(self, config: BitmapConfig, origin) -> None:
        """Test malformed data URIs raise NetworkFailure."""
        with pytest.raises(NetworkFailure):
            await origin.fetcher(config).fetch("data:image/png;base64")
