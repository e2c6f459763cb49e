"""Shared fixtures: generated images, a mocked HTTP origin and an SVG stub decoder."""

from __future__ import annotations

import io
import xml.etree.ElementTree as ET
from typing import Callable

import httpx
import numpy as np
import pytest
from PIL import Image

from assetbitmap.components.image import DecodedImage
from assetbitmap.core.config import BitmapConfig
from assetbitmap.core.fetch import HttpFetcher
from assetbitmap.systems.pillow import PillowDecoder
from assetbitmap.systems.sniffer import SVG

BASE_URL = "https://cdn.test/"


def encode_image(
    fmt: str = "PNG",
    size: tuple[int, int] = (32, 16),
    orientation: int | None = None,
    noise: bool = False,
) -> bytes:
    """Encode a generated RGB image with Pillow."""
    if noise:
        rng = np.random.default_rng(0)
        pixels = rng.integers(0, 256, (size[1], size[0], 3), dtype=np.uint8)
        image = Image.fromarray(pixels)
    else:
        image = Image.new("RGB", size, (200, 30, 60))

    options: dict = {}
    if orientation is not None:
        exif = Image.Exif()
        exif[0x0112] = orientation
        options["exif"] = exif

    buffer = io.BytesIO()
    image.save(buffer, format=fmt, **options)
    return buffer.getvalue()


class SvgStubDecoder(PillowDecoder):
    """Pillow decoder that renders SVG as a blank image of its declared size.

    Keeps the tests independent of the native cairo library.
    """

    def __init__(self) -> None:
        self.documents: list[bytes] = []

    def decode(self, data: bytes, mime_type: str) -> DecodedImage:
        if mime_type != SVG:
            return super().decode(data, mime_type)
        self.documents.append(data)
        root = ET.fromstring(data)
        width = int(float(root.get("width", "1")))
        height = int(float(root.get("height", "1")))
        return DecodedImage(image=Image.new("RGBA", (width, height)), mime_type=SVG)


class Origin:
    """In-memory HTTP origin behind httpx.MockTransport."""

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, bytes, str]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, path: str, body: bytes, content_type: str = "", status: int = 200) -> None:
        self.routes[path] = (status, body, content_type)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404)
        status, body, content_type = route
        headers = {"Content-Type": content_type} if content_type else {}
        return httpx.Response(status, content=body, headers=headers)

    def fetcher(self, config: BitmapConfig) -> HttpFetcher:
        return HttpFetcher(config, transport=httpx.MockTransport(self.handler))


@pytest.fixture
def config() -> BitmapConfig:
    """Config pointing relative sources at the mocked origin."""
    return BitmapConfig(base_url=BASE_URL, cookies={"session": "s3cret"})


@pytest.fixture
def origin() -> Origin:
    return Origin()


@pytest.fixture
def svg_decoder() -> SvgStubDecoder:
    return SvgStubDecoder()


@pytest.fixture
def png_bytes() -> bytes:
    return encode_image("PNG")


@pytest.fixture
def jpeg_bytes() -> bytes:
    return encode_image("JPEG", orientation=6)


@pytest.fixture
def make_image() -> Callable[..., bytes]:
    return encode_image
