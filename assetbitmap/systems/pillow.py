"""Pillow-backed Decoder and Rasterizer.

Raster formats are decoded by Pillow. SVG documents are rasterized with
cairosvg, which needs the native cairo library and is therefore optional.
"""

from __future__ import annotations

import io
import logging

import numpy as np
from PIL import Image, UnidentifiedImageError

try:
    import cairosvg  # type: ignore[import-untyped]
    HAS_CAIROSVG = True
except (ImportError, OSError):
    # cairocffi raises OSError when libcairo itself is missing
    HAS_CAIROSVG = False
    cairosvg = None  # type: ignore[assignment, unused-ignore]

from assetbitmap.components.image import DecodedImage
from assetbitmap.core.capability import Decoder, Rasterizer
from assetbitmap.core.errors import RenderingSurfaceUnavailable, UndecodableResource
from assetbitmap.core.surface import Surface
from assetbitmap.systems.sniffer import BMP, GIF, JPEG, PNG, SVG, WEBP

logger = logging.getLogger(__name__)

PIL_FORMATS = {
    PNG: "PNG",
    JPEG: "JPEG",
    WEBP: "WEBP",
    GIF: "GIF",
    BMP: "BMP",
}

# Formats without an alpha channel
_OPAQUE_FORMATS = {"JPEG", "BMP"}
# Formats whose encoder honours a quality setting
_LOSSY_FORMATS = {"JPEG", "WEBP"}


class PillowDecoder(Decoder):
    """Decoder using Pillow (and cairosvg for SVG)."""

    def decode(self, data: bytes, mime_type: str) -> DecodedImage:
        if mime_type == SVG:
            data = self._rasterize_svg(data)

        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise UndecodableResource(f"Cannot decode {mime_type} payload: {e}") from e

        # Signature-less formats (e.g. TIFF) arrive with a non-image fallback type
        detected = Image.MIME.get(image.format or "")
        if detected and not mime_type.startswith("image/"):
            mime_type = detected

        logger.debug("Decoded %s %dx%d (%s)", mime_type, image.width, image.height, image.mode)
        return DecodedImage(image=image, mime_type=mime_type)

    def _rasterize_svg(self, document: bytes) -> bytes:
        if not HAS_CAIROSVG:
            raise UndecodableResource(
                "cairosvg is required to decode SVG. Install with: pip install assetbitmap[svg]"
            )
        try:
            return bytes(cairosvg.svg2png(bytestring=document))
        except Exception as e:
            raise UndecodableResource(f"Cannot rasterize SVG: {e}") from e


class PillowRasterizer(Rasterizer):
    """Rasterizer drawing onto NumPy RGBA surfaces and encoding with Pillow.

    Attributes:
        max_surface_pixels: Largest surface create_surface() will allocate
    """

    encodable_types = frozenset(PIL_FORMATS)

    def __init__(self, max_surface_pixels: int | None = None) -> None:
        self.max_surface_pixels = max_surface_pixels

    def create_surface(self, width: int, height: int) -> Surface:
        return Surface(width, height, max_pixels=self.max_surface_pixels)

    def draw(self, surface: Surface, image: DecodedImage) -> None:
        pixels = surface.view()
        source = image.image
        if source.mode != "RGBA":
            source = source.convert("RGBA")
        if source.size != (surface.width, surface.height):
            source = source.resize((surface.width, surface.height), Image.LANCZOS)
        pixels[:] = np.asarray(source, dtype=np.uint8)

    def encode(self, surface: Surface, mime_type: str, quality: float | None = None) -> bytes:
        if mime_type not in PIL_FORMATS:
            raise ValueError(f"Cannot encode {mime_type}; supported: {sorted(PIL_FORMATS)}")
        pil_format = PIL_FORMATS[mime_type]

        image = Image.fromarray(surface.view())
        if pil_format in _OPAQUE_FORMATS:
            image = image.convert("RGB")

        options: dict = {}
        if quality is not None and pil_format in _LOSSY_FORMATS:
            options["quality"] = int(round(quality * 100))

        buffer = io.BytesIO()
        try:
            image.save(buffer, format=pil_format, **options)
        except (OSError, ValueError) as e:
            raise RenderingSurfaceUnavailable(f"Encoding surface as {mime_type} failed: {e}") from e
        return buffer.getvalue()
