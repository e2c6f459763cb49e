"""SVG rehydration.

Vector sources often omit explicit dimensions or keep their aspect ratio,
which leaves them letter-boxed or at an arbitrary default size once
rasterized. The rehydrator derives width and height from the ``viewBox``,
forces ``preserveAspectRatio="none"`` so the graphic fills its bounds, and
re-serializes the document.
"""

from __future__ import annotations

import logging
import math
import re
import xml.etree.ElementTree as ET

from assetbitmap.components.image import RehydratedVector
from assetbitmap.core.errors import MalformedVectorBounds

logger = logging.getLogger(__name__)

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"

# Keep the default namespace unprefixed on re-serialization
ET.register_namespace("", SVG_NS)
ET.register_namespace("xlink", XLINK_NS)

_VIEWBOX_SEP = re.compile(r"[\s,]+")

# Enough text to skip a BOM, an XML prolog, comments and a doctype
_SVG_SCAN_BYTES = 1024
_SVG_ROOT = re.compile(rb"<svg[\s>/]", re.IGNORECASE)
_TEXT_START = re.compile(rb"^\s*(<\?xml|<!--|<!doctype\s+svg|<svg[\s>/])", re.IGNORECASE)


def looks_like_svg(buffer: bytes | bytearray | memoryview) -> bool:
    """Return True if the payload reads as SVG text.

    SVG has no magic number, so this only looks for markup that opens with an
    XML prolog, a comment, an SVG doctype or an ``<svg`` root, and that
    contains an ``<svg`` element within the first kilobyte.
    """
    head = bytes(buffer[:_SVG_SCAN_BYTES]).removeprefix(b"\xef\xbb\xbf")
    return bool(_TEXT_START.match(head)) and bool(_SVG_ROOT.search(head))


def _local_name(tag: object) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def _format_number(value: float) -> str:
    """Render 200.0 as '200' and 12.5 as '12.5'."""
    return str(int(value)) if value.is_integer() else repr(value)


def parse_view_box(value: str | None) -> tuple[float, float, float, float]:
    """Parse a viewBox attribute into (min_x, min_y, width, height).

    Raises:
        MalformedVectorBounds: If the value is missing, does not have exactly
            4 numeric components, is non-finite, or has non-positive size
    """
    if value is None or not value.strip():
        raise MalformedVectorBounds("SVG has no viewBox attribute")

    parts = _VIEWBOX_SEP.split(value.strip())
    if len(parts) != 4:
        raise MalformedVectorBounds(
            f"viewBox must have 4 components, got {len(parts)}: {value!r}"
        )

    try:
        numbers = [float(p) for p in parts]
    except ValueError as e:
        raise MalformedVectorBounds(f"viewBox is not numeric: {value!r}") from e

    if not all(math.isfinite(n) for n in numbers):
        raise MalformedVectorBounds(f"viewBox is not finite: {value!r}")

    min_x, min_y, width, height = numbers
    if width <= 0 or height <= 0:
        raise MalformedVectorBounds(
            f"viewBox width and height must be positive: {value!r}"
        )
    return min_x, min_y, width, height


class VectorRehydrator:
    """Rewrites SVG documents so they always fill their target bounds."""

    def rehydrate(self, document: bytes) -> RehydratedVector:
        """Force explicit dimensions on an SVG document.

        Args:
            document: SVG source bytes

        Returns:
            RehydratedVector with the rewritten document and viewBox size

        Raises:
            MalformedVectorBounds: If the document has no usable svg element
                or viewBox
        """
        try:
            root = ET.fromstring(document)
        except ET.ParseError as e:
            raise MalformedVectorBounds(f"SVG document is not well-formed: {e}") from e

        svg = root if _local_name(root.tag) == "svg" else None
        if svg is None:
            svg = next((el for el in root.iter() if _local_name(el.tag) == "svg"), None)
        if svg is None:
            raise MalformedVectorBounds("Document has no <svg> element")

        _, _, width, height = parse_view_box(svg.get("viewBox"))

        svg.set("width", _format_number(width))
        svg.set("height", _format_number(height))
        svg.set("preserveAspectRatio", "none")

        rewritten = ET.tostring(svg, encoding="utf-8", xml_declaration=False)
        logger.debug("Rehydrated SVG to %sx%s", width, height)
        return RehydratedVector(document=rewritten, width=width, height=height)
