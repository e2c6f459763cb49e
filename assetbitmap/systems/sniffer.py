"""Byte-signature format detection.

Detection relies on magic numbers in the first bytes of the payload, never on
the server-declared content type, which is only returned as a fallback.

Signature table (hex, exact match, first match wins):

    bytes[4:12] == 'ftypheic'              image/heic  (checked first)
    bytes[0:4] == 'RIFF', [8:12] == 'WEBP' image/webp
    89504e47                               image/png
    47494638                               image/gif
    424d0000                               image/bmp
    ffd8ffe0 / e1 / e2 / e3 / e8           image/jpeg
    75ab5a6a / 25504446 / 45e71e8a         application/pdf

Any other payload, SVG text included, returns the fallback unchanged.
"""

from __future__ import annotations

PNG = "image/png"
GIF = "image/gif"
BMP = "image/bmp"
JPEG = "image/jpeg"
WEBP = "image/webp"
HEIC = "image/heic"
PDF = "application/pdf"
SVG = "image/svg+xml"

HEIC_BRAND = b"ftypheic"
RIFF = b"RIFF"
WEBP_FOURCC = b"WEBP"

SIGNATURES: dict[bytes, str] = {
    bytes.fromhex("89504e47"): PNG,
    bytes.fromhex("47494638"): GIF,
    bytes.fromhex("424d0000"): BMP,
    bytes.fromhex("ffd8ffe0"): JPEG,
    bytes.fromhex("ffd8ffe1"): JPEG,
    bytes.fromhex("ffd8ffe2"): JPEG,
    bytes.fromhex("ffd8ffe3"): JPEG,
    bytes.fromhex("ffd8ffe8"): JPEG,
    bytes.fromhex("75ab5a6a"): PDF,
    bytes.fromhex("25504446"): PDF,
    bytes.fromhex("45e71e8a"): PDF,
}

# Furthest offset any signature reads
_HEADER_BYTES = 12


def detect_mime_type(buffer: bytes | bytearray | memoryview, fallback: str) -> str:
    """Detect a media type from the leading bytes of ``buffer``.

    Args:
        buffer: Payload (only the first bytes are inspected)
        fallback: Returned unchanged when no signature matches

    Returns:
        Detected media type, or ``fallback``

    Example:
        >>> detect_mime_type(b"\\x89PNG\\r\\n\\x1a\\n", "application/octet-stream")
        'image/png'
    """
    data = bytes(buffer[:_HEADER_BYTES])

    if data[4:12] == HEIC_BRAND:
        return HEIC

    if data[0:4] == RIFF and data[8:12] == WEBP_FOURCC:
        return WEBP

    header = data[0:4]
    if len(header) == 4 and header in SIGNATURES:
        return SIGNATURES[header]

    return fallback
