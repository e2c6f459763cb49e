"""Data URI encoding and decoding.

Format:
  data:[<mime type>][;charset=...][;base64],<payload>

Base64 payloads are decoded strictly; non-base64 payloads are percent-decoded
to bytes.
"""

from __future__ import annotations

import base64
import binascii
from urllib.parse import unquote_to_bytes

DATA_PREFIX = "data:"
DEFAULT_MIME_TYPE = "text/plain"


def is_data_string(value: str) -> bool:
    """Return True if value looks like a data URI."""
    return value[:len(DATA_PREFIX)].lower() == DATA_PREFIX


def parse_data_string(data_uri: str) -> tuple[str, bytes]:
    """Split a data URI into its media type and decoded payload.

    Args:
        data_uri: String of the form ``data:<mime>[;base64],<payload>``

    Returns:
        Tuple of (mime_type, payload_bytes)

    Raises:
        ValueError: If the string is not a data URI or the payload is corrupt
    """
    if not is_data_string(data_uri):
        raise ValueError(f"Not a data URI: {data_uri[:32]!r}")

    header, sep, payload = data_uri[len(DATA_PREFIX):].partition(",")
    if not sep:
        raise ValueError("Data URI has no ',' separating header and payload")

    params = [p.strip() for p in header.split(";")]
    mime_type = params[0].lower() or DEFAULT_MIME_TYPE
    is_base64 = any(p.lower() == "base64" for p in params[1:])

    if is_base64:
        try:
            return mime_type, base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid base64 payload in data URI: {e}") from e

    return mime_type, unquote_to_bytes(payload)


def bytes_from_encoded_data_string(data_uri: str) -> bytes:
    """Decode the payload of a data URI into raw bytes."""
    _, data = parse_data_string(data_uri)
    return data


def encode_data_string(data: bytes, mime_type: str) -> str:
    """Encode bytes as a base64 data URI.

    Example:
        >>> encode_data_string(b"GIF8", "image/gif")
        'data:image/gif;base64,R0lGOA=='
    """
    encoded = base64.b64encode(data).decode("ascii")
    return f"{DATA_PREFIX}{mime_type};base64,{encoded}"
