"""Tests for data URI encoding and decoding."""

import pytest

from assetbitmap.bitmap import AssetBitmap
from assetbitmap.core.datauri import (
    bytes_from_encoded_data_string,
    encode_data_string,
    is_data_string,
    parse_data_string,
)


class TestDecode:
    """Tests for parsing data URIs."""

    def test_base64_payload(self) -> None:
        """Test a base64 image payload."""
        mime_type, data = parse_data_string("data:image/gif;base64,R0lGOA==")
        assert mime_type == "image/gif"
        assert data == b"GIF8"

    def test_percent_encoded_payload(self) -> None:
        """Test non-base64 payloads are percent-decoded."""
        mime_type, data = parse_data_string("data:image/svg+xml;charset=utf-8,%3Csvg%2F%3E")
        assert mime_type == "image/svg+xml"
        assert data == b"<svg/>"

    def test_default_mime_type(self) -> None:
        """Test an empty media type defaults to text/plain."""
        assert parse_data_string("data:,hello") == ("text/plain", b"hello")

    def test_not_a_data_uri(self) -> None:
        """Test ordinary URLs are rejected."""
        with pytest.raises(ValueError, match="Not a data URI"):
            parse_data_string("https://example.com/a.png")

    def test_missing_separator(self) -> None:
        """Test URIs without a payload separator are rejected."""
        with pytest.raises(ValueError, match="separating"):
            parse_data_string("data:image/png;base64")

    def test_corrupt_base64(self) -> None:
        """Test invalid base64 is rejected."""
        with pytest.raises(ValueError, match="base64"):
            bytes_from_encoded_data_string("data:image/png;base64,***")

    def test_is_data_string(self) -> None:
        """Test the prefix check is case-insensitive."""
        assert is_data_string("DATA:image/png;base64,")
        assert not is_data_string("img.png")


class TestRoundTrip:
    """Encoding then decoding reproduces the input."""

    @pytest.mark.parametrize(
        "payload",
        [b"", b"\x00\xff\x10", bytes(range(256)), b"\x89PNG\r\n\x1a\n" * 50],
    )
    def test_round_trip(self, payload: bytes) -> None:
        """Test bytes survive encode/decode exactly."""
        uri = encode_data_string(payload, "image/png")
        assert uri.startswith("data:image/png;base64,")
        assert bytes_from_encoded_data_string(uri) == payload

    def test_static_helper_on_bitmap(self, png_bytes: bytes) -> None:
        """Test the AssetBitmap static utility decodes the same way."""
        uri = encode_data_string(png_bytes, "image/png")
        assert AssetBitmap.bytes_from_encoded_data_string(uri) == png_bytes
