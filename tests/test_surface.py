"""Tests for off-screen surfaces and encoded object handles."""

import numpy as np
import pytest

from assetbitmap.core.errors import RenderingSurfaceUnavailable
from assetbitmap.core.surface import EncodedObject, Surface


class TestSurface:
    """Tests for Surface allocation and release."""

    def test_creation(self) -> None:
        """Test a new surface is cleared RGBA of the requested size."""
        surface = Surface(width=8, height=4)
        pixels = surface.view()

        assert pixels.shape == (4, 8, 4)
        assert pixels.dtype == np.uint8
        assert not pixels.any()
        assert surface.nbytes == 8 * 4 * 4

    @pytest.mark.parametrize("width,height", [(0, 4), (4, 0), (-1, 4)])
    def test_invalid_dimensions(self, width: int, height: int) -> None:
        """Test non-positive dimensions cannot be allocated."""
        with pytest.raises(RenderingSurfaceUnavailable, match="positive"):
            Surface(width, height)

    def test_pixel_limit(self) -> None:
        """Test max_pixels bounds the allocation."""
        with pytest.raises(RenderingSurfaceUnavailable, match="exceeds"):
            Surface(100, 100, max_pixels=9_999)
        assert Surface(100, 100, max_pixels=10_000).width == 100

    def test_release_zero_sizes(self) -> None:
        """Test release clears and zero-sizes the surface."""
        surface = Surface(4, 4)
        surface.view()[:] = 255
        surface.release()

        assert surface.released
        assert surface.width == 0
        assert surface.height == 0
        assert surface.nbytes == 0
        assert surface.generation == 1

    def test_view_after_release_raises(self) -> None:
        """Test stale access is detected."""
        surface = Surface(4, 4)
        surface.release()

        with pytest.raises(RenderingSurfaceUnavailable, match="released"):
            surface.view()

    def test_release_is_idempotent(self) -> None:
        """Test releasing twice does not bump the generation twice."""
        surface = Surface(2, 2)
        surface.release()
        surface.release()
        assert surface.generation == 1

    def test_context_manager_releases(self) -> None:
        """Test leaving a with-block releases the surface."""
        with Surface(2, 2) as surface:
            surface.view()[0, 0] = (1, 2, 3, 4)
        assert surface.released


class TestEncodedObject:
    """Tests for EncodedObject ownership."""

    def test_read(self) -> None:
        """Test payload and metadata."""
        handle = EncodedObject(b"abc", "image/png")

        assert handle.read() == b"abc"
        assert handle.size == 3
        assert len(handle) == 3
        assert handle.mime_type == "image/png"
        assert handle.key.startswith("object:")

    def test_unique_keys(self) -> None:
        """Test every handle gets its own key."""
        assert EncodedObject(b"", "a").key != EncodedObject(b"", "a").key

    def test_read_after_release_raises(self) -> None:
        """Test released handles cannot be read but keep their size."""
        handle = EncodedObject(b"abc", "image/png")
        handle.release()
        handle.release()

        assert handle.released
        assert handle.size == 3
        with pytest.raises(ValueError, match="Stale object handle"):
            handle.read()

    def test_context_manager_releases(self) -> None:
        """Test leaving a with-block releases the handle."""
        with EncodedObject(b"x", "image/gif") as handle:
            assert handle.read() == b"x"
        assert handle.released
