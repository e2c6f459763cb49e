"""Owned off-screen surfaces and encoded object handles.

A Surface is a contiguous RGBA pixel buffer that plays the role of an
off-screen canvas. An EncodedObject is an owned blob of encoded image bytes
that can be handed to consumers (saving, uploading) and released afterwards.

Both follow the same ownership rule: exactly one owner, and once released any
access raises instead of returning stale data.

Example:
    >>> surface = Surface(width=64, height=32)
    >>> surface.view()[:] = 255  # Paint white, fully opaque
    >>> surface.release()
    >>> # surface.view()  # Would raise RenderingSurfaceUnavailable
"""

from __future__ import annotations

import itertools

import numpy as np

from assetbitmap.core.errors import RenderingSurfaceUnavailable

CHANNELS = 4  # RGBA

_object_ids = itertools.count(1)


class Surface:
    """Off-screen RGBA surface backed by a NumPy array.

    Attributes:
        width: Surface width in pixels (0 once released)
        height: Surface height in pixels (0 once released)
        generation: Incremented on release to detect stale views
    """

    def __init__(self, width: int, height: int, max_pixels: int | None = None):
        """Allocate a cleared surface.

        Args:
            width: Width in pixels (must be positive)
            height: Height in pixels (must be positive)
            max_pixels: Optional upper bound on width * height

        Raises:
            RenderingSurfaceUnavailable: If the dimensions are invalid, exceed
                max_pixels, or memory cannot be allocated
        """
        if width <= 0 or height <= 0:
            raise RenderingSurfaceUnavailable(
                f"Surface dimensions must be positive, got {width}x{height}"
            )
        if max_pixels is not None and width * height > max_pixels:
            raise RenderingSurfaceUnavailable(
                f"Surface of {width}x{height} exceeds the limit of {max_pixels} pixels"
            )

        try:
            self._buffer: np.ndarray | None = np.zeros(
                (height, width, CHANNELS), dtype=np.uint8
            )
        except MemoryError as e:
            raise RenderingSurfaceUnavailable(
                f"Cannot allocate {width}x{height} surface"
            ) from e

        self.width = width
        self.height = height
        self.generation = 0

    @property
    def released(self) -> bool:
        """Whether the backing buffer has been released."""
        return self._buffer is None

    @property
    def nbytes(self) -> int:
        """Bytes held by the backing buffer."""
        return 0 if self._buffer is None else int(self._buffer.nbytes)

    def view(self) -> np.ndarray:
        """Return the (H, W, 4) uint8 pixel buffer.

        Raises:
            RenderingSurfaceUnavailable: If the surface was released
        """
        if self._buffer is None:
            raise RenderingSurfaceUnavailable(
                f"Surface was released (generation {self.generation})"
            )
        return self._buffer

    def clear(self) -> None:
        """Zero every pixel (transparent black)."""
        if self._buffer is not None:
            self._buffer.fill(0)

    def release(self) -> None:
        """Clear, zero-size and drop the buffer. Safe to call repeatedly."""
        if self._buffer is None:
            return
        self.clear()
        self._buffer = None
        self.width = self.height = 0
        self.generation += 1

    def __enter__(self) -> Surface:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def __repr__(self) -> str:
        return (
            f"Surface(width={self.width}, height={self.height}, "
            f"released={self.released})"
        )


class EncodedObject:
    """Owned handle to an encoded byte blob.

    Attributes:
        key: Unique handle identifier (``object:<n>``)
        mime_type: Media type of the payload
        size: Payload length in bytes (kept after release for reporting)
    """

    def __init__(self, data: bytes, mime_type: str):
        self.key = f"object:{next(_object_ids)}"
        self.mime_type = mime_type
        self.size = len(data)
        self._data: bytes | None = bytes(data)

    @property
    def released(self) -> bool:
        """Whether the payload has been released."""
        return self._data is None

    def read(self) -> bytes:
        """Return the payload bytes.

        Raises:
            ValueError: If the handle was released
        """
        if self._data is None:
            raise ValueError(f"Stale object handle {self.key}: payload was released")
        return self._data

    def release(self) -> None:
        """Drop the payload. Safe to call repeatedly."""
        self._data = None

    def __enter__(self) -> EncodedObject:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    def __len__(self) -> int:
        return self.size

    def __repr__(self) -> str:
        return (
            f"EncodedObject(key={self.key!r}, mime_type={self.mime_type!r}, "
            f"size={self.size}, released={self.released})"
        )
