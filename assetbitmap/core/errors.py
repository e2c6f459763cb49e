"""Exception hierarchy for asset bitmap operations.

Load failures are reported through ``LoadResult.error``; compression and
parameter errors are raised directly.
"""

from __future__ import annotations


class BitmapError(Exception):
    """Base class for all asset bitmap errors."""


class EmptySource(BitmapError):
    """Raised when a bitmap without a source is asked to load."""


class NetworkFailure(BitmapError):
    """The resource could not be fetched (transport error or bad status)."""


class UndecodableResource(BitmapError):
    """The fetched payload could not be decoded into an image."""


class RenderingSurfaceUnavailable(BitmapError):
    """An off-screen surface could not be allocated or was already released."""


class MalformedVectorBounds(BitmapError):
    """The vector document has a missing or invalid ``viewBox``."""


class InvalidCompressionParameter(BitmapError, ValueError):
    """Quality, format or scale are out of range for compression."""


class NotReady(BitmapError, RuntimeError):
    """The bitmap is not loaded (or was destroyed) for the requested operation."""


class CompressionNotReady(NotReady, InvalidCompressionParameter):
    """Compression was requested before the bitmap finished loading."""
