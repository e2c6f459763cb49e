"""Asset bitmap lifecycle management.

This package manages single image resources end to end:
- Fetching with cache-busting revisions and resolution variants (httpx)
- Format detection from byte signatures, independent of Content-Type
- Decoding and re-encoding through injectable Decoder/Rasterizer backends
  (Pillow by default), with SVG viewBox rehydration
- EXIF orientation resolution
- Size-bounded recompression
- Time-to-live expiration with a single-shot destroyed event

Quick Start:
    >>> from assetbitmap import AssetBitmap
    >>>
    >>> bitmap = AssetBitmap("https://cdn.example.com/cat_thumb.jpg", "_lg", revision=2, ttl=300)
    >>> result = await bitmap.load()
    >>> if result.ok:
    ...     print(bitmap.mime_type, bitmap.size, bitmap.normalized_rotation)
    ...     small = bitmap.compress(0.8, "image/webp", size_limit=100_000)
    ...     bitmap.save_file("cat", small)
    ...     small.release()
    >>> bitmap.destroy()
"""

import logging

from assetbitmap.bitmap import AssetBitmap, BitmapState, LoadResult
from assetbitmap.core.errors import (
    BitmapError,
    CompressionNotReady,
    EmptySource,
    InvalidCompressionParameter,
    MalformedVectorBounds,
    NetworkFailure,
    NotReady,
    RenderingSurfaceUnavailable,
    UndecodableResource,
)

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    "AssetBitmap",
    "BitmapState",
    "LoadResult",
    "BitmapError",
    "CompressionNotReady",
    "EmptySource",
    "InvalidCompressionParameter",
    "MalformedVectorBounds",
    "NetworkFailure",
    "NotReady",
    "RenderingSurfaceUnavailable",
    "UndecodableResource",
]
