"""High-level API for one-shot bitmap loading and compression.

Provides coroutine helpers that hide the AssetBitmap lifecycle for callers
that only need a loaded bitmap or a compressed payload.
"""

from __future__ import annotations

from typing import Any

from assetbitmap.bitmap import AssetBitmap
from assetbitmap.core.config import load_config


async def load_bitmap(
    src: str,
    resolution: str = "",
    revision: int = 0,
    ttl: float = 0,
    anonymous: bool = True,
    allow_vector_rehydration: bool = True,
    config_path: str | None = None,
    **collaborators: Any,
) -> AssetBitmap:
    """Create and load an AssetBitmap, raising on failure.

    Args:
        src: Source URL, relative path or data URI
        resolution: Resolution variant suffix
        revision: Cache-busting revision
        ttl: Seconds to live after load (0 = forever)
        anonymous: Fetch without credentials
        allow_vector_rehydration: Rewrite SVG documents to fill their viewBox
        config_path: Path to assetbitmap.toml (auto-detected if None)
        **collaborators: fetcher, decoder, rasterizer or orientation_resolver

    Returns:
        The loaded bitmap

    Raises:
        BitmapError: The load failure (EmptySource, NetworkFailure, ...); the
            bitmap is destroyed first

    Example:
        >>> bitmap = await load_bitmap("https://cdn.example.com/logo.svg")
        >>> bitmap.size
        20000
    """
    config = collaborators.pop("config", None) or load_config(config_path)
    bitmap = AssetBitmap(src, resolution, revision, ttl, config=config, **collaborators)
    result = await bitmap.load(anonymous, allow_vector_rehydration)
    if result.error is not None:
        # Failed bitmaps are never handed to the caller
        bitmap.destroy()
        raise result.error
    return bitmap


async def compress_source(
    src: str,
    quality: float,
    mime_type: str,
    scale: float = 1.0,
    size_limit: int | None = None,
    config_path: str | None = None,
    **collaborators: Any,
) -> bytes:
    """Load ``src``, compress it, and return the encoded bytes.

    The intermediate bitmap is destroyed before returning.

    Raises:
        BitmapError: If loading fails
        InvalidCompressionParameter: If parameters are invalid or the size
            limit cannot be met
    """
    bitmap = await load_bitmap(src, config_path=config_path, **collaborators)
    try:
        with bitmap.compress(quality, mime_type, scale, size_limit) as handle:
            return handle.read()
    finally:
        bitmap.destroy()


def get_bitmap_info(bitmap: AssetBitmap) -> dict[str, Any]:
    """Summarize a bitmap's identity and loaded state.

    Returns:
        Dictionary with keys: src, resolution, revision, url, state, loaded,
        mime_type, size, file_size, orientation, rotation, ttl, life
    """
    return {
        "src": bitmap.source,
        "resolution": bitmap.resolution,
        "revision": bitmap.revision,
        "url": bitmap.url,
        "state": bitmap.state.value,
        "loaded": bitmap.loaded,
        "mime_type": bitmap.mime_type,
        "size": bitmap.size,
        "file_size": bitmap.file_size,
        "orientation": bitmap.orientation,
        "rotation": bitmap.normalized_rotation,
        "ttl": bitmap.ttl,
        "life": bitmap.life,
    }
