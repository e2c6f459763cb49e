"""AssetBitmap: lifecycle manager for a single image resource.

An AssetBitmap fetches one image, detects its real format from its leading
bytes, decodes it (rewriting SVG documents to fill their bounds), re-encodes
it into an owned object handle, resolves its EXIF orientation and finally
destroys itself once its time-to-live has elapsed.

Load stages:
    Idle -> Fetching -> Detecting -> (Rehydrating | Decoding -> Rasterizing)
         -> Normalizing -> Ready, or Failed

Example:
    >>> bitmap = AssetBitmap("photos/cat_thumb.jpg", "_lg", revision=3, ttl=60)
    >>> bitmap.destroyed.subscribe(lambda sig: print("gone", sig.src))
    >>> result = await bitmap.load()
    >>> if result.ok:
    ...     handle = bitmap.compress(0.7, "image/webp", size_limit=200_000)
    ...     bitmap.save_file("cat", handle)
    ...     handle.release()
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from assetbitmap.components.image import DecodedImage
from assetbitmap.components.signature import BitmapSignature
from assetbitmap.core.capability import Decoder, Rasterizer
from assetbitmap.core.config import BitmapConfig, load_config
from assetbitmap.core.datauri import bytes_from_encoded_data_string, is_data_string
from assetbitmap.core.errors import (
    BitmapError,
    CompressionNotReady,
    EmptySource,
    NotReady,
    UndecodableResource,
)
from assetbitmap.core.events import LifecycleEvent
from assetbitmap.core.fetch import HttpFetcher
from assetbitmap.core.scheduler import ExpirationScheduler, normalize_ttl
from assetbitmap.core.surface import EncodedObject
from assetbitmap.systems.compressor import Compressor, build_request
from assetbitmap.systems.orientation import NORMAL, OrientationResolver
from assetbitmap.systems.pillow import PillowDecoder, PillowRasterizer
from assetbitmap.systems.sniffer import PNG, SVG, detect_mime_type
from assetbitmap.systems.vector import VectorRehydrator, looks_like_svg

logger = logging.getLogger(__name__)

UNKNOWN_MIME_TYPE = "unknown"

# "_thumb" in "img_thumb.png": the last underscore segment of the file name
_RESOLUTION_SUFFIX = re.compile(r"_[^_./?#]*(?=(\.[^_./?#]*)?$)")

_EXTENSIONS = {
    "image/png": "png",
    "image/jpeg": "jpeg",
    "image/gif": "gif",
    "image/bmp": "bmp",
    "image/webp": "webp",
    "image/heic": "heic",
    "image/svg+xml": "svg",
    "application/pdf": "pdf",
}


class BitmapState(str, Enum):
    """Lifecycle states of an AssetBitmap."""

    IDLE = "idle"
    FETCHING = "fetching"
    DETECTING = "detecting"
    DECODING = "decoding"
    REHYDRATING = "rehydrating"
    RASTERIZING = "rasterizing"
    NORMALIZING = "normalizing"
    READY = "ready"
    FAILED = "failed"
    DISPOSED = "disposed"


@dataclass(frozen=True)
class LoadResult:
    """Outcome of AssetBitmap.load().

    The bitmap is returned in both cases; on failure it is in the Failed (or
    Disposed) state and ``error`` says why.
    """

    ok: bool
    bitmap: AssetBitmap
    error: BitmapError | None = None

    def __bool__(self) -> bool:
        return self.ok


def extension_for(mime_type: str) -> str | None:
    """File extension (without dot) for a media type."""
    if mime_type in _EXTENSIONS:
        return _EXTENSIONS[mime_type]
    guessed = mimetypes.guess_extension(mime_type)
    return guessed.lstrip(".") if guessed else None


class AssetBitmap:
    """One logical image resource at one resolution and revision.

    Collaborators (fetcher, decoder, rasterizer) are injected so the state
    machine never depends on a concrete backend; Pillow and httpx are used
    when none are given.

    Attributes:
        loaded: True only while a decoded image is held
        destroyed: Single-shot channel fired with a BitmapSignature on destroy
    """

    def __init__(
        self,
        src: str | None,
        resolution: str | None = "",
        revision: int = 0,
        ttl: float = 0,
        *,
        config: BitmapConfig | None = None,
        fetcher: HttpFetcher | None = None,
        decoder: Decoder | None = None,
        rasterizer: Rasterizer | None = None,
        orientation_resolver: OrientationResolver | None = None,
    ) -> None:
        """Create an idle bitmap.

        Args:
            src: Source URL, path relative to config.base_url, or data URI
            resolution: Resolution variant appended to the file name
            revision: Non-negative revision appended as ``rev=N``
            ttl: Seconds to live after load; 0 lives forever
            config: Settings (loaded from assetbitmap.toml if None)
            fetcher: Resource fetcher
            decoder: Decoder capability
            rasterizer: Rasterizer capability
            orientation_resolver: EXIF orientation resolver
        """
        self.config = config or load_config()

        self._source = src or ""
        self._resolution = resolution if resolution is not None else ""
        self._revision = revision if isinstance(revision, int) and revision >= 0 else 0
        self._ttl = normalize_ttl(ttl)

        self._fetcher = fetcher or HttpFetcher(self.config)
        self._decoder = decoder or PillowDecoder()
        self._rasterizer = rasterizer or PillowRasterizer(self.config.max_surface_pixels)
        self._orientation = orientation_resolver or OrientationResolver(
            self.config.host_normalizes_orientation
        )
        self._rehydrator = VectorRehydrator()
        self._compressor = Compressor(self._rasterizer, step=self.config.compress_step)
        self._scheduler = ExpirationScheduler(self._on_expired)
        self._destroyed: LifecycleEvent[BitmapSignature] = LifecycleEvent()

        self.loaded = False
        self._state = BitmapState.IDLE
        self._image: DecodedImage | None = None
        self._object: EncodedObject | None = None
        self._payload: bytes | None = None
        self._size = 0
        self._file_size = 0
        self._mime_type = UNKNOWN_MIME_TYPE
        self._orientation_code = NORMAL
        self._loaded_at: datetime | None = None
        self._loaded_monotonic: float | None = None
        self._url: str | None = None
        self._error: BitmapError | None = None
        # Bumped by every load and destroy so in-flight stages can tell they are stale
        self._generation = 0

    # ------------------------------------------------------------------
    # Identity and state
    # ------------------------------------------------------------------

    @property
    def source(self) -> str:
        return self._source

    @property
    def resolution(self) -> str:
        return self._resolution

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def state(self) -> BitmapState:
        return self._state

    @property
    def url(self) -> str | None:
        """Request URL built by the most recent load()."""
        return self._url

    @property
    def error(self) -> BitmapError | None:
        """Failure reported by the most recent load()."""
        return self._error

    @property
    def image(self) -> DecodedImage | None:
        """The decoded image, owned by this bitmap."""
        return self._image

    @property
    def object_handle(self) -> EncodedObject | None:
        """Owned handle to the encoded bytes produced during load."""
        return self._object

    @property
    def mime_type(self) -> str:
        return self._mime_type

    @property
    def size(self) -> int:
        """Pixel count (width * height) of the loaded image."""
        return self._size

    @property
    def file_size(self) -> int:
        """Byte length of the encoded representation."""
        return self._file_size

    @property
    def orientation(self) -> int:
        """EXIF orientation code (1..8)."""
        return self._orientation_code

    @property
    def normalized_rotation(self) -> int:
        """Degrees the image must be rotated to appear upright."""
        return self._orientation.rotation_for(self._orientation_code)

    @property
    def loaded_at(self) -> datetime | None:
        return self._loaded_at

    @property
    def life(self) -> float:
        """Seconds elapsed since the bitmap finished loading (0 if not loaded)."""
        if self._loaded_monotonic is None or not self._source:
            return 0
        return time.monotonic() - self._loaded_monotonic

    @property
    def ttl(self) -> float:
        """Seconds to live after load (or after the last assignment); 0 is forever."""
        return self._ttl

    @ttl.setter
    def ttl(self, value: float) -> None:
        self._ttl = normalize_ttl(value)
        self._scheduler.arm(self._ttl)

    @property
    def expiration_pending(self) -> bool:
        return self._scheduler.pending

    @property
    def destroyed(self) -> LifecycleEvent[BitmapSignature]:
        """Channel that fires once, with a final BitmapSignature, on destroy."""
        return self._destroyed

    @property
    def signature(self) -> BitmapSignature:
        """Snapshot of identity and load state."""
        return BitmapSignature(
            src=self._source,
            revision=self._revision,
            resolution=self._resolution,
            loaded=self.loaded,
            size=self._size,
        )

    bytes_from_encoded_data_string = staticmethod(bytes_from_encoded_data_string)
    detect_mime_type = staticmethod(detect_mime_type)

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def build_url(self) -> str:
        """Build the request URL from source, resolution and revision.

        The resolution replaces any resolution suffix on the file name and
        ``rev=N`` is appended to the query string:

            >>> AssetBitmap("img_thumb.png", "_lg", 3).build_url()
            'img.png_lg?rev=3'
        """
        if is_data_string(self._source):
            return self._source

        path, sep, query = self._source.partition("?")
        if self._resolution:
            head, slash, name = path.rpartition("/")
            name = _RESOLUTION_SUFFIX.sub("", name, count=1)
            path = f"{head}{slash}{name}{self._resolution}"

        rev = f"rev={self._revision}"
        query = f"{query}&{rev}" if sep else rev
        return f"{path}?{query}"

    async def load(
        self,
        anonymous: bool = True,
        allow_vector_rehydration: bool = True,
    ) -> LoadResult:
        """Fetch, detect, decode and normalize the image.

        Args:
            anonymous: Fetch without credentials. Only anonymous loads are
                re-encoded; otherwise the original bytes are kept as is.
            allow_vector_rehydration: Rewrite SVG documents to fill their
                viewBox before decoding

        Returns:
            LoadResult; never raises for load failures
        """
        if self._state is BitmapState.DISPOSED:
            return self._fail(NotReady("Bitmap has been destroyed"))
        if not self._source:
            return self._fail(EmptySource("Bitmap has no source to load"))

        self._scheduler.cancel()
        self._release_resources()
        self.loaded = False
        self._size = self._file_size = 0
        self._error = None
        self._generation += 1
        generation = self._generation
        self._url = self.build_url()

        image: DecodedImage | None = None
        handle: EncodedObject | None = None
        try:
            self._enter(BitmapState.FETCHING)
            resource = await self._fetcher.fetch(self._url, anonymous=anonymous)
            self._check_current(generation)

            self._enter(BitmapState.DETECTING)
            payload = resource.content
            fallback = resource.content_type or UNKNOWN_MIME_TYPE
            # SVG has no signature; only a non-image declared type is overridden
            if not fallback.startswith("image/") and looks_like_svg(payload):
                fallback = SVG
            self._mime_type = detect_mime_type(payload, fallback)
            logger.debug("Detected %s for %s", self._mime_type, self._url)

            if self._mime_type == SVG and allow_vector_rehydration:
                self._enter(BitmapState.REHYDRATING)
                vector = self._rehydrator.rehydrate(payload)
                handle = EncodedObject(vector.document, SVG)

                self._enter(BitmapState.DECODING)
                image = await asyncio.to_thread(self._decoder.decode, vector.document, SVG)
                self._check_current(generation)
                size = vector.pixel_count
            else:
                self._enter(BitmapState.DECODING)
                image = await asyncio.to_thread(self._decoder.decode, payload, self._mime_type)
                self._check_current(generation)
                if not self._mime_type.startswith("image/"):
                    self._mime_type = image.mime_type
                if self._mime_type in (UNKNOWN_MIME_TYPE, ""):
                    raise UndecodableResource(f"Unknown format for {self._url}")

                self._enter(BitmapState.RASTERIZING)
                if anonymous:
                    target = self._mime_type if self._rasterizer.can_encode(self._mime_type) else PNG
                    encoded = await asyncio.to_thread(self._render, image, target)
                    self._check_current(generation)
                    handle = EncodedObject(encoded, target)
                else:
                    # Credentialed resources are kept byte-for-byte
                    handle = EncodedObject(payload, self._mime_type)
                size = image.width * image.height

            self._enter(BitmapState.NORMALIZING)
            orientation = self._orientation.resolve(image)
        except asyncio.CancelledError:
            if image is not None:
                image.close()
            if handle is not None:
                handle.release()
            if generation == self._generation:
                self._fail(NotReady(f"Loading {self._source} was cancelled"))
            raise
        except (BitmapError, OSError, ValueError) as e:
            if image is not None:
                image.close()
            if handle is not None:
                handle.release()
            if isinstance(e, BitmapError):
                error = e
            else:
                error = UndecodableResource(f"Processing {self._url} failed: {e}")
                error.__cause__ = e
            if generation != self._generation:
                # Superseded by destroy() or a newer load; leave their state alone
                logger.debug("Discarding stale load of %s: %s", self._source, error)
                return LoadResult(ok=False, bitmap=self, error=error)
            return self._fail(error)

        self._image = image
        self._object = handle
        self._payload = payload
        self._file_size = handle.size
        self._size = size
        self._orientation_code = orientation
        self.loaded = True
        self._loaded_at = datetime.now(timezone.utc)
        self._loaded_monotonic = time.monotonic()

        self._scheduler.arm(self._ttl)
        self._enter(BitmapState.READY)
        logger.info(
            "Loaded %s (%s, %d px, %d bytes)",
            self._url, self._mime_type, self._size, self._file_size,
        )
        return LoadResult(ok=True, bitmap=self)

    def _render(self, image: DecodedImage, mime_type: str) -> bytes:
        surface = self._rasterizer.create_surface(image.width, image.height)
        try:
            self._rasterizer.draw(surface, image)
            return self._rasterizer.encode(surface, mime_type, self.config.default_quality)
        finally:
            self._rasterizer.release(surface)

    def _enter(self, state: BitmapState) -> None:
        logger.debug("%s: %s -> %s", self._source, self._state.value, state.value)
        self._state = state

    def _check_current(self, generation: int) -> None:
        if self._state is BitmapState.DISPOSED or generation != self._generation:
            raise NotReady(f"Bitmap {self._source} was destroyed while loading")

    def _fail(self, error: BitmapError) -> LoadResult:
        logger.warning("Loading %s failed: %s", self._source or "<empty>", error)
        self.loaded = False
        self._size = 0
        self._scheduler.cancel()
        self._error = error
        if self._state is not BitmapState.DISPOSED:
            self._state = BitmapState.FAILED
        return LoadResult(ok=False, bitmap=self, error=error)

    # ------------------------------------------------------------------
    # Consumers of the Ready state
    # ------------------------------------------------------------------

    def compress(
        self,
        quality: float,
        mime_type: str,
        scale: float = 1.0,
        size_limit: int | None = None,
    ) -> EncodedObject:
        """Re-encode the loaded image, shrinking it until it fits ``size_limit``.

        Args:
            quality: Encoder quality in [0, 1]
            mime_type: image/jpeg, image/png, image/webp (or jpeg, png, webp)
            scale: Initial scale factor
            size_limit: Maximum output bytes (None or <= 0 for no limit)

        Returns:
            EncodedObject owned by the caller, who must release it

        Raises:
            CompressionNotReady: If the bitmap is not loaded
            InvalidCompressionParameter: If parameters are out of range or
                the limit cannot be met
        """
        if not self.loaded or self._image is None:
            raise CompressionNotReady(f"Bitmap {self._source} is not loaded")
        request = build_request(quality, mime_type, scale, size_limit)
        return self._compressor.compress(self._image, request)

    def save_file(
        self,
        file_name: str | Path,
        object_handle: EncodedObject | None = None,
        mime_type: str | None = None,
    ) -> Path | None:
        """Write the image to ``file_name`` plus an extension for its type.

        Writes ``object_handle`` if given, else this bitmap's own handle, else
        the originally fetched bytes. Does nothing unless the bitmap is loaded.

        Returns:
            Path written, or None if the bitmap is not loaded
        """
        if not self.loaded or self._image is None:
            return None

        if object_handle is not None:
            data = object_handle.read()
            mime_type = mime_type or object_handle.mime_type
        elif self._object is not None and not self._object.released:
            data = self._object.read()
            mime_type = mime_type or self._object.mime_type
        elif self._payload is not None:
            data = self._payload
        else:
            return None
        mime_type = mime_type or self._mime_type

        path = Path(file_name)
        extension = extension_for(mime_type)
        if extension:
            path = path.with_name(f"{path.name}.{extension}")
        path.write_bytes(data)
        logger.info("Saved %s to %s (%d bytes)", self._source, path, len(data))
        return path

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def destroy(self) -> None:
        """Release everything and announce disposal. Safe to call repeatedly."""
        self._destroyed.publish(self.signature)

        self.ttl = 0
        self.loaded = False
        self._loaded_at = None
        self._loaded_monotonic = None
        self._release_resources()
        self._size = 0
        self._file_size = 0
        self._destroyed.close()
        self._generation += 1

        if self._state is not BitmapState.DISPOSED:
            logger.info("Destroyed %s", self._source or "<empty>")
            self._state = BitmapState.DISPOSED

    def _release_resources(self) -> None:
        if self._image is not None:
            self._image.close()
            self._image = None
        if self._object is not None:
            self._object.release()
            self._object = None
        self._payload = None

    def _on_expired(self) -> None:
        # Stale timers armed before a load completed are ignored
        if self.loaded:
            logger.info("%s expired after %ss", self._source, self._ttl)
            self.destroy()

    def __repr__(self) -> str:
        return (
            f"AssetBitmap(src={self._source!r}, resolution={self._resolution!r}, "
            f"revision={self._revision}, state={self._state.value}, ttl={self._ttl})"
        )
