"""Host capability interfaces for decoding and rasterization.

The bitmap state machine never touches a concrete imaging library. It is
handed a Decoder (bytes -> DecodedImage) and a Rasterizer (DecodedImage ->
off-screen Surface -> encoded bytes), so backends can vary per host.

Example:
    >>> class NullDecoder(Decoder):
    ...     def decode(self, data, mime_type):
    ...         raise UndecodableResource("no codecs")
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from assetbitmap.components.image import DecodedImage
from assetbitmap.core.surface import Surface


class Decoder(ABC):
    """Turns encoded bytes into a DecodedImage."""

    @abstractmethod
    def decode(self, data: bytes, mime_type: str) -> DecodedImage:
        """Decode a payload.

        Args:
            data: Encoded image bytes
            mime_type: Sniffed media type (``image/svg+xml`` for vectors)

        Returns:
            DecodedImage owned by the caller

        Raises:
            UndecodableResource: If the payload cannot be decoded
        """
        pass


class Rasterizer(ABC):
    """Draws decoded images onto off-screen surfaces and encodes them."""

    #: Media types encode() accepts directly
    encodable_types: frozenset[str] = frozenset()

    def can_encode(self, mime_type: str) -> bool:
        """Return True if ``mime_type`` can be produced by encode()."""
        return mime_type in self.encodable_types

    @abstractmethod
    def create_surface(self, width: int, height: int) -> Surface:
        """Allocate a cleared surface.

        Raises:
            RenderingSurfaceUnavailable: If no surface can be allocated
        """
        pass

    @abstractmethod
    def draw(self, surface: Surface, image: DecodedImage) -> None:
        """Draw ``image`` scaled to fill the whole surface."""
        pass

    @abstractmethod
    def encode(self, surface: Surface, mime_type: str, quality: float | None = None) -> bytes:
        """Encode the surface contents.

        Args:
            surface: Surface to encode
            mime_type: Target media type (one of encodable_types)
            quality: Lossy quality in [0, 1], ignored by lossless formats
        """
        pass

    def release(self, surface: Surface) -> None:
        """Clear and zero-size a surface."""
        surface.release()

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
