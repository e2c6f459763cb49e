"""Size-bounded lossy re-encoding.

The compressor draws the decoded image at a scale, encodes it and, if the
result exceeds the size limit, retries at ``scale - step``. The loop stops
with an error once the next scale would be <= 0, so a request with step 0.1
starting at scale 1.0 runs at most 10 encodes.
"""

from __future__ import annotations

import logging

from pydantic import ValidationError

from assetbitmap.components.compression import CompressionRequest
from assetbitmap.components.image import DecodedImage
from assetbitmap.core.capability import Rasterizer
from assetbitmap.core.errors import InvalidCompressionParameter
from assetbitmap.core.surface import EncodedObject

logger = logging.getLogger(__name__)

# Scales are rounded to avoid 0.1 steps drifting (0.30000000000000004)
_SCALE_DIGITS = 6


def build_request(
    quality: float,
    mime_type: str,
    scale: float = 1.0,
    size_limit: int | None = None,
) -> CompressionRequest:
    """Validate compression parameters.

    Raises:
        InvalidCompressionParameter: If any parameter is out of range
    """
    try:
        return CompressionRequest(
            quality=quality, mime_type=mime_type, scale=scale, size_limit=size_limit
        )
    except ValidationError as e:
        raise InvalidCompressionParameter(f"Invalid compression params: {e}") from e


class Compressor:
    """Re-encodes a decoded image under an optional byte budget.

    Attributes:
        rasterizer: Backend used for drawing and encoding
        step: Scale decrement applied after each oversized attempt
    """

    def __init__(self, rasterizer: Rasterizer, step: float = 0.1) -> None:
        if step <= 0:
            raise ValueError(f"step must be positive, got {step}")
        self.rasterizer = rasterizer
        self.step = step

    def compress(self, image: DecodedImage, request: CompressionRequest) -> EncodedObject:
        """Encode ``image`` according to ``request``.

        Returns:
            EncodedObject owned by the caller

        Raises:
            InvalidCompressionParameter: If the size limit cannot be met
                before the scale reaches 0
        """
        scale = request.scale
        attempts = 0

        while True:
            attempts += 1
            data = self._encode_at(image, request, scale)

            if request.size_limit is None or len(data) <= request.size_limit:
                logger.debug(
                    "Compressed to %d bytes at scale %s after %d attempt(s)",
                    len(data), scale, attempts,
                )
                return EncodedObject(data, request.mime_type)

            next_scale = round(scale - self.step, _SCALE_DIGITS)
            logger.debug(
                "Output of %d bytes exceeds %d at scale %s; retrying at %s",
                len(data), request.size_limit, scale, next_scale,
            )
            if next_scale <= 0:
                raise InvalidCompressionParameter(
                    f"Cannot fit {request.size_limit} bytes: scale reached {next_scale} "
                    f"after {attempts} attempt(s)"
                )
            scale = next_scale

    def _encode_at(self, image: DecodedImage, request: CompressionRequest, scale: float) -> bytes:
        width = max(1, int(round(image.width * scale)))
        height = max(1, int(round(image.height * scale)))

        surface = self.rasterizer.create_surface(width, height)
        try:
            self.rasterizer.draw(surface, image)
            return self.rasterizer.encode(surface, request.mime_type, request.quality)
        finally:
            self.rasterizer.release(surface)
