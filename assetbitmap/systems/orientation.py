"""EXIF orientation resolution.

Orientation values (EXIF tag 0x0112):

    1 = Horizontal (normal)
    2 = Mirror horizontal
    3 = Rotate 180
    4 = Mirror vertical
    5 = Mirror horizontal and rotate 270 CW
    6 = Rotate 90 CW
    7 = Mirror horizontal and rotate 90 CW
    8 = Rotate 270 CW
"""

from __future__ import annotations

import logging

from PIL import ExifTags

from assetbitmap.components.image import DecodedImage

logger = logging.getLogger(__name__)

NORMAL = 1
ORIENTATION_TAG = int(ExifTags.Base.Orientation)

_ROTATIONS = {3: 180, 4: 180, 5: 270, 6: 270, 7: 90, 8: 90}


class OrientationResolver:
    """Reads orientation metadata and maps it to a normalizing rotation.

    Attributes:
        host_normalizes_orientation: The host applies EXIF rotation itself, so
            no additional rotation must be requested
    """

    def __init__(self, host_normalizes_orientation: bool = False) -> None:
        self.host_normalizes_orientation = host_normalizes_orientation

    def resolve(self, decoded: DecodedImage | None) -> int:
        """Return the EXIF orientation code (1..8), defaulting to 1."""
        if decoded is None:
            return NORMAL
        try:
            value = decoded.image.getexif().get(ORIENTATION_TAG)
        except Exception as e:
            # Orientation is best effort; corrupt EXIF blocks are common
            logger.debug("Could not read EXIF orientation: %s", e)
            return NORMAL

        if isinstance(value, int) and 1 <= value <= 8:
            return value
        return NORMAL

    def rotation_for(self, code: int) -> int:
        """Degrees to rotate an image with orientation ``code`` to upright."""
        if self.host_normalizes_orientation:
            return 0
        return _ROTATIONS.get(code, 0)
