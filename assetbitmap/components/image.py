"""Image components: DecodedImage, RehydratedVector."""

from __future__ import annotations

from PIL import Image
from pydantic import BaseModel, Field


class Component(BaseModel):
    """Base class for data carried between pipeline stages.

    Components are plain containers validated by Pydantic.
    """

    model_config = {"arbitrary_types_allowed": True}


class DecodedImage(Component):
    """A decoded, drawable image (the bitmap's decoded surface).

    Attributes:
        image: Pillow image, still carrying the source EXIF block
        mime_type: Format the image was decoded from
    """

    image: Image.Image
    mime_type: str

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    def close(self) -> None:
        """Release the pixel data held by Pillow."""
        self.image.close()


class RehydratedVector(Component):
    """SVG document rewritten to fill its bounding box.

    Attributes:
        document: Serialized SVG (UTF-8)
        width: viewBox width
        height: viewBox height
    """

    document: bytes
    width: float = Field(gt=0.0)
    height: float = Field(gt=0.0)

    @property
    def pixel_count(self) -> int:
        return int(round(self.width * self.height))
