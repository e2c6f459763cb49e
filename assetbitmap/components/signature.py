"""Lifecycle signature published when a bitmap is destroyed."""

from pydantic import BaseModel, Field


class BitmapSignature(BaseModel):
    """Snapshot of a bitmap's identity and state.

    Attributes:
        src: Source locator
        revision: Cache-busting revision
        resolution: Resolution variant suffix
        loaded: Whether the bitmap was loaded at snapshot time
        size: Pixel count at snapshot time
    """

    model_config = {"frozen": True}

    src: str
    revision: int = Field(ge=0)
    resolution: str = Field(default="")
    loaded: bool = Field(default=False)
    size: int = Field(default=0, ge=0)

    @property
    def cache_key(self) -> tuple[str, int, str]:
        """Identity used by callers to deduplicate bitmaps."""
        return (self.src, self.revision, self.resolution)
