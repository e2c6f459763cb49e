"""Compression request component."""

from __future__ import annotations

import math

from pydantic import BaseModel, Field, field_validator

# Short names accepted alongside full media types
FORMAT_ALIASES = {
    "jpeg": "image/jpeg",
    "jpg": "image/jpeg",
    "image/jpeg": "image/jpeg",
    "png": "image/png",
    "image/png": "image/png",
    "webp": "image/webp",
    "image/webp": "image/webp",
}


class CompressionRequest(BaseModel):
    """Validated compression parameters.

    Attributes:
        quality: Encoder quality in [0, 1]
        mime_type: Output format (image/jpeg, image/png or image/webp)
        scale: Initial scale factor (> 0)
        size_limit: Upper bound on output bytes, None for no limit
    """

    model_config = {"frozen": True}

    quality: float = Field(ge=0.0, le=1.0)
    mime_type: str
    scale: float = Field(default=1.0, gt=0.0)
    size_limit: int | None = Field(default=None)

    @field_validator("mime_type", mode="before")
    @classmethod
    def _normalize_format(cls, value: object) -> str:
        key = str(value).strip().lower()
        if key not in FORMAT_ALIASES:
            raise ValueError(f"Unsupported compression format {value!r}")
        return FORMAT_ALIASES[key]

    @field_validator("size_limit", mode="before")
    @classmethod
    def _drop_non_positive_limit(cls, value: object) -> object:
        # Non-positive or non-finite limits mean "no limit"
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            if not math.isfinite(value) or value <= 0:
                return None
            return int(value)
        return value
