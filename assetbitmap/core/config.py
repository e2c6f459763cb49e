"""Bitmap configuration loaded from assetbitmap.toml.

Example assetbitmap.toml:

    [bitmap]
    base_url = "https://cdn.example.com/assets/"
    timeout_s = 15
    host_normalizes_orientation = false

    [bitmap.headers]
    User-Agent = "assetbitmap/0.1"
"""

from __future__ import annotations

import os
from typing import Any, cast

from pydantic import BaseModel, Field, ValidationError

# TOML loading for Python 3.11+ and older
try:
    import tomllib  # type: ignore[import-not-found, unused-ignore]
except ImportError:
    import tomli as tomllib  # type: ignore[import-not-found, no-redef, unused-ignore]

CONFIG_ENV = "ASSETBITMAP_CONFIG"
CONFIG_FILENAME = "assetbitmap.toml"


class BitmapConfig(BaseModel):
    """Runtime settings shared by fetch, rasterization and orientation.

    Attributes:
        base_url: Prefix for relative sources (None means sources are absolute)
        timeout_s: HTTP timeout in seconds
        follow_redirects: Whether the fetcher follows redirects
        headers: Extra request headers
        cookies: Credentials sent only with non-anonymous fetches
        max_bytes: Largest accepted response body
        default_quality: Encoder quality used when re-encoding after load
        compress_step: Scale decrement per compression retry
        max_surface_pixels: Largest off-screen surface (width * height)
        host_normalizes_orientation: Host already applies EXIF rotation
    """

    model_config = {"frozen": True}

    base_url: str | None = None
    timeout_s: float = Field(default=30.0, gt=0)
    follow_redirects: bool = True
    headers: dict[str, str] = Field(default_factory=dict)
    cookies: dict[str, str] = Field(default_factory=dict)
    max_bytes: int = Field(default=50 * 1024 * 1024, gt=0)
    default_quality: float = Field(default=0.92, ge=0.0, le=1.0)
    compress_step: float = Field(default=0.1, gt=0.0, le=1.0)
    max_surface_pixels: int = Field(default=268_435_456, gt=0)
    host_normalizes_orientation: bool = False


def _resolve_config_path(config_path: str | None) -> str | None:
    """Resolve configuration path from env, explicit path, or defaults."""
    env_config = os.environ.get(CONFIG_ENV)
    if env_config:
        return env_config
    if config_path:
        return config_path
    candidates = [
        CONFIG_FILENAME,
        os.path.expanduser(f"~/{CONFIG_FILENAME}"),
    ]
    for candidate in candidates:
        if os.path.exists(candidate):
            return candidate
    return None


def load_config(config_path: str | None = None) -> BitmapConfig:
    """Load BitmapConfig from TOML, falling back to defaults.

    Args:
        config_path: Explicit path to assetbitmap.toml (auto-detected if None)

    Returns:
        Validated configuration

    Raises:
        FileNotFoundError: If an explicit or env-provided path does not exist
        ValueError: If the file is not valid TOML or holds invalid settings
    """
    resolved_path = _resolve_config_path(config_path)
    if resolved_path is None:
        return BitmapConfig()
    if not os.path.exists(resolved_path):
        raise FileNotFoundError(
            f"Config file not found at {resolved_path}. Set {CONFIG_ENV} or create {CONFIG_FILENAME}"
        )

    with open(resolved_path, "rb") as f:
        try:
            config = cast(dict[str, Any], tomllib.load(f))
        except tomllib.TOMLDecodeError as e:
            raise ValueError(f"Invalid TOML in {resolved_path}: {e}") from e

    section = config.get("bitmap", {})
    if not isinstance(section, dict):
        raise ValueError(f"[bitmap] in {resolved_path} must be a table")

    try:
        return BitmapConfig(**section)
    except ValidationError as e:
        raise ValueError(f"Invalid bitmap settings in {resolved_path}: {e}") from e
