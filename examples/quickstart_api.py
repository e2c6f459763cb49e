#!/usr/bin/env python3
"""Quickstart example using the high-level load/compress API.

This example walks through the typical assetbitmap flow:
- Load an image from a URL (or a generated data URI) with load_bitmap()
- Inspect the detected format, pixel count and orientation
- Recompress it under a byte budget and save the result

The high-level API hides the bitmap lifecycle and raises on failure.
"""

from __future__ import annotations

import argparse
import asyncio
import io
import logging
from pathlib import Path

import numpy as np
from PIL import Image

from assetbitmap.api import get_bitmap_info, load_bitmap
from assetbitmap.core.datauri import encode_data_string


def _random_source(size: int) -> str:
    pixels = np.random.randint(0, 256, (size, size, 3), dtype=np.uint8)
    buffer = io.BytesIO()
    Image.fromarray(pixels).save(buffer, format="PNG")
    return encode_data_string(buffer.getvalue(), "image/png")


async def run(args: argparse.Namespace) -> None:
    config_arg = str(args.config) if args.config and args.config.exists() else None

    if args.src:
        src = args.src
        print(f"Loading: {src}")
    else:
        print("No source given; generating random image instead")
        src = _random_source(args.size)

    bitmap = await load_bitmap(
        src,
        resolution=args.resolution,
        revision=args.revision,
        ttl=args.ttl,
        config_path=config_arg,
    )

    info = get_bitmap_info(bitmap)
    print(f"Format: {info['mime_type']}")
    print(f"Pixels: {info['size']} ({info['file_size']} bytes encoded)")
    print(f"Orientation: {info['orientation']} (rotate {info['rotation']} deg)")

    print("Compressing...")
    handle = bitmap.compress(args.quality, args.format, size_limit=args.size_limit)
    print(f"Compressed size: {handle.size} bytes")

    path = bitmap.save_file(args.output, handle)
    if path is not None:
        print(f"Saved to: {path}")
    handle.release()

    if args.ttl:
        print(f"Waiting {args.ttl}s for expiration...")
        signature = await bitmap.destroyed.wait()
        print(f"Destroyed: {signature}")
    else:
        bitmap.destroy()


def main() -> None:
    parser = argparse.ArgumentParser(description="Quickstart API example")
    parser.add_argument(
        "src",
        nargs="?",
        default=None,
        help="Image URL, path relative to base_url, or data URI",
    )
    parser.add_argument("--resolution", default="", help="Resolution suffix, e.g. _lg")
    parser.add_argument("--revision", type=int, default=0, help="Cache-busting revision")
    parser.add_argument(
        "--ttl",
        type=float,
        default=0,
        help="Seconds to keep the bitmap alive after loading (0 = destroy at exit)",
    )
    parser.add_argument(
        "--size",
        type=int,
        default=256,
        help="Random image size if no source is given",
    )
    parser.add_argument("--quality", type=float, default=0.8, help="Quality setting (0-1)")
    parser.add_argument("--format", default="image/webp", help="Output media type")
    parser.add_argument(
        "--size-limit",
        type=int,
        default=None,
        help="Maximum output size in bytes",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=Path("examples/compressed"),
        help="Output path (extension is added from the format)",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to assetbitmap.toml",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    asyncio.run(run(args))


if __name__ == "__main__":
    main()
