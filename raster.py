"""Read pixel dimensions from map image bytes with Pillow."""

import asyncio
import io
from typing import Tuple

from PIL import Image, UnidentifiedImageError

from errors import FormatError


def get_image_dimensions(data: bytes) -> Tuple[int, int]:
    """Return (width, height) of an encoded raster image.

    Only the header is decoded; pixel data is never loaded.

    Raises:
        FormatError: if Pillow cannot identify the image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise FormatError(f"Failed to load image: {exc}") from exc
    if width <= 0 or height <= 0:
        raise FormatError(f"Image has invalid dimensions {width}x{height}")
    return width, height


async def read_image_dimensions(data: bytes) -> Tuple[int, int]:
    """Async wrapper running the decode off the event loop."""
    return await asyncio.to_thread(get_image_dimensions, data)
