"""Resolve a JPEG + world file (.jgw) pair into a GeoReference and bounds.

World file layout (6 lines):
  1. Pixel size in X direction
  2. Rotation about Y axis
  3. Rotation about X axis
  4. Pixel size in Y direction (usually negative)
  5. X coordinate of upper left pixel
  6. Y coordinate of upper left pixel
"""

import logging
import math
from typing import List

from errors import FormatError
from models import GEOREF_WORLDFILE, GeoReference, LatLngBounds, ParsedMapData
from raster import read_image_dimensions

logger = logging.getLogger(__name__)

WORLD_FILE_LINES = 6


def decode_world_file(data: bytes) -> str:
    """Decode world file bytes, dropping a UTF-8 byte order mark if present.

    Raises:
        UnicodeDecodeError: if the bytes are not UTF-8 text.
    """
    return data.decode("utf-8-sig")


def split_world_file_lines(content: str) -> List[str]:
    # editors on Windows may leave a BOM even on already-decoded text
    return content.lstrip("\ufeff").strip().splitlines()


def parse_world_file_line(line: str, lineno: int) -> float:
    """Parse one world file line as a finite float.

    Raises:
        FormatError: if the line is not a number, or is nan/inf.
    """
    text = line.strip()
    try:
        value = float(text)
    except ValueError:
        value = math.nan
    if not math.isfinite(value):
        raise FormatError(f"Line {lineno} is not a valid number: {text!r}")
    return value


def parse_world_file_values(content: str) -> List[float]:
    """Split world file text into its six numeric values.

    Raises:
        FormatError: on a wrong line count or a non-numeric line.
    """
    lines = split_world_file_lines(content)
    if len(lines) != WORLD_FILE_LINES:
        raise FormatError(
            f"Invalid world file format: expected {WORLD_FILE_LINES} lines, found {len(lines)}"
        )

    values = []
    for lineno, line in enumerate(lines, start=1):
        try:
            values.append(parse_world_file_line(line, lineno))
        except FormatError as exc:
            raise FormatError(f"Invalid world file format: {exc}") from exc
    return values


def parse_world_file(content: str) -> GeoReference:
    """Parse world file text into a GeoReference."""
    pixel_size_x, rotation_y, rotation_x, pixel_size_y, top_left_x, top_left_y = (
        parse_world_file_values(content)
    )
    return GeoReference(
        type=GEOREF_WORLDFILE,
        pixel_size_x=pixel_size_x,
        pixel_size_y=pixel_size_y,
        rotation_x=rotation_x,
        rotation_y=rotation_y,
        top_left_x=top_left_x,
        top_left_y=top_left_y,
    )


def calculate_bounds(georef: GeoReference, width: int, height: int) -> LatLngBounds:
    """Axis-aligned bounds of an image of *width* x *height* pixels.

    All four corners go through the affine transform so rotated or sheared
    world files still produce a correct envelope.
    """
    corners = [
        georef.pixel_to_map(0, 0),
        georef.pixel_to_map(width, 0),
        georef.pixel_to_map(0, height),
        georef.pixel_to_map(width, height),
    ]
    xs = [x for x, _ in corners]
    ys = [y for _, y in corners]
    return LatLngBounds(north=max(ys), south=min(ys), east=max(xs), west=min(xs))


async def process_jpeg_world_file(image: bytes, world_file_content) -> ParsedMapData:
    """Georeference a JPEG map from its world file.

    Args:
        image:              Encoded JPEG bytes.
        world_file_content: World file text (str, or UTF-8 bytes with or without a BOM).

    Raises:
        FormatError: on a malformed world file or undecodable image.
    """
    if isinstance(world_file_content, bytes):
        try:
            world_file_content = decode_world_file(world_file_content)
        except UnicodeDecodeError as exc:
            raise FormatError("Invalid world file format: not a text file") from exc

    georef = parse_world_file(world_file_content)
    width, height = await read_image_dimensions(image)
    bounds = calculate_bounds(georef, width, height)
    logger.info("World file map: %dx%d px, bounds %s", width, height, bounds)

    return ParsedMapData(image=image, georef=georef, bounds=bounds, width=width, height=height)
