"""Resolve a KMZ ground overlay into a GeoReference and bounds.

A KMZ is a zip archive holding a KML document and the overlay image. Only
the first GroundOverlay is used. Its LatLonBox rotation is read but not
applied: the overlay is treated as north-up.
"""

import asyncio
import io
import logging
import xml.etree.ElementTree as ET
import zipfile
import zlib
from dataclasses import dataclass
from typing import Optional, Tuple

from errors import FormatError
from models import GEOREF_KMZ, GeoReference, LatLngBounds, ParsedMapData
from raster import read_image_dimensions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroundOverlay:
    """The parts of a KML GroundOverlay needed to place the image."""
    north: float
    south: float
    east: float
    west: float
    href: str
    rotation: float = 0.0   # degrees, counter-clockwise; ignored downstream

    @property
    def bounds(self) -> LatLngBounds:
        return LatLngBounds(north=self.north, south=self.south, east=self.east, west=self.west)


def parse_kml(kml_content) -> GroundOverlay:
    """Extract the first GroundOverlay from a KML document.

    Raises:
        FormatError: if the KML is malformed or has no usable GroundOverlay.
    """
    try:
        root = ET.fromstring(kml_content)
    except ET.ParseError as exc:
        raise FormatError(f"Invalid KML: {exc}") from exc

    overlay = _find_first(root, "GroundOverlay")
    if overlay is None:
        raise FormatError("No GroundOverlay found in KML file")

    box = _find_first(overlay, "LatLonBox")
    if box is None:
        raise FormatError("No LatLonBox found in GroundOverlay")

    icon = _find_first(overlay, "Icon")
    href = _child_text(icon, "href") if icon is not None else ""
    if not href:
        raise FormatError("No Icon/href found in GroundOverlay")

    try:
        north, south, east, west = (
            float(_child_text(box, name)) for name in ("north", "south", "east", "west")
        )
        rotation = float(_child_text(box, "rotation") or 0.0)
    except ValueError as exc:
        raise FormatError(f"Invalid LatLonBox value: {exc}") from exc

    return GroundOverlay(north=north, south=south, east=east, west=west, href=href, rotation=rotation)


def lat_lon_box_to_georef(overlay: GroundOverlay, width: int, height: int) -> GeoReference:
    """Express a north-up LatLonBox as world-file style affine parameters."""
    return GeoReference(
        type=GEOREF_KMZ,
        pixel_size_x=(overlay.east - overlay.west) / width,
        pixel_size_y=(overlay.south - overlay.north) / height,  # negative: rows grow southward
        rotation_x=0.0,
        rotation_y=0.0,
        top_left_x=overlay.west,
        top_left_y=overlay.north,
    )


async def process_kmz_file(data: bytes) -> ParsedMapData:
    """Georeference the map image packed in a KMZ archive.

    Raises:
        FormatError: if the archive, its KML, or the overlay image is missing
                     or unreadable.
    """
    overlay, image = await asyncio.to_thread(extract_overlay, data)
    width, height = await read_image_dimensions(image)
    georef = lat_lon_box_to_georef(overlay, width, height)
    logger.info("KMZ map %r: %dx%d px, bounds %s", overlay.href, width, height, overlay.bounds)

    return ParsedMapData(image=image, georef=georef, bounds=overlay.bounds, width=width, height=height)


def extract_overlay(data: bytes) -> Tuple[GroundOverlay, bytes]:
    """Read the KML and the referenced image bytes out of a KMZ archive."""
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as exc:
        raise FormatError(f"Invalid KMZ archive: {exc}") from exc

    with archive:
        names = archive.namelist()
        kml_name = next((n for n in names if n.lower().endswith(".kml")), None)
        if kml_name is None:
            raise FormatError("No KML file found in KMZ archive")
        logger.debug("Reading %s from KMZ (%d entries)", kml_name, len(names))

        overlay = parse_kml(_read_entry(archive, kml_name))

        if overlay.href not in names:
            raise FormatError(f'Image file "{overlay.href}" not found in KMZ archive')
        image = _read_entry(archive, overlay.href)

    return overlay, image


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _read_entry(archive: zipfile.ZipFile, name: str) -> bytes:
    # corrupt (bad CRC, broken deflate stream) or encrypted entries
    try:
        return archive.read(name)
    except (zipfile.BadZipFile, zlib.error, RuntimeError) as exc:
        raise FormatError(f'Cannot read "{name}" from KMZ archive: {exc}') from exc


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else tag


def _find_first(parent: ET.Element, tag: str) -> Optional[ET.Element]:
    """First descendant with local name *tag* (any namespace, any depth)."""
    for elem in parent.iter():
        if elem is not parent and _local(elem.tag) == tag:
            return elem
    return None


def _child_text(parent: ET.Element, tag: str) -> str:
    elem = _find_first(parent, tag)
    if elem is not None and elem.text:
        return elem.text.strip()
    return ""
