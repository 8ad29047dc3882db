"""Coordinate projection helpers using pyproj.

Symbol sizing, line widths and circle-edge trimming all need locally accurate
metre distances. When the map itself is in geographic degrees, WGS84 positions
are projected to the UTM zone they fall in to get a planar metric space.

Note: always_xy=True is set so coordinates are always ordered
(easting/longitude, northing/latitude) regardless of the EPSG axis convention.
Render-space points produced by the transforms below follow the same order.
"""

import math
from functools import lru_cache
from typing import Callable, Tuple

from pyproj import Transformer

from models import GEOREF_KMZ, GeoReference, LatLngBounds, Point, Position

METERS_PER_DEG_LAT = 111_320.0

WGS84_EPSG = 4326

Transform = Callable[[Position], Point]


def get_utm_zone(longitude: float) -> int:
    """UTM zone number (1-60) for *longitude*."""
    # lng = 180 would otherwise land in a non-existent zone 61
    return min(int(math.floor((longitude + 180.0) / 6.0)) + 1, 60)


def get_utm_epsg(zone: int) -> int:
    """EPSG code of the northern-hemisphere WGS84 UTM zone."""
    return 32600 + zone


@lru_cache(maxsize=None)
def utm_transformer(zone: int) -> Transformer:
    """WGS84 -> UTM transformer for *zone*, built once per zone."""
    return Transformer.from_crs(
        f"EPSG:{WGS84_EPSG}",
        f"EPSG:{get_utm_epsg(zone)}",
        always_xy=True,
    )


def lat_lng_to_utm(position: Position) -> Tuple[float, float]:
    """Convert a WGS84 position to (easting, northing) metres in its UTM zone."""
    easting, northing = utm_transformer(get_utm_zone(position.lng)).transform(
        position.lng, position.lat
    )
    return easting, northing


# ---------------------------------------------------------------------------
# Metres <-> degrees
# ---------------------------------------------------------------------------

def meters_per_deg_lng(latitude: float) -> float:
    return METERS_PER_DEG_LAT * math.cos(math.radians(latitude))


def offset_position(origin: Position, east_m: float, north_m: float) -> Position:
    """Shift *origin* by a small ground offset given in metres.

    The result is not wrapped or range-checked: a symbol drawn across the
    antimeridian keeps contiguous longitudes (e.g. 180.0003).
    """
    lat = origin.lat + north_m / METERS_PER_DEG_LAT
    lng = origin.lng + east_m / meters_per_deg_lng(origin.lat)
    return Position.unchecked(lat=lat, lng=lng)


def ground_offset(origin: Position, target: Position) -> Tuple[float, float]:
    """(east, north) metres from *origin* to *target*, scaled at origin latitude."""
    east = (target.lng - origin.lng) * meters_per_deg_lng(origin.lat)
    north = (target.lat - origin.lat) * METERS_PER_DEG_LAT
    return east, north


# ---------------------------------------------------------------------------
# Render transforms
# ---------------------------------------------------------------------------

def geographic_transform(position: Position) -> Point:
    """Identity transform for maps drawn in geographic degrees."""
    return position.lng, position.lat


def utm_transform(position: Position) -> Point:
    """Transform for maps drawn in UTM metres."""
    return lat_lng_to_utm(position)


def is_geographic_coordinates(
    top_left_x: float,
    top_left_y: float,
    north: float,
    south: float,
    east: float,
    west: float,
) -> bool:
    """Guess whether world-file values are degrees rather than projected metres.

    Small projected coordinates also pass this range check, so it is only a
    fallback for references that carry no explicit type.
    """
    return (
        abs(top_left_y) <= 90
        and abs(top_left_x) <= 180
        and abs(north) <= 90
        and abs(south) <= 90
        and abs(east) <= 180
        and abs(west) <= 180
    )


def is_geographic_reference(georef: GeoReference, bounds: LatLngBounds) -> bool:
    """True when the map image is georeferenced in WGS84 degrees."""
    if georef.type == GEOREF_KMZ:
        # KML LatLonBox is always WGS84
        return True
    return is_geographic_coordinates(
        georef.top_left_x,
        georef.top_left_y,
        bounds.north,
        bounds.south,
        bounds.east,
        bounds.west,
    )


def select_transform(georef: GeoReference, bounds: LatLngBounds) -> Transform:
    """Pick the render transform matching the map's coordinate space."""
    if is_geographic_reference(georef, bounds):
        return geographic_transform
    return utm_transform
