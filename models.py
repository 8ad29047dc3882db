"""Data models for the course viewer core."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional, Tuple

# Render-space coordinate produced by a transform callable: (x, y).
Point = Tuple[float, float]

GEOREF_WORLDFILE = "worldfile"
GEOREF_KMZ = "kmz"


@dataclass(frozen=True)
class Position:
    """WGS84 geographic position."""
    lat: float   # decimal degrees
    lng: float   # decimal degrees

    def __post_init__(self):
        if not -90.0 <= self.lat <= 90.0:
            raise ValueError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise ValueError(f"Longitude out of range: {self.lng}")

    @classmethod
    def unchecked(cls, lat: float, lng: float) -> "Position":
        """Build a position without the range check.

        For render points offset a few metres from a valid position, which
        may land just past the antimeridian or a pole.
        """
        position = object.__new__(cls)
        object.__setattr__(position, "lat", lat)
        object.__setattr__(position, "lng", lng)
        return position


@dataclass(frozen=True)
class Control:
    """A checkpoint on one course, numbered by visit order."""
    id: str                 # Control id in the source document
    code: str               # printed control code (falls back to id)
    position: Position
    number: int             # 1-based position in the course's traversal order
    description: Optional[str] = None


@dataclass
class Course:
    """An ordered route from start to finish.

    Everything except ``visible`` is fixed once the parser builds it; the
    viewer toggles ``visible`` to show or hide the course.
    """
    id: str
    name: str
    start: Position
    finish: Position
    controls: Tuple[Control, ...] = ()
    color: str = "#FF6B35"
    visible: bool = True


@dataclass(frozen=True)
class GeoReference:
    """Affine mapping from image pixels to map units (world file field set)."""
    type: str                 # GEOREF_WORLDFILE or GEOREF_KMZ
    pixel_size_x: float
    pixel_size_y: float       # usually negative: image rows grow downward
    rotation_x: float
    rotation_y: float
    top_left_x: float
    top_left_y: float

    def pixel_to_map(self, col: float, row: float) -> Point:
        """Map an image pixel (col, row) to map units (x, y)."""
        x = self.top_left_x + col * self.pixel_size_x + row * self.rotation_x
        y = self.top_left_y + col * self.rotation_y + row * self.pixel_size_y
        return x, y


@dataclass(frozen=True)
class LatLngBounds:
    """Axis-aligned bounding box in map units."""
    north: float
    south: float
    east: float
    west: float


@dataclass(frozen=True)
class CourseVisit:
    """One course passing through a shared control."""
    course_id: str
    course_name: str
    course_color: str
    control_number: int


@dataclass(frozen=True)
class UniqueControl:
    """A control location shared by one or more courses."""
    code: str
    position: Position
    courses: Tuple[CourseVisit, ...] = ()


@dataclass(frozen=True)
class ParsedMapData:
    """A georeferenced map image ready to be stored with an event."""
    image: bytes
    georef: GeoReference
    bounds: LatLngBounds
    width: int     # pixels
    height: int    # pixels


@dataclass
class Event:
    """An imported event: one map plus the courses drawn on it."""
    id: str
    name: str
    date: str
    map: ParsedMapData
    courses: List[Course] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    is_demo: bool = False


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of an upload pre-check; ``errors`` lists every problem found."""
    valid: bool
    errors: Tuple[str, ...] = ()

    @classmethod
    def from_errors(cls, errors) -> "ValidationResult":
        errors = tuple(errors)
        return cls(valid=not errors, errors=errors)


@dataclass(frozen=True)
class UploadedFile:
    """Raw bytes of a user-supplied file, as handed over by the I/O layer."""
    name: str
    data: bytes
    mime_type: str = ""   # empty when the source did not report one

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        _, dot, ext = self.name.rpartition(".")
        return ext.lower() if dot else ""


# ---------------------------------------------------------------------------
# Drawable primitives
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Segment:
    """A route line piece in render coordinates."""
    start: Point
    end: Point


@dataclass(frozen=True)
class TriangleSymbol:
    """Start triangle; vertices are apex, bottom-right, bottom-left."""
    vertices: Tuple[Point, Point, Point]


@dataclass(frozen=True)
class CircleSymbol:
    center: Point
    radius_m: float   # ground radius; the drawing adapter scales it to pixels


@dataclass(frozen=True)
class FinishSymbol:
    outer: CircleSymbol
    inner: CircleSymbol


@dataclass(frozen=True)
class ControlSymbol:
    circle: CircleSymbol
    control: UniqueControl


@dataclass(frozen=True)
class CourseGeometry:
    """Everything needed to draw a single course except its control circles."""
    course_id: str
    color: str
    line_width: float    # pixels
    segments: Tuple[Segment, ...]
    start: TriangleSymbol
    finish: FinishSymbol


@dataclass(frozen=True)
class MapGeometry:
    """One render pass: visible course lines plus shared control circles."""
    courses: Tuple[CourseGeometry, ...]
    controls: Tuple[ControlSymbol, ...]


@dataclass(frozen=True)
class RenderPlan:
    """Diff between rendered course layers and the courses that should show."""
    to_remove: Tuple[str, ...]
    to_add: Tuple[str, ...]
