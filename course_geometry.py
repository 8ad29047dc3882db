"""Build drawable course geometry: route segments, symbols and shared controls.

Symbol sizes follow the orienteering map standard at 1:15,000 and are kept
in ground metres so they scale with the map:

  start triangle   6 mm side      -> 90 m
  control circle   5 mm diameter  -> 75 m  (radius 37.5 m)
  finish circles   6 mm / 4 mm    -> 45 m / 30 m radius
  course line      0.35 mm        -> 5.25 m

Every function here is pure. Callers pass a transform mapping a WGS84
Position to render coordinates; the same inputs always give the same output.
Keeping drawn layers in sync with course visibility is the drawing adapter's
job, driven by ``reconcile``.
"""

import math
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from models import (
    CircleSymbol,
    ControlSymbol,
    Course,
    CourseGeometry,
    CourseVisit,
    FinishSymbol,
    MapGeometry,
    Point,
    Position,
    RenderPlan,
    Segment,
    TriangleSymbol,
    UniqueControl,
)
from projection import (
    METERS_PER_DEG_LAT,
    Transform,
    geographic_transform,
    meters_per_deg_lng,
    offset_position,
)

START_SIDE_M = 90.0
CONTROL_RADIUS_M = 37.5
FINISH_OUTER_RADIUS_M = 45.0
FINISH_INNER_RADIUS_M = 30.0

LINE_WIDTH_M = 5.25
MIN_LINE_WIDTH_PX = 1.0
MAX_LINE_WIDTH_PX = 10.0

# Web Mercator ground resolution at the equator, zoom 0 (m/px)
EQUATOR_RESOLUTION_M = 156543.04


def calculate_line_width(zoom: float, latitude: float) -> float:
    """Pixel width of a course line at *zoom*, clamped to [1, 10]."""
    resolution = EQUATOR_RESOLUTION_M * math.cos(math.radians(latitude)) / (2 ** zoom)
    if resolution <= 0:
        return MAX_LINE_WIDTH_PX
    width = LINE_WIDTH_M / resolution
    return max(MIN_LINE_WIDTH_PX, min(MAX_LINE_WIDTH_PX, width))


# ---------------------------------------------------------------------------
# Symbols
# ---------------------------------------------------------------------------

def build_start_symbol(
    position: Position,
    transform: Transform = geographic_transform,
) -> TriangleSymbol:
    """Equilateral start triangle, apex up, centred on *position*."""
    height = START_SIDE_M * math.sqrt(3) / 2
    # offsets from the centroid in metres (east, north)
    offsets = (
        (0.0, 2 * height / 3),
        (START_SIDE_M / 2, -height / 3),
        (-START_SIDE_M / 2, -height / 3),
    )
    vertices = tuple(transform(offset_position(position, east, north)) for east, north in offsets)
    return TriangleSymbol(vertices=vertices)


def build_finish_symbol(
    position: Position,
    transform: Transform = geographic_transform,
) -> FinishSymbol:
    center = transform(position)
    return FinishSymbol(
        outer=CircleSymbol(center=center, radius_m=FINISH_OUTER_RADIUS_M),
        inner=CircleSymbol(center=center, radius_m=FINISH_INNER_RADIUS_M),
    )


def extract_unique_controls(courses: Iterable[Course]) -> List[UniqueControl]:
    """Merge controls shared between courses.

    Two controls are the same only if code and position match exactly.
    Order follows first appearance across *courses*.
    """
    visits: Dict[Tuple[str, float, float], List[CourseVisit]] = {}
    for course in courses:
        for control in course.controls:
            key = (control.code, control.position.lat, control.position.lng)
            visits.setdefault(key, []).append(CourseVisit(
                course_id=course.id,
                course_name=course.name,
                course_color=course.color,
                control_number=control.number,
            ))

    return [
        UniqueControl(code=code, position=Position(lat=lat, lng=lng), courses=tuple(course_visits))
        for (code, lat, lng), course_visits in visits.items()
    ]


def build_control_symbols(
    courses: Iterable[Course],
    transform: Transform = geographic_transform,
) -> List[ControlSymbol]:
    """One control circle per shared control location."""
    return [
        ControlSymbol(
            circle=CircleSymbol(center=transform(control.position), radius_m=CONTROL_RADIUS_M),
            control=control,
        )
        for control in extract_unique_controls(courses)
    ]


# ---------------------------------------------------------------------------
# Route lines
# ---------------------------------------------------------------------------

def get_circle_edge_point(
    from_position: Position,
    center: Position,
    radius_m: float,
    transform: Transform = geographic_transform,
) -> Point:
    """Point where the line from *from_position* meets a circle around *center*.

    The direction is worked out in ground metres (longitude scaled by
    cos(latitude)) so the trim length is the same in every direction.
    """
    dx = (center.lng - from_position.lng) * meters_per_deg_lng(center.lat)
    dy = (center.lat - from_position.lat) * METERS_PER_DEG_LAT
    distance = math.hypot(dx, dy)
    if distance == 0:
        return transform(center)

    edge = offset_position(center, -dx / distance * radius_m, -dy / distance * radius_m)
    return transform(edge)


def build_course_segments(
    course: Course,
    transform: Transform = geographic_transform,
) -> List[Segment]:
    """Route segments, each end stopped at the edge of the circle it touches.

    The start triangle is not trimmed against. A course with no controls
    yields a single untrimmed start-to-finish segment.
    """
    if not course.controls:
        return [Segment(start=transform(course.start), end=transform(course.finish))]

    stops: List[Tuple[Position, Optional[float]]] = [(course.start, None)]
    stops.extend((control.position, CONTROL_RADIUS_M) for control in course.controls)
    stops.append((course.finish, FINISH_OUTER_RADIUS_M))

    segments = []
    for (a, radius_a), (b, radius_b) in zip(stops, stops[1:]):
        start = transform(a) if radius_a is None else get_circle_edge_point(b, a, radius_a, transform)
        end = get_circle_edge_point(a, b, radius_b, transform)
        segments.append(Segment(start=start, end=end))
    return segments


def build_course_geometry(
    course: Course,
    transform: Transform = geographic_transform,
    zoom: float = 15,
) -> CourseGeometry:
    """Line, start and finish for one course. Control circles are shared
    across courses and come from ``build_control_symbols`` instead."""
    return CourseGeometry(
        course_id=course.id,
        color=course.color,
        line_width=calculate_line_width(zoom, course.start.lat),
        segments=tuple(build_course_segments(course, transform)),
        start=build_start_symbol(course.start, transform),
        finish=build_finish_symbol(course.finish, transform),
    )


def build_map_geometry(
    courses: Sequence[Course],
    transform: Transform = geographic_transform,
    zoom: float = 15,
) -> MapGeometry:
    """Geometry for every visible course plus their shared control circles."""
    visible = [course for course in courses if course.visible]
    return MapGeometry(
        courses=tuple(build_course_geometry(course, transform, zoom) for course in visible),
        controls=tuple(build_control_symbols(visible, transform)),
    )


# ---------------------------------------------------------------------------
# Layer reconciliation
# ---------------------------------------------------------------------------

def visible_course_ids(courses: Iterable[Course]) -> List[str]:
    return [course.id for course in courses if course.visible]


def reconcile(
    previous_rendered_ids: Iterable[str],
    desired_visible_ids: Iterable[str],
) -> RenderPlan:
    """Work out which course layers to drop and which to draw.

    Applying the plan to the rendered set yields exactly the desired set, so
    calling it again with the result returns an empty plan.
    """
    previous = list(dict.fromkeys(previous_rendered_ids))
    desired = list(dict.fromkeys(desired_visible_ids))
    previous_set, desired_set = set(previous), set(desired)
    return RenderPlan(
        to_remove=tuple(course_id for course_id in previous if course_id not in desired_set),
        to_add=tuple(course_id for course_id in desired if course_id not in previous_set),
    )
