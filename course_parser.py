"""Parse IOF XML v3 course data into Course objects.

Expected shape (namespace optional, ignored when present):

    <CourseData>
      <RaceCourseData>
        <Control><Id>31</Id><Position lat="59.1" lng="10.2"/></Control>
        ...
        <Course>
          <Name>Long</Name>
          <CourseControl type="Start"><Control>S1</Control></CourseControl>
          <CourseControl type="Control"><Control>31</Control></CourseControl>
          <CourseControl type="Finish"><Control>F1</Control></CourseControl>
        </Course>
      </RaceCourseData>
    </CourseData>

Control and course ids may be given either as an ``Id`` child element or an
``id`` attribute. A course is kept only when its start, finish and at least
one intermediate control resolve; broken courses are skipped with a warning.
"""

import logging
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Tuple

from errors import DataError, FormatError
from models import Control, Course, Position

logger = logging.getLogger(__name__)

COURSE_PALETTE = (
    "#FF6B35",  # Orange
    "#004E89",  # Blue
    "#F7B801",  # Yellow
    "#6A0572",  # Purple
    "#00C9A7",  # Teal
    "#C20114",  # Red
    "#6A994E",  # Green
    "#BC4B51",  # Rose
    "#457B9D",  # Steel Blue
    "#F77F00",  # Dark Orange
    "#D62828",  # Crimson
    "#003049",  # Dark Blue
    "#FCBF49",  # Gold
    "#8338EC",  # Violet
    "#14213D",  # Navy
)

GOLDEN_ANGLE_DEG = 137.5

TYPE_START = "Start"
TYPE_CONTROL = "Control"
TYPE_FINISH = "Finish"


def course_color(index: int) -> str:
    """Colour for the *index*-th course (0-based)."""
    if index < len(COURSE_PALETTE):
        return COURSE_PALETTE[index]
    hue = (index * GOLDEN_ANGLE_DEG) % 360
    return f"hsl({hue:g}, 70%, 50%)"


def parse_course_data(xml_content) -> List[Course]:
    """Parse an IOF XML v3 CourseData document.

    Args:
        xml_content: Document as str or UTF-8 bytes.

    Returns:
        Courses in document order, each with start, finish and numbered controls.

    Raises:
        FormatError: if the XML is malformed or lacks CourseData/RaceCourseData.
        DataError:   if no course in the document is complete.
    """
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as exc:
        raise FormatError(f"Invalid IOF XML: {exc}") from exc

    if _local(root.tag) != "CourseData":
        raise FormatError("Invalid IOF XML: No CourseData found")

    race_elems = _group_children(root).get("RaceCourseData", [])
    if not race_elems:
        raise FormatError("Invalid IOF XML: No RaceCourseData found")
    race = _group_children(race_elems[0])

    lookup = _build_control_lookup(race.get("Control", []))
    logger.debug("Indexed %d control definitions", len(lookup))

    courses: List[Course] = []
    for index, course_elem in enumerate(race.get("Course", [])):
        course = _build_course(course_elem, index, lookup, color=course_color(len(courses)))
        if course is not None:
            courses.append(course)

    if not courses:
        raise DataError("No valid courses found in IOF XML")

    logger.info("Parsed %d course(s) from IOF XML", len(courses))
    return courses


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _local(tag: str) -> str:
    """Return the local name of an XML tag regardless of namespace."""
    return tag.rsplit("}", 1)[-1] if isinstance(tag, str) else tag


def _group_children(elem: ET.Element) -> Dict[str, List[ET.Element]]:
    """Group direct children by local tag name.

    Every repeatable child comes back as a list, whether the document held one
    occurrence or many; callers never check shape again.
    """
    grouped: Dict[str, List[ET.Element]] = {}
    for child in elem:
        grouped.setdefault(_local(child.tag), []).append(child)
    return grouped


def _text(children: Dict[str, List[ET.Element]], tag: str) -> str:
    elems = children.get(tag, [])
    if elems and elems[0].text:
        return elems[0].text.strip()
    return ""


def _element_id(elem: ET.Element, children: Dict[str, List[ET.Element]]) -> str:
    return _text(children, "Id") or (elem.get("id") or "").strip()


def _parse_position(children: Dict[str, List[ET.Element]]) -> Optional[Position]:
    elems = children.get("Position", [])
    if not elems:
        return None
    try:
        return Position(lat=float(elems[0].get("lat")), lng=float(elems[0].get("lng")))
    except (TypeError, ValueError):
        return None


def _build_control_lookup(
    control_elems: List[ET.Element],
) -> Dict[str, Tuple[Position, str, str]]:
    """Map control id -> (position, code, description)."""
    lookup: Dict[str, Tuple[Position, str, str]] = {}
    for elem in control_elems:
        children = _group_children(elem)
        control_id = _element_id(elem, children)
        if not control_id:
            continue
        position = _parse_position(children)
        if position is None:
            logger.debug("Control %s has no usable position", control_id)
            continue
        code = _text(children, "Code") or control_id
        lookup[control_id] = (position, code, _text(children, "Name"))
    return lookup


def _build_course(
    course_elem: ET.Element,
    index: int,
    lookup: Dict[str, Tuple[Position, str, str]],
    color: str,
) -> Optional[Course]:
    children = _group_children(course_elem)
    course_id = _element_id(course_elem, children) or f"course-{index}"
    name = _text(children, "Name") or f"Course {index + 1}"

    start: Optional[Position] = None
    finish: Optional[Position] = None
    controls: List[Control] = []

    for cc in children.get("CourseControl", []):
        cc_type = (cc.get("type") or TYPE_CONTROL).strip()
        control_id = _text(_group_children(cc), "Control")
        resolved = lookup.get(control_id) if control_id else None
        if resolved is None:
            continue
        position, code, description = resolved

        if cc_type == TYPE_START:
            start = position
        elif cc_type == TYPE_FINISH:
            finish = position
        elif cc_type == TYPE_CONTROL:
            controls.append(Control(
                id=control_id,
                code=code,
                position=position,
                number=len(controls) + 1,
                description=description or None,
            ))

    if start is None or finish is None or not controls:
        logger.warning(
            "Skipping course %r: start=%s finish=%s controls=%d",
            name, start is not None, finish is not None, len(controls),
        )
        return None

    return Course(
        id=course_id,
        name=name,
        start=start,
        finish=finish,
        controls=tuple(controls),
        color=color,
    )
