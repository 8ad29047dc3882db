"""Turn a set of uploaded files into an Event.

Flow: check required inputs -> run upload validators -> resolve the map
(JPEG + world file, or KMZ) -> parse the courses. Storing the event is the
caller's business.
"""

import logging
import secrets
import string
import time
from typing import Optional

from course_parser import parse_course_data
from errors import FormatError, UploadValidationError
from file_validator import (
    validate_course_file,
    validate_course_file_content,
    validate_kmz_file,
    validate_map_upload,
)
from kmz import process_kmz_file
from models import Event, ParsedMapData, UploadedFile
from world_file import process_jpeg_world_file

logger = logging.getLogger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_event_id() -> str:
    """Unique-enough id of the form ``event-<epoch ms>-<9 random chars>``."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"event-{int(time.time() * 1000)}-{suffix}"


async def resolve_map(
    image_file: Optional[UploadedFile] = None,
    world_file: Optional[UploadedFile] = None,
    kmz_file: Optional[UploadedFile] = None,
) -> ParsedMapData:
    """Georeference whichever map input was supplied (KMZ wins if both are)."""
    if kmz_file is not None:
        return await process_kmz_file(kmz_file.data)
    if image_file is not None and world_file is not None:
        return await process_jpeg_world_file(image_file.data, world_file.data)
    raise FormatError("A map needs either a KMZ file or a JPEG with its world file")


async def import_event(
    name: str,
    date: str,
    course_file: Optional[UploadedFile],
    image_file: Optional[UploadedFile] = None,
    world_file: Optional[UploadedFile] = None,
    kmz_file: Optional[UploadedFile] = None,
    is_demo: bool = False,
) -> Event:
    """Validate the uploads and build an Event from them.

    Raises:
        UploadValidationError: if a required input is missing or a pre-check fails.
        FormatError:           if a file's structure is malformed.
        DataError:             if the course file holds no usable course.
    """
    errors = []
    if not name or not name.strip():
        errors.append("Event name is required")
    if not date:
        errors.append("Event date is required")
    has_map = kmz_file is not None or (image_file is not None and world_file is not None)
    if not has_map:
        errors.append("Map file is required")
    if course_file is None:
        errors.append("Course file is required")
    if errors:
        raise UploadValidationError(errors)

    if kmz_file is not None:
        map_check = validate_kmz_file(kmz_file)
    else:
        map_check = validate_map_upload(image_file, world_file)
    if not map_check.valid:
        raise UploadValidationError(map_check.errors)

    course_check = validate_course_file(course_file)
    if course_check.valid:
        course_check = validate_course_file_content(course_file)
    if not course_check.valid:
        raise UploadValidationError(course_check.errors)

    map_data = await resolve_map(image_file, world_file, kmz_file)
    courses = parse_course_data(course_file.data)

    event = Event(
        id=generate_event_id(),
        name=name.strip(),
        date=date,
        map=map_data,
        courses=courses,
        is_demo=is_demo,
    )
    logger.info("Imported event %r with %d course(s)", event.name, len(courses))
    return event
