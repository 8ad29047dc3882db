"""Pre-import checks for uploaded map and course files.

Validators never raise: each returns a ValidationResult listing every problem
found so the user can fix them all at once. Passing validation does not
guarantee a successful parse; the resolvers and the course parser still
raise FormatError/DataError on deeper problems.
"""

import logging
from typing import List, Optional, Sequence

from config import get_settings
from errors import FormatError
from models import UploadedFile, ValidationResult
from world_file import (
    WORLD_FILE_LINES,
    decode_world_file,
    parse_world_file_line,
    split_world_file_lines,
)

logger = logging.getLogger(__name__)

XML_MIME_TYPES = ("text/xml", "application/xml")


def _check_extension(file: UploadedFile, allowed: Sequence[str]) -> Optional[str]:
    if file.extension not in allowed:
        return f"Invalid file type. Expected: {', '.join(allowed)}"
    return None


def _check_size(file: UploadedFile, max_size_mb: float) -> Optional[str]:
    max_bytes = max_size_mb * 1024 * 1024
    if file.size > max_bytes:
        return (
            f"File size ({file.size / 1024 / 1024:.2f}MB) exceeds maximum "
            f"allowed size of {max_size_mb:g}MB"
        )
    return None


def _collect(*errors: Optional[str]) -> List[str]:
    return [e for e in errors if e]


def validate_jpeg_file(file: UploadedFile) -> ValidationResult:
    errors = _collect(
        _check_extension(file, ("jpg", "jpeg")),
        _check_size(file, get_settings().max_map_size_mb),
    )
    if file.mime_type and not file.mime_type.startswith("image/jpeg"):
        errors.append("File must be a JPEG image")
    return ValidationResult.from_errors(errors)


def validate_world_file(file: UploadedFile) -> ValidationResult:
    max_kb = get_settings().max_world_file_size_kb
    errors = _collect(_check_extension(file, ("jgw",)))
    if file.size > max_kb * 1024:
        errors.append(f"World file is too large (max {max_kb:g}KB)")
    if file.size == 0:
        errors.append("World file is empty")
    return ValidationResult.from_errors(errors)


def validate_world_file_content(file: UploadedFile) -> ValidationResult:
    """Check the world file holds exactly six finite numeric lines."""
    try:
        content = decode_world_file(file.data)
    except UnicodeDecodeError:
        return ValidationResult.from_errors(["Failed to read world file content"])

    lines = split_world_file_lines(content)
    if len(lines) != WORLD_FILE_LINES:
        return ValidationResult.from_errors(
            [f"World file must have exactly {WORLD_FILE_LINES} lines (found {len(lines)})"]
        )

    errors = []
    for lineno, line in enumerate(lines, start=1):
        try:
            parse_world_file_line(line, lineno)
        except FormatError as exc:
            errors.append(str(exc))
    return ValidationResult.from_errors(errors)


def validate_kmz_file(file: UploadedFile) -> ValidationResult:
    errors = _collect(
        _check_extension(file, ("kmz",)),
        _check_size(file, get_settings().max_map_size_mb),
    )
    if file.size == 0:
        errors.append("KMZ file is empty")
    return ValidationResult.from_errors(errors)


def validate_course_file(file: UploadedFile) -> ValidationResult:
    errors = _collect(
        _check_extension(file, ("xml",)),
        _check_size(file, get_settings().max_course_size_mb),
    )
    if file.size == 0:
        errors.append("XML file is empty")
    if file.mime_type and file.mime_type not in XML_MIME_TYPES:
        # browsers report all sorts of MIME types for .xml; not fatal
        logger.warning("File MIME type is not XML: %s", file.mime_type)
    return ValidationResult.from_errors(errors)


def validate_course_file_content(file: UploadedFile) -> ValidationResult:
    """Cheap textual sniff for an IOF CourseData document."""
    try:
        content = file.data.decode("utf-8")
    except UnicodeDecodeError:
        return ValidationResult.from_errors(["Failed to read XML file content"])

    errors = []
    if "<CourseData" not in content:
        errors.append("File does not appear to be an IOF XML course data file")
    if "</CourseData>" not in content:
        errors.append("XML file is incomplete or malformed")
    if "<RaceCourseData" not in content:
        errors.append("No RaceCourseData found in XML")
    return ValidationResult.from_errors(errors)


def validate_map_upload(image_file: UploadedFile, world_file: UploadedFile) -> ValidationResult:
    """Validate a JPEG + world file pair together."""
    errors = list(validate_jpeg_file(image_file).errors)

    world = validate_world_file(world_file)
    errors.extend(world.errors)
    if world.valid:
        errors.extend(validate_world_file_content(world_file).errors)

    return ValidationResult.from_errors(errors)
