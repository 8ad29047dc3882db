"""Command-line entry point for the orienteering course viewer core.

Imports an event from its files and prints the parsed courses, the map
georeference and the geometry of one render pass as JSON:

    python main.py course.xml --kmz map.kmz
    python main.py course.xml --image map.jpg --world map.jgw --zoom 16
"""

import argparse
import asyncio
import dataclasses
import json
import logging
import mimetypes
import os
import sys

# Make all sibling modules importable by their bare name
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from config import get_settings
from course_geometry import build_map_geometry
from errors import DataError, FormatError, UploadValidationError
from event_import import import_event
from logging_config import configure
from models import Event, UploadedFile
from projection import is_geographic_reference, select_transform

logger = logging.getLogger("coursemap")


def _load(path):
    if path is None:
        return None
    with open(path, "rb") as f:
        data = f.read()
    mime_type, _ = mimetypes.guess_type(path)
    return UploadedFile(name=os.path.basename(path), data=data, mime_type=mime_type or "")


def summarize(event: Event, zoom: float) -> dict:
    """JSON-ready view of an event and its geometry at *zoom*."""
    transform = select_transform(event.map.georef, event.map.bounds)
    geometry = build_map_geometry(event.courses, transform, zoom)
    return {
        "id": event.id,
        "name": event.name,
        "date": event.date,
        "map": {
            "georef": dataclasses.asdict(event.map.georef),
            "bounds": dataclasses.asdict(event.map.bounds),
            "width": event.map.width,
            "height": event.map.height,
            "geographic": is_geographic_reference(event.map.georef, event.map.bounds),
        },
        "courses": [dataclasses.asdict(c) for c in event.courses],
        "geometry": dataclasses.asdict(geometry),
    }


def build_parser() -> argparse.ArgumentParser:
    settings = get_settings()
    p = argparse.ArgumentParser(description="Import orienteering event files and print course geometry.")
    p.add_argument("course", help="IOF XML v3 course data file")
    p.add_argument("--kmz", help="KMZ ground overlay map")
    p.add_argument("--image", help="JPEG map image (with --world)")
    p.add_argument("--world", help="JPEG world file (.jgw)")
    p.add_argument("--zoom", type=float, default=settings.default_zoom)
    p.add_argument("--name", help="Event name (defaults to the course file name)")
    p.add_argument("--date", default="", help="Event date, e.g. 2026-05-01")
    p.add_argument("--log-level", default=settings.log_level)
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    configure(args.log_level)

    try:
        course_file = _load(args.course)
        name = args.name or os.path.splitext(course_file.name)[0]
        event = asyncio.run(import_event(
            name=name,
            date=args.date or "undated",
            course_file=course_file,
            image_file=_load(args.image),
            world_file=_load(args.world),
            kmz_file=_load(args.kmz),
        ))
    except OSError as exc:
        logger.error("Cannot read %s: %s", exc.filename, exc.strerror or exc)
        return 1
    except UploadValidationError as exc:
        for message in exc.errors:
            logger.error(message)
        return 1
    except (FormatError, DataError) as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1

    print(json.dumps(summarize(event, args.zoom), indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
