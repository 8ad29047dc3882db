import asyncio

import pytest

from errors import FormatError
from models import GEOREF_WORLDFILE, LatLngBounds
from world_file import calculate_bounds, parse_world_file, process_jpeg_world_file

UTM_WORLD_FILE = "2.0\n0.0\n0.0\n-2.0\n500000.0\n4500000.0\n"


def test_parse_world_file_field_order():
    georef = parse_world_file("0.5\n0.1\n0.2\n-0.5\n100.0\n200.0")
    assert georef.type == GEOREF_WORLDFILE
    assert georef.pixel_size_x == 0.5
    assert georef.rotation_y == 0.1
    assert georef.rotation_x == 0.2
    assert georef.pixel_size_y == -0.5
    assert georef.top_left_x == 100.0
    assert georef.top_left_y == 200.0


def test_bounds_for_unrotated_world_file():
    georef = parse_world_file(UTM_WORLD_FILE)
    assert calculate_bounds(georef, 100, 50) == LatLngBounds(
        north=4500000.0, south=4499900.0, east=500200.0, west=500000.0
    )


def test_bounds_for_rotated_world_file():
    georef = parse_world_file("1\n0.5\n0.5\n-1\n0\n0")
    bounds = calculate_bounds(georef, 10, 10)
    assert bounds == LatLngBounds(north=5.0, south=-10.0, east=15.0, west=0.0)
    assert bounds.north >= bounds.south
    assert bounds.east >= bounds.west


def test_crlf_and_padding_tolerated():
    georef = parse_world_file("  2.0\r\n0\r\n0\r\n-2.0\r\n500000\r\n4500000\r\n\r\n")
    assert georef.top_left_y == 4500000.0


@pytest.mark.parametrize("content", [
    "1\n0\n0\n-1\n0",
    "1\n0\n0\n-1\n0\n0\n7",
    "",
])
def test_wrong_line_count(content):
    with pytest.raises(FormatError, match="expected 6 lines"):
        parse_world_file(content)


@pytest.mark.parametrize("bad", ["abc", "nan", "inf", "-Infinity", "1,5"])
def test_non_numeric_line(bad):
    with pytest.raises(FormatError, match="Line 3 is not a valid number"):
        parse_world_file(f"1\n0\n{bad}\n-1\n0\n0")


def test_process_jpeg_world_file(make_jpeg):
    image = make_jpeg(100, 50)
    result = asyncio.run(process_jpeg_world_file(image, UTM_WORLD_FILE.encode("ascii")))
    assert (result.width, result.height) == (100, 50)
    assert result.image == image
    assert result.bounds.south == 4499900.0
    assert result.bounds.east == 500200.0


def test_process_jpeg_world_file_rejects_bad_image():
    with pytest.raises(FormatError, match="image"):
        asyncio.run(process_jpeg_world_file(b"not an image", UTM_WORLD_FILE))


def test_process_jpeg_world_file_with_byte_order_mark(make_jpeg):
    world = b"\xef\xbb\xbf" + UTM_WORLD_FILE.encode("ascii")
    result = asyncio.run(process_jpeg_world_file(make_jpeg(100, 50), world))
    assert result.georef.pixel_size_x == 2.0
    assert result.bounds.west == 500000.0


def test_byte_order_mark_on_decoded_text():
    georef = parse_world_file("\ufeff" + UTM_WORLD_FILE)
    assert georef.pixel_size_x == 2.0
    assert georef.top_left_y == 4500000.0
