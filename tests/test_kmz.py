import asyncio

import pytest
from PIL import Image

from errors import FormatError
from kmz import parse_kml, process_kmz_file
from models import GEOREF_KMZ, LatLngBounds


def test_process_kmz_file(make_kmz):
    result = asyncio.run(process_kmz_file(make_kmz(image_size=(40, 20))))

    assert (result.width, result.height) == (40, 20)
    assert result.bounds == LatLngBounds(north=59.91, south=59.89, east=10.72, west=10.68)

    georef = result.georef
    assert georef.type == GEOREF_KMZ
    assert georef.pixel_size_x == pytest.approx(0.04 / 40)
    assert georef.pixel_size_y == pytest.approx(-0.02 / 20)
    assert georef.pixel_size_y < 0
    assert (georef.rotation_x, georef.rotation_y) == (0.0, 0.0)
    assert (georef.top_left_x, georef.top_left_y) == (10.68, 59.91)


def test_parse_kml_reads_rotation():
    overlay = parse_kml("""<kml><GroundOverlay>
        <Icon><href>a.png</href></Icon>
        <LatLonBox><north>1</north><south>0</south><east>1</east><west>0</west>
        <rotation>12.5</rotation></LatLonBox>
    </GroundOverlay></kml>""")
    assert overlay.href == "a.png"
    assert overlay.rotation == 12.5


def test_kmz_without_kml_entry(make_kmz, make_jpeg):
    data = make_kmz(entries={"files/map.jpg": make_jpeg()})
    with pytest.raises(FormatError, match="No KML file"):
        asyncio.run(process_kmz_file(data))


def test_kmz_missing_image_entry(make_kmz):
    data = make_kmz(entries={"doc.kml": _kml_for("missing.jpg")})
    with pytest.raises(FormatError, match="missing.jpg"):
        asyncio.run(process_kmz_file(data))


def test_kml_without_ground_overlay(make_kmz):
    data = make_kmz(entries={"doc.kml": "<kml><Document><Placemark/></Document></kml>"})
    with pytest.raises(FormatError, match="GroundOverlay"):
        asyncio.run(process_kmz_file(data))


def test_ground_overlay_without_lat_lon_box():
    with pytest.raises(FormatError, match="LatLonBox"):
        parse_kml("<kml><GroundOverlay><Icon><href>a.png</href></Icon></GroundOverlay></kml>")


def test_ground_overlay_without_href():
    with pytest.raises(FormatError, match="href"):
        parse_kml("""<kml><GroundOverlay><LatLonBox><north>1</north><south>0</south>
            <east>1</east><west>0</west></LatLonBox></GroundOverlay></kml>""")


def test_non_numeric_lat_lon_box():
    with pytest.raises(FormatError, match="LatLonBox"):
        parse_kml("""<kml><GroundOverlay><Icon><href>a.png</href></Icon>
            <LatLonBox><north>north</north><south>0</south><east>1</east><west>0</west>
            </LatLonBox></GroundOverlay></kml>""")


def test_not_a_zip_archive():
    with pytest.raises(FormatError, match="KMZ"):
        asyncio.run(process_kmz_file(b"PK but not really"))


def test_corrupt_kml_entry(make_kmz):
    # same length, so only the entry's CRC check can catch it
    data = make_kmz().replace(b"59.91</north>", b"59.92</north>")
    with pytest.raises(FormatError, match="doc.kml"):
        asyncio.run(process_kmz_file(data))


def test_oversized_overlay_image(make_kmz, monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)
    with pytest.raises(FormatError, match="image"):
        asyncio.run(process_kmz_file(make_kmz(image_size=(40, 20))))


def _kml_for(href):
    return f"""<kml><Document><GroundOverlay>
        <Icon><href>{href}</href></Icon>
        <LatLonBox><north>1</north><south>0</south><east>1</east><west>0</west></LatLonBox>
    </GroundOverlay></Document></kml>"""
