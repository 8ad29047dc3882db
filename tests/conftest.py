import io
import zipfile

import pytest
from PIL import Image

from models import Control, Course, Position

SAMPLE_IOF_XML = """<?xml version="1.0" encoding="UTF-8"?>
<CourseData xmlns="http://www.orienteering.org/datastandard/3.0" iofVersion="3.0">
  <Event><Name>Club Night</Name></Event>
  <RaceCourseData>
    <Map><Scale>15000</Scale></Map>
    <Control><Id>S1</Id><Position lng="10.7000" lat="59.9000"/></Control>
    <Control><Id>31</Id><Position lng="10.7010" lat="59.9010"/></Control>
    <Control><Id>32</Id><Name>Boulder</Name><Position lng="10.7005" lat="59.9020"/></Control>
    <Control><Id>33</Id><Code>133</Code><Position lng="10.6990" lat="59.9015"/></Control>
    <Control><Id>F1</Id><Position lng="10.7002" lat="59.9001"/></Control>
    <Course>
      <Id>A</Id>
      <Name>Long</Name>
      <CourseControl type="Start"><Control>S1</Control></CourseControl>
      <CourseControl type="Control"><Control>31</Control></CourseControl>
      <CourseControl type="Control"><Control>32</Control></CourseControl>
      <CourseControl type="Control"><Control>33</Control></CourseControl>
      <CourseControl type="Finish"><Control>F1</Control></CourseControl>
    </Course>
    <Course>
      <Id>B</Id>
      <Name>Short</Name>
      <CourseControl type="Start"><Control>S1</Control></CourseControl>
      <CourseControl type="Control"><Control>31</Control></CourseControl>
      <CourseControl type="Control"><Control>33</Control></CourseControl>
      <CourseControl type="Finish"><Control>F1</Control></CourseControl>
    </Course>
    <Course>
      <Id>C</Id>
      <Name>Broken</Name>
      <CourseControl type="Start"><Control>S1</Control></CourseControl>
      <CourseControl type="Control"><Control>31</Control></CourseControl>
      <CourseControl type="Finish"><Control>F9</Control></CourseControl>
    </Course>
    <Course>
      <Name>Beginner</Name>
      <CourseControl type="Start"><Control>S1</Control></CourseControl>
      <CourseControl><Control>32</Control></CourseControl>
      <CourseControl type="Finish"><Control>F1</Control></CourseControl>
    </Course>
  </RaceCourseData>
</CourseData>
"""

SAMPLE_KML = """<?xml version="1.0" encoding="UTF-8"?>
<kml xmlns="http://www.opengis.net/kml/2.2">
  <Document>
    <Folder>
      <name>Map</name>
      <GroundOverlay>
        <name>Forest</name>
        <Icon><href>files/map.jpg</href></Icon>
        <LatLonBox>
          <north>59.91</north>
          <south>59.89</south>
          <east>10.72</east>
          <west>10.68</west>
          <rotation>1.5</rotation>
        </LatLonBox>
      </GroundOverlay>
    </Folder>
  </Document>
</kml>
"""


@pytest.fixture
def iof_xml():
    return SAMPLE_IOF_XML


@pytest.fixture
def make_jpeg():
    def _make(width=40, height=20):
        buf = io.BytesIO()
        Image.new("RGB", (width, height), (255, 255, 255)).save(buf, format="JPEG")
        return buf.getvalue()
    return _make


@pytest.fixture
def make_kmz(make_jpeg):
    """Build a KMZ archive; pass entries=None to get the default kml + image."""
    def _make(entries=None, kml=SAMPLE_KML, image_size=(40, 20)):
        if entries is None:
            entries = {"doc.kml": kml, "files/map.jpg": make_jpeg(*image_size)}
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            for name, content in entries.items():
                zf.writestr(name, content)
        return buf.getvalue()
    return _make


@pytest.fixture
def make_course():
    def _make(course_id="A", controls=(), start=(60.0, 10.0), finish=(60.0, 10.02),
              color="#FF6B35", visible=True, codes=None):
        built = tuple(
            Control(
                id=f"{course_id}-{i}",
                code=(codes[i] if codes else str(31 + i)),
                position=Position(lat=lat, lng=lng),
                number=i + 1,
            )
            for i, (lat, lng) in enumerate(controls)
        )
        return Course(
            id=course_id,
            name=f"Course {course_id}",
            start=Position(*start),
            finish=Position(*finish),
            controls=built,
            color=color,
            visible=visible,
        )
    return _make
