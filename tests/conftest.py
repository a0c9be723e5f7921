"""
Shared pytest fixtures for rastermap tests.
"""

import io
import json
import os
import sys

import pytest

# Add project root to path for imports
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)

from rastermap.models import GeoConstants, GeoNode  # noqa: E402
from rastermap.graph_db import RoadGraph  # noqa: E402


SAMPLE_OSM = b"""<?xml version="1.0" encoding="UTF-8"?>
<osm version="0.6" generator="test">
  <bounds minlat="37.82" minlon="-122.30" maxlat="37.90" maxlon="-122.21"/>
  <node id="1" lat="37.8700" lon="-122.2600" version="1">
    <tag k="name" v="Shattuck &amp; Center"/>
    <tag k="highway" v="traffic_signals"/>
  </node>
  <node id="2" lat="37.8710" lon="-122.2600"/>
  <node id="3" lat="37.8710" lon="-122.2590"/>
  <node id="4" lat="37.8720" lon="-122.2590"/>
  <node id="5" lat="37.8730" lon="-122.2590"/>
  <way id="10">
    <nd ref="1"/>
    <nd ref="2"/>
    <nd ref="3"/>
    <tag k="highway" v="motorway"/>
    <tag k="name" v="Test Motorway"/>
    <tag k="maxspeed" v="65 mph"/>
    <tag k="lanes" v="3"/>
  </way>
  <way id="11">
    <nd ref="3"/>
    <nd ref="4"/>
    <tag k="highway" v="footway"/>
    <tag k="name" v="Campus Path"/>
  </way>
  <way id="12">
    <nd ref="2"/>
    <nd ref="3"/>
    <tag k="name" v="Later Street"/>
    <tag k="highway" v="residential"/>
  </way>
  <relation id="100">
    <member type="way" ref="10" role=""/>
    <tag k="type" v="route"/>
  </relation>
</osm>
"""


@pytest.fixture
def berkeley_constants():
    """Default Berkeley tile pyramid (256 px tiles, depths 0-7)."""
    return GeoConstants(
        root_ullon=-122.2998046875,
        root_ullat=37.892195547244356,
        root_lrlon=-122.2119140625,
        root_lrlat=37.82280243352756,
        tile_size=256,
        max_depth=7,
    )


@pytest.fixture
def unit_constants():
    """Pyramid over a 1x1 degree box with 1 px tiles, easy to reason about."""
    return GeoConstants(
        root_ullon=0.0,
        root_ullat=1.0,
        root_lrlon=1.0,
        root_lrlat=0.0,
        tile_size=1,
        max_depth=3,
    )


@pytest.fixture
def sample_osm_bytes():
    """Small OSM XML document with a motorway, a footway and a residential street."""
    return SAMPLE_OSM


@pytest.fixture
def sample_osm_file(tmp_path):
    """The sample OSM document written to disk."""
    path = tmp_path / "sample.osm"
    path.write_bytes(SAMPLE_OSM)
    return path


@pytest.fixture
def sample_osm_stream():
    """The sample OSM document as a binary stream."""
    return io.BytesIO(SAMPLE_OSM)


@pytest.fixture
def line_graph():
    """Graph with three nodes on a north-then-east line, no edges."""
    graph = RoadGraph()
    graph.add_node(GeoNode(1, -122.2600, 37.8700))
    graph.add_node(GeoNode(2, -122.2600, 37.8710))
    graph.add_node(GeoNode(3, -122.2590, 37.8710))
    return graph


@pytest.fixture
def constants_file(tmp_path):
    """Write a constants JSON file and return its path."""
    def _write(data):
        path = tmp_path / "constants.json"
        if isinstance(data, str):
            path.write_text(data)
        else:
            path.write_text(json.dumps(data))
        return str(path)
    return _write
