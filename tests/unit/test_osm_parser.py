"""Tests for rastermap/osm_parser.py - streaming OSM XML into the graph."""

import gzip
import io

import pytest

from rastermap import osm_parser
from rastermap.errors import OSMParseError, UnknownNodeReferenceError
from rastermap.graph_db import RoadGraph
from rastermap.osm_parser import (
    build_graph_from_pbf,
    build_graph_from_xml,
    iter_osm_events,
    load_graph,
)


class TestIterEvents:
    """Test XML tokenising."""

    def test_start_end_pairs(self):
        """Test every element yields a start then an end event."""
        doc = b'<osm><node id="1" lon="0" lat="0"/></osm>'
        events = list(iter_osm_events(io.BytesIO(doc)))
        assert events == [
            ("start", "osm", {}),
            ("start", "node", {"id": "1", "lon": "0", "lat": "0"}),
            ("end", "node", None),
            ("end", "osm", None),
        ]

    def test_malformed_xml(self):
        """Test broken XML raises OSMParseError."""
        with pytest.raises(OSMParseError):
            list(iter_osm_events(io.BytesIO(b"<osm><node id='1'></osm>")))

    def test_finished_elements_released(self, sample_osm_bytes, monkeypatch):
        """Test top-level elements are detached from the root once read."""
        seen = []
        real_iterparse = osm_parser.ET.iterparse

        def recording_iterparse(*args, **kwargs):
            for event, elem in real_iterparse(*args, **kwargs):
                seen.append(elem)
                yield event, elem

        monkeypatch.setattr(osm_parser.ET, "iterparse", recording_iterparse)
        events = list(iter_osm_events(io.BytesIO(sample_osm_bytes)))

        root = seen[0]
        assert root.tag == "osm"
        assert len(root) == 0
        assert ("start", "node", {"id": "5", "lat": "37.8730", "lon": "-122.2590"}) in events


class TestBuildFromXML:
    """Test graph building from the sample document."""

    def test_sample_stream(self, sample_osm_stream):
        """Test the sample builds the motorway and residential edges only."""
        graph = build_graph_from_xml(sample_osm_stream)

        # Motorway 1-2-3 both ways, residential 2-3 replaces the motorway pair
        assert graph.num_edges == 4
        assert graph.is_adjacent(1, 2) and graph.is_adjacent(2, 1)
        assert graph.is_adjacent(2, 3) and graph.is_adjacent(3, 2)
        # Footway 3-4 is not a road
        assert not graph.is_adjacent(3, 4)

    def test_last_way_wins(self, sample_osm_stream):
        """Test the residential way's tags replaced the motorway's on 2-3."""
        graph = build_graph_from_xml(sample_osm_stream)
        assert graph.edge(2, 3).tags == {"name": "Later Street"}
        assert graph.edge(1, 2).tags == {"name": "Test Motorway", "maxspeed": "65 mph"}

    def test_node_names(self, sample_osm_stream):
        """Test node name tags are kept, with XML entities decoded."""
        graph = build_graph_from_xml(sample_osm_stream)
        assert graph.node(1).name == "Shattuck & Center"
        assert graph.node(2).name is None

    def test_directed(self, sample_osm_stream):
        """Test directed mode keeps only way order."""
        graph = build_graph_from_xml(sample_osm_stream, undirected=False)
        assert graph.num_edges == 2
        assert not graph.is_adjacent(2, 1)

    def test_from_path(self, sample_osm_file):
        """Test reading from a path on disk."""
        graph = build_graph_from_xml(sample_osm_file)
        assert graph.num_nodes == 5

    def test_from_gzip(self, tmp_path, sample_osm_bytes):
        """Test .gz files are decompressed transparently."""
        path = tmp_path / "sample.osm.gz"
        with gzip.open(path, "wb") as f:
            f.write(sample_osm_bytes)
        graph = build_graph_from_xml(path)
        assert graph.num_edges == 4

    def test_existing_graph(self, sample_osm_stream):
        """Test adding into a graph the caller supplies."""
        graph = RoadGraph(distance_metric="planar")
        result = build_graph_from_xml(sample_osm_stream, graph=graph)
        assert result is graph
        assert graph.edge(1, 2).weight == pytest.approx(0.001)

    def test_abort_on_unknown(self):
        """Test abort policy propagates out of the build."""
        doc = (
            b'<osm><node id="1" lon="0" lat="0"/>'
            b'<way id="5"><nd ref="1"/><nd ref="2"/><tag k="highway" v="primary"/></way></osm>'
        )
        with pytest.raises(UnknownNodeReferenceError):
            build_graph_from_xml(io.BytesIO(doc), on_unknown_node="abort")

    def test_summary_logged(self, sample_osm_stream, caplog):
        """Test the build summary is logged at INFO."""
        with caplog.at_level("INFO", logger="rastermap.osm_parser"):
            build_graph_from_xml(sample_osm_stream)
        assert "5 nodes, 2/3 ways are roads" in caplog.text


class TestLoadGraph:
    """Test the file-based entry point."""

    def test_clean_by_default(self, sample_osm_file):
        """Test nodes without roads are removed."""
        graph = load_graph(sample_osm_file)
        assert sorted(graph.vertices()) == [1, 2, 3]

    def test_no_clean(self, sample_osm_file):
        """Test clean=False keeps every node."""
        graph = load_graph(sample_osm_file, clean=False)
        assert graph.num_nodes == 5

    def test_missing_file(self, tmp_path):
        """Test a missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_graph(tmp_path / "nowhere.osm")

    def test_pbf_without_osmium(self, tmp_path, monkeypatch):
        """Test PBF input needs osmium."""
        monkeypatch.setattr(osm_parser, "OSMIUM_AVAILABLE", False)
        with pytest.raises(ImportError):
            build_graph_from_pbf(tmp_path / "region.osm.pbf")


class TestBuildWithOsmium:
    """Test the osmium reader replays the same events as the XML reader."""

    def test_replayed_sample(self, sample_osm_file):
        """Test osmium input gives the same graph as the XML reader."""
        pytest.importorskip("osmium")
        graph = build_graph_from_pbf(sample_osm_file)
        assert graph.num_nodes == 5
        assert graph.num_edges == 4
        assert graph.edge(2, 3).tags == {"name": "Later Street"}
        assert graph.edge(3, 2).tags == {"name": "Later Street"}
        assert graph.edge(1, 2).tags == {"name": "Test Motorway", "maxspeed": "65 mph"}
        assert graph.node(1).name == "Shattuck & Center"
        assert not graph.has_node(100)
