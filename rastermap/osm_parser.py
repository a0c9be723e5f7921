"""
Stream OSM data into a RoadGraph.

Supports two source formats:
1. OSM XML (.osm, .osm.gz, .xml) - tokenised with ElementTree.iterparse
2. OSM PBF (.osm.pbf) - read with osmium, if installed

Both feed the same GraphBuildingHandler events, so filtering and edge
weighting are identical regardless of format.

Usage:
    graph = load_graph("berkeley.osm")
    graph = build_graph_from_xml(io.BytesIO(osm_bytes), undirected=False)
"""

import gzip
import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import IO, Iterator, Optional, Tuple, Union

try:
    import osmium
    OSMIUM_AVAILABLE = True
except ImportError:
    OSMIUM_AVAILABLE = False

from rastermap.errors import OSMParseError
from rastermap.graph_builder import GraphBuildingHandler
from rastermap.graph_db import RoadGraph

logger = logging.getLogger('rastermap.osm_parser')

Source = Union[str, Path, IO[bytes]]


def _open_source(source: Source):
    """Open a path (gunzipping .gz) or pass a file object through."""
    if isinstance(source, (str, Path)):
        path = Path(source)
        if path.suffix == ".gz":
            return gzip.open(path, "rb")
        return open(path, "rb")
    return source


def iter_osm_events(source: Source) -> Iterator[Tuple[str, str, Optional[dict]]]:
    """
    Yield ("start", name, attributes) and ("end", name, None) for each element.

    Each top-level element is dropped from the document root once it ends,
    so only the element being read is held in memory.

    Raises:
        OSMParseError: If the document is not well-formed XML.
    """
    stream = _open_source(source)
    owns_stream = stream is not source
    try:
        root = None
        level = 0
        for event, elem in ET.iterparse(stream, events=("start", "end")):
            if event == "start":
                if root is None:
                    root = elem
                level += 1
                yield "start", elem.tag, dict(elem.attrib)
            else:
                level -= 1
                yield "end", elem.tag, None
                if level == 1:
                    root.clear()
    except ET.ParseError as e:
        raise OSMParseError(f"Malformed OSM XML: {e}") from e
    finally:
        if owns_stream:
            stream.close()


def build_graph_from_xml(
    source: Source, graph: Optional[RoadGraph] = None, **handler_kwargs
) -> RoadGraph:
    """
    Build a road graph from an OSM XML document.

    Args:
        source: Path to an .osm / .osm.gz file, or a binary file object.
        graph: Graph to add to. A new one is created if omitted.
        **handler_kwargs: Passed to GraphBuildingHandler (undirected,
            on_unknown_node).

    Returns:
        The populated graph.
    """
    graph = graph if graph is not None else RoadGraph()
    handler = GraphBuildingHandler(graph, **handler_kwargs)
    for event, name, attributes in iter_osm_events(source):
        if event == "start":
            handler.on_element_start(name, attributes)
        else:
            handler.on_element_end(name)
    _log_summary(source, handler)
    return graph


class _PBFEventReplayer(osmium.SimpleHandler if OSMIUM_AVAILABLE else object):
    """Osmium handler that replays nodes and ways as element events."""

    def __init__(self, handler: GraphBuildingHandler):
        if OSMIUM_AVAILABLE:
            super().__init__()
        self.handler = handler

    def node(self, n):
        h = self.handler
        h.on_element_start("node", {
            "id": str(n.id),
            "lon": str(n.location.lon),
            "lat": str(n.location.lat),
        })
        for tag in n.tags:
            h.on_element_start("tag", {"k": tag.k, "v": tag.v})
            h.on_element_end("tag")
        h.on_element_end("node")

    def way(self, w):
        h = self.handler
        h.on_element_start("way", {"id": str(w.id)})
        for nd in w.nodes:
            h.on_element_start("nd", {"ref": str(nd.ref)})
            h.on_element_end("nd")
        for tag in w.tags:
            h.on_element_start("tag", {"k": tag.k, "v": tag.v})
            h.on_element_end("tag")
        h.on_element_end("way")


def build_graph_from_pbf(
    path: Union[str, Path], graph: Optional[RoadGraph] = None, **handler_kwargs
) -> RoadGraph:
    """
    Build a road graph from an OSM PBF file.

    Raises:
        ImportError: If osmium is not installed.
    """
    if not OSMIUM_AVAILABLE:
        raise ImportError("osmium not available. Install with: pip install osmium")

    graph = graph if graph is not None else RoadGraph()
    handler = GraphBuildingHandler(graph, **handler_kwargs)
    _PBFEventReplayer(handler).apply_file(str(path))
    _log_summary(path, handler)
    return graph


def load_graph(path: Union[str, Path], clean: bool = True, **handler_kwargs) -> RoadGraph:
    """
    Build a graph from a file, choosing the reader by extension.

    Args:
        path: .osm.pbf for PBF, anything else is read as XML.
        clean: Drop nodes that ended up with no edges.
        **handler_kwargs: Passed to GraphBuildingHandler.

    Raises:
        FileNotFoundError: If path does not exist.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"No map data at {path}")

    if path.name.endswith(".pbf"):
        graph = build_graph_from_pbf(path, **handler_kwargs)
    else:
        graph = build_graph_from_xml(path, **handler_kwargs)

    if clean:
        graph.clean()
    return graph


def _log_summary(source, handler: GraphBuildingHandler) -> None:
    stats = handler.stats
    name = source.name if isinstance(source, Path) else source
    logger.info(
        "Loaded %s: %d nodes, %d/%d ways are roads, %d edges",
        name, stats.nodes, stats.roads, stats.ways, stats.edges,
    )
    if stats.skipped_connections:
        logger.warning(
            "%d connections skipped due to unknown node references",
            stats.skipped_connections,
        )
