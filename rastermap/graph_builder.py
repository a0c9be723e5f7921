"""
Road graph builder driven by a streaming OSM parse.

An external tokenizer (see rastermap/osm_parser.py) walks the OSM document
and calls on_element_start() / on_element_end() for every element. The
handler keeps a small state machine:

    IDLE --<node>--> IN_NODE --</node>--> IDLE
    IDLE --<way>---> IN_WAY  --</way>---> IDLE

Inside a way, <nd ref=...> elements collect node ids in order and <tag>
elements decide whether the way is a road. When the way closes, every
consecutive pair of its nodes becomes an edge weighted by the distance
between them. Ways whose highway type is not a road (footways, service
roads, railways, ...) add nothing.

Nodes must be declared before the ways that use them, which is how OSM
files are ordered.
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from rastermap import config
from rastermap.errors import MalformedElementError, UnknownNodeReferenceError
from rastermap.graph_db import RoadGraph
from rastermap.models import GeoNode, WayCandidate

logger = logging.getLogger('rastermap.graph_builder')

# Parser states
IDLE = "idle"
IN_NODE = "node"
IN_WAY = "way"

POLICY_SKIP = "skip"
POLICY_ABORT = "abort"


@dataclass
class BuildStats:
    """Counters for one build."""
    nodes: int = 0
    ways: int = 0
    roads: int = 0
    edges: int = 0
    skipped_connections: int = 0


class GraphBuildingHandler:
    """
    Turns OSM node/way events into RoadGraph nodes and edges.

    Args:
        graph: Graph to populate.
        undirected: Add each road segment in both directions.
        on_unknown_node: "skip" to drop connections to undeclared nodes,
            "abort" to raise UnknownNodeReferenceError.
    """

    ALLOWED_HIGHWAY_TYPES = config.ALLOWED_HIGHWAY_TYPES
    RETAINED_TAGS = config.RETAINED_WAY_TAGS

    def __init__(
        self,
        graph: RoadGraph,
        undirected: bool = config.UNDIRECTED_EDGES,
        on_unknown_node: str = config.UNKNOWN_NODE_POLICY,
    ):
        if on_unknown_node not in (POLICY_SKIP, POLICY_ABORT):
            raise ValueError(
                f"on_unknown_node must be '{POLICY_SKIP}' or '{POLICY_ABORT}', "
                f"got {on_unknown_node!r}"
            )
        self.graph = graph
        self.undirected = undirected
        self.on_unknown_node = on_unknown_node
        self.stats = BuildStats()
        self.state = IDLE
        self._last_node: Optional[GeoNode] = None
        self._way: Optional[WayCandidate] = None

    def on_element_start(self, name: str, attributes: Mapping[str, str]) -> None:
        """Handle the opening of an element."""
        if name == "node":
            self._start_node(attributes)
        elif name == "way":
            self.state = IN_WAY
            self._way = WayCandidate()
            self.stats.ways += 1
        elif self.state == IN_WAY and name == "nd":
            self._way.node_refs.append(_parse_id(attributes, "ref", "nd"))
        elif self.state == IN_WAY and name == "tag":
            self._way_tag(attributes.get("k"), attributes.get("v"))
        elif self.state == IN_NODE and name == "tag":
            if attributes.get("k") == "name" and self._last_node is not None:
                self._last_node.name = attributes.get("v")

    def on_element_end(self, name: str) -> None:
        """Handle the closing of an element."""
        if name == "way":
            way, self._way = self._way, None
            self.state = IDLE
            if way is not None and way.valid:
                self._connect(way)
        elif name == "node":
            self.state = IDLE

    def _start_node(self, attributes: Mapping[str, str]) -> None:
        node_id = _parse_id(attributes, "id", "node")
        try:
            lon = float(attributes["lon"])
            lat = float(attributes["lat"])
        except (KeyError, TypeError, ValueError):
            raise MalformedElementError(
                f"Node {node_id} needs numeric lon and lat attributes"
            ) from None
        node = GeoNode(node_id, lon, lat)
        self.graph.add_node(node)
        self._last_node = node
        self.state = IN_NODE
        self.stats.nodes += 1

    def _way_tag(self, key: Optional[str], value: Optional[str]) -> None:
        if key == "highway":
            self._way.highway = value or ""
            self._way.valid = value in self.ALLOWED_HIGHWAY_TYPES
        elif key in self.RETAINED_TAGS and value is not None:
            self._way.tags[key] = value

    def _connect(self, way: WayCandidate) -> None:
        self.stats.roads += 1
        for n1, n2 in way.connections():
            missing = [nid for nid in (n1, n2) if not self.graph.has_node(nid)]
            if missing:
                if self.on_unknown_node == POLICY_ABORT:
                    raise UnknownNodeReferenceError(missing[0])
                logger.warning(
                    "Skipping %s connection %d -> %d: unknown node %d",
                    way.highway, n1, n2, missing[0],
                )
                self.stats.skipped_connections += 1
                continue

            weight = self.graph.distance(n1, n2)
            self.graph.add_edge(n1, n2, weight, way.tags)
            self.stats.edges += 1
            if self.undirected:
                self.graph.add_edge(n2, n1, weight, way.tags)
                self.stats.edges += 1


def _parse_id(attributes: Mapping[str, str], key: str, element: str) -> int:
    try:
        return int(attributes[key])
    except (KeyError, TypeError, ValueError):
        raise MalformedElementError(
            f"<{element}> needs an integer '{key}' attribute, got {attributes.get(key)!r}"
        ) from None
