"""
In-memory road graph.

Nodes are OSM nodes keyed by id; each node owns a table of outgoing edges
keyed by destination id, so adding an edge for an ordered pair that already
has one replaces it. The graph is filled once by GraphBuildingHandler and is
read-only afterwards. No locking is done: finish building before handing the
graph to readers.
"""

import logging
from typing import Dict, Iterator, List, Optional

import numpy as np

from rastermap import config
from rastermap.errors import UnknownNodeReferenceError
from rastermap.geometry import get_distance_function
from rastermap.models import Edge, GeoNode

logger = logging.getLogger('rastermap.graph_db')


class RoadGraph:
    """Road network graph: node positions plus weighted, tagged edges."""

    def __init__(self, distance_metric: str = config.DISTANCE_METRIC):
        self._nodes: Dict[int, GeoNode] = {}
        self._adj: Dict[int, Dict[int, Edge]] = {}
        self.distance_metric = distance_metric
        self._distance_fn = get_distance_function(distance_metric)

    # -------------------------------------------------------------------------
    # Building
    # -------------------------------------------------------------------------

    def add_node(self, node: GeoNode) -> None:
        """Add a node, replacing any earlier node with the same id."""
        self._nodes[node.id] = node
        self._adj.setdefault(node.id, {})

    def add_edge(
        self,
        from_id: int,
        to_id: int,
        weight: float,
        tags: Optional[Dict[str, str]] = None,
    ) -> Edge:
        """
        Add a directed edge from_id -> to_id.

        An existing edge between the same ordered pair is replaced, so the
        last way to connect two nodes wins.

        Raises:
            UnknownNodeReferenceError: If either endpoint is not in the graph.
        """
        for node_id in (from_id, to_id):
            if node_id not in self._nodes:
                raise UnknownNodeReferenceError(node_id)
        edge = Edge(from_id, to_id, weight, dict(tags or {}))
        self._adj[from_id][to_id] = edge
        return edge

    def distance(self, id_a: int, id_b: int) -> float:
        """
        Distance between two nodes using the graph's metric.

        Raises:
            UnknownNodeReferenceError: If either id is not in the graph.
        """
        a = self.node(id_a)
        b = self.node(id_b)
        return self._distance_fn(a.lat, a.lon, b.lat, b.lon)

    def clean(self) -> int:
        """
        Remove nodes that no edge starts or ends at.

        Returns:
            Number of nodes removed.
        """
        connected = set()
        for from_id, edges in self._adj.items():
            if edges:
                connected.add(from_id)
                connected.update(edges)
        isolated = [nid for nid in self._nodes if nid not in connected]
        for nid in isolated:
            del self._nodes[nid]
            del self._adj[nid]
        if isolated:
            logger.info("Removed %d unconnected nodes", len(isolated))
        return len(isolated)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: int) -> bool:
        return node_id in self._nodes

    def has_node(self, node_id: int) -> bool:
        return node_id in self._nodes

    def node(self, node_id: int) -> GeoNode:
        try:
            return self._nodes[node_id]
        except KeyError:
            raise UnknownNodeReferenceError(node_id) from None

    def lon(self, node_id: int) -> float:
        return self.node(node_id).lon

    def lat(self, node_id: int) -> float:
        return self.node(node_id).lat

    def vertices(self) -> Iterator[int]:
        """Iterate over all node ids."""
        return iter(list(self._nodes))

    @property
    def num_nodes(self) -> int:
        return len(self._nodes)

    @property
    def num_edges(self) -> int:
        return sum(len(edges) for edges in self._adj.values())

    def edges_from(self, node_id: int) -> List[Edge]:
        """Outgoing edges of a node."""
        self.node(node_id)
        return list(self._adj[node_id].values())

    def neighbors(self, node_id: int) -> List[int]:
        """Ids reachable from node_id over a single edge."""
        self.node(node_id)
        return list(self._adj[node_id])

    def edge(self, from_id: int, to_id: int) -> Optional[Edge]:
        """The edge from_id -> to_id, or None."""
        return self._adj.get(from_id, {}).get(to_id)

    def is_adjacent(self, from_id: int, to_id: int) -> bool:
        return self.edge(from_id, to_id) is not None

    def in_degree(self, node_id: int) -> int:
        """Number of edges ending at node_id."""
        self.node(node_id)
        return sum(1 for edges in self._adj.values() if node_id in edges)

    def closest(self, lon: float, lat: float) -> int:
        """
        Id of the node nearest to (lon, lat).

        Uses flat lon/lat distance, which is enough to rank candidates inside
        one city-sized map.

        Raises:
            ValueError: If the graph has no nodes.
        """
        if not self._nodes:
            raise ValueError("Cannot find closest node in an empty graph")
        ids = np.fromiter(self._nodes.keys(), dtype=np.int64, count=len(self._nodes))
        coords = np.array(
            [(n.lon, n.lat) for n in self._nodes.values()], dtype=np.float64
        )
        d2 = (coords[:, 0] - lon) ** 2 + (coords[:, 1] - lat) ** 2
        return int(ids[int(np.argmin(d2))])
