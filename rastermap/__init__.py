"""
rastermap - tile selection and road graph construction for a map viewer.

This package provides the quadtree tile rasterizer and the OSM road graph
builder used by the map front end and its routing layer.
"""

from rastermap.models import GeoConstants, QueryBox, TileGrid, GeoNode, Edge
from rastermap.rasterer import Rasterer, select_tiles, tile_name
from rastermap.graph_db import RoadGraph
from rastermap.graph_builder import GraphBuildingHandler
from rastermap.osm_parser import build_graph_from_xml, load_graph

__all__ = [
    'GeoConstants',
    'QueryBox',
    'TileGrid',
    'GeoNode',
    'Edge',
    'Rasterer',
    'select_tiles',
    'tile_name',
    'RoadGraph',
    'GraphBuildingHandler',
    'build_graph_from_xml',
    'load_graph',
]
