"""
Command line entry point.

    rastermap raster --ullon -122.2416 --ullat 37.8766 \\
                     --lrlon -122.2405 --lrlat 37.8755 --width 892
    rastermap graph berkeley.osm
"""

import argparse
import json
import logging
import sys

from rastermap.errors import GraphBuildError
from rastermap.graph_builder import POLICY_ABORT, POLICY_SKIP
from rastermap.osm_parser import load_graph
from rastermap.rasterer import Rasterer
from rastermap.settings import load_geo_constants

logger = logging.getLogger('rastermap.cli')


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="rastermap - map tile selection and road graph tools"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    raster = sub.add_parser("raster", help="Select the tiles covering a query box")
    for name in ("ullon", "ullat", "lrlon", "lrlat"):
        raster.add_argument(f"--{name}", type=float, required=True)
    raster.add_argument("--width", type=float, required=True, help="Viewport width (px)")
    raster.add_argument("--height", type=float, help="Viewport height (px)")
    raster.add_argument(
        "--constants",
        help="JSON file overriding the tile pyramid geometry",
    )

    graph = sub.add_parser("graph", help="Build the road graph from an OSM file")
    graph.add_argument("path", help="OSM file (.osm, .osm.gz or .osm.pbf)")
    graph.add_argument(
        "--directed",
        action="store_true",
        help="Only add edges in way order",
    )
    graph.add_argument(
        "--abort-on-unknown",
        action="store_true",
        help="Fail if a way references an undeclared node",
    )
    graph.add_argument(
        "--no-clean",
        action="store_true",
        help="Keep nodes that have no edges",
    )
    return parser.parse_args(argv)


def _run_raster(args) -> int:
    rasterer = Rasterer(load_geo_constants(args.constants))
    params = {
        "ullon": args.ullon,
        "ullat": args.ullat,
        "lrlon": args.lrlon,
        "lrlat": args.lrlat,
        "w": args.width,
    }
    if args.height is not None:
        params["h"] = args.height
    result = rasterer.get_map_raster(params)
    print(json.dumps(result, indent=2))
    return 0 if result["query_success"] else 1


def _run_graph(args) -> int:
    try:
        graph = load_graph(
            args.path,
            clean=not args.no_clean,
            undirected=not args.directed,
            on_unknown_node=POLICY_ABORT if args.abort_on_unknown else POLICY_SKIP,
        )
    except (FileNotFoundError, ImportError, GraphBuildError) as e:
        logger.error("Graph build failed: %s", e)
        return 1
    print(f"{graph.num_nodes} nodes, {graph.num_edges} edges")
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
    if args.command == "raster":
        return _run_raster(args)
    return _run_graph(args)


if __name__ == "__main__":
    sys.exit(main())
