"""
Configuration for rastermap.

Contains the tile pyramid geometry, road filtering rules and graph build
options. Values here are defaults; the root bounds and tile size can be
overridden per deployment with a JSON file (see rastermap/settings.py).
"""

import os

# =============================================================================
# Tile Pyramid Settings
# =============================================================================

# Root coverage area (decimal degrees). Depth 0 is a single tile over this box.
ROOT_ULLON = -122.2998046875
ROOT_ULLAT = 37.892195547244356
ROOT_LRLON = -122.2119140625
ROOT_LRLAT = 37.82280243352756

TILE_SIZE = 256                 # Pixels per side of one tile bitmap
MAX_DEPTH = 7                   # Deepest zoom level available (inclusive)

# File name of a tile image, resolved by the front end's tile store
TILE_NAME_FORMAT = "d{depth}_x{x}_y{y}.png"

# Optional per-deployment override of the root bounds / tile size
CONSTANTS_FILE = os.path.expanduser("~/.rastermap_constants.json")


# =============================================================================
# Road Graph Settings
# =============================================================================

# Only these highway values become graph edges. Service roads, footways,
# cycleways etc. are dropped.
ALLOWED_HIGHWAY_TYPES = frozenset({
    "motorway", "motorway_link",
    "trunk", "trunk_link",
    "primary", "primary_link",
    "secondary", "secondary_link",
    "tertiary", "tertiary_link",
    "unclassified", "residential",
    "living_street",
})

# Way tags copied onto every edge of the way
RETAINED_WAY_TAGS = ("name", "maxspeed")

UNDIRECTED_EDGES = True         # Add (a, b) and (b, a) for every road segment

# What to do when a way references a node that was never declared:
#   "skip"  - log and drop only that connection, keep parsing
#   "abort" - raise UnknownNodeReferenceError and stop the build
UNKNOWN_NODE_POLICY = "skip"

# Edge weight metric:
#   "haversine" - great circle distance in metres
#   "planar"    - Euclidean distance in degrees of lon/lat
DISTANCE_METRIC = "haversine"

EARTH_RADIUS_M = 6371000        # Mean Earth radius (metres)
