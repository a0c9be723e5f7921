"""Exceptions raised by rastermap."""


class RasterMapError(Exception):
    """Base class for all rastermap errors."""


# Tile selection

class InvalidQueryError(RasterMapError, ValueError):
    """Query parameters missing or not numeric."""


class DegenerateQueryError(RasterMapError, ValueError):
    """Viewport width is zero, negative or NaN so no resolution target exists."""


class EmptyOrInvertedGridError(RasterMapError):
    """
    Tile index range is empty, inverted, or outside the pyramid at this depth.

    Attributes:
        depth: Zoom depth the range was computed at.
        tile_range: The offending TileRange.
    """

    def __init__(self, depth, tile_range):
        self.depth = depth
        self.tile_range = tile_range
        super().__init__(
            f"No valid tile grid at depth {depth}: "
            f"x {tile_range.ul_x}..{tile_range.lr_x}, "
            f"y {tile_range.ul_y}..{tile_range.lr_y}"
        )


class InvalidTileNameError(RasterMapError, ValueError):
    """String is not a tile name of the form d<depth>_x<x>_y<y>.png."""


# Graph building

class GraphBuildError(RasterMapError):
    """Base class for failures while ingesting road network data."""


class UnknownNodeReferenceError(GraphBuildError, KeyError):
    """A way or distance lookup referenced a node id never added to the graph."""

    def __init__(self, node_id):
        self.node_id = node_id
        super().__init__(node_id)

    def __str__(self):
        return f"Unknown node id {self.node_id}"


class MalformedElementError(GraphBuildError, ValueError):
    """An OSM element is missing a required attribute or has a bad value."""


class OSMParseError(GraphBuildError):
    """The OSM source could not be tokenised."""
