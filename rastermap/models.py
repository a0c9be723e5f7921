"""
Core data structures for rastermap.

Unit Conventions
----------------
- Coordinates: decimal degrees (WGS84). Longitude increases to the right,
  latitude increases upward.
- Tile indices: x counts columns left to right, y counts rows top to bottom,
  both starting at 0 at the root's upper-left corner.
- Edge weights: metres for the haversine metric, degrees for the planar one
  (see config.DISTANCE_METRIC).
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from rastermap import config
from rastermap.errors import InvalidQueryError


@dataclass(frozen=True)
class GeoConstants:
    """
    Geometry of the tile pyramid.

    Attributes:
        root_ullon: Upper-left longitude of the root area.
        root_ullat: Upper-left latitude of the root area.
        root_lrlon: Lower-right longitude of the root area.
        root_lrlat: Lower-right latitude of the root area.
        tile_size: Side of one tile bitmap in pixels.
        max_depth: Deepest zoom level available (inclusive).
    """
    root_ullon: float = config.ROOT_ULLON
    root_ullat: float = config.ROOT_ULLAT
    root_lrlon: float = config.ROOT_LRLON
    root_lrlat: float = config.ROOT_LRLAT
    tile_size: float = config.TILE_SIZE
    max_depth: int = config.MAX_DEPTH

    def __post_init__(self):
        if not self.root_lrlon > self.root_ullon:
            raise ValueError(
                f"Root lower-right lon {self.root_lrlon} must be east of "
                f"upper-left lon {self.root_ullon}"
            )
        if not self.root_ullat > self.root_lrlat:
            raise ValueError(
                f"Root upper-left lat {self.root_ullat} must be north of "
                f"lower-right lat {self.root_lrlat}"
            )
        if self.tile_size <= 0:
            raise ValueError(f"Tile size must be positive, got {self.tile_size}")
        if self.max_depth < 0:
            raise ValueError(f"Max depth must be >= 0, got {self.max_depth}")

    @property
    def root_width(self) -> float:
        return self.root_lrlon - self.root_ullon

    @property
    def root_height(self) -> float:
        return self.root_ullat - self.root_lrlat

    @property
    def root_lon_dpp(self) -> float:
        """Longitude per pixel of the single depth 0 tile."""
        return self.root_width / self.tile_size

    def tiles_per_side(self, depth: int) -> int:
        return 2 ** depth

    def increments(self, depth: int) -> Tuple[float, float]:
        """Width and height in degrees of one tile at the given depth."""
        n = self.tiles_per_side(depth)
        return self.root_width / n, self.root_height / n


@dataclass
class QueryBox:
    """
    A viewer's request: the area to show and the viewport size.

    Attributes:
        ullon: Upper-left longitude.
        ullat: Upper-left latitude.
        lrlon: Lower-right longitude.
        lrlat: Lower-right latitude.
        width: Viewport width in pixels.
        height: Viewport height in pixels. Carried through, not used to
            choose the depth.
    """
    ullon: float
    ullat: float
    lrlon: float
    lrlat: float
    width: float
    height: Optional[float] = None

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "QueryBox":
        """
        Build a QueryBox from front-end request parameters.

        Args:
            params: Mapping with keys ullon, ullat, lrlon, lrlat, w and
                optionally h. Values may be numbers or numeric strings.

        Raises:
            InvalidQueryError: If a required key is missing or not numeric.
        """
        values = {}
        for key in ("ullon", "ullat", "lrlon", "lrlat", "w"):
            if key not in params:
                raise InvalidQueryError(f"Missing query parameter '{key}'")
            values[key] = _to_float(key, params[key])
        height = params.get("h")
        return cls(
            ullon=values["ullon"],
            ullat=values["ullat"],
            lrlon=values["lrlon"],
            lrlat=values["lrlat"],
            width=values["w"],
            height=_to_float("h", height) if height is not None else None,
        )


def _to_float(key: str, value: Any) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        raise InvalidQueryError(
            f"Query parameter '{key}' must be numeric, got {value!r}"
        ) from None
    if not math.isfinite(result):
        raise InvalidQueryError(f"Query parameter '{key}' must be finite, got {value!r}")
    return result


@dataclass(frozen=True)
class TileRange:
    """Inclusive tile index range at one depth."""
    ul_x: int
    ul_y: int
    lr_x: int
    lr_y: int

    @property
    def cols(self) -> int:
        return self.lr_x - self.ul_x + 1

    @property
    def rows(self) -> int:
        return self.lr_y - self.ul_y + 1


@dataclass
class TileGrid:
    """
    Result of a tile query.

    Attributes:
        depth: Zoom depth of every tile in the grid.
        render_grid: Rows of tile names, northernmost row first, westernmost
            column first. None when the query failed.
        raster_ul_lon: Upper-left longitude actually covered by the tiles.
        raster_ul_lat: Upper-left latitude actually covered by the tiles.
        raster_lr_lon: Lower-right longitude actually covered by the tiles.
        raster_lr_lat: Lower-right latitude actually covered by the tiles.
        query_success: False if no usable grid could be built. The bounds are
            still filled in so the attempted area can be reported.
    """
    depth: int
    render_grid: Optional[List[List[str]]]
    raster_ul_lon: float
    raster_ul_lat: float
    raster_lr_lon: float
    raster_lr_lat: float
    query_success: bool

    @property
    def covered_bounds(self) -> Tuple[float, float, float, float]:
        return (
            self.raster_ul_lon,
            self.raster_ul_lat,
            self.raster_lr_lon,
            self.raster_lr_lat,
        )

    @property
    def shape(self) -> Tuple[int, int]:
        """(rows, cols) of the grid, (0, 0) on failure."""
        if not self.render_grid:
            return 0, 0
        return len(self.render_grid), len(self.render_grid[0])

    def to_dict(self) -> Dict[str, Any]:
        """Result mapping in the shape the map front end consumes."""
        return {
            "render_grid": self.render_grid,
            "raster_ul_lon": self.raster_ul_lon,
            "raster_ul_lat": self.raster_ul_lat,
            "raster_lr_lon": self.raster_lr_lon,
            "raster_lr_lat": self.raster_lr_lat,
            "depth": self.depth,
            "query_success": self.query_success,
        }


@dataclass
class GeoNode:
    """OSM node with coordinates."""
    id: int
    lon: float
    lat: float
    name: Optional[str] = None


@dataclass
class Edge:
    """Weighted connection between two nodes, tagged with its way's info."""
    from_id: int
    to_id: int
    weight: float
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass
class WayCandidate:
    """
    A way being read from the source, before it is known to be a road.

    Attributes:
        node_refs: Referenced node ids in document order.
        tags: Retained tags (name, maxspeed).
        highway: Value of the highway tag, empty if none seen yet.
        valid: True once a highway tag with an allowed road type is seen.
    """
    node_refs: List[int] = field(default_factory=list)
    tags: Dict[str, str] = field(default_factory=dict)
    highway: str = ""
    valid: bool = False

    def connections(self) -> List[Tuple[int, int]]:
        """Consecutive (from, to) node id pairs along the way."""
        return list(zip(self.node_refs, self.node_refs[1:]))
