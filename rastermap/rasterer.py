"""
Tile selection for the map viewer.

Given a query box and the viewport width, picks the zoom depth whose
longitude-per-pixel (LonDPP) is the coarsest one that is still at least as
fine as the query's, then the inclusive range of tiles at that depth that
covers the box. The front end stitches the returned tile images into one
picture and places it using the covered bounds.

The pyramid is a quadtree over a fixed root area: depth d splits the root
into 2**d columns and 2**d rows. Tile names follow config.TILE_NAME_FORMAT.

Query boxes outside the root area are not rejected up front. The index
arithmetic runs as usual and the range check in build_render_grid() decides
whether a grid can be produced.
"""

import logging
import math
import re
from typing import Any, List, Mapping, Optional, Tuple

from rastermap import config
from rastermap.errors import (
    DegenerateQueryError,
    EmptyOrInvertedGridError,
    InvalidQueryError,
    InvalidTileNameError,
)
from rastermap.models import GeoConstants, QueryBox, TileGrid, TileRange

logger = logging.getLogger('rastermap.rasterer')

_TILE_NAME_RE = re.compile(r"^d(\d+)_x(\d+)_y(\d+)\.png$")


def lon_dpp(lrlon: float, ullon: float, width: float) -> float:
    """
    Longitude distance per pixel for a box drawn `width` pixels wide.

    Raises:
        DegenerateQueryError: If width is zero, negative or NaN.
    """
    if not width > 0:
        raise DegenerateQueryError(f"Viewport width must be positive, got {width}")
    return (lrlon - ullon) / width


def select_depth(constants: GeoConstants, query_lon_dpp: float) -> int:
    """
    Smallest depth whose tile LonDPP is <= the query's LonDPP.

    Each depth halves the LonDPP of the one above. If even max_depth is too
    coarse the result is clamped to max_depth; if depth 0 is already fine
    enough the result is 0.
    """
    depth = 0
    current = constants.root_lon_dpp
    while current > query_lon_dpp and depth < constants.max_depth:
        current /= 2.0
        depth += 1
    return depth


def border_tiles(constants: GeoConstants, depth: int, query: QueryBox) -> TileRange:
    """
    Inclusive tile index range covering the query box at `depth`.

    Upper-left indices count whole tiles from the root's upper-left edges.
    Lower-right indices count whole tiles back from the root's lower-right
    edges, so they are 2**d - 1 minus that count. Both directions floor,
    which makes a corner lying inside a tile select that tile.

    Raises:
        InvalidQueryError: If a corner is so far from the root that its tile
            offset is not a finite number.
    """
    n = constants.tiles_per_side(depth)
    incr_x, incr_y = constants.increments(depth)

    xl_dist = abs(constants.root_ullon - query.ullon)
    yl_dist = abs(constants.root_ullat - query.ullat)
    xr_dist = abs(constants.root_lrlon - query.lrlon)
    yr_dist = abs(constants.root_lrlat - query.lrlat)

    ratios = (xl_dist / incr_x, yl_dist / incr_y, xr_dist / incr_x, yr_dist / incr_y)
    if not all(math.isfinite(r) for r in ratios):
        raise InvalidQueryError(f"Query box has no finite tile offset at depth {depth}")
    ul_x, ul_y, xr_tiles, yr_tiles = (math.floor(r) for r in ratios)

    return TileRange(
        ul_x=ul_x,
        ul_y=ul_y,
        lr_x=n - xr_tiles - 1,
        lr_y=n - yr_tiles - 1,
    )


def covered_bounds(
    constants: GeoConstants, depth: int, tile_range: TileRange
) -> Tuple[float, float, float, float]:
    """(ul_lon, ul_lat, lr_lon, lr_lat) spanned by the tiles in `tile_range`."""
    incr_x, incr_y = constants.increments(depth)
    return (
        constants.root_ullon + tile_range.ul_x * incr_x,
        constants.root_ullat - tile_range.ul_y * incr_y,
        constants.root_ullon + (tile_range.lr_x + 1) * incr_x,
        constants.root_ullat - (tile_range.lr_y + 1) * incr_y,
    )


def tile_name(depth: int, x: int, y: int) -> str:
    """File name of the tile at column x, row y of the given depth."""
    return config.TILE_NAME_FORMAT.format(depth=depth, x=x, y=y)


def parse_tile_name(name: str) -> Tuple[int, int, int]:
    """
    Inverse of tile_name().

    Returns:
        (depth, x, y)

    Raises:
        InvalidTileNameError: If name is not a tile file name.
    """
    match = _TILE_NAME_RE.match(name)
    if not match:
        raise InvalidTileNameError(f"Not a tile name: {name!r}")
    depth, x, y = (int(g) for g in match.groups())
    return depth, x, y


def build_render_grid(
    constants: GeoConstants, depth: int, tile_range: TileRange
) -> List[List[str]]:
    """
    Row-major grid of tile names for `tile_range`.

    Raises:
        EmptyOrInvertedGridError: If the range has no rows or columns, or any
            index falls outside [0, 2**depth - 1].
    """
    last = constants.tiles_per_side(depth) - 1
    indices = (tile_range.ul_x, tile_range.ul_y, tile_range.lr_x, tile_range.lr_y)
    if (
        tile_range.rows <= 0
        or tile_range.cols <= 0
        or any(i < 0 or i > last for i in indices)
    ):
        raise EmptyOrInvertedGridError(depth, tile_range)

    return [
        [tile_name(depth, x, y) for x in range(tile_range.ul_x, tile_range.lr_x + 1)]
        for y in range(tile_range.ul_y, tile_range.lr_y + 1)
    ]


def select_tiles(constants: GeoConstants, query: QueryBox) -> TileGrid:
    """
    Choose the tiles to draw for a query box.

    Args:
        constants: Pyramid geometry.
        query: Requested area and viewport width.

    Returns:
        TileGrid. On failure query_success is False and render_grid is None,
        while depth and covered bounds still describe the attempted range.

    Raises:
        DegenerateQueryError: If the viewport width is not positive. Nothing
            is computed in that case.
        InvalidQueryError: If a corner lies too far away to index.
    """
    depth = select_depth(constants, lon_dpp(query.lrlon, query.ullon, query.width))
    tile_range = border_tiles(constants, depth, query)
    ul_lon, ul_lat, lr_lon, lr_lat = covered_bounds(constants, depth, tile_range)

    try:
        grid: Optional[List[List[str]]] = build_render_grid(constants, depth, tile_range)
    except EmptyOrInvertedGridError as e:
        logger.warning("Tile query failed: %s", e)
        grid = None
    else:
        logger.debug(
            "Depth %d, %d x %d tiles from %s",
            depth, tile_range.rows, tile_range.cols, grid[0][0],
        )

    return TileGrid(
        depth=depth,
        render_grid=grid,
        raster_ul_lon=ul_lon,
        raster_ul_lat=ul_lat,
        raster_lr_lon=lr_lon,
        raster_lr_lat=lr_lat,
        query_success=grid is not None,
    )


class Rasterer:
    """
    Answers map raster requests against one tile pyramid.

    Holds the pyramid geometry so callers only pass request parameters.
    Stateless between calls; safe to share across threads.
    """

    def __init__(self, constants: Optional[GeoConstants] = None):
        self.constants = constants if constants is not None else GeoConstants()

    def select(self, query: QueryBox) -> TileGrid:
        return select_tiles(self.constants, query)

    def get_map_raster(self, params: Mapping[str, Any]) -> dict:
        """
        Answer a front-end request.

        Args:
            params: Request parameters ullon, ullat, lrlon, lrlat, w, h.

        Returns:
            Dict with render_grid, raster_ul_lon, raster_ul_lat, raster_lr_lon,
            raster_lr_lat, depth and query_success. Requests that cannot be
            evaluated at all come back as {"render_grid": None,
            "query_success": False}.
        """
        try:
            query = QueryBox.from_params(params)
            return self.select(query).to_dict()
        except (InvalidQueryError, DegenerateQueryError) as e:
            logger.warning("Rejected raster request: %s", e)
            return {"render_grid": None, "query_success": False}
