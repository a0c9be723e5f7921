"""
Per-deployment tile pyramid settings.

The root bounds and tile size of a tile set are fixed when the tiles are
rendered, so a deployment serving a different tile set supplies them in a
JSON file:

    {
        "root_ullon": -122.2998046875,
        "root_ullat": 37.892195547244356,
        "root_lrlon": -122.2119140625,
        "root_lrlat": 37.82280243352756,
        "tile_size": 256,
        "max_depth": 7
    }

Missing keys fall back to rastermap.config. If the file is corrupt or
describes an impossible pyramid, a warning is logged and the defaults are
used.
"""

import dataclasses
import json
import logging
import os
from typing import Optional

from rastermap import config
from rastermap.models import GeoConstants

logger = logging.getLogger('rastermap.settings')

_FIELDS = {f.name for f in dataclasses.fields(GeoConstants)}


def load_geo_constants(path: Optional[str] = None) -> GeoConstants:
    """
    Load pyramid geometry, applying overrides from a JSON file.

    Args:
        path: Settings file. Defaults to config.CONSTANTS_FILE.

    Returns:
        GeoConstants built from defaults plus any valid overrides.
    """
    path = path or config.CONSTANTS_FILE

    if not os.path.exists(path):
        logger.debug("No constants file at %s, using defaults", path)
        return GeoConstants()

    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        logger.warning("Corrupt constants file %s, using defaults: %s", path, e)
        return GeoConstants()
    except OSError as e:
        logger.warning("Could not read constants file %s: %s", path, e)
        return GeoConstants()

    if not isinstance(data, dict):
        logger.warning("Constants file %s must hold a JSON object, using defaults", path)
        return GeoConstants()

    overrides = {}
    for key, value in data.items():
        if key not in _FIELDS:
            logger.debug("Ignoring unknown constants key '%s'", key)
            continue
        try:
            overrides[key] = int(value) if key == "max_depth" else float(value)
        except (TypeError, ValueError):
            logger.warning("Invalid value for '%s' in %s: %r", key, path, value)
            return GeoConstants()

    try:
        constants = GeoConstants(**overrides)
    except ValueError as e:
        logger.warning("Invalid pyramid in %s, using defaults: %s", path, e)
        return GeoConstants()

    logger.info("Tile pyramid settings loaded from %s", path)
    return constants
