"""Distance functions for road graph edge weights."""

import math

from rastermap import config


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate great circle distance between two points in meters."""
    R = config.EARTH_RADIUS_M

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return R * c


def planar_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Euclidean distance in degrees, treating lon/lat as flat x/y."""
    return math.hypot(lon2 - lon1, lat2 - lat1)


DISTANCE_METRICS = {
    "haversine": haversine_distance,
    "planar": planar_distance,
}


def get_distance_function(metric: str):
    """Look up a distance function by config name."""
    try:
        return DISTANCE_METRICS[metric]
    except KeyError:
        raise ValueError(
            f"Unknown distance metric '{metric}', "
            f"expected one of {sorted(DISTANCE_METRICS)}"
        ) from None
