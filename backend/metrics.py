"""
Metrics Computation for the GPS Track Viewer

This module computes the aggregate values derived from the filtered tracks,
most importantly the centroid used to centre the map view.
"""

from typing import Mapping, Tuple

from . import constants
from .track_store import Track


def count_points(filtered: Mapping[str, Track]) -> int:
    """Total number of points across all devices."""
    return sum(len(track) for track in filtered.values())


def compute_centroid(filtered: Mapping[str, Track],
                     default: Tuple[float, float] = constants.DEFAULT_CENTER) -> Tuple[float, float]:
    """
    Compute the arithmetic mean position of all filtered points.

    Every point counts equally regardless of which device it belongs to, so
    a device with more points pulls the centroid further towards itself.

    Args:
        filtered: Device identifier to filtered track (hidden devices empty).
        default: Position returned when there are no points at all.

    Returns:
        Tuple of (latitude, longitude).
    """
    lat_sum = 0.0
    lon_sum = 0.0
    count = 0

    for track in filtered.values():
        for point in track:
            lat_sum += point.latitude
            lon_sum += point.longitude
            count += 1

    if count == 0:
        return default

    return lat_sum / count, lon_sum / count
