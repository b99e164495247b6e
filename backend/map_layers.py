"""
Map Layer Generation for the GPS Track Viewer

This module converts filtered tracks into the GeoJSON polylines and view
settings consumed by the Leaflet map page.
"""

import logging
from typing import Dict, List, Mapping, Tuple

import numpy as np

from . import constants
from . import utils
from .track_store import Track

logger = logging.getLogger(__name__)

# Number of trailing vertices written to the debug log per device
DEBUG_TAIL = 4


def track_to_latlngs(track: Track) -> List[List[float]]:
    """
    Convert a track to a list of [lat, lon] vertices.

    Vertices with a non-finite coordinate are skipped, so nothing invalid
    ever reaches the map even if a track was built outside the CSV parser.

    Args:
        track: Ordered points of one device.

    Returns:
        List of [latitude, longitude] pairs in track order.
    """
    return [
        [point.latitude, point.longitude]
        for point in track
        if np.isfinite(point.latitude) and np.isfinite(point.longitude)
    ]


def build_polyline_layers(filtered: Mapping[str, Track],
                          registry: Mapping[str, constants.DeviceConfig]) -> Dict:
    """
    Build one GeoJSON LineString feature per device with visible points.

    Args:
        filtered: Device identifier to filtered track.
        registry: Device registry supplying the line colors.

    Returns:
        GeoJSON FeatureCollection. Devices without any valid vertex are
        left out. Coordinates are [lon, lat] as GeoJSON requires.
    """
    features = []

    for device, track in filtered.items():
        latlngs = track_to_latlngs(track)
        if not latlngs:
            continue

        logger.debug("Device %s: last drawn coords %s", device, latlngs[-DEBUG_TAIL:])

        features.append({
            "type": "Feature",
            "geometry": {
                "type": "LineString",
                "coordinates": [[lon, lat] for lat, lon in latlngs],
            },
            "properties": {
                "device": device,
                "color": registry[device].color,
                "weight": constants.POLYLINE_WEIGHT,
                "pointCount": len(latlngs),
            },
        })

    return {
        "type": "FeatureCollection",
        "features": features,
    }


def build_map_payload(center: Tuple[float, float], layers: Dict) -> Dict:
    """
    Combine center, zoom, tile layer and polylines into a map description.

    Args:
        center: (latitude, longitude) to centre the view on.
        layers: FeatureCollection from build_polyline_layers().

    Returns:
        Dictionary with center, zoom, tiles and layers keys.
    """
    return {
        "center": [utils.json_float(center[0]), utils.json_float(center[1])],
        "zoom": constants.DEFAULT_ZOOM,
        "tiles": {
            "url": constants.TILE_URL,
            "attribution": constants.TILE_ATTRIBUTION,
        },
        "layers": layers,
    }
