"""
Export Functions for the GPS Track Viewer

This module provides functions to export the currently filtered tracks to
CSV and GeoJSON for external analysis.
"""

import csv
import io
from typing import Dict, Mapping

from . import map_layers
from .exceptions import UnknownDeviceError
from .track_store import Track


def export_track_csv(filtered: Mapping[str, Track], device: str) -> str:
    """
    Export one device's filtered track to CSV format.

    The output uses the same column names as the input sources, so an
    exported file can be loaded back as a track source.

    Args:
        filtered: Device identifier to filtered track.
        device: Device to export.

    Returns:
        CSV string with latitude, longitude and datetime columns.

    Raises:
        UnknownDeviceError: If the device is not present in filtered.
    """
    if device not in filtered:
        raise UnknownDeviceError(device)

    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(["latitude", "longitude", "datetime"])

    for point in filtered[device]:
        writer.writerow([point.latitude, point.longitude, point.timestamp.isoformat()])

    return buffer.getvalue()


def export_view_geojson(session) -> Dict:
    """Export the polylines currently drawn for a viewer session."""
    return map_layers.build_polyline_layers(session.filtered_tracks(), session.registry)
