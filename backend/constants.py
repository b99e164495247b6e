"""
Constants for the GPS Track Viewer

This module defines the paths, the device registry and the fixed map settings
used throughout the viewer.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Tuple

# Sample data and static files live one level up from backend/
ROOT_DIR = Path(__file__).parent.parent
DATA_DIR = ROOT_DIR / "data"
STATIC_DIR = ROOT_DIR / "static"
INDEX_PAGE = STATIC_DIR / "index.html"


@dataclass(frozen=True)
class DeviceConfig:
    """Where a device's track comes from and how it is drawn."""

    device_id: str
    source: str
    color: str


DEVICE_REGISTRY: Dict[str, DeviceConfig] = {
    "device1": DeviceConfig("device1", str(DATA_DIR / "gps_device1.csv"), "blue"),
    "device2": DeviceConfig("device2", str(DATA_DIR / "gps_device2.csv"), "red"),
}

REQUIRED_COLUMNS = ("latitude", "longitude", "datetime")

# Map view
DEFAULT_CENTER: Tuple[float, float] = (43.5, 16.25)
DEFAULT_ZOOM = 13
POLYLINE_WEIGHT = 3
TILE_URL = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
TILE_ATTRIBUTION = "&copy; OpenStreetMap contributors"
