"""
Track Store for the GPS Track Viewer

Holds the full parsed track of every known device. Tracks are immutable
tuples that are only ever replaced as a whole, so a reader always sees a
complete, consistent track for each device.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterable, Optional, Tuple

from .exceptions import UnknownDeviceError

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_LOADED = "loaded"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class Point:
    """One geolocated, timestamped GPS fix."""

    latitude: float
    longitude: float
    timestamp: datetime


Track = Tuple[Point, ...]


@dataclass
class DeviceStatus:
    """Ingestion diagnostics for one device."""

    state: str = STATUS_PENDING
    dropped_rows: int = 0
    error: Optional[str] = None


class TrackStore:
    """Mapping from device identifier to its latest committed track."""

    def __init__(self, device_ids: Iterable[str]):
        self._tracks: Dict[str, Track] = {device: () for device in device_ids}
        self._status: Dict[str, DeviceStatus] = {device: DeviceStatus() for device in self._tracks}

    @property
    def device_ids(self) -> Tuple[str, ...]:
        return tuple(self._tracks)

    def _check(self, device: str) -> None:
        if device not in self._tracks:
            raise UnknownDeviceError(device)

    def get(self, device: str) -> Track:
        self._check(device)
        return self._tracks[device]

    def snapshot(self) -> Dict[str, Track]:
        """Return the current track of every device.

        The returned dict is a copy; later replacements do not show up in it.
        """
        return dict(self._tracks)

    def replace(self, device: str, points: Iterable[Point], dropped_rows: int = 0) -> Track:
        """Replace a device's track wholesale and mark it loaded."""
        self._check(device)
        track = tuple(points)
        self._tracks[device] = track
        self._status[device] = DeviceStatus(STATUS_LOADED, dropped_rows=dropped_rows)
        logger.debug("Committed %d points for %s", len(track), device)
        return track

    def mark_failed(self, device: str, error: str) -> None:
        """Record a terminal ingestion failure; the track is left untouched."""
        self._check(device)
        self._status[device] = DeviceStatus(STATUS_FAILED, error=error)

    def status(self, device: str) -> DeviceStatus:
        self._check(device)
        return self._status[device]
