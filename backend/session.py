"""
Viewer Session for the GPS Track Viewer

This module holds the single controller object that owns the viewer state:
the track store, the visibility set and the filter window. State changes only
through the mutation methods below; everything shown on the map is
recomputed from that state on each request.
"""

import asyncio
import logging
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Tuple

import aiohttp

from . import constants
from . import data_loading
from . import filtering
from . import map_layers
from . import metrics
from .exceptions import TrackSourceError, UnknownDeviceError
from .track_store import Track, TrackStore

logger = logging.getLogger(__name__)


class TrackViewerSession:
    """State owner for one running viewer."""

    def __init__(self, registry: Mapping[str, constants.DeviceConfig] = constants.DEVICE_REGISTRY):
        self.registry = dict(registry)
        self.store = TrackStore(self.registry)
        self._visible: Dict[str, bool] = {device: True for device in self.registry}
        self._window = filtering.FilterWindow()

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def window(self) -> filtering.FilterWindow:
        return self._window

    @property
    def visible_devices(self) -> frozenset:
        return frozenset(device for device, shown in self._visible.items() if shown)

    def _check(self, device: str) -> None:
        if device not in self.registry:
            raise UnknownDeviceError(device)

    def set_start(self, start: Optional[datetime]) -> None:
        self._window = filtering.FilterWindow(start, self._window.end)
        logger.debug("Filter start set to %s", start)

    def set_end(self, end: Optional[datetime]) -> None:
        self._window = filtering.FilterWindow(self._window.start, end)
        logger.debug("Filter end set to %s", end)

    def set_visibility(self, device: str, visible: bool) -> None:
        self._check(device)
        self._visible[device] = visible
        logger.debug("Device %s visible=%s", device, visible)

    def toggle_device(self, device: str) -> bool:
        """Flip a device's visibility and return the new value."""
        self._check(device)
        self.set_visibility(device, not self._visible[device])
        return self._visible[device]

    def commit_track(self, device: str, result: data_loading.ParseResult) -> Track:
        return self.store.replace(device, result.points, dropped_rows=result.dropped_rows)

    def mark_failed(self, device: str, error: Exception) -> None:
        logger.error("%s CSV load error: %s", device, error)
        self.store.mark_failed(device, str(error))

    # ------------------------------------------------------------------
    # Ingestion
    # ------------------------------------------------------------------

    async def load_device(self, device: str,
                          http_session: Optional[aiohttp.ClientSession] = None) -> bool:
        """
        Fetch, parse and commit one device's track.

        A failure is logged and recorded in the device status; the device's
        track stays as it was (empty at startup). Nothing is retried.

        Returns:
            True if the track was committed, False on failure.
        """
        self._check(device)
        try:
            result = await data_loading.load_track(self.registry[device], http_session)
        except TrackSourceError as exc:
            self.mark_failed(device, exc)
            return False
        self.commit_track(device, result)
        return True

    async def load_all(self) -> Dict[str, bool]:
        """
        Load every registered device concurrently.

        Devices complete in any order and independently of each other. An
        unexpected error while loading one device marks only that device
        as failed.

        Returns:
            Device identifier to success flag.
        """
        timeout = aiohttp.ClientTimeout(total=None)
        async with aiohttp.ClientSession(timeout=timeout) as http_session:
            devices = list(self.registry)
            outcomes = await asyncio.gather(
                *(self.load_device(device, http_session) for device in devices),
                return_exceptions=True,
            )

        results = {}
        for device, outcome in zip(devices, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                self.mark_failed(device, outcome)
                results[device] = False
            else:
                results[device] = outcome
        return results

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def filtered_tracks(self) -> Dict[str, Track]:
        return filtering.filter_tracks(self.store.snapshot(), self.visible_devices, self._window)

    def center(self) -> Tuple[float, float]:
        return metrics.compute_centroid(self.filtered_tracks())

    def device_summaries(self, filtered: Optional[Mapping[str, Track]] = None) -> List[Dict]:
        """
        Describe every registered device for the control panel.

        Args:
            filtered: Precomputed filtered tracks, recomputed if omitted.

        Returns:
            List of dictionaries with id, color, visibility, load status and
            point counts.
        """
        if filtered is None:
            filtered = self.filtered_tracks()

        summaries = []
        for device, config in self.registry.items():
            status = self.store.status(device)
            summaries.append({
                "id": device,
                "color": config.color,
                "visible": self._visible[device],
                "status": status.state,
                "pointCount": len(self.store.get(device)),
                "visiblePointCount": len(filtered.get(device, ())),
                "droppedRows": status.dropped_rows,
                "error": status.error,
            })
        return summaries

    def build_view_payload(self) -> Dict:
        """
        Build everything the map page needs to redraw itself.

        Returns:
            Dictionary containing:
            - map: center, zoom, tile layer and polyline layers
            - window: current filter bounds as ISO strings (or None)
            - devices: per-device summaries
            - totalPoints: number of points currently drawn
        """
        filtered = self.filtered_tracks()
        center = metrics.compute_centroid(filtered)
        layers = map_layers.build_polyline_layers(filtered, self.registry)

        return {
            "map": map_layers.build_map_payload(center, layers),
            "window": self._window.to_dict(),
            "devices": self.device_summaries(filtered),
            "totalPoints": metrics.count_points(filtered),
        }
