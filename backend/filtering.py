"""
Temporal Filtering for the GPS Track Viewer

Pure functions that cut each visible device's track down to the points inside
an inclusive date-time window. Hidden devices contribute no points at all.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import AbstractSet, Dict, Mapping, Optional

from .track_store import Track


@dataclass(frozen=True)
class FilterWindow:
    """Inclusive start/end bounds; None leaves that side unbounded."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    def contains(self, timestamp: datetime) -> bool:
        if self.start is not None and timestamp < self.start:
            return False
        if self.end is not None and timestamp > self.end:
            return False
        return True

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "start": self.start.isoformat() if self.start else None,
            "end": self.end.isoformat() if self.end else None,
        }


def filter_track(track: Track, window: FilterWindow) -> Track:
    """
    Keep the points of a track that fall inside the window.

    Order is preserved. A window whose start lies after its end matches
    nothing; equal bounds match only points at exactly that instant.

    Args:
        track: Ordered points of one device.
        window: Inclusive bounds to apply.

    Returns:
        The matching subsequence as a new tuple.
    """
    if window.start is None and window.end is None:
        return tuple(track)
    return tuple(point for point in track if window.contains(point.timestamp))


def filter_tracks(snapshot: Mapping[str, Track], visible: AbstractSet[str],
                  window: FilterWindow) -> Dict[str, Track]:
    """
    Filter every device's track by visibility and time window.

    Args:
        snapshot: Device identifier to full track.
        visible: Devices currently enabled for display.
        window: Inclusive bounds to apply.

    Returns:
        Device identifier to filtered track, with an entry for every device
        in the snapshot. Hidden devices map to an empty tuple.
    """
    return {
        device: filter_track(track, window) if device in visible else ()
        for device, track in snapshot.items()
    }
