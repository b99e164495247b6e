"""
GPS Track Viewer backend

Loads GPS tracks from CSV sources, filters them by device visibility and an
inclusive date-time window, and prepares the map view. The functions are
split across modules; the commonly used names are re-exported here.
"""

# Import constants
from .constants import (
    DATA_DIR,
    STATIC_DIR,
    DEFAULT_CENTER,
    DEFAULT_ZOOM,
    DEVICE_REGISTRY,
    DeviceConfig,
)

# Import exceptions
from .exceptions import (
    TrackViewerError,
    TrackSourceError,
    UnknownDeviceError,
)

# Import utility functions
from .utils import (
    safe_float,
    safe_timestamp,
    parse_bound,
)

# Import track store
from .track_store import (
    Point,
    Track,
    TrackStore,
)

# Import data loading functions
from .data_loading import (
    ParseResult,
    parse_track_csv,
    fetch_source,
    load_track,
)

# Import filtering functions
from .filtering import (
    FilterWindow,
    filter_track,
    filter_tracks,
)

# Import metrics functions
from .metrics import (
    compute_centroid,
    count_points,
)

# Import map layer functions
from .map_layers import (
    track_to_latlngs,
    build_polyline_layers,
    build_map_payload,
)

# Import export functions
from .export import (
    export_track_csv,
    export_view_geojson,
)

# Import session
from .session import (
    TrackViewerSession,
)

__all__ = [
    # Constants
    "DATA_DIR",
    "STATIC_DIR",
    "DEFAULT_CENTER",
    "DEFAULT_ZOOM",
    "DEVICE_REGISTRY",
    "DeviceConfig",
    # Exceptions
    "TrackViewerError",
    "TrackSourceError",
    "UnknownDeviceError",
    # Utilities
    "safe_float",
    "safe_timestamp",
    "parse_bound",
    # Track store
    "Point",
    "Track",
    "TrackStore",
    # Data loading
    "ParseResult",
    "parse_track_csv",
    "fetch_source",
    "load_track",
    # Filtering
    "FilterWindow",
    "filter_track",
    "filter_tracks",
    # Metrics
    "compute_centroid",
    "count_points",
    # Map layers
    "track_to_latlngs",
    "build_polyline_layers",
    "build_map_payload",
    # Export
    "export_track_csv",
    "export_view_geojson",
    # Session
    "TrackViewerSession",
]
