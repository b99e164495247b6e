"""
Data Loading and Parsing for the GPS Track Viewer

This module fetches a device's CSV source and parses it into a track of
points. Rows whose coordinates or date-time cannot be parsed are dropped
silently; only the dropped-row count is kept as a diagnostic. A source that
cannot be fetched or lacks the required columns raises TrackSourceError.
"""

import asyncio
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

import aiohttp
import numpy as np
import pandas as pd

from . import constants
from . import utils
from .exceptions import TrackSourceError
from .track_store import Point, Track

logger = logging.getLogger(__name__)

DroppedRowsHook = Callable[[int], None]


@dataclass(frozen=True)
class ParseResult:
    """Outcome of parsing one CSV source."""

    points: Track
    dropped_rows: int = 0


def parse_track_csv(text: str, source: str = "<text>",
                    on_dropped: Optional[DroppedRowsHook] = None) -> ParseResult:
    """
    Parse CSV text into an ordered track of valid points.

    The header must name latitude, longitude and datetime; other columns are
    ignored. Each cell is trimmed before parsing. A row is kept only when both
    coordinates are finite numbers and the date-time is a valid instant.
    Fields past the width of the header are not used. Row
    order is preserved; nothing is sorted.

    Args:
        text: Full CSV content.
        source: Name of the source, used in error messages.
        on_dropped: Optional hook called once with the number of dropped rows.

    Returns:
        ParseResult with the retained points and the dropped-row count.

    Raises:
        TrackSourceError: If the text is empty or a required column is missing.
    """
    try:
        df = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            index_col=False,
        )
    except pd.errors.EmptyDataError as exc:
        raise TrackSourceError(source, "no CSV content") from exc
    except pd.errors.ParserError as exc:
        raise TrackSourceError(source, f"unparseable CSV: {exc}") from exc

    df.columns = [str(column).strip() for column in df.columns]
    missing = [column for column in constants.REQUIRED_COLUMNS if column not in df.columns]
    if missing:
        raise TrackSourceError(source, f"missing required column(s): {', '.join(missing)}")

    latitudes = df["latitude"].fillna("").map(utils.safe_float)
    longitudes = df["longitude"].fillna("").map(utils.safe_float)
    # Plain list so pandas does not coerce the values into its own timestamp type
    timestamps = [utils.safe_timestamp(value) for value in df["datetime"].fillna("")]

    points = tuple(
        Point(float(lat), float(lon), ts)
        for lat, lon, ts in zip(latitudes, longitudes, timestamps)
        if not (np.isnan(lat) or np.isnan(lon) or ts is None)
    )

    dropped = len(df) - len(points)
    if on_dropped is not None:
        on_dropped(dropped)

    return ParseResult(points, dropped)


async def _fetch_url(url: str, http_session: aiohttp.ClientSession) -> str:
    try:
        async with http_session.get(url) as response:
            if response.status != 200:
                raise TrackSourceError(url, f"HTTP {response.status}")
            return await response.text(encoding="utf-8-sig")
    except aiohttp.ClientError as exc:
        raise TrackSourceError(url, f"request failed: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise TrackSourceError(url, f"cannot decode response: {exc}") from exc


async def fetch_source(source: str, http_session: Optional[aiohttp.ClientSession] = None) -> str:
    """
    Retrieve the text content of a track source.

    Sources starting with http:// or https:// are downloaded with aiohttp;
    anything else is read as a local file off the event loop. There is no
    retry and no timeout.

    Args:
        source: URL or filesystem path.
        http_session: Optional shared aiohttp session for URL sources.

    Returns:
        The decoded text content.

    Raises:
        TrackSourceError: If the source cannot be retrieved.
    """
    if source.startswith(("http://", "https://")):
        if http_session is not None:
            return await _fetch_url(source, http_session)
        timeout = aiohttp.ClientTimeout(total=None)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            return await _fetch_url(source, session)

    try:
        return await asyncio.to_thread(Path(source).read_text, encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as exc:
        raise TrackSourceError(source, f"cannot read file: {exc}") from exc


async def load_track(device: constants.DeviceConfig,
                     http_session: Optional[aiohttp.ClientSession] = None,
                     on_dropped: Optional[DroppedRowsHook] = None) -> ParseResult:
    """
    Fetch and parse the track of one configured device.

    Args:
        device: Registry entry of the device.
        http_session: Optional shared aiohttp session.
        on_dropped: Optional dropped-row hook, see parse_track_csv().

    Returns:
        ParseResult for the device's source.

    Raises:
        TrackSourceError: If the source cannot be fetched or parsed as a whole.
    """
    text = await fetch_source(device.source, http_session)
    result = parse_track_csv(text, source=device.source, on_dropped=on_dropped)
    logger.info(
        "Loaded %d points for %s from %s (%d rows dropped)",
        len(result.points), device.device_id, device.source, result.dropped_rows,
    )
    return result
