"""
Unit tests for backend/data_loading.py

Covers CSV parsing (row validity, dropped rows, header handling) and
fetching from local files and URLs.
"""

from datetime import datetime
import math

import aiohttp
import numpy as np
import pytest

from backend.data_loading import ParseResult, fetch_source, load_track, parse_track_csv
from backend.exceptions import TrackSourceError
from backend.utils import json_float, parse_bound, safe_float, safe_timestamp

from conftest import DEVICE1_CSV


class TestParseTrackCsv:
    """Test row-level parsing and the silent drop policy"""

    def test_mixed_rows(self):
        """Bad latitude and bad date-time rows are dropped, the valid one is kept"""
        text = (
            "latitude,longitude,datetime\n"
            "abc, 20.5, 2024-01-01T00:00\n"
            "10.5, 20.5, not-a-date\n"
            "10.5, 20.5, 2024-01-01T00:00\n"
        )
        result = parse_track_csv(text)

        assert len(result.points) == 1
        point = result.points[0]
        assert point.latitude == 10.5
        assert point.longitude == 20.5
        assert point.timestamp == datetime(2024, 1, 1, 0, 0)
        assert result.dropped_rows == 2

    def test_retained_rows_are_valid(self):
        """Every retained point has finite coordinates and a datetime"""
        text = (
            "latitude,longitude,datetime\n"
            "1,2,2024-01-01T00:00\n"
            ",2,2024-01-01T00:01\n"
            "1,,2024-01-01T00:02\n"
            "1,2,\n"
            "inf,2,2024-01-01T00:03\n"
            "nan,2,2024-01-01T00:04\n"
            "3,4,2024-01-01T00:05\n"
        )
        result = parse_track_csv(text)

        assert len(result.points) <= 7
        assert [p.latitude for p in result.points] == [1.0, 3.0]
        for point in result.points:
            assert math.isfinite(point.latitude)
            assert math.isfinite(point.longitude)
            assert isinstance(point.timestamp, datetime)
        assert result.dropped_rows == 5

    def test_preserves_input_order(self):
        """Rows are not sorted by time"""
        text = (
            "latitude,longitude,datetime\n"
            "1,1,2024-01-03T00:00\n"
            "2,2,2024-01-01T00:00\n"
            "3,3,2024-01-02T00:00\n"
        )
        result = parse_track_csv(text)
        assert [p.latitude for p in result.points] == [1.0, 2.0, 3.0]

    def test_extra_columns_and_padded_header(self):
        """Additional columns are ignored and header names are trimmed"""
        text = "time, latitude , longitude, datetime\nx, 1.5, 2.5, 2024-02-01 10:30:00\n"
        result = parse_track_csv(text)
        assert result.points[0].latitude == 1.5
        assert result.points[0].timestamp == datetime(2024, 2, 1, 10, 30)

    def test_blank_lines_skipped(self):
        """Blank lines neither produce points nor count as dropped"""
        text = "latitude,longitude,datetime\n\n1,2,2024-01-01T00:00\n\n"
        result = parse_track_csv(text)
        assert len(result.points) == 1
        assert result.dropped_rows == 0

    def test_short_row_dropped(self):
        """A row missing its trailing fields is dropped, not fatal"""
        text = (
            "latitude,longitude,datetime\n"
            "1,2,2024-01-01T00:00\n"
            "5,6\n"
            "3,4,2024-01-01T00:02\n"
        )
        result = parse_track_csv(text)
        assert [p.latitude for p in result.points] == [1.0, 3.0]
        assert result.dropped_rows == 1

    def test_timezone_aware_converted_to_utc(self):
        """Offsets are normalised to naive UTC so all instants compare"""
        text = "latitude,longitude,datetime\n1,2,2024-01-01T02:00:00+02:00\n"
        result = parse_track_csv(text)
        assert result.points[0].timestamp == datetime(2024, 1, 1, 0, 0)
        assert result.points[0].timestamp.tzinfo is None

    def test_relative_keywords_dropped(self):
        """Cells like now/today are not instants from the data and are dropped"""
        text = (
            "latitude,longitude,datetime\n"
            "1,2,now\n"
            "3,4, Today \n"
            "5,6,2024-01-01T00:00\n"
        )
        result = parse_track_csv(text)
        assert [p.latitude for p in result.points] == [5.0]
        assert result.dropped_rows == 2

    def test_numeric_prefix_rejected(self):
        """A coordinate with trailing junk is dropped, not truncated to its prefix"""
        text = "latitude,longitude,datetime\n20.5abc,16.4,2024-01-01T00:00\n43.5,16.4xyz,2024-01-01T00:00\n"
        result = parse_track_csv(text)
        assert result.points == ()
        assert result.dropped_rows == 2

    def test_dropped_hook_called(self):
        """The diagnostic hook receives the dropped-row count"""
        counts = []
        parse_track_csv(DEVICE1_CSV, on_dropped=counts.append)
        assert counts == [1]

    def test_header_only(self):
        """A header with no rows is an empty track, not an error"""
        result = parse_track_csv("latitude,longitude,datetime\n")
        assert result == ParseResult((), 0)

    def test_missing_column_raises(self):
        """Missing a required column fails the whole source"""
        with pytest.raises(TrackSourceError, match="datetime"):
            parse_track_csv("latitude,longitude\n1,2\n", source="dev.csv")

    def test_empty_text_raises(self):
        """Empty content fails the whole source"""
        with pytest.raises(TrackSourceError):
            parse_track_csv("")


class TestValueHelpers:
    """Test the cell and bound parsers"""

    def test_safe_float(self):
        assert safe_float(" 10.5 ") == 10.5
        assert math.isnan(safe_float("abc"))
        assert math.isnan(safe_float(None))
        assert math.isnan(safe_float("-inf"))
        assert math.isnan(safe_float("20.5abc"))

    def test_safe_timestamp(self):
        assert safe_timestamp(" 2024-01-01T12:00 ") == datetime(2024, 1, 1, 12, 0)
        assert safe_timestamp("not-a-date") is None
        assert safe_timestamp("") is None
        assert safe_timestamp(None) is None
        assert safe_timestamp("now") is None
        assert safe_timestamp("today") is None

    def test_parse_bound(self):
        assert parse_bound("2024-01-01T12:00") == datetime(2024, 1, 1, 12, 0)
        assert parse_bound("") is None
        assert parse_bound(None) is None
        with pytest.raises(ValueError):
            parse_bound("definitely not a date")
        with pytest.raises(ValueError):
            parse_bound("now")

    def test_json_float(self):
        assert json_float(43.5) == 43.5
        assert isinstance(json_float(np.float64(1.25)), float)
        assert json_float(None) is None
        assert json_float(float("nan")) is None
        assert json_float(float("inf")) is None


class TestFetch:
    """Test retrieving sources from disk"""

    @pytest.mark.asyncio
    async def test_fetch_local_file(self, registry):
        text = await fetch_source(registry["device1"].source)
        assert text.startswith("latitude,longitude,datetime")

    @pytest.mark.asyncio
    async def test_fetch_missing_file(self, tmp_path):
        with pytest.raises(TrackSourceError):
            await fetch_source(str(tmp_path / "nope.csv"))

    @pytest.mark.asyncio
    async def test_load_track(self, registry):
        result = await load_track(registry["device2"])
        assert [(p.latitude, p.longitude) for p in result.points] == [(30.5, 40.5), (31.5, 41.5)]
        assert result.dropped_rows == 0


class TestFetchUrl:
    """Test retrieving sources over HTTP"""

    @pytest.mark.asyncio
    async def test_fetch_url(self, csv_server):
        text = await fetch_source(str(csv_server.make_url("/good.csv")))
        assert text == DEVICE1_CSV

    @pytest.mark.asyncio
    async def test_fetch_url_shared_session(self, csv_server):
        async with aiohttp.ClientSession() as session:
            text = await fetch_source(str(csv_server.make_url("/good.csv")), session)
        assert text.startswith("latitude,longitude,datetime")

    @pytest.mark.asyncio
    async def test_fetch_url_not_found(self, csv_server):
        with pytest.raises(TrackSourceError, match="HTTP 404"):
            await fetch_source(str(csv_server.make_url("/missing.csv")))

    @pytest.mark.asyncio
    async def test_fetch_url_undecodable(self, csv_server):
        """Bytes that are not UTF-8 fail the source instead of escaping"""
        with pytest.raises(TrackSourceError, match="cannot decode"):
            await fetch_source(str(csv_server.make_url("/bad.csv")))

    @pytest.mark.asyncio
    async def test_fetch_url_unreachable(self, csv_server):
        url = str(csv_server.make_url("/good.csv"))
        await csv_server.close()
        with pytest.raises(TrackSourceError, match="request failed"):
            await fetch_source(url)
