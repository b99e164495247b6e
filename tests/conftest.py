"""
Pytest configuration for the GPS Track Viewer tests.

Fixtures write small CSV sources into a temporary directory and build a
device registry and viewer session around them.
"""

from datetime import datetime
from pathlib import Path
import sys

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

# Allow `import app` and `import backend` when running from any directory.
REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from backend.constants import DeviceConfig
from backend.session import TrackViewerSession
from backend.track_store import Point


DEVICE1_CSV = """latitude,longitude,datetime
10,20,2024-01-01T00:00
11,21,2024-01-02T00:00
abc,21,2024-01-02T06:00
"""

DEVICE2_CSV = """latitude, longitude, datetime, speed
 30.5 , 40.5 , 2024-01-01T06:00 , 3.2
31.5,41.5,2024-01-03T00:00,4.0
"""


def make_point(lat, lon, when):
    """Build a Point from an ISO date-time string."""
    return Point(float(lat), float(lon), datetime.fromisoformat(when))


@pytest.fixture
def registry(tmp_path):
    """Two devices backed by CSV files in tmp_path."""
    device1 = tmp_path / "gps_device1.csv"
    device2 = tmp_path / "gps_device2.csv"
    device1.write_text(DEVICE1_CSV, encoding="utf-8")
    device2.write_text(DEVICE2_CSV, encoding="utf-8")
    return {
        "device1": DeviceConfig("device1", str(device1), "blue"),
        "device2": DeviceConfig("device2", str(device2), "red"),
    }


@pytest.fixture
def broken_registry(registry, tmp_path):
    """device2 points at a file that does not exist."""
    return {
        "device1": registry["device1"],
        "device2": DeviceConfig("device2", str(tmp_path / "missing.csv"), "red"),
    }


@pytest.fixture
def viewer(registry):
    """Viewer session over the temporary registry, nothing loaded yet."""
    return TrackViewerSession(registry)


def _csv_handler(body: bytes):
    async def handler(request):
        return web.Response(body=body, content_type="text/csv")
    return handler


@pytest_asyncio.fixture
async def csv_server():
    """aiohttp server with a good, a missing and an undecodable CSV source"""
    app = web.Application()
    app.router.add_get("/good.csv", _csv_handler(DEVICE1_CSV.encode("utf-8")))
    app.router.add_get("/bad.csv", _csv_handler(b"latitude,longitude,datetime\n1,2,\xff\xfe2024\n"))
    server = TestServer(app)
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture
def url_registry(registry):
    """Registry whose sources are filled in with csv_server URLs by each test."""
    def build(server, device2_path):
        return {
            "device1": registry["device1"],
            "device2": DeviceConfig("device2", str(server.make_url(device2_path)), "red"),
        }
    return build
