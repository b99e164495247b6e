"""
FastAPI Web Application for the GPS Track Viewer

This module provides a REST API and web interface for viewing GPS tracks of
several devices on a map, toggling device visibility and filtering points by
an inclusive date-time window.
"""

import asyncio
import contextlib
import json
import logging
from typing import Optional

from fastapi import APIRouter, FastAPI, HTTPException, Query, Request
from fastapi.staticfiles import StaticFiles
from fastapi.responses import FileResponse, PlainTextResponse

from backend import constants
from backend import export
from backend.exceptions import UnknownDeviceError
from backend.session import TrackViewerSession
from backend.utils import parse_bound

logger = logging.getLogger(__name__)


# ============================================================================
# SESSION ACCESS
# ============================================================================

def get_viewer(request: Request) -> TrackViewerSession:
    """Return the viewer session owned by the running application."""
    return request.app.state.viewer


def parse_bound_or_422(value: Optional[str]):
    """Parse a filter bound, turning a bad value into a 422 response."""
    try:
        return parse_bound(value)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc


# ============================================================================
# ROOT & STATIC ROUTES
# ============================================================================

router = APIRouter()


@router.get("/")
def read_root():
    """
    Serve the map interface.

    Returns the index.html file with the Leaflet map, the two date-time
    inputs and one visibility checkbox per device.

    Returns:
        FileResponse: The static index.html file.
    """
    return FileResponse(constants.INDEX_PAGE)


# ============================================================================
# API ROUTES - STATE
# Routes touching the session are async so that every read and change
# runs on the event loop, one at a time, alongside the background loader.
# ============================================================================

@router.get("/api/devices")
async def get_devices(request: Request):
    """
    Get the configured devices with their visibility and load status.

    Returns:
        List of device summary dictionaries.
    """
    return get_viewer(request).device_summaries()


@router.get("/api/view")
async def get_view(request: Request):
    """
    Get the current map view.

    Returns:
        Dictionary with map center, zoom, tile layer, polylines, filter
        window and device summaries.
    """
    return get_viewer(request).build_view_payload()


# ============================================================================
# API ROUTES - CONTROL PANEL EVENTS
# ============================================================================

@router.put("/api/filter/start")
async def set_filter_start(request: Request,
                           value: Optional[str] = Query(None, description="Inclusive start date-time; blank clears")):
    """
    Set or clear the start bound of the filter window.

    Args:
        value: Date-time string. Missing or blank clears the bound.

    Returns:
        The recomputed view payload.

    Raises:
        HTTPException: If the value cannot be parsed (status 422).
    """
    viewer = get_viewer(request)
    viewer.set_start(parse_bound_or_422(value))
    return viewer.build_view_payload()


@router.put("/api/filter/end")
async def set_filter_end(request: Request,
                         value: Optional[str] = Query(None, description="Inclusive end date-time; blank clears")):
    """
    Set or clear the end bound of the filter window.

    Args:
        value: Date-time string. Missing or blank clears the bound.

    Returns:
        The recomputed view payload.

    Raises:
        HTTPException: If the value cannot be parsed (status 422).
    """
    viewer = get_viewer(request)
    viewer.set_end(parse_bound_or_422(value))
    return viewer.build_view_payload()


@router.post("/api/devices/{device}/toggle")
async def toggle_device(device: str, request: Request):
    """
    Flip the visibility of a device.

    Returns:
        The recomputed view payload.

    Raises:
        HTTPException: If the device is unknown (status 404).
    """
    viewer = get_viewer(request)
    try:
        viewer.toggle_device(device)
    except UnknownDeviceError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return viewer.build_view_payload()


@router.put("/api/devices/{device}/visibility")
async def set_device_visibility(device: str, request: Request,
                                visible: bool = Query(..., description="Whether the device is shown")):
    """
    Show or hide a device.

    Returns:
        The recomputed view payload.

    Raises:
        HTTPException: If the device is unknown (status 404).
    """
    viewer = get_viewer(request)
    try:
        viewer.set_visibility(device, visible)
    except UnknownDeviceError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return viewer.build_view_payload()


# ============================================================================
# API ROUTES - EXPORT
# ============================================================================

@router.get("/api/export/view")
async def export_view(request: Request):
    """
    Export the currently drawn polylines as GeoJSON.

    Returns:
        PlainTextResponse: GeoJSON file with Content-Disposition header
        for download. Filename: gps_tracks.geojson
    """
    body = json.dumps(export.export_view_geojson(get_viewer(request)), indent=2)
    headers = {"Content-Disposition": "attachment; filename=gps_tracks.geojson"}
    return PlainTextResponse(
        body,
        media_type="application/geo+json",
        headers=headers
    )


@router.get("/api/export/track/{device}")
async def export_track(device: str, request: Request):
    """
    Export one device's filtered track as CSV.

    Hidden devices export just the header row, matching what is drawn.

    Returns:
        PlainTextResponse: CSV file with Content-Disposition header
        for download. Filename: {device}.csv

    Raises:
        HTTPException: If the device is unknown (status 404).
    """
    viewer = get_viewer(request)
    try:
        csv_body = export.export_track_csv(viewer.filtered_tracks(), device)
    except UnknownDeviceError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc

    headers = {"Content-Disposition": f"attachment; filename={device}.csv"}
    return PlainTextResponse(
        csv_body,
        media_type="text/csv",
        headers=headers
    )


# ============================================================================
# APPLICATION SETUP
# ============================================================================

@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    """Start loading every device in the background while the UI is served."""
    task = None
    if app.state.load_on_startup:
        logger.info("Loading tracks for %s", ", ".join(app.state.viewer.registry))
        task = asyncio.create_task(app.state.viewer.load_all())
    yield
    if task is not None and not task.done():
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


def create_app(viewer: Optional[TrackViewerSession] = None, load_on_startup: bool = True) -> FastAPI:
    """
    Build the web application around a viewer session.

    Args:
        viewer: Session to serve. Defaults to a new session over the
            configured device registry.
        load_on_startup: Whether to load every device when the app starts.

    Returns:
        The configured FastAPI application.
    """
    app = FastAPI(title="GPS Track Viewer", lifespan=lifespan)
    app.state.viewer = viewer if viewer is not None else TrackViewerSession()
    app.state.load_on_startup = load_on_startup

    # Serve static files (HTML, CSS, JavaScript)
    app.mount("/static", StaticFiles(directory=constants.STATIC_DIR), name="static")
    app.include_router(router)
    return app


app = create_app()


# ============================================================================
# RUN INSTRUCTIONS
# ============================================================================
# Run with: uvicorn app:app --reload (or python app.py)

if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host="127.0.0.1", port=8000)
