"""Main CLI application for the film locations crossfilter."""

import json
import logging
import mimetypes
import signal
import sys
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Optional

import typer
import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, Response, StreamingResponse
from fastapi.staticfiles import StaticFiles

from filmfilter.core.backend_frontend_shared_schema import (
    EventResponse,
    FilterOptionsResponse,
    LoadDataRequest,
    LoadDataResponse,
    MapPlotResponse,
    ResetEvent,
    SessionStateResponse,
    UiEventRequest,
)
from filmfilter.core.filter_evaluator import (
    ALL,
    FilterCriteria,
    evaluate,
    format_visibility_report,
)
from filmfilter.core.geo_projection import MercatorProjection
from filmfilter.core.location_aggregation import aggregate_records
from filmfilter.core.map_settings import DEFAULT_MAP_SETTINGS, MapSettings, RadiusUnit
from filmfilter.core.query_region import QueryRegionPair
from filmfilter.core.schema import load_csv_to_dataframe, records_from_dataframe
from filmfilter.core.session_state import SessionState
from filmfilter.visualization.map_plot import create_map_plot


@dataclass
class App:
    """Application state container to avoid global variables."""

    session_state: SessionState
    map_image_path: Optional[Path] = None


# Create a single app instance for dependency injection
_app_instance = App(session_state=SessionState())

# Configure logging for better error visibility with IDE-clickable file paths
logging.basicConfig(
    level=logging.INFO,
    format="%(levelname)s %(pathname)s:%(lineno)d %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def get_app() -> App:
    """Dependency function to get the app instance."""
    return _app_instance


def get_session_state() -> SessionState:
    """Dependency function to get the session state instance."""
    return _app_instance.session_state


app = FastAPI(
    title="Film Locations Crossfilter",
    description="Interactive two-circle map filter for San Francisco film locations",
)


# Exception handlers for better error logging
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler that logs full stack traces."""
    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}: {exc}",
        exc_info=True,
    )

    return JSONResponse(
        status_code=500,
        content={
            "detail": f"Internal server error: {str(exc)}",
            "type": type(exc).__name__,
        },
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handler for HTTP exceptions with logging."""
    logger.error(
        f"HTTP exception in {request.method} {request.url.path}: {exc.status_code} - {exc.detail}",
    )

    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handler for request validation errors with logging."""
    logger.error(f"Validation error in {request.method} {request.url.path}: {exc.errors()}")

    return JSONResponse(status_code=422, content={"detail": exc.errors()})


# Mount static files
static_path = Path(__file__).parent / "static"
if static_path.exists():
    app.mount("/static", StaticFiles(directory=str(static_path)), name="static")


# Handlers touching the session are all async so they run one at a time on the event
# loop thread; each event's recompute finishes before the next request is handled.
@app.post("/api/data/load")
async def load_data_endpoint(
    request: LoadDataRequest, session_state: SessionState = Depends(get_session_state)
) -> LoadDataResponse:
    """Load data from a film locations CSV file into the session state."""
    csv_path = Path(request.file_path)
    if not csv_path.exists():
        raise HTTPException(status_code=404, detail=f"File not found: {request.file_path}")

    try:
        df, load_stats = load_csv_to_dataframe(csv_path)
        session_state.load_dataframe(df, load_stats)
    except Exception as e:
        logger.error(f"Error loading data from {request.file_path}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Error loading data: {str(e)}")

    return LoadDataResponse(
        success=True,
        message=f"Successfully loaded {load_stats.loaded_row_count} records",
        session_state=session_state._create_session_state_response(),
    )


@app.get("/", response_class=HTMLResponse)
async def root() -> str:
    """Serve the main application page."""
    static_file = static_path / "index.html"
    return static_file.read_text()


@app.get("/api/session")
async def get_session_status(
    session_state: SessionState = Depends(get_session_state),
) -> SessionStateResponse:
    """Get the current session state status."""
    return session_state._create_session_state_response()


@app.get("/api/options")
async def get_filter_options(
    session_state: SessionState = Depends(get_session_state),
) -> FilterOptionsResponse:
    """Get the director and neighborhood dropdown contents."""
    return FilterOptionsResponse(
        directors=[ALL, *session_state.director_options],
        neighborhoods=[ALL, *session_state.neighborhood_options],
    )


@app.post("/api/events")
async def dispatch_ui_event(
    request: UiEventRequest,
    session_state: SessionState = Depends(get_session_state),
) -> EventResponse:
    """Apply one UI event (drag, slider, dropdown, reset) and recompute visibility."""
    try:
        session_state.dispatch(request.event)
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail=f"Error applying {request.event.event_type} event: {str(e)}",
        )

    return EventResponse(
        success=True,
        session_state=session_state._create_session_state_response(),
    )


@app.post("/api/reset")
async def reset_filters(
    session_state: SessionState = Depends(get_session_state),
) -> EventResponse:
    """Reset both regions and all criteria to their defaults."""
    session_state.dispatch(ResetEvent())

    return EventResponse(
        success=True,
        session_state=session_state._create_session_state_response(),
    )


@app.get("/api/plots/map")
async def get_map_plot_data(
    session_state: SessionState = Depends(get_session_state),
) -> MapPlotResponse:
    """Get the map plot styled by the latest visibility pass."""
    if len(session_state.records) == 0:
        raise HTTPException(status_code=404, detail="No data loaded")

    fig = create_map_plot(
        session_state.locations,
        session_state.visibility,
        session_state.regions,
        session_state.settings,
        map_image_source="/api/map_image",
    )
    fig_json = fig.to_json()
    if fig_json is None:
        raise ValueError("Failed to serialize map plot to JSON")

    return MapPlotResponse(
        plotly_plot=json.loads(fig_json),
        location_count=len(session_state.locations),
        visible_location_count=session_state.visible_location_count,
        visible_record_count=session_state.visible_record_count,
    )


@app.get("/api/map_image")
async def get_map_image(app_instance: App = Depends(get_app)) -> Response:
    """Get the background map image."""
    image_path = app_instance.map_image_path
    if image_path is None or not image_path.exists():
        return _create_no_map_available_image(
            app_instance.session_state.settings
        )

    media_type, _ = mimetypes.guess_type(image_path.name)
    return Response(
        content=image_path.read_bytes(), media_type=media_type or "image/png"
    )


@app.get("/api/events/filter-changes")
async def filter_change_stream(
    session_state: SessionState = Depends(get_session_state),
) -> Any:
    """Server-Sent Events stream for filter change notifications."""
    return StreamingResponse(
        session_state.filter_change_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "Access-Control-Allow-Origin": "*",
            "Access-Control-Allow-Headers": "Cache-Control",
        },
    )


def _create_no_map_available_image(settings: MapSettings) -> Response:
    """Create a placeholder image sized to the canvas with 'No map image' text."""
    width, height = round(settings.map_width), round(settings.map_height)
    svg_content = f"""<svg width="{width}" height="{height}" xmlns="http://www.w3.org/2000/svg">
        <rect width="{width}" height="{height}" fill="#f0f0f0" stroke="#ccc" stroke-width="2"/>
        <text x="{width // 2}" y="{height // 2}" text-anchor="middle" font-family="Arial, sans-serif" font-size="14" fill="#666">
            No map image
        </text>
    </svg>"""

    return Response(content=svg_content, media_type="image/svg+xml")


# https://github.com/fastapi/typer/issues/341
typer.main.get_command_name = lambda name: name

cli = typer.Typer(
    help="Film Locations Crossfilter - filter San Francisco film locations by the intersection of two map circles",
    pretty_exceptions_show_locals=False,
    pretty_exceptions_enable=False,
)


def _build_settings(
    radius_unit: RadiusUnit,
    default_radius: Optional[float],
    default_year_min: int,
    default_year_max: int,
    per_record: bool,
) -> MapSettings:
    return replace(
        DEFAULT_MAP_SETTINGS,
        radius_unit=radius_unit,
        default_radius=(
            default_radius
            if default_radius is not None
            else DEFAULT_MAP_SETTINGS.default_radius
        ),
        default_year_min=default_year_min,
        default_year_max=default_year_max,
        group_by_location=not per_record,
    )


@cli.callback(invoke_without_command=True)
def main_callback(ctx: typer.Context) -> None:
    """Film Locations Crossfilter - filter San Francisco film locations by the intersection of two map circles."""
    pass


@cli.command("serve")
def serve(
    port: int = typer.Option(8000, help="Port to serve on"),
    host: str = typer.Option("localhost", help="Host to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
    preload_csv: Optional[Path] = typer.Option(
        None,
        help="Path to a film locations CSV file to preload into session state",
        exists=True,
        dir_okay=False,
        file_okay=True,
    ),
    map_image: Optional[Path] = typer.Option(
        None,
        help="Background map image covering the configured geographic frame",
        exists=True,
        dir_okay=False,
        file_okay=True,
    ),
    radius_unit: RadiusUnit = typer.Option(
        DEFAULT_MAP_SETTINGS.radius_unit, help="Unit of the query region radius"
    ),
    default_radius: Optional[float] = typer.Option(
        None, help="Radius the regions start and reset to, in the radius unit"
    ),
    default_year_min: int = typer.Option(
        DEFAULT_MAP_SETTINGS.default_year_min, help="Lower bound of the default year range"
    ),
    default_year_max: int = typer.Option(
        DEFAULT_MAP_SETTINGS.default_year_max, help="Upper bound of the default year range"
    ),
    per_record: bool = typer.Option(
        False, help="Plot every record separately instead of grouping by coordinates"
    ),
) -> None:
    """Start the Film Locations Crossfilter web application."""
    settings = _build_settings(
        radius_unit, default_radius, default_year_min, default_year_max, per_record
    )
    _app_instance.session_state = SessionState(settings)
    _app_instance.map_image_path = map_image

    if preload_csv:
        typer.echo(f"Loading data from {preload_csv}...")
        df, load_stats = load_csv_to_dataframe(preload_csv)
        _app_instance.session_state.load_dataframe(df, load_stats)
        typer.echo(f"Successfully loaded {load_stats.loaded_row_count} records from CSV")
    else:
        logger.info("Starting server without preloaded data")

    def signal_handler(signum: int, frame: Any) -> None:
        """Handle shutdown signals gracefully."""
        typer.echo(
            f"Shutting down Film Locations Crossfilter {signal.Signals(signum).name=}, {frame=}..."
        )
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    typer.echo(f"Starting Film Locations Crossfilter on http://{host}:{port}")

    # Pass the app instance directly to preserve the session state
    uvicorn.run(
        app,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
        timeout_graceful_shutdown=2,
        timeout_keep_alive=1,
    )


@cli.command("query")
def query(
    csv_path: Path = typer.Argument(
        ..., help="Film locations CSV file", exists=True, dir_okay=False, file_okay=True
    ),
    a_x: Optional[float] = typer.Option(None, help="Region A center x in pixels"),
    a_y: Optional[float] = typer.Option(None, help="Region A center y in pixels"),
    a_radius: Optional[float] = typer.Option(None, help="Region A radius in the radius unit"),
    b_x: Optional[float] = typer.Option(None, help="Region B center x in pixels"),
    b_y: Optional[float] = typer.Option(None, help="Region B center y in pixels"),
    b_radius: Optional[float] = typer.Option(None, help="Region B radius in the radius unit"),
    year_min: Optional[int] = typer.Option(None, help="Earliest release year"),
    year_max: Optional[int] = typer.Option(None, help="Latest release year"),
    director: str = typer.Option(ALL, help="Director to match, or 'all'"),
    neighborhood: str = typer.Option(ALL, help="Neighborhood to match, or 'all'"),
    radius_unit: RadiusUnit = typer.Option(
        DEFAULT_MAP_SETTINGS.radius_unit, help="Unit of the query region radius"
    ),
    per_record: bool = typer.Option(
        False, help="Treat every record separately instead of grouping by coordinates"
    ),
) -> None:
    """Print the locations inside both regions that match the criteria."""
    settings = _build_settings(
        radius_unit,
        None,
        DEFAULT_MAP_SETTINGS.default_year_min,
        DEFAULT_MAP_SETTINGS.default_year_max,
        per_record,
    )
    projection = MercatorProjection.from_settings(settings)
    df, load_stats = load_csv_to_dataframe(csv_path)
    locations = aggregate_records(
        records_from_dataframe(df),
        projection,
        settings.display_radius_range,
        group_by_location=settings.group_by_location,
    )

    regions = QueryRegionPair(settings, projection)
    for region, x, y, radius in (
        (regions.a, a_x, a_y, a_radius),
        (regions.b, b_x, b_y, b_radius),
    ):
        region.set_center(
            region.x if x is None else x, region.y if y is None else y
        )
        if radius is not None:
            region.set_radius(radius)

    criteria = FilterCriteria.default(settings)
    if year_min is not None:
        criteria = criteria.with_year_min(year_min)
    if year_max is not None:
        criteria = criteria.with_year_max(year_max)
    criteria = replace(criteria, director=director, neighborhood=neighborhood)

    results = evaluate(locations, regions.a, regions.b, criteria)
    typer.echo(
        f"Loaded {load_stats.loaded_row_count} valid records ({load_stats.dropped_row_count} dropped)"
    )
    typer.echo(format_visibility_report(locations, results), nl=False)


def main() -> None:
    """Entry point for the CLI application."""
    cli()


if __name__ == "__main__":
    main()
