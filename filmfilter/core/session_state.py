"""Session state management for single-session film locations application."""

import asyncio
import json
import logging
import time
from collections.abc import AsyncGenerator
from dataclasses import replace
from typing import Optional

import pandas as pd

from filmfilter.core.backend_frontend_shared_schema import (
    CriteriaState,
    DirectorSelectedEvent,
    FilterChangeEvent,
    HeartbeatEvent,
    NeighborhoodSelectedEvent,
    RadiusSliderState,
    RegionMovedEvent,
    RegionResizedEvent,
    RegionState,
    ResetEvent,
    SessionStateResponse,
    UiEvent,
    YearMaxChangedEvent,
    YearMinChangedEvent,
)
from filmfilter.core.filter_evaluator import (
    ALL,
    FilterCriteria,
    VisibilityResult,
    evaluate,
    total_visible_records,
)
from filmfilter.core.geo_projection import MercatorProjection
from filmfilter.core.location_aggregation import Location, aggregate_records
from filmfilter.core.map_settings import DEFAULT_MAP_SETTINGS, MapSettings
from filmfilter.core.query_region import QueryRegionPair
from filmfilter.core.schema import (
    LoadStats,
    Record,
    records_from_dataframe,
    unique_field_values,
)

logger = logging.getLogger(__name__)


class SessionState:
    """
    Holds everything one browsing session needs: the loaded records, their map
    locations, the two query regions and the current filter criteria.

    In the single-session design pattern there is exactly one instance of this class
    per web server instance. Every UI event is applied through ``dispatch``, which
    mutates the state and then runs exactly one full, synchronous visibility pass
    before returning, so readers never see a half-applied event.
    """

    def __init__(self, settings: MapSettings = DEFAULT_MAP_SETTINGS) -> None:
        self.settings = settings
        self.projection = MercatorProjection.from_settings(settings)

        self.records: list[Record] = []
        self.locations: list[Location] = []
        self.load_stats = LoadStats(source_row_count=0, loaded_row_count=0)
        self.director_options: list[str] = []
        self.neighborhood_options: list[str] = []

        self.regions = QueryRegionPair(settings, self.projection)
        self.criteria = FilterCriteria.default(settings)
        # Output of the most recent visibility pass, parallel to self.locations.
        self.visibility: list[VisibilityResult] = []

        # SSE event broadcasting
        self.filter_version = 0
        self.sse_clients: set[asyncio.Queue] = set()

    def load_dataframe(self, df: pd.DataFrame, load_stats: Optional[LoadStats] = None) -> None:
        """Load a FilmLocationSchema DataFrame, replacing any previous data."""
        self.records = records_from_dataframe(df)
        self.load_stats = load_stats or LoadStats(
            source_row_count=len(df), loaded_row_count=len(df)
        )
        self.locations = aggregate_records(
            self.records,
            self.projection,
            self.settings.display_radius_range,
            group_by_location=self.settings.group_by_location,
        )
        self.director_options = unique_field_values(self.records, "director")
        self.neighborhood_options = unique_field_values(self.records, "neighborhood")

        logger.info(
            f"Loaded {len(self.records)} records at {len(self.locations)} locations into session state, {len(self.director_options)=}, {len(self.neighborhood_options)=}"
        )

        self.reset()
        self.recompute()
        self.broadcast_filter_change("data_loaded")

    def dispatch(self, event: UiEvent) -> None:
        """
        Apply one UI event and recompute visibility.

        Raises:
            ValueError: If the event carries a value the controls could not produce
        """
        if isinstance(event, RegionMovedEvent):
            self.regions.get(event.region_id).set_center(event.x, event.y)
        elif isinstance(event, RegionResizedEvent):
            self.regions.get(event.region_id).set_radius(event.radius)
        elif isinstance(event, YearMinChangedEvent):
            self.criteria = self.criteria.with_year_min(event.year)
        elif isinstance(event, YearMaxChangedEvent):
            self.criteria = self.criteria.with_year_max(event.year)
        elif isinstance(event, DirectorSelectedEvent):
            self._check_option(event.director, self.director_options, "director")
            self.criteria = replace(self.criteria, director=event.director)
        elif isinstance(event, NeighborhoodSelectedEvent):
            self._check_option(event.neighborhood, self.neighborhood_options, "neighborhood")
            self.criteria = replace(self.criteria, neighborhood=event.neighborhood)
        elif isinstance(event, ResetEvent):
            self.reset()
        else:
            logger.error(f"Invalid UI event: {event=}")
            raise ValueError(f"Invalid UI event: {event}")

        self.recompute()
        self.broadcast_filter_change(
            "filter_reset" if isinstance(event, ResetEvent) else "filter_applied"
        )

    @staticmethod
    def _check_option(value: str, options: list[str], field_name: str) -> None:
        if value != ALL and value not in options:
            raise ValueError(f"Unknown {field_name} {value=}")

    def reset(self) -> None:
        """Restore both regions and the criteria to their defaults."""
        self.regions.reset()
        self.criteria = FilterCriteria.default(self.settings)

    def recompute(self) -> None:
        """Run one full visibility pass over every location."""
        start_time = time.perf_counter()
        self.visibility = evaluate(
            self.locations, self.regions.a, self.regions.b, self.criteria
        )
        elapsed_ms = (time.perf_counter() - start_time) * 1000
        logger.debug(
            f"Filter update took {elapsed_ms:.2f}ms for {len(self.locations)} locations, {self.visible_record_count=}"
        )

    @property
    def visible_location_count(self) -> int:
        return sum(1 for r in self.visibility if r.visible)

    @property
    def visible_record_count(self) -> int:
        return total_visible_records(self.visibility)

    def get_summary(self) -> dict:
        """Get a summary of the current session state."""
        return {
            "source_row_count": self.load_stats.source_row_count,
            "loaded_record_count": len(self.records),
            "dropped_record_count": self.load_stats.dropped_row_count,
            "location_count": len(self.locations),
            "visible_location_count": self.visible_location_count,
            "visible_record_count": self.visible_record_count,
            "criteria": self.criteria,
            "regions": list(self.regions),
        }

    def _create_session_state_response(self) -> SessionStateResponse:
        """Create a strongly typed session state response."""
        slider_min, slider_max, slider_step = self.settings.radius_slider_range
        return SessionStateResponse(
            has_data=len(self.records) > 0,
            source_row_count=self.load_stats.source_row_count,
            loaded_record_count=len(self.records),
            dropped_record_count=self.load_stats.dropped_row_count,
            location_count=len(self.locations),
            visible_location_count=self.visible_location_count,
            visible_record_count=self.visible_record_count,
            radius_unit=self.settings.radius_unit,
            radius_slider=RadiusSliderState(
                min=slider_min, max=slider_max, step=slider_step
            ),
            regions=[
                RegionState(
                    region_id=region.region_id,
                    x=region.x,
                    y=region.y,
                    radius=region.radius,
                    radius_pixels=region.radius_pixels,
                )
                for region in self.regions
            ],
            criteria=CriteriaState(
                year_min=self.criteria.year_min,
                year_max=self.criteria.year_max,
                director=self.criteria.director,
                neighborhood=self.criteria.neighborhood,
            ),
            filter_version=self.filter_version,
        )

    def broadcast_filter_change(self, event_type: str) -> None:
        """Broadcast filter change event to all SSE clients."""
        self.filter_version += 1
        event = FilterChangeEvent(
            type=event_type,
            timestamp=time.time(),
            version=self.filter_version,
            session_state=self._create_session_state_response(),
        )
        event_data = event.model_dump(mode="json")

        # Queue the event for all connected SSE clients
        for client_queue in self.sse_clients:
            try:
                client_queue.put_nowait(event_data)
            except asyncio.QueueFull:
                logger.warning("SSE client queue full, dropping event")

    async def filter_change_stream(
        self, heartbeat_seconds: float = 2.0
    ) -> AsyncGenerator[str, None]:
        """Generate Server-Sent Events stream for filter changes."""
        client_queue: asyncio.Queue = asyncio.Queue(maxsize=100)
        self.sse_clients.add(client_queue)

        try:
            initial_event = FilterChangeEvent(
                type="connection_established",
                timestamp=time.time(),
                version=self.filter_version,
                session_state=self._create_session_state_response(),
            )
            yield f"data: {json.dumps(initial_event.model_dump(mode='json'))}\n\n"

            while True:
                try:
                    event_data = await asyncio.wait_for(
                        client_queue.get(), timeout=heartbeat_seconds
                    )
                    yield f"data: {json.dumps(event_data)}\n\n"
                except asyncio.TimeoutError:
                    # Send periodic heartbeat to keep connection alive
                    heartbeat = HeartbeatEvent(
                        type="heartbeat",
                        timestamp=time.time(),
                        version=self.filter_version,
                    )
                    yield f"data: {json.dumps(heartbeat.model_dump(mode='json'))}\n\n"
        except asyncio.CancelledError:
            logger.info("SSE client disconnected")
        finally:
            self.sse_clients.discard(client_queue)
