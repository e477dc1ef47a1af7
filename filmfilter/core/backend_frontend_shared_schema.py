"""Shared schema definitions for backend-frontend communication."""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from filmfilter.core.map_settings import RadiusUnit
from filmfilter.core.query_region import RegionId


# UI events. Each one is a single state mutation followed by one recompute.
class RegionMovedEvent(BaseModel):
    """A query region was dragged to a new center."""

    event_type: Literal["region_moved"] = "region_moved"
    region_id: RegionId
    x: float = Field(..., allow_inf_nan=False)
    y: float = Field(..., allow_inf_nan=False)


class RegionResizedEvent(BaseModel):
    """A radius slider moved."""

    event_type: Literal["region_resized"] = "region_resized"
    region_id: RegionId
    radius: float = Field(..., ge=0, allow_inf_nan=False, description="Radius in the session's radius unit")


class YearMinChangedEvent(BaseModel):
    event_type: Literal["year_min_changed"] = "year_min_changed"
    year: int


class YearMaxChangedEvent(BaseModel):
    event_type: Literal["year_max_changed"] = "year_max_changed"
    year: int


class DirectorSelectedEvent(BaseModel):
    event_type: Literal["director_selected"] = "director_selected"
    director: str = Field(..., description="A director from the options, or 'all'")


class NeighborhoodSelectedEvent(BaseModel):
    event_type: Literal["neighborhood_selected"] = "neighborhood_selected"
    neighborhood: str = Field(..., description="A neighborhood from the options, or 'all'")


class ResetEvent(BaseModel):
    """Restore both regions and all criteria to their defaults."""

    event_type: Literal["reset"] = "reset"


UiEvent = Annotated[
    Union[
        RegionMovedEvent,
        RegionResizedEvent,
        YearMinChangedEvent,
        YearMaxChangedEvent,
        DirectorSelectedEvent,
        NeighborhoodSelectedEvent,
        ResetEvent,
    ],
    Field(discriminator="event_type"),
]


# API Request Models
class LoadDataRequest(BaseModel):
    """Request model for loading data."""

    file_path: str


class UiEventRequest(BaseModel):
    """Request model wrapping one UI event."""

    event: UiEvent


# API Response Models
class RegionState(BaseModel):
    region_id: RegionId
    x: float
    y: float
    radius: float
    radius_pixels: float


class RadiusSliderState(BaseModel):
    """Bounds of the radius sliders in the session's radius unit."""

    min: float
    max: float
    step: float


class CriteriaState(BaseModel):
    year_min: int
    year_max: int
    director: str
    neighborhood: str


class SessionStateResponse(BaseModel):
    """Response model for session state information."""

    has_data: bool
    source_row_count: int
    loaded_record_count: int
    dropped_record_count: int
    location_count: int
    visible_location_count: int
    visible_record_count: int
    radius_unit: RadiusUnit
    radius_slider: RadiusSliderState
    regions: list[RegionState]
    criteria: CriteriaState
    filter_version: int


class LoadDataResponse(BaseModel):
    """Response model for data loading operations."""

    success: bool
    message: str
    session_state: SessionStateResponse


class EventResponse(BaseModel):
    """Response model for UI event dispatch."""

    success: bool
    session_state: SessionStateResponse


class FilterOptionsResponse(BaseModel):
    """Dropdown contents; the 'all' sentinel is listed first."""

    directors: list[str]
    neighborhoods: list[str]


class MapPlotResponse(BaseModel):
    """Response model for map plot data."""

    plotly_plot: dict[str, Any]
    location_count: int
    visible_location_count: int
    visible_record_count: int


# Server-Sent Events Models
class SSEEvent(BaseModel):
    """Base model for Server-Sent Events."""

    type: str
    timestamp: float
    version: int


class FilterChangeEvent(SSEEvent):
    """Server-Sent Event for filter changes."""

    session_state: Optional[SessionStateResponse] = None


class HeartbeatEvent(SSEEvent):
    """Server-Sent Event for heartbeat."""

    pass
