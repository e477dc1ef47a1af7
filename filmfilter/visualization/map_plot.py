"""Map Plot Module.

Film locations drawn over the static map image in screen coordinates, with the two
query regions as draggable circle shapes.
"""

import html
from typing import Optional, Sequence

import plotly.graph_objects as go

from filmfilter.core.filter_evaluator import VisibilityResult
from filmfilter.core.location_aggregation import Location
from filmfilter.core.map_settings import MapSettings
from filmfilter.core.query_region import QueryRegion, QueryRegionPair, RegionId

VISIBLE_COLOR = "#e74c3c"
HIDDEN_COLOR = "#bdc3c7"
VISIBLE_OPACITY = 0.7
HIDDEN_OPACITY = 0.3

REGION_COLORS = {
    RegionId.A: ("#3498db", "rgba(52, 152, 219, 0.15)"),
    RegionId.B: ("#2ecc71", "rgba(46, 204, 113, 0.15)"),
}

# Records listed in a hover label before it is truncated.
MAX_HOVER_RECORDS = 5


def _location_hover_text(location: Location) -> str:
    lines = []
    for record in location.records[:MAX_HOVER_RECORDS]:
        title = html.escape(record.title or "Untitled")
        if record.release_year is not None:
            title += f" ({record.release_year})"
        lines.append(f"<b>{title}</b>")
        if record.director:
            lines.append(f"Director: {html.escape(record.director)}")
    first = location.records[0]
    if first.locations:
        lines.append(f"Location: {html.escape(first.locations)}")
    if first.neighborhood:
        lines.append(f"Neighborhood: {html.escape(first.neighborhood)}")
    hidden = location.record_count - MAX_HOVER_RECORDS
    if hidden > 0:
        lines.append(f"... and {hidden} more")
    return "<br>".join(lines)


def _region_shape(region: QueryRegion) -> dict:
    line_color, fill_color = REGION_COLORS[region.region_id]
    r = region.radius_pixels
    return dict(
        type="circle",
        xref="x",
        yref="y",
        x0=region.x - r,
        y0=region.y - r,
        x1=region.x + r,
        y1=region.y + r,
        name=str(region.region_id),
        line=dict(color=line_color, width=2),
        fillcolor=fill_color,
    )


def _region_label(region: QueryRegion) -> dict:
    line_color, _ = REGION_COLORS[region.region_id]
    return dict(
        x=region.x,
        y=region.y,
        xref="x",
        yref="y",
        text=f"<b>{region.region_id}</b>",
        showarrow=False,
        font=dict(size=20, color=line_color),
    )


def create_map_plot(
    locations: Sequence[Location],
    results: Sequence[VisibilityResult],
    regions: QueryRegionPair,
    settings: MapSettings,
    map_image_source: Optional[str] = None,
    title: Optional[str] = None,
) -> go.Figure:
    """Create a Plotly scatter of the locations styled by the latest visibility pass."""
    width, height = settings.map_width, settings.map_height
    fig = go.Figure()

    if map_image_source:
        fig.add_layout_image(
            dict(
                source=map_image_source,
                xref="x",
                yref="y",
                x=0,
                y=0,
                sizex=width,
                sizey=height,
                xanchor="left",
                yanchor="top",
                sizing="stretch",
                layer="below",
            )
        )

    annotations = [_region_label(region) for region in regions]
    if not locations:
        annotations.append(
            dict(
                text="No data to display",
                x=0.5,
                y=0.95,
                xref="paper",
                yref="paper",
                showarrow=False,
                font=dict(size=16),
            )
        )

    visible = [result.visible for result in results]
    fig.add_trace(
        go.Scatter(
            x=[location.x for location in locations],
            y=[location.y for location in locations],
            mode="markers",
            marker=dict(
                size=[2 * location.display_radius for location in locations],
                sizemode="diameter",
                color=[VISIBLE_COLOR if v else HIDDEN_COLOR for v in visible],
                opacity=[VISIBLE_OPACITY if v else HIDDEN_OPACITY for v in visible],
                line=dict(width=0),
            ),
            customdata=[
                [location.location_id, result.matching_record_count]
                for location, result in zip(locations, results)
            ],
            hovertext=[_location_hover_text(location) for location in locations],
            hoverinfo="text",
            name="Film locations",
        )
    )

    fig.update_layout(
        title=title,
        width=width,
        height=height,
        margin=dict(l=0, r=0, t=40 if title else 0, b=0),
        hovermode="closest",
        showlegend=False,
        shapes=[_region_shape(region) for region in regions],
        annotations=annotations,
        xaxis=dict(range=[0, width], visible=False, constrain="domain"),
        # Screen y grows downward.
        yaxis=dict(
            range=[height, 0], visible=False, scaleanchor="x", scaleratio=1
        ),
        plot_bgcolor="white",
    )
    return fig
