"""Grouping of records that share a coordinate pair into map locations."""

import logging
import math
from dataclasses import dataclass
from typing import Sequence

import numpy as np

from filmfilter.core.geo_projection import MercatorProjection
from filmfilter.core.schema import Record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Location:
    """
    A unique coordinate pair together with every record filmed there.

    ``x`` and ``y`` are the projected screen coordinates, computed once when the
    location is created. ``records`` is never empty and keeps first-seen order.
    """

    location_id: int
    key: tuple[str, str]
    longitude: float
    latitude: float
    x: float
    y: float
    records: tuple[Record, ...]
    display_radius: float

    @property
    def record_count(self) -> int:
        return len(self.records)

    @property
    def key_string(self) -> str:
        return f"{self.key[0]},{self.key[1]}"


def sqrt_scale(
    value: float, domain_max: float, output_range: tuple[float, float]
) -> float:
    """
    Map ``[1, domain_max]`` onto ``output_range`` so that area, not radius, tracks value.

    A single-element domain (every location holds one record) collapses to the low end
    of the range. Results are clamped to the range.
    """
    low, high = output_range
    if domain_max <= 1:
        return low
    t = (math.sqrt(value) - 1) / (math.sqrt(domain_max) - 1)
    return low + min(max(t, 0.0), 1.0) * (high - low)


def aggregate_records(
    records: Sequence[Record],
    projection: MercatorProjection,
    display_radius_range: tuple[float, float],
    group_by_location: bool = True,
) -> list[Location]:
    """
    Group records by their raw coordinate strings and project each group once.

    Args:
        records: Loaded records, all with finite coordinates
        projection: Projection used to compute the cached screen coordinates
        display_radius_range: Pixel range for the marker radius
        group_by_location: When False every record becomes its own location

    Returns:
        Locations in the order their first record was seen
    """
    groups: dict[object, list[Record]] = {}
    for record in records:
        group_key = (
            (record.longitude_raw, record.latitude_raw)
            if group_by_location
            else record.record_id
        )
        groups.setdefault(group_key, []).append(record)

    members = list(groups.values())
    if not members:
        return []

    first_records = [group[0] for group in members]
    xs, ys = projection.project_many(
        np.array([r.longitude for r in first_records]),
        np.array([r.latitude for r in first_records]),
    )
    max_count = max(len(group) for group in members)

    locations = [
        Location(
            location_id=location_id,
            key=(group[0].longitude_raw, group[0].latitude_raw),
            longitude=group[0].longitude,
            latitude=group[0].latitude,
            x=float(x),
            y=float(y),
            records=tuple(group),
            display_radius=sqrt_scale(len(group), max_count, display_radius_range),
        )
        for location_id, (group, x, y) in enumerate(zip(members, xs, ys))
    ]
    logger.info(
        f"Aggregated {len(records)} records into {len(locations)} locations, {max_count=}, {group_by_location=}"
    )
    return locations
