"""Visibility of map locations under the current regions and criteria."""

import logging
from dataclasses import dataclass, replace
from typing import Sequence

from filmfilter.core.location_aggregation import Location
from filmfilter.core.map_settings import MapSettings
from filmfilter.core.query_region import QueryRegion, both_contain
from filmfilter.core.schema import Record

logger = logging.getLogger(__name__)

# Dropdown sentinel meaning "do not filter on this field".
ALL = "all"


@dataclass(frozen=True)
class FilterCriteria:
    """Snapshot of the year range and dropdown selections."""

    year_min: int
    year_max: int
    director: str = ALL
    neighborhood: str = ALL

    @classmethod
    def default(cls, settings: MapSettings) -> "FilterCriteria":
        return cls(year_min=settings.default_year_min, year_max=settings.default_year_max)

    def with_year_min(self, year: int) -> "FilterCriteria":
        """Move the lower bound, dragging the upper bound along if it would cross."""
        return replace(self, year_min=year, year_max=max(self.year_max, year))

    def with_year_max(self, year: int) -> "FilterCriteria":
        """Move the upper bound, dragging the lower bound along if it would cross."""
        return replace(self, year_max=year, year_min=min(self.year_min, year))


@dataclass(frozen=True)
class VisibilityResult:
    location_id: int
    visible: bool
    matching_record_count: int


def record_matches(record: Record, criteria: FilterCriteria) -> bool:
    """Year (absent years match any range), director and neighborhood tests."""
    year = record.release_year
    if year is not None and not (criteria.year_min <= year <= criteria.year_max):
        return False
    if criteria.director != ALL and record.director != criteria.director:
        return False
    if criteria.neighborhood != ALL and record.neighborhood != criteria.neighborhood:
        return False
    return True


def evaluate(
    locations: Sequence[Location],
    region_a: QueryRegion,
    region_b: QueryRegion,
    criteria: FilterCriteria,
) -> list[VisibilityResult]:
    """
    Recompute visibility for every location.

    A location is visible when its cached screen position is inside both regions and
    at least one of its records matches the criteria. ``matching_record_count`` is
    reported for every location, visible or not.
    """
    results = []
    for location in locations:
        in_intersection = both_contain(region_a, region_b, location.x, location.y)
        matching = sum(1 for record in location.records if record_matches(record, criteria))
        results.append(
            VisibilityResult(
                location_id=location.location_id,
                visible=in_intersection and matching > 0,
                matching_record_count=matching,
            )
        )
    return results


def total_visible_records(results: Sequence[VisibilityResult]) -> int:
    return sum(r.matching_record_count for r in results if r.visible)


def format_visibility_report(
    locations: Sequence[Location], results: Sequence[VisibilityResult]
) -> str:
    """Plain-text table of the visible locations followed by the totals."""
    lines = [f"{'LOCATION':<40} {'MATCHING':>8} {'RECORDS':>7}"]
    for location, result in zip(locations, results):
        if not result.visible:
            continue
        lines.append(
            f"{location.key_string:<40} {result.matching_record_count:>8} {location.record_count:>7}"
        )
    visible_locations = sum(1 for r in results if r.visible)
    lines.append(f"Visible locations: {visible_locations} of {len(locations)}")
    lines.append(f"Visible records: {total_visible_records(results)}")
    return "\n".join(lines) + "\n"
