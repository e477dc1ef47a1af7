"""Tests for the visibility filter pass."""

import time
from dataclasses import replace
from pathlib import Path

import pytest
from syrupy import SnapshotAssertion

from filmfilter.core.filter_evaluator import (
    ALL,
    FilterCriteria,
    VisibilityResult,
    evaluate,
    format_visibility_report,
    record_matches,
    total_visible_records,
)
from filmfilter.core.geo_projection import MercatorProjection
from filmfilter.core.location_aggregation import aggregate_records
from filmfilter.core.map_settings import DEFAULT_MAP_SETTINGS, RadiusUnit
from filmfilter.core.query_region import QueryRegionPair
from filmfilter.core.schema import load_csv_to_dataframe, records_from_dataframe
from filmfilter.core.test_fixtures import RADIUS_RANGE, make_record
from tests.util.syrupy_text_snapshot import TextSnapshotExtension

PIXEL_SETTINGS = replace(
    DEFAULT_MAP_SETTINGS, radius_unit=RadiusUnit.PIXELS, default_radius=20.0
)


@pytest.fixture
def projection() -> MercatorProjection:
    return MercatorProjection.from_settings(DEFAULT_MAP_SETTINGS)


@pytest.fixture
def criteria() -> FilterCriteria:
    return FilterCriteria.default(DEFAULT_MAP_SETTINGS)


def test_default_criteria(criteria: FilterCriteria) -> None:
    assert criteria == FilterCriteria(year_min=1940, year_max=2025, director=ALL, neighborhood=ALL)


def test_record_matches_year_range(criteria: FilterCriteria) -> None:
    criteria = replace(criteria, year_min=1960, year_max=1990)
    assert record_matches(make_record(0, release_year=1960), criteria)
    assert record_matches(make_record(0, release_year=1990), criteria)
    assert not record_matches(make_record(0, release_year=1959), criteria)
    assert not record_matches(make_record(0, release_year=1991), criteria)


def test_record_matches_missing_year_is_wildcard(criteria: FilterCriteria) -> None:
    criteria = replace(criteria, year_min=2000, year_max=2000)
    assert record_matches(make_record(0, release_year=None), criteria)


def test_record_matches_categories(criteria: FilterCriteria) -> None:
    record = make_record(0, director="Peter Yates", neighborhood="Russian Hill")
    assert record_matches(record, replace(criteria, director="Peter Yates"))
    assert not record_matches(record, replace(criteria, director="Don Siegel"))
    assert record_matches(record, replace(criteria, neighborhood="Russian Hill"))
    assert not record_matches(record, replace(criteria, neighborhood="Presidio"))

    # Missing categorical values only match "all".
    anonymous = make_record(1, director=None, neighborhood=None)
    assert record_matches(anonymous, criteria)
    assert not record_matches(anonymous, replace(criteria, director="Peter Yates"))
    assert not record_matches(anonymous, replace(criteria, neighborhood="Russian Hill"))


def test_year_bounds_clamp_each_other(criteria: FilterCriteria) -> None:
    raised_min = criteria.with_year_min(2030)
    assert (raised_min.year_min, raised_min.year_max) == (2030, 2030)

    lowered_max = criteria.with_year_max(1930)
    assert (lowered_max.year_min, lowered_max.year_max) == (1930, 1930)

    within = criteria.with_year_min(1970).with_year_max(1980)
    assert (within.year_min, within.year_max) == (1970, 1980)


def test_evaluate_shared_location_end_to_end(
    projection: MercatorProjection, criteria: FilterCriteria
) -> None:
    """Three films at one corner, one far away, both regions on the corner."""
    records = [
        make_record(0, release_year=1950, director="X"),
        make_record(1, release_year=1980, director="Y"),
        make_record(2, release_year=2010, director="X"),
        make_record(3, "-122.52000", "37.70500", release_year=1980, director="X"),
    ]
    locations = aggregate_records(records, projection, RADIUS_RANGE)
    shared, distant = locations
    regions = QueryRegionPair(PIXEL_SETTINGS, projection)
    regions.a.set_center(shared.x - 5, shared.y)
    regions.b.set_center(shared.x + 5, shared.y)

    results = evaluate(
        locations, regions.a, regions.b, replace(criteria, year_min=1960)
    )

    assert results == [
        VisibilityResult(location_id=0, visible=True, matching_record_count=2),
        VisibilityResult(location_id=1, visible=False, matching_record_count=1),
    ]
    assert total_visible_records(results) == 2


def test_evaluate_requires_a_matching_record(
    projection: MercatorProjection, criteria: FilterCriteria
) -> None:
    locations = aggregate_records([make_record(0, director="X")], projection, RADIUS_RANGE)
    regions = QueryRegionPair(PIXEL_SETTINGS, projection)
    regions.a.set_center(locations[0].x, locations[0].y)
    regions.b.set_center(locations[0].x, locations[0].y)

    results = evaluate(locations, regions.a, regions.b, replace(criteria, director="Y"))

    assert results == [VisibilityResult(0, visible=False, matching_record_count=0)]
    assert total_visible_records(results) == 0


def test_evaluate_disjoint_regions_hide_everything(
    projection: MercatorProjection, criteria: FilterCriteria
) -> None:
    records = [make_record(i, f"-122.4{i}", "37.78") for i in range(5)]
    locations = aggregate_records(records, projection, RADIUS_RANGE)
    settings = replace(PIXEL_SETTINGS, default_radius=1.0)
    regions = QueryRegionPair(settings, projection)

    results = evaluate(locations, regions.a, regions.b, criteria)

    assert len(results) == 5
    assert not any(result.visible for result in results)


def test_evaluate_per_record_locations(
    projection: MercatorProjection, criteria: FilterCriteria
) -> None:
    """With one record per location, visibility is the conjunction of every test."""
    records = [
        make_record(0, release_year=1950),
        make_record(1, release_year=1980),
        make_record(2, release_year=None, director="Other"),
    ]
    locations = aggregate_records(
        records, projection, RADIUS_RANGE, group_by_location=False
    )
    regions = QueryRegionPair(PIXEL_SETTINGS, projection)
    regions.a.set_center(locations[0].x, locations[0].y)
    regions.b.set_center(locations[0].x, locations[0].y)

    results = evaluate(
        locations,
        regions.a,
        regions.b,
        replace(criteria, year_min=1960, director="Peter Yates"),
    )

    assert [result.visible for result in results] == [False, True, False]
    assert total_visible_records(results) == 1


def test_evaluate_is_idempotent(
    sample_csv_path: Path, projection: MercatorProjection, criteria: FilterCriteria
) -> None:
    df, _ = load_csv_to_dataframe(sample_csv_path)
    locations = aggregate_records(records_from_dataframe(df), projection, RADIUS_RANGE)
    regions = QueryRegionPair(DEFAULT_MAP_SETTINGS, projection)
    regions.a.set_radius(4.0)
    regions.b.set_radius(4.0)

    first = evaluate(locations, regions.a, regions.b, criteria)
    second = evaluate(locations, regions.a, regions.b, criteria)

    assert first == second
    assert len(first) == len(locations)


def test_visibility_report_for_sample_data(
    sample_csv_path: Path,
    projection: MercatorProjection,
    criteria: FilterCriteria,
    snapshot: SnapshotAssertion,
) -> None:
    """Regions large enough to cover the whole map leave only the criteria in play."""
    df, _ = load_csv_to_dataframe(sample_csv_path)
    locations = aggregate_records(records_from_dataframe(df), projection, RADIUS_RANGE)
    regions = QueryRegionPair(replace(PIXEL_SETTINGS, default_radius=5000.0), projection)

    results = evaluate(
        locations,
        regions.a,
        regions.b,
        criteria.with_year_min(1960).with_year_max(2000),
    )

    report = format_visibility_report(locations, results)
    assert report == snapshot(extension_class=TextSnapshotExtension)


def test_evaluate_a_few_thousand_locations_within_a_frame(
    projection: MercatorProjection, criteria: FilterCriteria
) -> None:
    """A full pass reruns on every drag event, so it must fit in an interactive frame."""
    records = [
        make_record(
            i,
            f"{-122.50 + (i % 100) * 0.0015:.5f}",
            f"{37.71 + (i // 100) * 0.002:.5f}",
            release_year=1940 + i % 85,
            director=f"Director {i % 40}",
        )
        for i in range(5000)
    ]
    locations = aggregate_records(records, projection, RADIUS_RANGE)
    assert len(locations) == 5000
    regions = QueryRegionPair(DEFAULT_MAP_SETTINGS, projection)
    regions.a.set_radius(3.0)
    regions.b.set_radius(3.0)
    criteria = replace(criteria.with_year_min(1960), director="Director 7")

    timings = []
    for _ in range(5):
        start_time = time.perf_counter()
        results = evaluate(locations, regions.a, regions.b, criteria)
        timings.append(time.perf_counter() - start_time)

    assert len(results) == 5000
    assert min(timings) < 0.050, f"{timings=}"
