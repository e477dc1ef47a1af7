"""Tests for the query region model."""

import math
from dataclasses import replace

import pytest

from filmfilter.core.geo_projection import MercatorProjection
from filmfilter.core.map_settings import DEFAULT_MAP_SETTINGS, MapSettings, RadiusUnit
from filmfilter.core.query_region import (
    QueryRegion,
    QueryRegionPair,
    RegionId,
    both_contain,
)

PIXEL_SETTINGS = replace(
    DEFAULT_MAP_SETTINGS, radius_unit=RadiusUnit.PIXELS, default_radius=50.0
)


@pytest.fixture
def projection() -> MercatorProjection:
    return MercatorProjection.from_settings(DEFAULT_MAP_SETTINGS)


@pytest.fixture
def pixel_region(projection: MercatorProjection) -> QueryRegion:
    region = QueryRegion.create(RegionId.A, PIXEL_SETTINGS, projection)
    region.set_center(100.0, 200.0)
    return region


def test_create_uses_default_positions(projection: MercatorProjection) -> None:
    regions = QueryRegionPair(DEFAULT_MAP_SETTINGS, projection)
    width, height = DEFAULT_MAP_SETTINGS.map_width, DEFAULT_MAP_SETTINGS.map_height

    assert (regions.a.x, regions.a.y) == pytest.approx((width / 3, height / 2))
    assert (regions.b.x, regions.b.y) == pytest.approx((2 * width / 3, height / 2))
    assert regions.a.radius == 1.0
    assert regions.b.radius == 1.0
    assert [region.region_id for region in regions] == [RegionId.A, RegionId.B]


def test_contains_center(pixel_region: QueryRegion) -> None:
    assert pixel_region.contains(100.0, 200.0)


def test_contains_boundary_is_inclusive(pixel_region: QueryRegion) -> None:
    # A 3-4-5 triangle scaled by 10 lands exactly on the 50 pixel circle.
    assert pixel_region.contains(130.0, 240.0)
    assert pixel_region.contains(150.0, 200.0)
    assert not pixel_region.contains(150.0 + 1e-9, 200.0)


def test_contains_zero_radius(pixel_region: QueryRegion) -> None:
    pixel_region.set_radius(0.0)
    assert pixel_region.contains(100.0, 200.0)
    assert not pixel_region.contains(100.5, 200.0)


def test_km_radius_is_converted(projection: MercatorProjection) -> None:
    region = QueryRegion.create(RegionId.A, DEFAULT_MAP_SETTINGS, projection)
    region.set_radius(2.0)
    radius_pixels = projection.km_to_pixels(2.0)

    assert region.radius_pixels == pytest.approx(radius_pixels)
    assert region.contains(region.x + radius_pixels * 0.99, region.y)
    assert not region.contains(region.x + radius_pixels * 1.01, region.y)


def test_set_center_clamps_to_canvas(pixel_region: QueryRegion) -> None:
    pixel_region.set_center(-20.0, 10_000.0)
    assert (pixel_region.x, pixel_region.y) == (0.0, PIXEL_SETTINGS.map_height)

    pixel_region.set_center(10_000.0, -5.0)
    assert (pixel_region.x, pixel_region.y) == (PIXEL_SETTINGS.map_width, 0.0)


def test_set_radius_rejects_negative(pixel_region: QueryRegion) -> None:
    with pytest.raises(ValueError):
        pixel_region.set_radius(-1.0)


def test_reset_restores_defaults(projection: MercatorProjection) -> None:
    regions = QueryRegionPair(PIXEL_SETTINGS, projection)
    regions.a.set_center(10.0, 10.0)
    regions.a.set_radius(5.0)
    regions.b.set_center(20.0, 20.0)
    regions.b.set_radius(7.0)

    regions.reset()

    width, height = PIXEL_SETTINGS.map_width, PIXEL_SETTINGS.map_height
    assert (regions.a.x, regions.a.y, regions.a.radius) == pytest.approx(
        (width / 3, height / 2, 50.0)
    )
    assert (regions.b.x, regions.b.y, regions.b.radius) == pytest.approx(
        (2 * width / 3, height / 2, 50.0)
    )


def test_both_contain_is_commutative_and_conjunctive(
    projection: MercatorProjection,
) -> None:
    settings = replace(PIXEL_SETTINGS, default_radius=120.0)
    regions = QueryRegionPair(settings, projection)
    regions.a.set_center(300.0, 300.0)
    regions.b.set_center(400.0, 300.0)

    for i in range(40):
        for j in range(40):
            px, py = i * 20.0, j * 16.0
            expected = regions.a.contains(px, py) and regions.b.contains(px, py)
            assert both_contain(regions.a, regions.b, px, py) == expected
            assert both_contain(regions.b, regions.a, px, py) == expected
            assert regions.both_contain(px, py) == expected

    assert regions.both_contain(350.0, 300.0)
    assert not regions.both_contain(200.0, 300.0)


def test_disjoint_regions_have_empty_intersection(
    projection: MercatorProjection,
) -> None:
    settings = replace(PIXEL_SETTINGS, default_radius=10.0)
    regions = QueryRegionPair(settings, projection)

    points = [(regions.a.x, regions.a.y), (regions.b.x, regions.b.y)]
    assert not any(regions.both_contain(px, py) for px, py in points)
    assert math.dist(points[0], points[1]) > 20.0


def test_get_by_region_id(projection: MercatorProjection) -> None:
    regions = QueryRegionPair(DEFAULT_MAP_SETTINGS, projection)
    assert regions.get(RegionId.A) is regions.a
    assert regions.get(RegionId("B")) is regions.b


def test_map_settings_validation() -> None:
    with pytest.raises(ValueError):
        MapSettings(default_year_min=2000, default_year_max=1990)
    with pytest.raises(ValueError):
        MapSettings(map_width=0)


@pytest.mark.parametrize("x, y", [(math.nan, 10.0), (10.0, math.inf), (-math.inf, math.nan)])
def test_set_center_rejects_non_finite(pixel_region: QueryRegion, x: float, y: float) -> None:
    with pytest.raises(ValueError):
        pixel_region.set_center(x, y)
    assert (pixel_region.x, pixel_region.y) == (100.0, 200.0)


def test_set_radius_rejects_non_finite(pixel_region: QueryRegion) -> None:
    with pytest.raises(ValueError):
        pixel_region.set_radius(math.nan)
    with pytest.raises(ValueError):
        pixel_region.set_radius(math.inf)
    assert pixel_region.radius == 50.0


def test_radius_slider_range_covers_default() -> None:
    assert DEFAULT_MAP_SETTINGS.radius_slider_range == (0.1, 5.0, 0.1)

    low, high, step = replace(PIXEL_SETTINGS, default_radius=40.0).radius_slider_range
    assert (low, step) == (1.0, 1.0)
    assert high == round(DEFAULT_MAP_SETTINGS.map_width / 2)
    assert low <= 40.0 <= high

    assert replace(DEFAULT_MAP_SETTINGS, default_radius=12.0).radius_slider_range[1] == 12.0
