"""The two user-positioned circular query regions."""

import logging
import math
from dataclasses import dataclass, field
from enum import StrEnum

from filmfilter.core.geo_projection import MercatorProjection
from filmfilter.core.map_settings import MapSettings, RadiusUnit

logger = logging.getLogger(__name__)


class RegionId(StrEnum):
    A = "A"
    B = "B"


@dataclass
class QueryRegion:
    """
    A draggable, resizable circle on the map canvas.

    ``radius`` is in the settings' radius unit; ``radius_pixels`` converts it for the
    membership test.
    """

    region_id: RegionId
    x: float
    y: float
    radius: float
    settings: MapSettings = field(repr=False)
    projection: MercatorProjection = field(repr=False)

    @classmethod
    def create(
        cls,
        region_id: RegionId,
        settings: MapSettings,
        projection: MercatorProjection,
    ) -> "QueryRegion":
        region = cls(region_id, 0.0, 0.0, settings.default_radius, settings, projection)
        region.reset()
        return region

    @property
    def default_center(self) -> tuple[float, float]:
        fraction = 1 / 3 if self.region_id == RegionId.A else 2 / 3
        return self.settings.map_width * fraction, self.settings.map_height / 2

    @property
    def radius_pixels(self) -> float:
        if self.settings.radius_unit == RadiusUnit.KILOMETERS:
            return self.projection.km_to_pixels(self.radius)
        return self.radius

    def set_center(self, x: float, y: float) -> None:
        """Move the center, clamped to the canvas."""
        if not (math.isfinite(x) and math.isfinite(y)):
            raise ValueError(f"Center must be finite, got {x=}, {y=} for region {self.region_id}")
        self.x = min(max(x, 0.0), self.settings.map_width)
        self.y = min(max(y, 0.0), self.settings.map_height)

    def set_radius(self, value: float) -> None:
        if not math.isfinite(value) or value < 0:
            raise ValueError(f"Radius must be finite and >= 0, got {value=} for region {self.region_id}")
        self.radius = value

    def contains(self, px: float, py: float) -> bool:
        """Inclusive point-in-circle test in screen space."""
        dx = px - self.x
        dy = py - self.y
        radius_pixels = self.radius_pixels
        return dx * dx + dy * dy <= radius_pixels * radius_pixels

    def reset(self) -> None:
        self.x, self.y = self.default_center
        self.radius = self.settings.default_radius


def both_contain(
    region_a: QueryRegion, region_b: QueryRegion, px: float, py: float
) -> bool:
    """True when the point lies in the intersection of both regions."""
    return region_a.contains(px, py) and region_b.contains(px, py)


class QueryRegionPair:
    """Owns exactly two query regions, A and B, for the lifetime of a session."""

    def __init__(self, settings: MapSettings, projection: MercatorProjection) -> None:
        self.a = QueryRegion.create(RegionId.A, settings, projection)
        self.b = QueryRegion.create(RegionId.B, settings, projection)

    def __iter__(self):
        return iter((self.a, self.b))

    def get(self, region_id: RegionId) -> QueryRegion:
        if region_id == RegionId.A:
            return self.a
        elif region_id == RegionId.B:
            return self.b
        else:
            raise ValueError(f"Invalid region id: {region_id}")

    def both_contain(self, px: float, py: float) -> bool:
        return both_contain(self.a, self.b, px, py)

    def reset(self) -> None:
        self.a.reset()
        self.b.reset()
        logger.info(f"Reset query regions to {self.a=}, {self.b=}")
