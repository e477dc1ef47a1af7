"""Map canvas, geographic frame and default control values."""

from dataclasses import dataclass
from enum import StrEnum


class RadiusUnit(StrEnum):
    """Unit the query region radius sliders are denominated in."""

    KILOMETERS = "km"
    PIXELS = "px"


@dataclass(frozen=True)
class MapSettings:
    """
    Immutable configuration for one browsing session.

    The defaults describe the San Francisco street map image scaled down by 2.4
    and the geographic box it covers.
    """

    map_width: float = 1968 / 2.4
    map_height: float = 1580 / 2.4
    longitude_range: tuple[float, float] = (-122.52876879101329, -122.34501499128038)
    latitude_range: tuple[float, float] = (37.69947941416328, 37.81633202723721)
    radius_unit: RadiusUnit = RadiusUnit.KILOMETERS
    default_radius: float = 1.0
    default_year_min: int = 1940
    default_year_max: int = 2025
    display_radius_range: tuple[float, float] = (3.0, 10.0)
    group_by_location: bool = True

    def __post_init__(self) -> None:
        if self.map_width <= 0 or self.map_height <= 0:
            raise ValueError(
                f"Map size must be positive, got {self.map_width=}, {self.map_height=}"
            )
        if self.default_year_min > self.default_year_max:
            raise ValueError(
                f"Default year range is inverted: {self.default_year_min=} > {self.default_year_max=}"
            )
        if self.default_radius < 0:
            raise ValueError(f"Default radius must be >= 0, got {self.default_radius=}")

    @property
    def radius_slider_range(self) -> tuple[float, float, float]:
        """(min, max, step) of the radius sliders, in the radius unit, always covering the default."""
        if self.radius_unit == RadiusUnit.KILOMETERS:
            low, high, step = 0.1, 5.0, 0.1
        else:
            low, high, step = 1.0, float(round(max(self.map_width, self.map_height) / 2)), 1.0
        return min(low, self.default_radius), max(high, self.default_radius), step


DEFAULT_MAP_SETTINGS = MapSettings()
