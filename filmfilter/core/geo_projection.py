"""Spherical Mercator projection fitted to a fixed map image."""

import logging
import math
from dataclasses import dataclass
from functools import cached_property

import numpy as np

from filmfilter.core.map_settings import MapSettings

logger = logging.getLogger(__name__)

# Approximate length of one degree of latitude.
KM_PER_DEGREE = 111.0


def _mercator_y(latitude_radians: float) -> float:
    return math.log(math.tan(math.pi / 4 + latitude_radians / 2))


@dataclass(frozen=True)
class MercatorProjection:
    """
    Maps (longitude, latitude) in degrees to screen pixels, y growing downward.

    Screen coordinates are ``x = translate_x + scale * lambda`` and
    ``y = translate_y - scale * ln(tan(pi/4 + phi/2))`` with lambda and phi in radians.
    Build instances with ``fit_extent`` rather than by hand.
    """

    scale: float
    translate_x: float
    translate_y: float
    center_longitude: float
    center_latitude: float

    @classmethod
    def fit_extent(
        cls,
        width: float,
        height: float,
        longitude_range: tuple[float, float],
        latitude_range: tuple[float, float],
    ) -> "MercatorProjection":
        """
        Fit the projection so the line between the two frame corners fills the canvas.

        The scale is uniform (the projection stays conformal), so when the frame and the
        canvas have different aspect ratios one axis fills exactly and the other is
        centered.
        """
        lon0, lon1 = longitude_range
        lat0, lat1 = latitude_range
        if lon0 == lon1 or lat0 == lat1:
            raise ValueError(
                f"Degenerate geographic frame: {longitude_range=}, {latitude_range=}"
            )
        if not all(-90 < lat < 90 for lat in latitude_range):
            raise ValueError(
                f"Latitudes must be strictly between -90 and 90 for Mercator, got {latitude_range=}"
            )

        raw_xs = [math.radians(lon0), math.radians(lon1)]
        # Screen y is the negated Mercator northing.
        raw_ys = [-_mercator_y(math.radians(lat0)), -_mercator_y(math.radians(lat1))]
        x_min, x_max = min(raw_xs), max(raw_xs)
        y_min, y_max = min(raw_ys), max(raw_ys)

        scale = min(width / (x_max - x_min), height / (y_max - y_min))
        translate_x = (width - scale * (x_max + x_min)) / 2
        translate_y = (height - scale * (y_max + y_min)) / 2

        projection = cls(
            scale=scale,
            translate_x=translate_x,
            translate_y=translate_y,
            center_longitude=(lon0 + lon1) / 2,
            center_latitude=(lat0 + lat1) / 2,
        )
        logger.info(
            f"Fitted Mercator projection {scale=:.3f}, {translate_x=:.3f}, {translate_y=:.3f} for {width=}, {height=}"
        )
        return projection

    @classmethod
    def from_settings(cls, settings: MapSettings) -> "MercatorProjection":
        return cls.fit_extent(
            settings.map_width,
            settings.map_height,
            settings.longitude_range,
            settings.latitude_range,
        )

    def project(self, longitude: float, latitude: float) -> tuple[float, float]:
        x = self.translate_x + self.scale * math.radians(longitude)
        y = self.translate_y - self.scale * _mercator_y(math.radians(latitude))
        return x, y

    def project_many(
        self, longitudes: np.ndarray, latitudes: np.ndarray
    ) -> tuple[np.ndarray, np.ndarray]:
        """Vectorized ``project`` for arrays of coordinates."""
        lon_rad = np.radians(np.asarray(longitudes, dtype=float))
        lat_rad = np.radians(np.asarray(latitudes, dtype=float))
        xs = self.translate_x + self.scale * lon_rad
        ys = self.translate_y - self.scale * np.log(np.tan(np.pi / 4 + lat_rad / 2))
        return xs, ys

    @cached_property
    def pixels_per_km(self) -> float:
        """
        East-west pixel length of one kilometer at the frame's center latitude.

        This is a local linearization, only accurate near the middle of the map.
        """
        km_per_degree = KM_PER_DEGREE * math.cos(math.radians(self.center_latitude))
        degrees_per_km = 1 / km_per_degree
        x1, _ = self.project(self.center_longitude, self.center_latitude)
        x2, _ = self.project(self.center_longitude + degrees_per_km, self.center_latitude)
        return abs(x2 - x1)

    def km_to_pixels(self, km: float) -> float:
        return km * self.pixels_per_km
