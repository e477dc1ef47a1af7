from typing import Optional

from filmfilter.core.schema import Record

RADIUS_RANGE = (3.0, 10.0)


def make_record(
    record_id: int,
    longitude_raw: str = "-122.41582",
    latitude_raw: str = "37.79930",
    release_year: Optional[int] = 1968,
    director: Optional[str] = "Peter Yates",
    neighborhood: Optional[str] = "Russian Hill",
) -> Record:
    """A Record at Taylor and Vallejo unless coordinates are given."""
    return Record(
        record_id=record_id,
        title=f"Film {record_id}",
        release_year=release_year,
        director=director,
        actors=(),
        locations=None,
        neighborhood=neighborhood,
        fun_facts=None,
        longitude=float(longitude_raw),
        latitude=float(latitude_raw),
        longitude_raw=longitude_raw,
        latitude_raw=latitude_raw,
    )
