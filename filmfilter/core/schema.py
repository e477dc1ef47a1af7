"""Schema definitions and CSV loading for the film locations dataset."""

import logging
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Iterable, Optional

import numpy as np
import pandas as pd
import pandera.pandas as pa
from pandera.typing import Series

logger = logging.getLogger(__name__)


class SchemaColumns(StrEnum):
    """Column names of the normalized film locations DataFrame."""

    # Used to refer to the DataFrame integer index.
    DF_ID = "df_id"

    TITLE = "TITLE"
    RELEASE_YEAR = "RELEASE_YEAR"
    DIRECTOR = "DIRECTOR"
    ACTOR_1 = "ACTOR_1"
    ACTOR_2 = "ACTOR_2"
    ACTOR_3 = "ACTOR_3"
    LOCATIONS = "LOCATIONS"
    NEIGHBORHOOD = "NEIGHBORHOOD"
    FUN_FACTS = "FUN_FACTS"
    LONGITUDE = "LONGITUDE"
    LATITUDE = "LATITUDE"
    # The coordinate strings exactly as they appear in the source, used as the grouping key.
    LONGITUDE_RAW = "LONGITUDE_RAW"
    LATITUDE_RAW = "LATITUDE_RAW"


C = SchemaColumns

# Source CSV header -> normalized column.
CSV_COLUMNS: dict[str, SchemaColumns] = {
    "Title": C.TITLE,
    "Release Year": C.RELEASE_YEAR,
    "Director": C.DIRECTOR,
    "Actor 1": C.ACTOR_1,
    "Actor 2": C.ACTOR_2,
    "Actor 3": C.ACTOR_3,
    "Locations": C.LOCATIONS,
    "Analysis Neighborhood": C.NEIGHBORHOOD,
    "Fun Facts": C.FUN_FACTS,
    "Longitude": C.LONGITUDE_RAW,
    "Latitude": C.LATITUDE_RAW,
}

TEXT_COLUMNS = [
    C.TITLE,
    C.DIRECTOR,
    C.ACTOR_1,
    C.ACTOR_2,
    C.ACTOR_3,
    C.LOCATIONS,
    C.NEIGHBORHOOD,
    C.FUN_FACTS,
]


class FilmLocationSchema(pa.DataFrameModel):
    TITLE: Series[str] = pa.Field(nullable=True)
    RELEASE_YEAR: Series[float] = pa.Field(nullable=True, coerce=True)
    DIRECTOR: Series[str] = pa.Field(nullable=True)
    ACTOR_1: Series[str] = pa.Field(nullable=True)
    ACTOR_2: Series[str] = pa.Field(nullable=True)
    ACTOR_3: Series[str] = pa.Field(nullable=True)
    LOCATIONS: Series[str] = pa.Field(nullable=True)
    NEIGHBORHOOD: Series[str] = pa.Field(nullable=True)
    FUN_FACTS: Series[str] = pa.Field(nullable=True)
    LONGITUDE: Series[float] = pa.Field(ge=-180, le=180, coerce=True)
    LATITUDE: Series[float] = pa.Field(ge=-90, le=90, coerce=True)
    LONGITUDE_RAW: Series[str]
    LATITUDE_RAW: Series[str]

    class Config:
        strict = True


required_columns = [
    C.TITLE,
    C.RELEASE_YEAR,
    C.DIRECTOR,
    C.ACTOR_1,
    C.ACTOR_2,
    C.ACTOR_3,
    C.LOCATIONS,
    C.NEIGHBORHOOD,
    C.FUN_FACTS,
    C.LONGITUDE,
    C.LATITUDE,
    C.LONGITUDE_RAW,
    C.LATITUDE_RAW,
]


@dataclass(frozen=True)
class LoadStats:
    """Row counts from one CSV load."""

    source_row_count: int
    loaded_row_count: int

    @property
    def dropped_row_count(self) -> int:
        return self.source_row_count - self.loaded_row_count


@dataclass(frozen=True)
class Record:
    """One film location row."""

    record_id: int
    title: Optional[str]
    # Integral years are ints. Other numeric years are kept as floats so they still
    # compare against the year range.
    release_year: Optional[float]
    director: Optional[str]
    actors: tuple[str, ...]
    locations: Optional[str]
    neighborhood: Optional[str]
    fun_facts: Optional[str]
    longitude: float
    latitude: float
    longitude_raw: str
    latitude_raw: str


def _clean_text(values: pd.Series) -> pd.Series:
    """Strip whitespace and turn empty strings into nulls."""
    stripped = values.astype(str).str.strip()
    return stripped.mask(stripped == "").astype(object)


def _to_float(values: pd.Series) -> pd.Series:
    """Standard numeric coercion: anything non-numeric becomes NaN."""
    return pd.to_numeric(values.str.strip(), errors="coerce").astype(float)


def _coerce_year(values: pd.Series) -> pd.Series:
    """Numeric years as floats; missing, non-numeric, non-finite and zero values become null."""
    numeric = _to_float(values)
    return numeric.where(np.isfinite(numeric) & (numeric != 0))


def normalize_film_locations(raw_df: pd.DataFrame) -> tuple[pd.DataFrame, LoadStats]:
    """
    Normalize a frame of source CSV strings into a FilmLocationSchema frame.

    Source columns that are missing are treated as empty. Rows whose longitude or
    latitude is not a finite number inside the valid degree range are dropped.

    Args:
        raw_df: DataFrame with the source CSV headers and string values

    Returns:
        Tuple of the validated DataFrame (df_id index) and the load statistics
    """
    source_row_count = len(raw_df)
    df = pd.DataFrame(index=raw_df.index)
    for header, column in CSV_COLUMNS.items():
        if header in raw_df.columns:
            df[column] = raw_df[header].fillna("").astype(str)
        else:
            df[column] = ""

    for column in TEXT_COLUMNS:
        df[column] = _clean_text(df[column])
    df[C.RELEASE_YEAR] = _coerce_year(df[C.RELEASE_YEAR])

    df[C.LONGITUDE_RAW] = df[C.LONGITUDE_RAW].str.strip()
    df[C.LATITUDE_RAW] = df[C.LATITUDE_RAW].str.strip()
    df[C.LONGITUDE] = _to_float(df[C.LONGITUDE_RAW])
    df[C.LATITUDE] = _to_float(df[C.LATITUDE_RAW])
    # Rows outside the valid degree range are dropped along with NaN and infinities:
    # Mercator is undefined at the poles and past them.
    has_coordinates = df[C.LONGITUDE].between(-180, 180) & df[C.LATITUDE].between(
        -90, 90
    )
    df = df.loc[has_coordinates, required_columns]

    validated_df = FilmLocationSchema.validate(df, lazy=True)
    # Set stable df_id index using pandas int64 index
    validated_df = validated_df.reset_index(drop=True)
    validated_df.index.name = C.DF_ID

    stats = LoadStats(
        source_row_count=source_row_count, loaded_row_count=len(validated_df)
    )
    return validated_df, stats


def load_csv_to_dataframe(csv_path: Path) -> tuple[pd.DataFrame, LoadStats]:
    """
    Load a film locations CSV file into a DataFrame conforming to FilmLocationSchema.

    Every field is read as a string so the raw coordinate text is preserved for grouping.

    Args:
        csv_path: Path to the CSV file

    Returns:
        Tuple of the validated DataFrame and the load statistics
    """
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_path}")

    raw_df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)
    df, stats = normalize_film_locations(raw_df)

    logger.info(
        f"Loaded {stats.loaded_row_count} valid locations from {csv_path=}, dropped {stats.dropped_row_count} rows without finite coordinates"
    )
    return df, stats


def _optional(value: object) -> Optional[object]:
    return None if pd.isna(value) else value


def _year_value(year: Optional[float]) -> Optional[float]:
    if year is None:
        return None
    return int(year) if float(year).is_integer() else float(year)


def records_from_dataframe(df: pd.DataFrame) -> list[Record]:
    """Convert a FilmLocationSchema DataFrame into Record objects, in row order."""
    records = []
    for row in df.itertuples():
        year = _optional(row.RELEASE_YEAR)
        actors = tuple(
            actor
            for actor in (row.ACTOR_1, row.ACTOR_2, row.ACTOR_3)
            if _optional(actor) is not None
        )
        records.append(
            Record(
                record_id=int(row.Index),
                title=_optional(row.TITLE),
                release_year=_year_value(year),
                director=_optional(row.DIRECTOR),
                actors=actors,
                locations=_optional(row.LOCATIONS),
                neighborhood=_optional(row.NEIGHBORHOOD),
                fun_facts=_optional(row.FUN_FACTS),
                longitude=float(row.LONGITUDE),
                latitude=float(row.LATITUDE),
                longitude_raw=row.LONGITUDE_RAW,
                latitude_raw=row.LATITUDE_RAW,
            )
        )
    return records


def unique_field_values(records: Iterable[Record], field: str) -> list[str]:
    """Distinct non-empty values of a Record text field, sorted for dropdowns."""
    values = {
        value.strip()
        for record in records
        if (value := getattr(record, field)) and value.strip()
    }
    return sorted(values)
