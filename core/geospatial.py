"""Record-to-point adapter: find coordinate/value columns and build GeoPoints."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from core.geometry import GeoPoint

logger = logging.getLogger(__name__)


@dataclass
class FieldMapping:
    """Field names tried, in priority order, for each canonical point field."""

    lat_fields: Tuple[str, ...] = ("lat", "latitude", "y")
    lng_fields: Tuple[str, ...] = ("lng", "longitude", "lon", "x")
    value_fields: Tuple[str, ...] = ("value", "data", "count", "amount", "total", "score")
    name_fields: Tuple[str, ...] = ("name", "title", "label", "country", "region")
    time_fields: Tuple[str, ...] = ("year", "date", "time", "period", "time_index", "timeIndex")
    id_field: str = "id"


@dataclass
class CoordinateSummary:
    valid_mask: pd.Series
    lat: pd.Series
    lng: pd.Series

    @property
    def valid_points(self) -> int:
        return int(self.valid_mask.sum())

    @property
    def invalid_points(self) -> int:
        return int(len(self.valid_mask)) - self.valid_points

    @property
    def valid_ratio(self) -> float:
        total = len(self.valid_mask)
        return self.valid_points / total if total else 0.0


def detect_coordinate_columns(
    df: pd.DataFrame,
    mapping: Optional[FieldMapping] = None,
) -> Optional[Tuple[str, str]]:
    """
    Return the (lat, lng) column names named by ``mapping``.

    Returns None when either side has no matching column.
    """
    mapping = mapping or FieldMapping()
    if df is None or df.empty:
        return None

    lat_col = _find_column(df, mapping.lat_fields)
    lng_col = _find_column(df, mapping.lng_fields)
    if lat_col is None or lng_col is None:
        return None
    return lat_col, lng_col


def validate_coordinates(df: pd.DataFrame, lat_col: str, lng_col: str) -> CoordinateSummary:
    """Coerce both columns to numbers and mask rows inside the WGS84 ranges."""
    lat = pd.to_numeric(df[lat_col], errors="coerce")
    lng = pd.to_numeric(df[lng_col], errors="coerce")
    return CoordinateSummary(
        valid_mask=lat.between(-90, 90) & lng.between(-180, 180),
        lat=lat,
        lng=lng,
    )


def records_to_points(
    records: Optional[Sequence[Dict[str, Any]]],
    mapping: Optional[FieldMapping] = None,
) -> List[GeoPoint]:
    """
    Convert raw rows into validated GeoPoints.

    Rows with missing or out-of-range coordinates are dropped. When a value
    column exists, rows whose value is not numeric are dropped too; without
    one every point gets value 0. Time values are mapped to an integer index
    by order of first appearance.

    Args:
        records: Raw dict rows
        mapping: Field priorities (defaults to FieldMapping())

    Returns:
        List of GeoPoint in input order
    """
    mapping = mapping or FieldMapping()
    if not records:
        return []

    df = pd.DataFrame.from_records(list(records))
    columns = detect_coordinate_columns(df, mapping)
    if columns is None:
        logger.debug("No lat/lng columns among %s", list(df.columns))
        return []

    lat_col, lng_col = columns
    coords = validate_coordinates(df, lat_col, lng_col)
    lat, lng = coords.lat, coords.lng
    valid_mask = coords.valid_mask.copy()

    value_col = _find_column(df, mapping.value_fields)
    if value_col is not None:
        values = pd.to_numeric(df[value_col], errors="coerce")
        valid_mask &= values.notna() & np.isfinite(values)
    else:
        values = pd.Series(0.0, index=df.index)

    name_col = _find_column(df, mapping.name_fields)
    time_col = _find_column(df, mapping.time_fields)
    time_lookup: Dict[Any, int] = {}
    if time_col is not None:
        for raw_time in df[time_col].dropna():
            time_lookup.setdefault(raw_time, len(time_lookup))

    id_col = mapping.id_field if mapping.id_field in df.columns else None
    used = {lat_col, lng_col, value_col, name_col, time_col, id_col}

    points: List[GeoPoint] = []
    for row_index in df.index[valid_mask]:
        row = df.loc[row_index]
        time_value = row[time_col] if time_col is not None else None
        properties = {
            key: _plain(val) for key, val in row.items()
            if key not in used and not _is_missing(val)
        }
        points.append(
            GeoPoint(
                id=str(row[id_col]) if id_col is not None and not _is_missing(row[id_col]) else f"point-{row_index}",
                lat=float(lat[row_index]),
                lng=float(lng[row_index]),
                value=float(values[row_index]),
                properties=properties,
                time_index=time_lookup.get(time_value) if not _is_missing(time_value) else None,
                name=str(row[name_col]) if name_col is not None and not _is_missing(row[name_col]) else None,
            )
        )

    dropped = len(df) - len(points)
    if dropped:
        logger.debug("Dropped %d of %d records during point extraction", dropped, len(df))
    return points


def _find_column(df: pd.DataFrame, names: Sequence[str]) -> Optional[str]:
    lower_map = {str(col).lower(): col for col in df.columns}
    for name in names:
        if name.lower() in lower_map:
            return lower_map[name.lower()]
    return None


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple, dict, set)):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def _plain(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value
