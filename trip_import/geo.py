"""Geodesic and projection helpers shared by the import stages.

Distances are computed on the WGS84 ellipsoid; stored geometries are projected
into the configured storage CRS and serialised as WKT.
"""

from __future__ import annotations

from datetime import datetime
from functools import lru_cache
from typing import Sequence, Tuple

import numpy as np
import pandas as pd
from pyproj import Geod, Transformer
from shapely.geometry import LineString, Point

GEOD = Geod(ellps="WGS84")


def as_utc(value: datetime | pd.Timestamp | str) -> pd.Timestamp:
    """Return a UTC :class:`pandas.Timestamp`; naive values are treated as UTC.

    Some stores (SQLite) hand back naive datetimes for timezone-aware columns.
    """

    return pd.Timestamp(pd.to_datetime(value, utc=True))


def geodesic_distance_m(
    lon1: np.ndarray,
    lat1: np.ndarray,
    lon2: np.ndarray,
    lat2: np.ndarray,
) -> np.ndarray:
    """Element-wise geodesic distance in meters; NaN where any input is missing."""

    lon1, lat1, lon2, lat2 = (np.asarray(a, dtype=float) for a in (lon1, lat1, lon2, lat2))
    missing = np.isnan(lon1) | np.isnan(lat1) | np.isnan(lon2) | np.isnan(lat2)
    out = np.full(lon1.shape, np.nan)
    if (~missing).any():
        _, _, dist = GEOD.inv(lon1[~missing], lat1[~missing], lon2[~missing], lat2[~missing])
        out[~missing] = dist
    return out


@lru_cache(maxsize=8)
def _transformer(target_crs: str) -> Transformer:
    return Transformer.from_crs("epsg:4326", target_crs, always_xy=True)


def project(lon: Sequence[float], lat: Sequence[float], target_crs: str) -> Tuple[np.ndarray, np.ndarray]:
    """Project WGS84 longitude/latitude arrays to ``target_crs`` x/y arrays."""

    x, y = _transformer(target_crs).transform(np.asarray(lon, dtype=float), np.asarray(lat, dtype=float))
    return np.asarray(x), np.asarray(y)


def point_wkt(x: float, y: float) -> str:
    return Point(float(x), float(y)).wkt


def line_wkt(xs: Sequence[float], ys: Sequence[float]) -> str:
    """Build a LineString WKT from ordered coordinates (at least two)."""

    return LineString(list(zip(map(float, xs), map(float, ys)))).wkt
