"""Kinematic enrichment: lags, elapsed time, distances and trailing averages.

All computations follow the device sequence order of the working set. Trailing
averages are produced in a single forward pass over a fixed-size ring buffer
that keeps a running sum per window size.
"""

from __future__ import annotations

import math
from collections import deque
from typing import Deque, Dict, Iterable, List, Sequence

import numpy as np
import pandas as pd

from .base import PipelineComponent
from .geo import geodesic_distance_m


class RollingWindow:
    """Trailing means over several window sizes sharing one ring buffer.

    Each window includes the current value. Missing values (NaN/None) occupy a
    slot but are excluded from the mean; a window without any valid value
    yields NaN.
    """

    def __init__(self, sizes: Iterable[int]) -> None:
        self.sizes: tuple = tuple(sorted(set(int(s) for s in sizes)))
        if not self.sizes or self.sizes[0] < 1:
            raise ValueError(f"Window sizes must be positive: {sizes!r}")
        self._buffer: Deque[float] = deque(maxlen=self.sizes[-1])
        self._sums: Dict[int, float] = {n: 0.0 for n in self.sizes}
        self._counts: Dict[int, int] = {n: 0 for n in self.sizes}

    def push(self, value: float | None) -> Dict[int, float]:
        """Add ``value`` and return the current mean for every window size."""

        for n in self.sizes:
            if len(self._buffer) >= n:
                leaving = self._buffer[-n]
                if not _missing(leaving):
                    self._sums[n] -= leaving
                    self._counts[n] -= 1

        valid = not _missing(value)
        self._buffer.append(float(value) if valid else math.nan)

        means: Dict[int, float] = {}
        for n in self.sizes:
            if valid:
                self._sums[n] += float(value)
                self._counts[n] += 1
            if self._counts[n] == 0:
                # Reset accumulated rounding error once the window empties.
                self._sums[n] = 0.0
                means[n] = math.nan
            else:
                means[n] = self._sums[n] / self._counts[n]
        return means


def _missing(value: float | None) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def trailing_means(values: Sequence[float], sizes: Iterable[int]) -> Dict[int, np.ndarray]:
    """Return trailing means of ``values`` for each window size in one pass."""

    window = RollingWindow(sizes)
    out: Dict[int, List[float]] = {n: [] for n in window.sizes}
    for value in values:
        for n, mean in window.push(value).items():
            out[n].append(mean)
    return {n: np.asarray(series, dtype=float) for n, series in out.items()}


class KinematicEnricher(PipelineComponent):
    """Add lag and trailing-window columns and drop points without enough history."""

    def enrich(self, points: pd.DataFrame) -> pd.DataFrame:
        """Return enriched points, excluding the first ``extended_lag_points`` rows.

        Added columns: ``time_elapsed_sec``, ``distance_m`` (short lag),
        ``time_elapsed_extended_sec``, ``distance_extended_m`` (extended lag),
        ``speed_rolling_<n>`` and ``distance_rolling_<n>`` for each window.
        """

        lag: int = self.config.extended_lag_points
        enriched = points.reset_index(drop=True).copy()

        enriched["time_elapsed_sec"] = self._elapsed(enriched["ts"], 1)
        enriched["distance_m"] = self._distance(enriched, 1)
        enriched["time_elapsed_extended_sec"] = self._elapsed(enriched["ts"], lag)
        enriched["distance_extended_m"] = self._distance(enriched, lag)

        for n, series in trailing_means(enriched["speed"].tolist(), self.config.speed_windows).items():
            enriched[f"speed_rolling_{n}"] = series
        for n, series in trailing_means(enriched["distance_m"].tolist(), self.config.distance_windows).items():
            enriched[f"distance_rolling_{n}"] = series

        result = enriched.iloc[lag:].reset_index(drop=True)
        self.log_transition(f"Enriched (extended lag {lag})", len(points), len(result))
        return result

    @staticmethod
    def _elapsed(ts: pd.Series, lag: int) -> pd.Series:
        return (ts - ts.shift(lag)).dt.total_seconds()

    @staticmethod
    def _distance(points: pd.DataFrame, lag: int) -> np.ndarray:
        return geodesic_distance_m(
            points["longitude"].shift(lag).to_numpy(dtype=float),
            points["latitude"].shift(lag).to_numpy(dtype=float),
            points["longitude"].to_numpy(dtype=float),
            points["latitude"].to_numpy(dtype=float),
        )
