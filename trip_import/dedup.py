"""Duplicate-timestamp detection, quarantine and re-validation.

Which duplicates to drop is decided by a :class:`DuplicateStrategy`, looked up
by name so alternative heuristics can be swapped in through configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Protocol

import pandas as pd
from sqlalchemy.orm import Session

from .base import PipelineComponent
from .errors import DataQualityError
from .geo import point_wkt, project
from .models import ImportDuplicateCleanup


class DuplicateStrategy(Protocol):
    name: str

    def select_removals(self, points: pd.DataFrame, gap_sec: float) -> pd.Series:
        """Return a boolean mask, aligned with ``points``, of rows to quarantine."""
        ...


@dataclass
class NeighborGapStrategy:
    """Drop a duplicated-timestamp point whose sequence neighbour is far away in time.

    Sequence-adjacent samples are expected to be temporally adjacent; a jump of
    more than ``gap_sec`` to the previous or next point marks a stale reading.
    """

    name: str = "neighbor_gap"

    def select_removals(self, points: pd.DataFrame, gap_sec: float) -> pd.Series:
        ts: pd.Series = points["ts"]
        duplicated = ts.duplicated(keep=False)
        gap_prev = (ts - ts.shift(1)).dt.total_seconds().abs()
        gap_next = (ts.shift(-1) - ts).dt.total_seconds().abs()
        far = (gap_prev > gap_sec) | (gap_next > gap_sec)
        return duplicated & far


@dataclass
class KeepFirstStrategy:
    """Keep the first point in sequence order for every duplicated timestamp."""

    name: str = "keep_first"

    def select_removals(self, points: pd.DataFrame, gap_sec: float) -> pd.Series:
        return points["ts"].duplicated(keep="first")


def get_dedup_strategy(name: str) -> DuplicateStrategy:
    key = name.lower()
    if key == "neighbor_gap":
        return NeighborGapStrategy()
    if key == "keep_first":
        return KeepFirstStrategy()
    raise ValueError(f"Unsupported duplicate strategy: {name}")


@dataclass
class DedupResult:
    points: pd.DataFrame
    duplicate_groups: int
    quarantined: int


class DuplicateCleaner(PipelineComponent):
    """Quarantine duplicated-timestamp points and assert none remain."""

    def clean(self, session: Session, points: pd.DataFrame) -> DedupResult:
        """Remove duplicates selected by the configured strategy.

        Removed rows are written verbatim to ``import_duplicate_cleanup`` in the
        caller's transaction.

        Raises:
            DataQualityError: If duplicate timestamps remain after removal.
        """

        strategy = get_dedup_strategy(self.config.dedup_strategy)
        duplicate_groups = int(points["ts"][points["ts"].duplicated(keep=False)].nunique())

        remove_mask = strategy.select_removals(points, self.config.duplicate_gap_sec)
        removed = points[remove_mask]
        kept = points[~remove_mask].reset_index(drop=True)

        if not removed.empty:
            self._quarantine(session, removed)
            self.logger.info(
                "Strategy %s quarantined %d points from %d duplicated timestamps.",
                strategy.name,
                len(removed),
                duplicate_groups,
            )

        distinct = kept["ts"].nunique()
        if distinct != len(kept):
            message = (
                f"{len(kept) - distinct} duplicate timestamps remain after deduplication "
                f"({len(kept)} points, {distinct} distinct timestamps)."
            )
            self.logger.error(message)
            raise DataQualityError(message)

        return DedupResult(points=kept, duplicate_groups=duplicate_groups, quarantined=len(removed))

    def _quarantine(self, session: Session, removed: pd.DataFrame) -> None:
        xs, ys = project(removed["longitude"], removed["latitude"], self.config.storage_crs)
        records: List[ImportDuplicateCleanup] = []
        for (_, row), x, y in zip(removed.iterrows(), xs, ys):
            values: Dict[str, object] = {
                "source_seq": int(row["seq"]),
                "trip_step_id": int(row["trip_step_id"]),
                "ts": row["ts"].to_pydatetime(),
                "speed_m_s": _optional_float(row["speed"]),
                "elevation_m": _optional_float(row["ele"]),
                "hdop": _optional_float(row["hdop"]),
                "geom": point_wkt(x, y),
            }
            records.append(ImportDuplicateCleanup(**values))
        session.add_all(records)
        session.flush()


def _optional_float(value: object) -> float | None:
    return None if pd.isna(value) else float(value)
