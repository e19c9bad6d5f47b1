"""Persist classified points and roll them up into trip step aggregates."""

from __future__ import annotations

from typing import Any, Dict, List, Set, Tuple

import pandas as pd
from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from .base import PipelineComponent
from .geo import as_utc, line_wkt, point_wkt, project
from .models import STATUS_STOPPED, TripPoint, TripStep


def _optional(value: Any) -> float | None:
    return None if pd.isna(value) else float(value)


def _dialect_insert(session: Session, table):
    """Return an insert on ``table`` that skips rows conflicting on (step, ts) where supported."""

    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert as pg_insert

        return pg_insert(table).on_conflict_do_nothing(index_elements=["trip_step_id", "ts"])
    if dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert as sqlite_insert

        return sqlite_insert(table).on_conflict_do_nothing(index_elements=["trip_step_id", "ts"])
    return insert(table)


class PointLoader(PipelineComponent):
    """Insert points that do not already exist for their (step, timestamp)."""

    def load(self, session: Session, points: pd.DataFrame) -> int:
        """Insert new points and return how many were inserted."""

        if points.empty:
            self.logger.info("No points to load.")
            return 0

        step_ids = [int(s) for s in points["trip_step_id"].unique()]
        existing: Set[Tuple[int, pd.Timestamp]] = {
            (step_id, as_utc(ts))
            for step_id, ts in session.execute(
                select(TripPoint.trip_step_id, TripPoint.ts).where(TripPoint.trip_step_id.in_(step_ids))
            )
        }

        xs, ys = project(points["longitude"], points["latitude"], self.config.storage_crs)
        rolling_short = f"speed_rolling_{self.config.speed_windows[0]}"
        rolling_long = f"speed_rolling_{self.config.speed_windows[-1]}"

        rows: List[Dict[str, Any]] = []
        for (_, row), x, y in zip(points.iterrows(), xs, ys):
            key = (int(row["trip_step_id"]), row["ts"])
            if key in existing:
                continue
            rows.append(
                {
                    "trip_step_id": key[0],
                    "travel_mode_status": row["travel_mode_status"],
                    "ts": row["ts"].to_pydatetime(),
                    "speed": float(row["speed"]),
                    "speed_rolling": float(row[rolling_short]),
                    "speed_rolling_extended": float(row[rolling_long]),
                    "ele": _optional(row["ele"]),
                    "distance": _optional(row["distance_m"]),
                    "time_elapsed_sec": _optional(row["time_elapsed_sec"]),
                    "hdop": float(row["hdop"]),
                    "geom": point_wkt(x, y),
                }
            )

        inserted = 0
        if rows:
            result = session.execute(_dialect_insert(session, TripPoint.__table__), rows)
            # Drivers that cannot count an executemany report -1.
            inserted = result.rowcount if result.rowcount >= 0 else len(rows)
        self.logger.info(
            "Inserted %d points; %d already present, %d skipped on conflict.",
            inserted,
            len(points) - len(rows),
            len(rows) - inserted,
        )
        return inserted


class StepAggregator(PipelineComponent):
    """Compute per-step summaries and write them to steps that have none yet."""

    def summarise(self, points: pd.DataFrame) -> Dict[int, Dict[str, Any]]:
        """Return aggregate column values keyed by ``trip_step_id``.

        Steps with fewer than two points cannot form a trajectory line and are
        left out.
        """

        summaries: Dict[int, Dict[str, Any]] = {}
        for step_id, group in points.groupby("trip_step_id"):
            group = group.sort_values("ts")
            if len(group) < 2:
                self.logger.warning("Trip step %s has a single point after cleaning; not aggregated.", step_id)
                continue

            moving = group[group["travel_mode_status"] != STATUS_STOPPED]
            xs, ys = project(group["longitude"], group["latitude"], self.config.storage_crs)
            summaries[int(step_id)] = {
                "time_elapsed_sec": float(group["time_elapsed_sec"].sum()),
                "time_elapsed_moving_sec": float(moving["time_elapsed_sec"].sum()),
                "speed_avg": _optional(group["speed"].mean()),
                "speed_avg_moving": _optional(moving["speed"].mean()) if not moving.empty else None,
                "ele_min": _optional(group["ele"].min()),
                "ele_avg": _optional(group["ele"].mean()),
                "ele_max": _optional(group["ele"].max()),
                "geom": line_wkt(xs, ys),
            }
        return summaries

    def aggregate(self, session: Session, points: pd.DataFrame) -> Tuple[int, int, int]:
        """Write aggregates; return (steps in batch, steps updated, single-point steps).

        The update is conditional on ``geom IS NULL`` so a step aggregated once
        is never overwritten.
        """

        steps_in_batch = int(points["trip_step_id"].nunique()) if not points.empty else 0
        summaries = self.summarise(points)
        updated = 0
        for step_id, values in summaries.items():
            result = session.execute(
                update(TripStep)
                .where(TripStep.trip_step_id == step_id, TripStep.geom.is_(None))
                .values(**values)
            )
            updated += result.rowcount
        self.logger.info("Aggregated %d of %d trip steps in batch.", updated, steps_in_batch)
        return steps_in_batch, updated, steps_in_batch - len(summaries)
