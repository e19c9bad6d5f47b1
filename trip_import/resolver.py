"""Assign raw staging points to the trip step whose time window contains them."""

from __future__ import annotations

from typing import List

import pandas as pd
from sqlalchemy import select
from sqlalchemy.orm import Session

from .base import PipelineComponent
from .errors import InputDataError
from .geo import as_utc
from .models import StagingTracePoint, Trip, TripStep

RAW_COLUMNS: List[str] = ["seq", "ts", "speed", "ele", "hdop", "longitude", "latitude"]


class TripStepResolver(PipelineComponent):
    """Build the trip working set ordered by the device sequence number.

    The device sequence is authoritative; timestamps can misbehave after a
    connectivity loss, so they are never used for ordering here.
    """

    def resolve(self, session: Session, trip_id: int) -> pd.DataFrame:
        """Return raw points tagged with ``trip_step_id``, sorted by ``seq``.

        Raises:
            InputDataError: If the trip does not exist or no point falls in any step.
        """

        trip: Trip | None = session.get(Trip, trip_id)
        if trip is None:
            raise InputDataError(f"Trip {trip_id} does not exist.")

        steps: List[TripStep] = list(
            session.scalars(select(TripStep).where(TripStep.trip_id == trip_id).order_by(TripStep.time_start))
        )

        stmt = (
            select(*(getattr(StagingTracePoint, col) for col in RAW_COLUMNS))
            .where(StagingTracePoint.ts >= trip.time_start, StagingTracePoint.ts < trip.time_end)
            .order_by(StagingTracePoint.seq)
        )
        raw = pd.DataFrame([tuple(row) for row in session.execute(stmt)], columns=RAW_COLUMNS)
        points = self.assign_steps(raw, steps)

        if points.empty:
            message = f"No input data for trip {trip_id}: no raw point falls inside any trip step."
            self.logger.error(message)
            raise InputDataError(message)

        self.log_transition(f"Resolved trip {trip_id} to {len(steps)} steps", len(raw), len(points))
        return points

    def assign_steps(self, raw: pd.DataFrame, steps: List[TripStep]) -> pd.DataFrame:
        """Tag each raw point with the step containing its timestamp; drop the rest.

        Step windows are half-open ``[start, end)`` and disjoint within a trip,
        so at most one step matches a point.
        """

        if raw.empty:
            return raw.assign(trip_step_id=pd.Series(dtype="int64"))

        points = raw.copy()
        points["ts"] = pd.to_datetime(points["ts"], utc=True)
        step_ids = pd.Series(pd.NA, index=points.index, dtype="Int64")
        for step in steps:
            inside = (points["ts"] >= as_utc(step.time_start)) & (points["ts"] < as_utc(step.time_end))
            step_ids[inside] = step.trip_step_id

        points["trip_step_id"] = step_ids
        points = points[points["trip_step_id"].notna()].copy()
        points["trip_step_id"] = points["trip_step_id"].astype("int64")
        for column in ("speed", "ele", "hdop", "longitude", "latitude"):
            points[column] = pd.to_numeric(points[column], errors="coerce").astype(float)
        return points.sort_values("seq", kind="stable").reset_index(drop=True)
