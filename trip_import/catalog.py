"""Creation of trips and trip steps with their catalog invariants.

Step time windows of one trip must be pairwise disjoint; the import resolver
relies on that to assign each point to exactly one step.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .errors import CatalogError
from .geo import as_utc
from .models import TravelMode, Trip, TripStep

logger = logging.getLogger(__name__)

DESC_MIN_EXCLUSIVE = 3
DESC_MAX_EXCLUSIVE = 10000


def _utc(value: datetime) -> datetime:
    return as_utc(value).to_pydatetime()


def _check_range(start: datetime, end: datetime) -> None:
    if as_utc(start) >= as_utc(end):
        raise CatalogError(f"Time range start {start} must be before end {end}.")


def create_trip(
    session: Session,
    trip_name: str,
    time_start: datetime,
    time_end: datetime,
    trip_desc: Optional[str] = None,
) -> Trip:
    """Add a trip to the session and flush it so it gets an id."""

    _check_range(time_start, time_end)
    if trip_desc is not None and not DESC_MIN_EXCLUSIVE < len(trip_desc) < DESC_MAX_EXCLUSIVE:
        raise CatalogError(
            f"Trip description must be longer than {DESC_MIN_EXCLUSIVE} and shorter than "
            f"{DESC_MAX_EXCLUSIVE} characters."
        )
    if session.scalar(select(Trip.trip_id).where(Trip.trip_name == trip_name)) is not None:
        raise CatalogError(f"Trip name {trip_name!r} already exists.")

    trip = Trip(
        trip_name=trip_name,
        time_start=_utc(time_start),
        time_end=_utc(time_end),
        trip_desc=trip_desc,
    )
    session.add(trip)
    session.flush()
    logger.info("Created trip %s (%s)", trip.trip_id, trip_name)
    return trip


def add_trip_step(
    session: Session,
    trip_id: int,
    leg_name: str,
    step_name: str,
    time_start: datetime,
    time_end: datetime,
    travel_mode_name: str,
) -> TripStep:
    """Add a step to a trip, refusing windows that overlap a sibling step.

    Windows are half-open, so a step may start exactly where another ends.
    """

    _check_range(time_start, time_end)
    if session.get(Trip, trip_id) is None:
        raise CatalogError(f"Trip {trip_id} does not exist.")

    mode_id = session.scalar(
        select(TravelMode.travel_mode_id).where(TravelMode.travel_mode_name == travel_mode_name.lower())
    )
    if mode_id is None:
        raise CatalogError(f"Unknown travel mode {travel_mode_name!r}.")

    start, end = as_utc(time_start), as_utc(time_end)
    for sibling in session.scalars(select(TripStep).where(TripStep.trip_id == trip_id)):
        if sibling.step_name == step_name:
            raise CatalogError(f"Step {step_name!r} already exists in trip {trip_id}.")
        if start < as_utc(sibling.time_end) and as_utc(sibling.time_start) < end:
            raise CatalogError(
                f"Step {step_name!r} [{start}, {end}) overlaps step {sibling.step_name!r} "
                f"[{sibling.time_start}, {sibling.time_end})."
            )

    step = TripStep(
        trip_id=trip_id,
        leg_name=leg_name,
        step_name=step_name,
        time_start=start.to_pydatetime(),
        time_end=end.to_pydatetime(),
        travel_mode_id=mode_id,
    )
    session.add(step)
    session.flush()
    logger.info("Added step %s (%s / %s) to trip %s", step.trip_step_id, leg_name, step_name, trip_id)
    return step
