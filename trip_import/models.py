"""SQLAlchemy models for trips, trip steps, points and the import side stores.

Time ranges are stored as ``[start, end)`` column pairs. Geometries are stored
as WKT text in the configured storage CRS (Web Mercator by default).
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    TypeDecorator,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

TRAVEL_MODES: tuple = ("foot", "motor", "lightrail", "airplane")

STATUS_STOPPED = "stopped"
STATUS_CRUISING = "cruising"
STATUS_BRAKING = "braking"
STATUS_ACCELERATING = "accelerating"
STATUS_FLUCTUATING = "fluctuating"


def _to_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware timestamp stored and returned in UTC.

    SQLite keeps only the wall-clock part of a bound datetime, so values are
    converted to UTC before binding and naive results are read back as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return _to_utc(value)

    def process_result_value(self, value, dialect):
        return _to_utc(value)


class Base(DeclarativeBase):
    pass


class TravelMode(Base):
    """Lookup of travel modes assignable to trip steps, e.g. foot or motor."""

    __tablename__ = "travel_mode"

    travel_mode_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    travel_mode_name: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)


class Trip(Base):
    """A named trip made of legs, each leg with multiple steps."""

    __tablename__ = "trip"
    __table_args__ = (
        CheckConstraint(
            "trip_desc IS NULL OR (LENGTH(trip_desc) > 3 AND LENGTH(trip_desc) < 10000)",
            name="ck_trip_desc_length",
        ),
    )

    trip_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    trip_name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    time_start: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    time_end: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    trip_desc: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    steps: Mapped[List["TripStep"]] = relationship(back_populates="trip", order_by="TripStep.time_start")


class TripStep(Base):
    """A scheduled step of a trip with one travel mode and a disjoint time window.

    The aggregate columns are populated once by the import and never overwritten
    while ``geom`` holds a trajectory.
    """

    __tablename__ = "trip_step"
    __table_args__ = (UniqueConstraint("trip_id", "step_name", name="uq_trip_step_name_unique_in_trip"),)

    trip_step_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    trip_id: Mapped[int] = mapped_column(ForeignKey("trip.trip_id"), nullable=False, index=True)
    leg_name: Mapped[str] = mapped_column(String(200), nullable=False)
    step_name: Mapped[str] = mapped_column(String(200), nullable=False)
    time_start: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    time_end: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    travel_mode_id: Mapped[int] = mapped_column(ForeignKey("travel_mode.travel_mode_id"), nullable=False)

    time_elapsed_sec: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    time_elapsed_moving_sec: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    speed_avg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    speed_avg_moving: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ele_min: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ele_avg: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    ele_max: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    geom: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    trip: Mapped[Trip] = relationship(back_populates="steps")
    travel_mode: Mapped[TravelMode] = relationship()


class TripPoint(Base):
    """Cleaned and classified trip point."""

    __tablename__ = "trip_point"
    __table_args__ = (UniqueConstraint("trip_step_id", "ts", name="uq_trip_point_timestamp"),)

    trip_point_id: Mapped[int] = mapped_column(Integer, primary_key=True)
    trip_step_id: Mapped[int] = mapped_column(ForeignKey("trip_step.trip_step_id"), nullable=False, index=True)
    travel_mode_status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    ts: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    speed: Mapped[float] = mapped_column(Float, nullable=False)
    speed_rolling: Mapped[float] = mapped_column(Float, nullable=False)
    speed_rolling_extended: Mapped[float] = mapped_column(Float, nullable=False)
    ele: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    distance: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    time_elapsed_sec: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    hdop: Mapped[float] = mapped_column(Float, nullable=False)
    geom: Mapped[str] = mapped_column(Text, nullable=False)


class ImportDuplicateCleanup(Base):
    """Append-only copy of raw points excluded as timestamp duplicates."""

    __tablename__ = "import_duplicate_cleanup"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    source_seq: Mapped[int] = mapped_column(BigInteger, nullable=False)
    trip_step_id: Mapped[int] = mapped_column(ForeignKey("trip_step.trip_step_id"), nullable=False)
    ts: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    speed_m_s: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    elevation_m: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    hdop: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    geom: Mapped[str] = mapped_column(Text, nullable=False)


class StagingTracePoint(Base):
    """Raw GNSS observation in the staging area; read-only for the import."""

    __tablename__ = "staging_trace_point"

    seq: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    ts: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False, index=True)
    speed: Mapped[float] = mapped_column(Float, nullable=False)
    ele: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    hdop: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
