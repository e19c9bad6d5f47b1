from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.pool import StaticPool

from trip_import.catalog import add_trip_step, create_trip
from trip_import.database import init_db, make_engine, make_session_factory
from trip_import.models import StagingTracePoint

BASE_TS = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
METERS_PER_DEG_LAT = 111_000.0


@pytest.fixture
def engine():
    engine = make_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture
def trip_with_step(session_factory):
    """One trip spanning one hour with a single foot step covering all of it."""

    with session_factory() as session, session.begin():
        trip = create_trip(session, "Sample trip", BASE_TS, BASE_TS + timedelta(hours=1), "Walk around town")
        step = add_trip_step(
            session, trip.trip_id, "Outbound", "Walk", BASE_TS, BASE_TS + timedelta(hours=1), "foot"
        )
        return trip.trip_id, step.trip_step_id


def track_rows(n, speed=0.0, step_m=0.0, start_seq=1, start_offset_s=0, lon=-105.0, lat=40.0):
    """Build ``n`` one-second samples moving ``step_m`` meters north per sample."""

    rows = []
    for i in range(n):
        rows.append(
            {
                "seq": start_seq + i,
                "ts": BASE_TS + timedelta(seconds=start_offset_s + i),
                "speed": speed,
                "ele": 1600.0 + i,
                "hdop": 0.9,
                "longitude": lon,
                "latitude": lat + (i * step_m) / METERS_PER_DEG_LAT,
            }
        )
    return rows


@pytest.fixture
def stage_points(session_factory):
    def _stage(rows):
        with session_factory() as session, session.begin():
            session.add_all(StagingTracePoint(**row) for row in rows)

    return _stage
