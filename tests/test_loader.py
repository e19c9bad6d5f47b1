import pandas as pd
from sqlalchemy import func, select

from conftest import BASE_TS
from trip_import.config import ImportConfig
from trip_import.loader import PointLoader
from trip_import.models import TripPoint


def _points(step_id, offsets):
    return pd.DataFrame(
        {
            "trip_step_id": step_id,
            "travel_mode_status": "stopped",
            "ts": [pd.Timestamp(BASE_TS) + pd.Timedelta(seconds=s) for s in offsets],
            "speed": 0.0,
            "speed_rolling_10": 0.0,
            "speed_rolling_60": 0.0,
            "ele": 1600.0,
            "distance_m": 0.0,
            "time_elapsed_sec": 1.0,
            "hdop": 0.9,
            "longitude": -105.0,
            "latitude": 40.0,
        }
    )


def test_inserted_count_excludes_conflicting_rows(session_factory, trip_with_step):
    _, step_id = trip_with_step
    loader = PointLoader(ImportConfig())

    with session_factory() as session, session.begin():
        # Offset 0 appears twice; the second row hits the (step, ts) key on insert.
        assert loader.load(session, _points(step_id, [0, 0, 1])) == 2
        assert session.scalar(select(func.count()).select_from(TripPoint)) == 2


def test_existing_points_are_not_inserted_again(session_factory, trip_with_step):
    _, step_id = trip_with_step
    loader = PointLoader(ImportConfig())

    with session_factory() as session, session.begin():
        assert loader.load(session, _points(step_id, [0, 1, 2])) == 3
        assert loader.load(session, _points(step_id, [1, 2, 3])) == 1
        assert session.scalar(select(func.count()).select_from(TripPoint)) == 4
