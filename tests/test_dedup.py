import pandas as pd
import pytest
from sqlalchemy import func, select

from conftest import BASE_TS
from trip_import.config import ImportConfig
from trip_import.dedup import (
    DuplicateCleaner,
    KeepFirstStrategy,
    NeighborGapStrategy,
    get_dedup_strategy,
)
from trip_import.errors import DataQualityError
from trip_import.models import ImportDuplicateCleanup


def _frame(offsets, step_id):
    n = len(offsets)
    return pd.DataFrame(
        {
            "seq": [10 * (i + 1) for i in range(n)],
            "ts": pd.to_datetime([BASE_TS + pd.Timedelta(seconds=s) for s in offsets], utc=True),
            "speed": [1.0] * n,
            "ele": [None] * n,
            "hdop": [0.8] * n,
            "longitude": [-105.0] * n,
            "latitude": [40.0] * n,
            "trip_step_id": [step_id] * n,
        }
    )


def test_neighbor_gap_flags_only_the_stale_duplicate():
    # seq 40 repeats t=1 but sits after t=21, twenty seconds away.
    points = _frame([0, 1, 2, 21, 1, 22], step_id=1)
    mask = NeighborGapStrategy().select_removals(points, gap_sec=10)
    assert mask.tolist() == [False, False, False, False, True, False]


def test_neighbor_gap_ignores_non_duplicated_jumps():
    points = _frame([0, 30, 60], step_id=1)
    assert not NeighborGapStrategy().select_removals(points, gap_sec=10).any()


def test_keep_first_strategy_and_registry():
    points = _frame([0, 1, 1, 2], step_id=1)
    assert KeepFirstStrategy().select_removals(points, 10).tolist() == [False, False, True, False]
    assert get_dedup_strategy("NEIGHBOR_GAP").name == "neighbor_gap"
    with pytest.raises(ValueError):
        get_dedup_strategy("median")


def test_cleaner_quarantines_removed_points(session_factory, trip_with_step):
    _, step_id = trip_with_step
    points = _frame([0, 1, 2, 21, 1, 22], step_id=step_id)

    with session_factory() as session, session.begin():
        result = DuplicateCleaner(ImportConfig()).clean(session, points)

        assert result.quarantined == 1
        assert result.duplicate_groups == 1
        assert len(result.points) == 5
        row = session.scalars(select(ImportDuplicateCleanup)).one()
        assert row.source_seq == 50
        assert row.trip_step_id == step_id
        assert row.elevation_m is None
        assert row.geom.startswith("POINT")


def test_cleaner_aborts_on_unresolved_duplicates(session_factory, trip_with_step):
    _, step_id = trip_with_step
    points = _frame([0, 1, 1, 2], step_id=step_id)

    with session_factory() as session:
        with pytest.raises(DataQualityError):
            DuplicateCleaner(ImportConfig()).clean(session, points)
        session.rollback()
        assert session.scalar(select(func.count()).select_from(ImportDuplicateCleanup)) == 0
