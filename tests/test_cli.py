import json
import logging
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.orm import Session

from trip_import.cli import main
from trip_import.database import make_engine
from trip_import.models import StagingTracePoint


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def test_cli_round_trip(tmp_path, capsys, restore_logging):
    url = f"sqlite:///{tmp_path / 'travel.db'}"
    base = ["--config", str(tmp_path / "missing.yaml"), "--database-url", url]

    assert main(base + ["init-db"]) == 0
    assert main(base + ["add-trip", "--name", "CLI trip", "--start", "2024-05-01T12:00:00+00:00",
                        "--end", "2024-05-01T13:00:00+00:00"]) == 0
    trip_id = int(capsys.readouterr().out.strip().splitlines()[-1])
    assert main(base + ["add-step", "--trip-id", str(trip_id), "--leg", "Out", "--step", "Walk",
                        "--start", "2024-05-01T12:00:00+00:00", "--end", "2024-05-01T13:00:00+00:00",
                        "--mode", "foot"]) == 0
    capsys.readouterr()

    # Nothing staged for the trip: fatal input error, exit code 1.
    assert main(base + ["import", "--trip-id", str(trip_id)]) == 1
    assert capsys.readouterr().out == ""


def test_cli_import_prints_summary(tmp_path, capsys, restore_logging):
    url = f"sqlite:///{tmp_path / 'travel.db'}"
    base = ["--config", str(tmp_path / "missing.yaml"), "--database-url", url]
    main(base + ["init-db"])
    main(base + ["add-trip", "--name", "T", "--start", "2024-05-01T12:00:00", "--end", "2024-05-01T13:00:00"])
    main(base + ["add-step", "--trip-id", "1", "--leg", "L", "--step", "S",
                 "--start", "2024-05-01T12:00:00", "--end", "2024-05-01T13:00:00", "--mode", "motor"])
    capsys.readouterr()

    start = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    engine = make_engine(url)
    with Session(engine) as session, session.begin():
        session.add_all(
            StagingTracePoint(seq=i, ts=start + timedelta(seconds=i), speed=0.0, ele=None, hdop=1.2,
                              longitude=2.35, latitude=48.85)
            for i in range(65)
        )
    engine.dispose()

    assert main(base + ["import", "--trip-id", "1"]) == 0
    summary = json.loads(capsys.readouterr().out)
    assert summary["points_inserted"] == 5
    assert summary["segments_aggregated"] == 1
