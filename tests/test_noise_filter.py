import pandas as pd

from trip_import.config import ImportConfig
from trip_import.noise_filter import NoiseFilter


def test_noise_rules_drop_and_snap():
    points = pd.DataFrame(
        {
            "seq": [1, 2, 3, 4, 5, 6, 7],
            "time_elapsed_sec": [1.0, -3.0, 4000.0, 1.0, 1.0, 1.0, 3600.0],
            "distance_m": [0.4, 0.2, 0.5, 2000.0, 0.0, 1.0, 500.0],
        }
    )
    filtered = NoiseFilter(ImportConfig()).filter(points)

    assert filtered["seq"].tolist() == [1, 5, 6, 7]
    assert filtered["distance_m"].tolist() == [0.0, 0.0, 1.0, 500.0]


def test_noise_filter_keeps_clean_points_untouched():
    points = pd.DataFrame({"seq": [1, 2], "time_elapsed_sec": [1.0, 2.0], "distance_m": [3.2, 7.5]})
    filtered = NoiseFilter(ImportConfig()).filter(points)
    pd.testing.assert_frame_equal(filtered, points)
