import pandas as pd

from trip_import.classifier import MotionClassifier, classify_motion, relative_deviation
from trip_import.config import ImportConfig


def test_zero_speed_is_stopped():
    assert classify_motion(0.0, 5.0, 5.0, 10.0, 10.0) == "stopped"


def test_slow_drift_is_stopped():
    assert classify_motion(1.0, 1.0, 1.0, 1.5, 1.0) == "stopped"


def test_slow_with_long_horizon_motion_is_not_stopped():
    assert classify_motion(1.0, 1.0, 1.0, 1.5, 3.0) == "fluctuating"


def test_cruising_within_two_percent_of_both_windows():
    assert classify_motion(10.0, 10.1, 9.9, 10.0, 10.0) == "cruising"


def test_braking_accelerating_and_fluctuating():
    assert classify_motion(8.0, 10.0, 10.0, 10.0, 10.0) == "braking"
    assert classify_motion(12.0, 10.0, 10.0, 10.0, 10.0) == "accelerating"
    assert classify_motion(10.5, 10.0, 5.0, 10.0, 10.0) == "fluctuating"
    assert classify_motion(9.0, 10.0, 5.0, 10.0, 10.0) == "fluctuating"


def test_zero_rolling_speed_leaves_point_unclassified():
    assert relative_deviation(1.0, 0.0) is None
    assert classify_motion(1.0, 0.0, 0.0, 5.0, 5.0) is None


def test_zero_extended_rolling_speed_only_blocks_cruising():
    assert classify_motion(10.0, 10.0, 0.0, 10.0, 10.0) == "fluctuating"


def test_classifier_labels_dataframe():
    points = pd.DataFrame(
        {
            "speed": [0.0, 8.0, 1.0],
            "speed_rolling_10": [0.0, 10.0, 0.0],
            "speed_rolling_60": [0.0, 10.0, 0.0],
            "distance_rolling_10": [0.0, 8.0, 5.0],
            "distance_rolling_600": [0.0, 8.0, 5.0],
        }
    )
    classified = MotionClassifier(ImportConfig()).classify(points)
    assert classified["travel_mode_status"].tolist() == ["stopped", "braking", None]
