"""Motion state classification from raw speed and trailing statistics."""

from __future__ import annotations

import math
from typing import List, Optional

import pandas as pd

from .base import PipelineComponent
from .config import ImportConfig, get_active_config
from .models import (
    STATUS_ACCELERATING,
    STATUS_BRAKING,
    STATUS_CRUISING,
    STATUS_FLUCTUATING,
    STATUS_STOPPED,
)


def relative_deviation(speed: float, rolling: float) -> Optional[float]:
    """Return ``(speed - rolling) / rolling``, or None when ``rolling`` is zero or missing."""

    if rolling is None or math.isnan(rolling) or rolling == 0:
        return None
    return (speed - rolling) / rolling


def classify_motion(
    speed: float,
    speed_rolling: float,
    speed_rolling_extended: float,
    distance_rolling: float,
    distance_rolling_extended: float,
    config: ImportConfig | None = None,
) -> Optional[str]:
    """Classify one observation; the first matching rule wins.

    Returns None when no rule matches, which happens when the short rolling
    speed is zero (or missing) while the point is not caught as stopped.
    """

    cfg = config or get_active_config()

    if speed == 0:
        return STATUS_STOPPED
    if (
        distance_rolling < cfg.stopped_distance_m
        and speed < cfg.stopped_speed_mps
        and distance_rolling_extended < cfg.stopped_distance_m
    ):
        return STATUS_STOPPED

    dev = relative_deviation(speed, speed_rolling)
    dev_extended = relative_deviation(speed, speed_rolling_extended)
    if dev is None or speed_rolling <= 0:
        return None

    if (
        speed > cfg.cruising_speed_mps
        and dev_extended is not None
        and abs(dev) <= cfg.cruising_tolerance
        and abs(dev_extended) <= cfg.cruising_tolerance
    ):
        return STATUS_CRUISING
    if dev < -cfg.change_tolerance:
        return STATUS_BRAKING
    if dev > cfg.change_tolerance:
        return STATUS_ACCELERATING
    return STATUS_FLUCTUATING


class MotionClassifier(PipelineComponent):
    """Label every point with ``travel_mode_status``."""

    def classify(self, points: pd.DataFrame) -> pd.DataFrame:
        cfg = self.config
        short_speed, long_speed = cfg.speed_windows[0], cfg.speed_windows[-1]
        short_dist, long_dist = cfg.distance_windows[0], cfg.distance_windows[-1]

        labels: List[Optional[str]] = [
            classify_motion(speed, r_short, r_long, d_short, d_long, cfg)
            for speed, r_short, r_long, d_short, d_long in zip(
                points["speed"],
                points[f"speed_rolling_{short_speed}"],
                points[f"speed_rolling_{long_speed}"],
                points[f"distance_rolling_{short_dist}"],
                points[f"distance_rolling_{long_dist}"],
            )
        ]

        classified = points.copy()
        classified["travel_mode_status"] = pd.Series(labels, index=points.index, dtype="object")
        counts = classified["travel_mode_status"].value_counts(dropna=False).to_dict()
        self.logger.info("Motion states: %s", counts)
        return classified
