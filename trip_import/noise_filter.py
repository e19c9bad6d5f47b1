"""Drop or normalise implausible derived values after enrichment."""

from __future__ import annotations

import pandas as pd

from .base import PipelineComponent


class NoiseFilter(PipelineComponent):
    """Apply the noise rules in order; each rule only sees survivors of the previous one."""

    def filter(self, points: pd.DataFrame) -> pd.DataFrame:
        cfg = self.config
        total = len(points)
        kept = points

        # Sequence and timestamp disagree.
        kept = self._drop(kept, kept["time_elapsed_sec"] < 0, "negative elapsed time")
        # Gap too long to bridge, e.g. device powered off.
        kept = self._drop(kept, kept["time_elapsed_sec"] > cfg.max_elapsed_sec, "elapsed time gap")
        # Positional glitch faster than any travel mode.
        kept = self._drop(kept, kept["distance_m"] > cfg.max_distance_m, "distance jump")

        kept = kept.reset_index(drop=True)
        drift = (kept["distance_m"] > 0) & (kept["distance_m"] < cfg.drift_distance_m)
        kept.loc[drift, "distance_m"] = 0.0
        self.logger.debug("Snapped %d sub-meter distances to zero.", int(drift.sum()))

        self.log_transition("Noise filter", total, len(kept))
        return kept

    def _drop(self, points: pd.DataFrame, mask: pd.Series, reason: str) -> pd.DataFrame:
        dropped = int(mask.sum())
        if dropped:
            self.logger.debug("Dropping %d points: %s.", dropped, reason)
        return points[~mask]
