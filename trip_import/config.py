"""Configuration helpers for the trip trace import pipeline.

Provides the typed :class:`ImportConfig` used by every stage, YAML loading and
small utilities for accessing nested configuration values with defaults.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


@dataclass
class ImportConfig:
    """Strongly-typed thresholds for one trace import run."""

    dedup_strategy: str = "neighbor_gap"
    duplicate_gap_sec: float = 10.0
    extended_lag_points: int = 60
    speed_windows: tuple = (10, 60)
    distance_windows: tuple = (10, 60, 600)
    max_elapsed_sec: float = 3600.0
    max_distance_m: float = 500.0
    drift_distance_m: float = 1.0
    stopped_distance_m: float = 2.0
    stopped_speed_mps: float = 2.0
    cruising_speed_mps: float = 2.0
    cruising_tolerance: float = 0.02
    change_tolerance: float = 0.10
    storage_crs: str = "epsg:3857"
    log_level: int = logging.INFO


_ACTIVE_CONFIG: Optional[ImportConfig] = None


def set_active_config(config: ImportConfig) -> None:
    """Register a configuration instance for reuse across helper functions."""

    global _ACTIVE_CONFIG
    _ACTIVE_CONFIG = config


def get_active_config() -> ImportConfig:
    """Return the registered configuration, or the defaults when none is set."""

    return _ACTIVE_CONFIG or ImportConfig()


def load_config(path: str | Path) -> Dict[str, Any]:
    """Load a YAML configuration file."""

    with Path(path).open("r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def get_nested(config: Dict[str, Any], keys: list[str], default: Any) -> Any:
    """Retrieve a nested value from a config dict with a default."""

    current: Any = config
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return default
        current = current[key]
    return current


def config_from_mapping(cfg: Dict[str, Any]) -> ImportConfig:
    """Build an :class:`ImportConfig` from the ``pipeline`` section of a config dict.

    Unknown keys are ignored with a warning so older config files keep working.
    Window lists from YAML are converted to tuples.
    """

    section: Dict[str, Any] = get_nested(cfg, ["pipeline"], {}) or {}
    known = {f.name for f in fields(ImportConfig)}
    kwargs: Dict[str, Any] = {}
    for key, value in section.items():
        if key not in known:
            logging.warning("Ignoring unknown pipeline option %r", key)
            continue
        if key in ("speed_windows", "distance_windows"):
            value = tuple(int(v) for v in value)
        kwargs[key] = value

    level_name = str(get_nested(cfg, ["logging", "level"], "INFO")).upper()
    kwargs["log_level"] = getattr(logging, level_name, logging.INFO)
    return ImportConfig(**kwargs)
