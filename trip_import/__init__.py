"""Import pipeline for GNSS trip traces.

Resolves staged raw points to trip steps, quarantines duplicate timestamps,
derives lag and rolling-window kinematics, filters noise, classifies motion
state and loads points plus per-step aggregates into the travel store.
"""

from .config import ImportConfig, get_active_config, set_active_config
from .errors import CatalogError, DataQualityError, InputDataError, TripImportError
from .pipeline import ImportSummary, TraceImporter, import_trace

__all__ = [
    "CatalogError",
    "DataQualityError",
    "ImportConfig",
    "ImportSummary",
    "InputDataError",
    "TraceImporter",
    "TripImportError",
    "get_active_config",
    "import_trace",
    "set_active_config",
]
