"""Exceptions raised by the trip trace import pipeline."""

from __future__ import annotations


class TripImportError(Exception):
    """Base class for fatal import errors; the enclosing transaction is rolled back."""


class InputDataError(TripImportError):
    """No raw points resolve to a segment of the requested trip."""


class DataQualityError(TripImportError):
    """Duplicate timestamps remain after the deduplication heuristic."""


class CatalogError(TripImportError):
    """A trip, segment or travel mode would violate a catalog invariant."""
