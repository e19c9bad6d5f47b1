"""High-level orchestration of one trip trace import."""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd
from sqlalchemy.orm import Session

from .classifier import MotionClassifier
from .config import ImportConfig, get_active_config
from .dedup import DuplicateCleaner
from .enrichment import KinematicEnricher
from .loader import PointLoader, StepAggregator
from .noise_filter import NoiseFilter
from .resolver import TripStepResolver


@dataclass
class ImportSummary:
    """Counts reported by :func:`import_trace`, with non-fatal warnings."""

    points_inserted: int = 0
    segments_in_batch: int = 0
    segments_aggregated: int = 0
    points_resolved: int = 0
    points_quarantined: int = 0
    points_enriched: int = 0
    points_filtered: int = 0
    points_unclassified: int = 0
    warnings: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TraceImporter:
    """Coordinate the import stages for one trip inside a single transaction."""

    def __init__(self, config: Optional[ImportConfig] = None) -> None:
        self.config: ImportConfig = config or get_active_config()
        self.logger: logging.Logger = logging.getLogger(self.__class__.__name__)
        self.resolver = TripStepResolver(self.config)
        self.cleaner = DuplicateCleaner(self.config)
        self.enricher = KinematicEnricher(self.config)
        self.noise_filter = NoiseFilter(self.config)
        self.classifier = MotionClassifier(self.config)
        self.loader = PointLoader(self.config)
        self.aggregator = StepAggregator(self.config)

    def run(self, session: Session, trip_id: int) -> ImportSummary:
        """Import the staged trace of ``trip_id``; all or nothing.

        A fresh session gets its own transaction which is committed on success.
        If the session already has a transaction in progress, the run uses a
        savepoint and leaves the outer commit to the caller. Any
        :class:`~trip_import.errors.TripImportError` rolls back every write of
        the run, quarantine rows included.
        """

        transaction = session.begin_nested() if session.in_transaction() else session.begin()
        with transaction:
            summary = self._run_stages(session, trip_id)
        self.logger.info("Import of trip %s finished: %s", trip_id, summary.as_dict())
        return summary

    def _run_stages(self, session: Session, trip_id: int) -> ImportSummary:
        summary = ImportSummary()

        points: pd.DataFrame = self.resolver.resolve(session, trip_id)
        summary.points_resolved = len(points)

        dedup = self.cleaner.clean(session, points)
        summary.points_quarantined = dedup.quarantined
        if dedup.quarantined:
            self._warn(
                summary,
                f"{dedup.duplicate_groups} duplicated timestamps found; {dedup.quarantined} points "
                "moved to import_duplicate_cleanup for review.",
            )

        enriched = self.enricher.enrich(dedup.points)
        summary.points_enriched = len(enriched)

        filtered = self.noise_filter.filter(enriched)
        summary.points_filtered = len(filtered)

        classified = self.classifier.classify(filtered)
        unclassified = int(classified["travel_mode_status"].isna().sum())
        summary.points_unclassified = unclassified
        if unclassified:
            self._warn(summary, f"{unclassified} points matched no motion state and are stored unclassified.")

        summary.points_inserted = self.loader.load(session, classified)
        in_batch, aggregated, single_point = self.aggregator.aggregate(session, classified)
        summary.segments_in_batch, summary.segments_aggregated = in_batch, aggregated
        if single_point:
            self._warn(
                summary,
                f"{single_point} trip steps kept a single point after cleaning; no aggregates written for them.",
            )
        if in_batch - single_point != aggregated:
            self._warn(
                summary,
                f"{in_batch} trip steps in batch but {aggregated} aggregated; "
                f"{in_batch - single_point - aggregated} already had aggregate data.",
            )
        return summary

    def _warn(self, summary: ImportSummary, message: str) -> None:
        self.logger.warning(message)
        summary.warnings.append(message)


def import_trace(session: Session, trip_id: int, config: Optional[ImportConfig] = None) -> ImportSummary:
    """Run the full import for ``trip_id`` and return the summary counts."""

    return TraceImporter(config).run(session, trip_id)
