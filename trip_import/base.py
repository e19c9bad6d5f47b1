"""Common base class shared by the trace import stages."""

from __future__ import annotations

import logging

from .config import ImportConfig


class PipelineComponent:
    """Hold the run configuration and a logger named after the stage."""

    def __init__(self, config: ImportConfig) -> None:
        self.config: ImportConfig = config
        self.logger: logging.Logger = logging.getLogger(self.__class__.__name__)

    def log_transition(self, action: str, before: int, after: int) -> None:
        """Log how many rows a stage kept out of its input."""

        self.logger.info("%s: kept %d of %d points (%d excluded).", action, after, before, before - after)
