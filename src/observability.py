"""Logging setup and run telemetry."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | int = logging.WARNING) -> None:
    """Configure root logging on stderr so stdout carries only the review text."""
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@dataclass(slots=True)
class ReviewTelemetry:
    """Redacted summary of one review session."""

    run_id: str
    pull_request_id: int
    model: str
    assistant_messages: int = 0
    reasoning_messages: int = 0
    ignored_events: int = 0
    duration_seconds: float = 0.0
    outcome: str = "pending"
    warnings: list[str] = field(default_factory=list)

    def log_summary(self, logger: logging.Logger) -> None:
        """Emit the summary as one INFO record."""
        logger.info(
            "Review run %s for PR %s finished: outcome=%s model=%s messages=%d "
            "reasoning=%d ignored=%d duration=%.2fs",
            self.run_id,
            self.pull_request_id,
            self.outcome,
            self.model,
            self.assistant_messages,
            self.reasoning_messages,
            self.ignored_events,
            self.duration_seconds,
        )
        for warning in self.warnings:
            logger.warning("Review run %s: %s", self.run_id, warning)
