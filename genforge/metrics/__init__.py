"""
Generation Quality Metrics.

Tracks validation scores, generation outcomes and classified errors so
quality trends can be followed per dimension, domain and error kind.

Copyright (c) 2025 GenForge
"""

import logging
import uuid
from collections import Counter, defaultdict
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

MAX_RECORDS = 10000


class GenerationRecord(BaseModel):
    """One pipeline run."""
    record_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    session_id: Optional[str] = None
    domain: str = "generic"
    success: bool = True
    overall_score: Optional[int] = None
    dimension_scores: Dict[str, int] = Field(default_factory=dict)
    attempts: int = 1
    duration_ms: int = 0
    fallbacks_used: List[str] = Field(default_factory=list)
    error_kind: Optional[str] = None

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_validation(cls, validation, **kwargs) -> "GenerationRecord":
        """Build a record from a ValidationResult plus run details."""
        return cls(
            overall_score=validation.overall_score,
            dimension_scores={d.value: s.score for d, s in validation.dimensions.items()},
            fallbacks_used=list(validation.fallbacks_used),
            **kwargs,
        )


class ErrorRecord(BaseModel):
    """One classified collaborator failure."""
    kind: str
    step: str = "unknown"
    attempt: int = 1
    retried: bool = False
    session_id: Optional[str] = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class QualityMetrics(BaseModel):
    """Aggregated quality metrics for a period."""
    period_start: datetime
    period_end: datetime

    # Volume
    total_generations: int = 0
    successful_generations: int = 0
    failed_generations: int = 0
    success_rate: float = 0.0

    # Scores
    avg_overall_score: float = 0.0
    min_overall_score: Optional[int] = None
    max_overall_score: Optional[int] = None
    dimension_averages: Dict[str, float] = Field(default_factory=dict)

    # Effort
    avg_attempts: float = 0.0
    avg_duration_ms: float = 0.0
    fallback_rate: float = 0.0

    # Errors
    total_errors: int = 0
    errors_by_kind: Dict[str, int] = Field(default_factory=dict)
    retry_rate: float = 0.0

    by_domain: Dict[str, Dict] = Field(default_factory=dict)


class QualityMetricsTracker:
    """Tracks generation quality over time."""

    def __init__(self, max_records: int = MAX_RECORDS):
        self.max_records = max_records
        self._generations: List[GenerationRecord] = []
        self._errors: List[ErrorRecord] = []
        self._lock = Lock()

    def record_generation(self, record: GenerationRecord) -> None:
        with self._lock:
            self._generations.append(record)
            if len(self._generations) > self.max_records:
                self._generations = self._generations[-self.max_records:]
        logger.debug(f"Recorded generation: domain={record.domain} success={record.success} "
                     f"score={record.overall_score}")

    def record_error(self, record: ErrorRecord) -> None:
        with self._lock:
            self._errors.append(record)
            if len(self._errors) > self.max_records:
                self._errors = self._errors[-self.max_records:]

    def get_metrics(self, period_hours: int = 24) -> QualityMetrics:
        """Aggregate metrics for the last period_hours."""
        end_time = datetime.now(timezone.utc)
        start_time = end_time - timedelta(hours=period_hours)

        with self._lock:
            generations = [g for g in self._generations if g.timestamp >= start_time]
            errors = [e for e in self._errors if e.timestamp >= start_time]

        metrics = QualityMetrics(
            period_start=start_time,
            period_end=end_time,
            total_generations=len(generations),
            successful_generations=sum(1 for g in generations if g.success),
            failed_generations=sum(1 for g in generations if not g.success),
            total_errors=len(errors),
            errors_by_kind=dict(Counter(e.kind for e in errors)),
        )
        if errors:
            metrics.retry_rate = sum(1 for e in errors if e.retried) / len(errors)

        if not generations:
            return metrics

        metrics.success_rate = metrics.successful_generations / len(generations)
        metrics.avg_attempts = sum(g.attempts for g in generations) / len(generations)
        metrics.avg_duration_ms = sum(g.duration_ms for g in generations) / len(generations)
        metrics.fallback_rate = sum(1 for g in generations if g.fallbacks_used) / len(generations)

        scores = [g.overall_score for g in generations if g.overall_score is not None]
        if scores:
            metrics.avg_overall_score = sum(scores) / len(scores)
            metrics.min_overall_score = min(scores)
            metrics.max_overall_score = max(scores)

        dimension_totals: Dict[str, List[int]] = defaultdict(list)
        for g in generations:
            for dimension, score in g.dimension_scores.items():
                dimension_totals[dimension].append(score)
        metrics.dimension_averages = {
            dimension: sum(values) / len(values) for dimension, values in dimension_totals.items()
        }

        for domain in sorted(set(g.domain for g in generations)):
            domain_runs = [g for g in generations if g.domain == domain]
            domain_scores = [g.overall_score for g in domain_runs if g.overall_score is not None]
            metrics.by_domain[domain] = {
                "generations": len(domain_runs),
                "success_rate": sum(1 for g in domain_runs if g.success) / len(domain_runs),
                "avg_score": sum(domain_scores) / len(domain_scores) if domain_scores else 0.0,
            }

        return metrics

    def get_low_scoring(self, threshold: int = 70, limit: int = 10) -> List[GenerationRecord]:
        """Lowest-scoring recent generations below threshold."""
        with self._lock:
            low = [g for g in self._generations
                   if g.overall_score is not None and g.overall_score < threshold]
        return sorted(low, key=lambda g: g.overall_score)[:limit]

    def get_recent_errors(self, limit: int = 20) -> List[ErrorRecord]:
        with self._lock:
            return self._errors[-limit:]

    def clear(self) -> None:
        with self._lock:
            self._generations.clear()
            self._errors.clear()


# Singleton
_tracker: Optional[QualityMetricsTracker] = None


def get_quality_metrics_tracker() -> QualityMetricsTracker:
    """Get singleton quality metrics tracker."""
    global _tracker
    if _tracker is None:
        _tracker = QualityMetricsTracker()
    return _tracker


__all__ = [
    "ErrorRecord",
    "GenerationRecord",
    "QualityMetrics",
    "QualityMetricsTracker",
    "get_quality_metrics_tracker",
]
