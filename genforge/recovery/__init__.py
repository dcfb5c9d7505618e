"""
GenForge Recovery Engine.

Failure taxonomy, retry policy and a tenacity-backed retry executor.

Copyright (c) 2025 GenForge
"""

from typing import Any, Optional

from genforge.config import get_config

from .classifier import ErrorClassifier, backoff_delay, error_report, group_by_kind
from .executor import RetryExecutor
from .models import (
    DEFAULT_RETRYABLE_KINDS,
    NON_RETRYABLE_KINDS,
    ErrorAnalysis,
    ErrorContext,
    ErrorKind,
    ErrorSeverity,
    RetryConfig,
    RetryDecision,
)

_classifier: Optional[ErrorClassifier] = None


def get_error_classifier() -> ErrorClassifier:
    """Get or create the classifier configured from the ``retry`` section."""
    global _classifier
    if _classifier is None:
        _classifier = ErrorClassifier(RetryConfig.from_settings(get_config().retry))
    return _classifier


def classify_and_decide(error: Any, context: ErrorContext,
                        retry_config: Optional[RetryConfig] = None) -> RetryDecision:
    """Classify a failure and decide whether to retry it. Never raises."""
    return get_error_classifier().decide(error, context, retry_config)


__all__ = [
    "DEFAULT_RETRYABLE_KINDS",
    "NON_RETRYABLE_KINDS",
    "ErrorAnalysis",
    "ErrorClassifier",
    "ErrorContext",
    "ErrorKind",
    "ErrorSeverity",
    "RetryConfig",
    "RetryDecision",
    "RetryExecutor",
    "backoff_delay",
    "classify_and_decide",
    "error_report",
    "get_error_classifier",
    "group_by_kind",
]
