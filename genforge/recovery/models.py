"""
Recovery data types.

Copyright (c) 2025 GenForge
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class ErrorKind(str, Enum):
    """Failure taxonomy, in classification order."""
    VALIDATION = "validation_error"
    API = "api_error"
    RATE_LIMIT = "rate_limit_error"
    TIMEOUT = "timeout_error"
    NETWORK = "network_error"
    PARSING = "parsing_error"
    FILE_SYSTEM = "file_system_error"
    QUOTA_EXCEEDED = "quota_exceeded"
    UNKNOWN = "unknown_error"


class ErrorSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


NON_RETRYABLE_KINDS: FrozenSet[ErrorKind] = frozenset({ErrorKind.VALIDATION, ErrorKind.QUOTA_EXCEEDED})

DEFAULT_RETRYABLE_KINDS: FrozenSet[ErrorKind] = frozenset({
    ErrorKind.API,
    ErrorKind.NETWORK,
    ErrorKind.TIMEOUT,
    ErrorKind.RATE_LIMIT,
})


@dataclass
class ErrorContext:
    """Where and when a failure happened, supplied by the caller."""
    step: str = "unknown"
    session_id: str = ""
    attempt: int = 1
    max_attempts: int = 3
    duration_ms: int = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_final_attempt(self) -> bool:
        return self.attempt >= self.max_attempts


@dataclass
class ErrorAnalysis:
    """Classification of one failure. Derived, never persisted."""
    kind: ErrorKind
    severity: ErrorSeverity
    retryable: bool
    suggested_delay_ms: int
    suggested_action: str
    user_message: str
    technical_detail: str


@dataclass
class RetryConfig:
    """Retry / backoff policy."""
    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    backoff_multiplier: float = 2.0
    retryable_kinds: FrozenSet[ErrorKind] = DEFAULT_RETRYABLE_KINDS

    @classmethod
    def from_settings(cls, settings) -> "RetryConfig":
        """Build a policy from the ``retry`` config section."""
        kinds = set()
        for name in settings.retryable_kinds:
            try:
                kinds.add(ErrorKind(name))
            except ValueError:
                # reported by ConfigValidator
                continue
        return cls(
            max_attempts=settings.max_attempts,
            base_delay_ms=settings.base_delay_ms,
            max_delay_ms=settings.max_delay_ms,
            backoff_multiplier=settings.backoff_multiplier,
            retryable_kinds=frozenset(kinds),
        )


@dataclass
class RetryDecision:
    retry: bool
    delay_ms: int
    analysis: Optional[ErrorAnalysis] = None
