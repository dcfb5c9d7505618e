"""
GenForge Unified Configuration Module.

Provides centralized configuration management with typed access to all settings.
Loads configuration from environment variables with sensible defaults.

Copyright (c) 2025 GenForge
"""

import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional

logger = logging.getLogger(__name__)


def _get_bool(key: str, default: bool = False) -> bool:
    """Get boolean value from environment variable."""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def _get_int(key: str, default: int) -> int:
    """Get integer value from environment variable."""
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


def _get_float(key: str, default: float) -> float:
    """Get float value from environment variable."""
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def _get_list(key: str, default: List[str] = None) -> List[str]:
    """Get list value from comma-separated environment variable."""
    if default is None:
        default = []
    value = os.getenv(key, "")
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class RetrySettings:
    """Retry / backoff policy settings."""
    max_attempts: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 30000
    backoff_multiplier: float = 2.0
    retryable_kinds: List[str] = field(default_factory=lambda: [
        "api_error",
        "network_error",
        "timeout_error",
        "rate_limit_error",
    ])


@dataclass
class ValidationSettings:
    """Artifact validation settings."""
    check_timeout: float = 30.0  # seconds per check
    max_workers: int = 6
    performance_budget_bytes: int = 1_000_000
    fallback_score_threshold: int = 60
    build_runner: str = "static"  # "static" or "subprocess"
    build_command: str = "npm run build"
    typecheck_command: str = "npx tsc --noEmit"
    lint_command: str = "npx eslint . --format json"
    build_timeout: float = 120.0


@dataclass
class PersonalizationSettings:
    """Personalization engine settings."""
    recommendation_min_confidence: float = 0.6
    frequent_feature_min_count: int = 3
    frequent_feature_top_n: int = 2


@dataclass
class SessionSettings:
    """Session storage settings."""
    backend: str = "memory"  # "memory" or "file"
    sessions_dir: str = "data/sessions"
    expertise_step: float = 0.1
    ratchet_min_score: float = 80.0
    ratchet_min_generations: int = 3


@dataclass
class RegressionSettings:
    """Scenario runner settings."""
    feature_threshold: float = 0.6
    max_concurrent: int = 1


@dataclass
class LoggingSettings:
    """Logging configuration."""
    level: str = "INFO"
    format: str = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
    json_output: bool = False


class GenForgeConfig:
    """
    Centralized configuration for GenForge.

    Loads all settings from environment variables with sensible defaults.
    Provides typed access to configuration values.
    """

    _instance: Optional['GenForgeConfig'] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._initialized = True
        self._load_config()

    def _load_config(self):
        """Load configuration from environment variables."""
        self.retry = RetrySettings(
            max_attempts=_get_int("RETRY_MAX_ATTEMPTS", 3),
            base_delay_ms=_get_int("RETRY_BASE_DELAY_MS", 1000),
            max_delay_ms=_get_int("RETRY_MAX_DELAY_MS", 30000),
            backoff_multiplier=_get_float("RETRY_BACKOFF_MULTIPLIER", 2.0),
            retryable_kinds=_get_list("RETRY_RETRYABLE_KINDS", [
                "api_error", "network_error", "timeout_error", "rate_limit_error",
            ]),
        )

        self.validation = ValidationSettings(
            check_timeout=_get_float("VALIDATION_CHECK_TIMEOUT", 30.0),
            max_workers=_get_int("VALIDATION_MAX_WORKERS", 6),
            performance_budget_bytes=_get_int("PERFORMANCE_BUDGET_BYTES", 1_000_000),
            fallback_score_threshold=_get_int("FALLBACK_SCORE_THRESHOLD", 60),
            build_runner=os.getenv("BUILD_RUNNER", "static"),
            build_command=os.getenv("BUILD_COMMAND", "npm run build"),
            typecheck_command=os.getenv("TYPECHECK_COMMAND", "npx tsc --noEmit"),
            lint_command=os.getenv("LINT_COMMAND", "npx eslint . --format json"),
            build_timeout=_get_float("BUILD_TIMEOUT", 120.0),
        )

        self.personalization = PersonalizationSettings(
            recommendation_min_confidence=_get_float("RECOMMENDATION_MIN_CONFIDENCE", 0.6),
            frequent_feature_min_count=_get_int("FREQUENT_FEATURE_MIN_COUNT", 3),
            frequent_feature_top_n=_get_int("FREQUENT_FEATURE_TOP_N", 2),
        )

        self.session = SessionSettings(
            backend=os.getenv("SESSION_BACKEND", "memory"),
            sessions_dir=os.getenv("SESSIONS_DIR", "data/sessions"),
            expertise_step=_get_float("EXPERTISE_STEP", 0.1),
            ratchet_min_score=_get_float("RATCHET_MIN_SCORE", 80.0),
            ratchet_min_generations=_get_int("RATCHET_MIN_GENERATIONS", 3),
        )

        self.regression = RegressionSettings(
            feature_threshold=_get_float("REGRESSION_FEATURE_THRESHOLD", 0.6),
            max_concurrent=_get_int("REGRESSION_MAX_CONCURRENT", 1),
        )

        self.logging = LoggingSettings(
            level=os.getenv("LOG_LEVEL", "INFO"),
            format=os.getenv("LOG_FORMAT", "%(asctime)s - %(levelname)s - %(name)s - %(message)s"),
            json_output=_get_bool("LOG_JSON", False),
        )

        logger.info(
            f"Configuration loaded: session_backend={self.session.backend}, "
            f"retry_max_attempts={self.retry.max_attempts}"
        )

    def reload(self):
        """Reload configuration from environment variables."""
        self._initialized = False
        self.__init__()

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None


def get_config() -> GenForgeConfig:
    """Get the singleton configuration instance."""
    return GenForgeConfig()
