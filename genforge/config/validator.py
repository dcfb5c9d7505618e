"""
Configuration validation for GenForge.

Validates configuration at startup and provides helpful error messages.
"""

import os
import logging
from pathlib import Path
from typing import List, Tuple
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_KNOWN_ERROR_KINDS = {
    "validation_error", "api_error", "rate_limit_error", "timeout_error",
    "network_error", "parsing_error", "file_system_error", "quota_exceeded",
    "unknown_error",
}


@dataclass
class ValidationResult:
    """Result of configuration validation."""
    valid: bool
    errors: List[str]
    warnings: List[str]
    info: List[str]


class ConfigValidator:
    """Validates GenForge configuration at startup."""

    def __init__(self, config):
        """Initialize validator with config object."""
        self.config = config

    def validate_all(self) -> ValidationResult:
        """
        Validate all configuration sections.

        Returns:
            ValidationResult with errors, warnings, and info messages
        """
        errors = []
        warnings = []
        info = []

        retry_errors, retry_warnings = self._validate_retry()
        errors.extend(retry_errors)
        warnings.extend(retry_warnings)

        validation_errors, validation_warnings = self._validate_validation()
        errors.extend(validation_errors)
        warnings.extend(validation_warnings)

        errors.extend(self._validate_personalization())

        session_errors, session_warnings, session_info = self._validate_session()
        errors.extend(session_errors)
        warnings.extend(session_warnings)
        info.extend(session_info)

        errors.extend(self._validate_regression())
        warnings.extend(self._validate_logging())

        return ValidationResult(
            valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
            info=info
        )

    def _validate_retry(self) -> Tuple[List[str], List[str]]:
        """Validate retry policy settings."""
        errors = []
        warnings = []
        retry = self.config.retry

        if retry.max_attempts < 1:
            errors.append(f"RETRY_MAX_ATTEMPTS must be >= 1 (got {retry.max_attempts})")
        if retry.base_delay_ms < 0:
            errors.append(f"RETRY_BASE_DELAY_MS must be >= 0 (got {retry.base_delay_ms})")
        if retry.max_delay_ms < retry.base_delay_ms:
            errors.append(
                f"RETRY_MAX_DELAY_MS ({retry.max_delay_ms}) is lower than "
                f"RETRY_BASE_DELAY_MS ({retry.base_delay_ms})"
            )
        if retry.backoff_multiplier < 1.0:
            errors.append(
                f"RETRY_BACKOFF_MULTIPLIER must be >= 1.0 (got {retry.backoff_multiplier}); "
                "delays would shrink between attempts"
            )

        unknown = [kind for kind in retry.retryable_kinds if kind not in _KNOWN_ERROR_KINDS]
        if unknown:
            warnings.append(f"Unknown retryable error kinds ignored: {', '.join(unknown)}")
        if "validation_error" in retry.retryable_kinds or "quota_exceeded" in retry.retryable_kinds:
            warnings.append(
                "validation_error and quota_exceeded are never retried, "
                "even when listed in RETRY_RETRYABLE_KINDS"
            )

        return errors, warnings

    def _validate_validation(self) -> Tuple[List[str], List[str]]:
        """Validate artifact validator settings."""
        errors = []
        warnings = []
        validation = self.config.validation

        if validation.check_timeout <= 0:
            errors.append(f"VALIDATION_CHECK_TIMEOUT must be positive (got {validation.check_timeout})")
        if validation.max_workers < 1:
            errors.append(f"VALIDATION_MAX_WORKERS must be >= 1 (got {validation.max_workers})")
        if not 0 <= validation.fallback_score_threshold <= 100:
            errors.append(
                f"FALLBACK_SCORE_THRESHOLD must be within 0..100 "
                f"(got {validation.fallback_score_threshold})"
            )
        if validation.performance_budget_bytes <= 0:
            errors.append("PERFORMANCE_BUDGET_BYTES must be positive")
        if validation.build_runner not in ("static", "subprocess"):
            errors.append(f"BUILD_RUNNER must be 'static' or 'subprocess' (got {validation.build_runner!r})")

        if validation.build_runner == "subprocess" and validation.build_timeout > validation.check_timeout:
            warnings.append(
                f"BUILD_TIMEOUT ({validation.build_timeout}s) exceeds VALIDATION_CHECK_TIMEOUT "
                f"({validation.check_timeout}s); builds are cut off by the check timeout"
            )

        cpu_count = os.cpu_count() or 1
        if validation.max_workers > max(cpu_count, 6):
            warnings.append(
                f"VALIDATION_MAX_WORKERS ({validation.max_workers}) exceeds the number of "
                f"checks and CPU count ({cpu_count}); extra workers stay idle"
            )

        return errors, warnings

    def _validate_personalization(self) -> List[str]:
        """Validate personalization settings."""
        errors = []
        settings = self.config.personalization

        if not 0.0 <= settings.recommendation_min_confidence <= 1.0:
            errors.append("RECOMMENDATION_MIN_CONFIDENCE must be within 0..1")
        if settings.frequent_feature_min_count < 1:
            errors.append("FREQUENT_FEATURE_MIN_COUNT must be >= 1")
        if settings.frequent_feature_top_n < 1:
            errors.append("FREQUENT_FEATURE_TOP_N must be >= 1")

        return errors

    def _validate_session(self) -> Tuple[List[str], List[str], List[str]]:
        """Validate session storage settings."""
        errors = []
        warnings = []
        info = []
        session = self.config.session

        if session.backend not in ("memory", "file"):
            errors.append(f"SESSION_BACKEND must be 'memory' or 'file' (got {session.backend!r})")
        elif session.backend == "memory":
            warnings.append("Sessions are kept in memory and are lost on restart.")
        else:
            sessions_dir = Path(session.sessions_dir)
            if not sessions_dir.exists():
                try:
                    sessions_dir.mkdir(parents=True, exist_ok=True)
                    warnings.append(f"Created sessions directory: {sessions_dir}")
                except Exception as e:
                    errors.append(f"Cannot create sessions directory {sessions_dir}: {e}")
            info.append(f"Sessions persisted under {sessions_dir}")

        if not 0.0 < session.expertise_step <= 1.0:
            errors.append("EXPERTISE_STEP must be within (0, 1]")

        return errors, warnings, info

    def _validate_regression(self) -> List[str]:
        """Validate scenario runner settings."""
        errors = []
        regression = self.config.regression
        if not 0.0 < regression.feature_threshold <= 1.0:
            errors.append("REGRESSION_FEATURE_THRESHOLD must be within (0, 1]")
        if regression.max_concurrent < 1:
            errors.append(f"REGRESSION_MAX_CONCURRENT must be >= 1 (got {regression.max_concurrent})")
        return errors

    def _validate_logging(self) -> List[str]:
        """Validate logging settings."""
        warnings = []
        if self.config.logging.level.upper() not in _VALID_LOG_LEVELS:
            warnings.append(f"Unknown LOG_LEVEL {self.config.logging.level!r}; INFO will be used")
        return warnings
