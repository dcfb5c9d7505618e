"""
Tests for the Recovery Engine.

Copyright (c) 2025 GenForge
"""

import asyncio
import errno
import json
import pytest

from genforge.exceptions import GenerationCancelled, QualityGateError, RetryExhausted
from genforge.recovery import (
    ErrorClassifier,
    ErrorContext,
    ErrorKind,
    ErrorSeverity,
    RetryConfig,
    RetryExecutor,
    backoff_delay,
    error_report,
    group_by_kind,
)


class StatusError(Exception):
    def __init__(self, message, status=None, code=None, errno_number=None):
        super().__init__(message)
        if status is not None:
            self.status = status
        if code is not None:
            self.code = code
        if errno_number is not None:
            self.errno = errno_number


class TestClassification:
    """Test the error taxonomy."""

    def setup_method(self):
        self.classifier = ErrorClassifier()

    @pytest.mark.parametrize("error, kind", [
        (Exception("Validation failed: name is required"), ErrorKind.VALIDATION),
        (StatusError("server exploded", status=500), ErrorKind.API),
        (Exception("Unauthorized"), ErrorKind.API),
        (Exception("rate limit"), ErrorKind.RATE_LIMIT),
        (StatusError("slow down", status=429), ErrorKind.RATE_LIMIT),
        (TimeoutError(), ErrorKind.TIMEOUT),
        (Exception("request timed out"), ErrorKind.TIMEOUT),
        (ConnectionRefusedError("refused"), ErrorKind.NETWORK),
        (StatusError("socket hang up", code="ECONNRESET"), ErrorKind.NETWORK),
        (StatusError("peer went away", errno_number=errno.ECONNREFUSED), ErrorKind.NETWORK),
        (StatusError("gave up waiting", errno_number=errno.ETIMEDOUT), ErrorKind.TIMEOUT),
        (json.JSONDecodeError("Expecting value", "x", 0), ErrorKind.PARSING),
        (PermissionError("denied"), ErrorKind.FILE_SYSTEM),
        (Exception("Quota exceeded for this month"), ErrorKind.QUOTA_EXCEEDED),
        (Exception("You exceeded your current quota, please check your plan and billing details"),
         ErrorKind.QUOTA_EXCEEDED),
        (Exception("something odd happened"), ErrorKind.UNKNOWN),
        (None, ErrorKind.UNKNOWN),
    ])
    def test_classify(self, error, kind):
        """Test each category is recognised."""
        assert self.classifier.classify(error) == kind

    def test_pydantic_validation_error(self):
        """Test model validation failures are validation errors."""
        from pydantic import ValidationError
        from genforge.persistence import Session

        with pytest.raises(ValidationError) as exc_info:
            Session.model_validate({"generation_count": "many"})

        assert self.classifier.classify(exc_info.value) == ErrorKind.VALIDATION

    def test_quality_gate_is_validation(self):
        """Test a failed quality gate is never treated as transient."""
        error = QualityGateError(42, 70, "app")

        assert self.classifier.classify(error) == ErrorKind.VALIDATION

    def test_rate_limit_wording_beats_api(self):
        """Test rate-limit wording is not swallowed by the API category."""
        error = StatusError("API rate limit reached", status=403)

        assert self.classifier.classify(error) == ErrorKind.RATE_LIMIT


class TestRetryDecision:
    """Test retry decisions and backoff."""

    def setup_method(self):
        self.classifier = ErrorClassifier()

    def test_rate_limit_first_attempt(self):
        """Test a rate limit on attempt 1 of 3 retries after 1000 ms."""
        decision = self.classifier.decide(Exception("rate limit"), ErrorContext(step="generate", attempt=1))

        assert decision.retry is True
        assert decision.delay_ms == 1000
        assert decision.analysis.kind == ErrorKind.RATE_LIMIT
        assert decision.analysis.suggested_action == "Wait 1s before retrying"

    @pytest.mark.parametrize("message", ["invalid input: missing prompt", "quota exceeded"])
    def test_never_retried(self, message):
        """Test validation and quota errors are not retried even with attempts left."""
        config = RetryConfig(max_attempts=5)
        classifier = ErrorClassifier(config)

        decision = classifier.decide(Exception(message), ErrorContext(attempt=1, max_attempts=5))

        assert decision.retry is False
        assert decision.delay_ms == 0

    def test_never_retried_even_when_configured(self):
        """Test listing validation as retryable has no effect."""
        config = RetryConfig(max_attempts=5, retryable_kinds=frozenset(ErrorKind))

        decision = ErrorClassifier(config).decide(Exception("validation failed"), ErrorContext(attempt=1, max_attempts=5))

        assert decision.retry is False

    def test_last_attempt_not_retried(self):
        """Test a transient error on the final attempt is abandoned."""
        decision = self.classifier.decide(Exception("network down"), ErrorContext(attempt=3, max_attempts=3))

        assert decision.retry is False

    def test_policy_caps_context_attempts(self):
        """Test the smaller of context and policy attempts applies."""
        decision = self.classifier.decide(Exception("network down"), ErrorContext(attempt=3, max_attempts=10))

        assert decision.retry is False

    def test_unknown_not_retried(self):
        """Test unknown errors are not in the default retryable set."""
        assert self.classifier.decide(Exception("odd"), ErrorContext(attempt=1)).retry is False

    def test_backoff_monotone_and_capped(self):
        """Test backoff grows until the cap and never exceeds it."""
        config = RetryConfig()
        delays = [backoff_delay(attempt, config) for attempt in range(1, 12)]

        assert delays[:5] == [1000, 2000, 4000, 8000, 16000]
        assert all(a <= b for a, b in zip(delays, delays[1:]))
        assert max(delays) == config.max_delay_ms

    def test_severity(self):
        """Test severities."""
        classifier = self.classifier

        assert classifier.severity(ErrorKind.QUOTA_EXCEEDED, ErrorContext()) == ErrorSeverity.CRITICAL
        assert classifier.severity(ErrorKind.API, ErrorContext(attempt=3, max_attempts=3)) == ErrorSeverity.CRITICAL
        assert classifier.severity(ErrorKind.API, ErrorContext(attempt=1)) == ErrorSeverity.HIGH
        assert classifier.severity(ErrorKind.NETWORK, ErrorContext()) == ErrorSeverity.MEDIUM
        assert classifier.severity(ErrorKind.VALIDATION, ErrorContext()) == ErrorSeverity.LOW

    def test_user_message_and_detail_separate(self):
        """Test the user message names the step without the technical detail."""
        analysis = self.classifier.analyze(ValueError("connection reset by peer"), ErrorContext(step="write_files"))

        assert '"write files"' in analysis.user_message
        assert "connection reset" not in analysis.user_message
        assert "ValueError: connection reset by peer" in analysis.technical_detail

    def test_decide_never_raises(self):
        """Test an internal failure degrades to no retry."""
        decision = self.classifier.decide(Exception("network"), None)

        assert decision.retry is False
        assert decision.analysis is None


class TestReports:
    """Test error report helpers."""

    def test_error_report(self):
        """Test the markdown report."""
        classifier = ErrorClassifier()
        context = ErrorContext(step="generate", session_id="s-1", attempt=2, extra={"model": "m"})
        error = Exception("network down")

        report = error_report(error, context, classifier.analyze(error, context))

        assert "# Error Report" in report
        assert "**Session ID**: s-1" in report
        assert "**Attempt**: 2/3" in report
        assert "**Kind**: network_error" in report
        assert '"model": "m"' in report

    def test_group_by_kind(self):
        """Test cascading errors are grouped."""
        context = ErrorContext()
        errors = [(Exception("timeout"), context), (Exception("network"), context), (Exception("timed out"), context)]

        groups = group_by_kind(errors)

        assert len(groups[ErrorKind.TIMEOUT]) == 2
        assert len(groups[ErrorKind.NETWORK]) == 1

    def test_classify_and_decide(self):
        """Test the module-level facade."""
        import genforge.recovery as recovery
        from genforge.config import GenForgeConfig
        from genforge.recovery import classify_and_decide

        GenForgeConfig.reset()
        recovery._classifier = None
        try:
            decision = classify_and_decide(Exception("rate limit"), ErrorContext(attempt=1))
        finally:
            recovery._classifier = None

        assert decision.retry is True
        assert decision.delay_ms == 1000


class TestRetryExecutor:
    """Test the tenacity-backed retry loop."""

    def setup_method(self):
        self.config = RetryConfig(base_delay_ms=1, max_delay_ms=5)
        self.executor = RetryExecutor(config=self.config)

    @pytest.mark.asyncio
    async def test_recovers_after_transient_failures(self):
        """Test transient failures are retried until success."""
        calls = []

        async def operation(attempt):
            calls.append(attempt)
            if attempt < 3:
                raise ConnectionError("network unreachable")
            return "artifact"

        result = await self.executor.run(operation, ErrorContext(step="generate"))

        assert result == "artifact"
        assert calls == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_non_retryable_stops_at_once(self):
        """Test a validation error is not retried."""
        calls = []

        async def operation(attempt):
            calls.append(attempt)
            raise ValueError("validation failed: prompt is required")

        with pytest.raises(RetryExhausted) as exc_info:
            await self.executor.run(operation, ErrorContext(step="generate"))

        assert calls == [1]
        assert exc_info.value.attempts == 1
        assert exc_info.value.analysis.kind == ErrorKind.VALIDATION
        assert isinstance(exc_info.value.last_error, ValueError)

    @pytest.mark.asyncio
    async def test_exhausts_attempts(self):
        """Test persistent transient errors give up after max attempts."""
        calls = []

        async def operation(attempt):
            calls.append(attempt)
            raise TimeoutError("timed out")

        with pytest.raises(RetryExhausted) as exc_info:
            await self.executor.run(operation, ErrorContext(step="generate"))

        assert calls == [1, 2, 3]
        assert exc_info.value.attempts == 3
        assert exc_info.value.analysis.kind == ErrorKind.TIMEOUT

    @pytest.mark.asyncio
    async def test_cancelled_before_start(self):
        """Test a set cancel event stops before the first attempt."""
        cancel = asyncio.Event()
        cancel.set()

        async def operation(attempt):
            raise AssertionError("should not run")

        with pytest.raises(GenerationCancelled):
            await self.executor.run(operation, ErrorContext(step="generate"), cancel_event=cancel)

    @pytest.mark.asyncio
    async def test_cancelled_during_backoff(self):
        """Test cancellation during a retry delay aborts the loop."""
        cancel = asyncio.Event()
        calls = []
        executor = RetryExecutor(config=RetryConfig(base_delay_ms=5000, max_delay_ms=5000))

        async def operation(attempt):
            calls.append(attempt)
            asyncio.get_running_loop().call_later(0.01, cancel.set)
            raise ConnectionError("network unreachable")

        with pytest.raises(GenerationCancelled) as exc_info:
            await asyncio.wait_for(
                executor.run(operation, ErrorContext(step="generate"), cancel_event=cancel),
                timeout=2,
            )

        assert calls == [1]
        assert exc_info.value.attempts == 1


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
