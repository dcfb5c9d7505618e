"""
Error classification and retry policy.

Every failure in the pipeline goes through ErrorClassifier before a retry
or abort decision is taken, so the decision is always inspectable.

The user-facing message and the technical detail are kept apart: the
former is logged at warning level, the latter only at debug level.

Copyright (c) 2025 GenForge
"""

import errno
import json
import re
import traceback
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog
from pydantic import ValidationError as PydanticValidationError

from genforge.utils import utc_timestamp

from .models import (
    NON_RETRYABLE_KINDS,
    ErrorAnalysis,
    ErrorContext,
    ErrorKind,
    ErrorSeverity,
    RetryConfig,
    RetryDecision,
)

logger = structlog.get_logger(__name__)


_VALIDATION_WORDS = re.compile(r"validation|invalid input|is required|required field")
_RATE_LIMIT_WORDS = re.compile(r"rate[ -]?limit|too many requests|throttl")
_QUOTA_WORDS = re.compile(r"\bquota\b|limit exceeded|insufficient_quota")
_API_WORDS = re.compile(r"\bapi\b|unauthorized|forbidden|bad gateway|service unavailable|internal server error")
_TIMEOUT_WORDS = re.compile(r"timeout|timed out|deadline exceeded")
_NETWORK_WORDS = re.compile(r"network|connection|enotfound|econnreset|econnrefused|dns|unreachable")
_PARSING_WORDS = re.compile(r"parse|json|yaml|syntax|unexpected token|decode")
_FS_WORDS = re.compile(r"\bfile|directory|enoent|eacces|permission denied|no space left|disk")


SUGGESTED_ACTIONS: Dict[ErrorKind, str] = {
    ErrorKind.VALIDATION: "Check and correct the input parameters",
    ErrorKind.API: "Check the API configuration and permissions",
    ErrorKind.RATE_LIMIT: "Wait {seconds}s before retrying",
    ErrorKind.TIMEOUT: "Increase the timeout or retry with a simpler request",
    ErrorKind.NETWORK: "Check network connectivity and retry",
    ErrorKind.PARSING: "Check the format of the response data",
    ErrorKind.FILE_SYSTEM: "Check file permissions and available disk space",
    ErrorKind.QUOTA_EXCEEDED: "Wait for the quota to reset or use another API key",
    ErrorKind.UNKNOWN: "Inspect the logs for details",
}

USER_MESSAGES: Dict[ErrorKind, str] = {
    ErrorKind.VALIDATION: 'Validation error during "{step}". Please check your parameters.',
    ErrorKind.API: 'Problem talking to the generation service during "{step}". Retrying automatically.',
    ErrorKind.RATE_LIMIT: 'Request limit reached. Pausing before continuing "{step}".',
    ErrorKind.TIMEOUT: '"{step}" is taking longer than expected. Retrying.',
    ErrorKind.NETWORK: 'Network problem during "{step}". Reconnecting.',
    ErrorKind.PARSING: 'Could not process the data returned during "{step}". Retrying.',
    ErrorKind.FILE_SYSTEM: 'Could not write the generated files during "{step}".',
    ErrorKind.QUOTA_EXCEEDED: "API quota exceeded. Please try again later or contact support.",
    ErrorKind.UNKNOWN: 'Unexpected error during "{step}". We are looking into it.',
}


def backoff_delay(attempt: int, config: Optional[RetryConfig] = None) -> int:
    """Exponential backoff in ms for a 1-indexed attempt, capped at max_delay_ms."""
    config = config or RetryConfig()
    attempt = max(1, int(attempt))
    delay = config.base_delay_ms * (config.backoff_multiplier ** (attempt - 1))
    return int(min(delay, config.max_delay_ms))


def _error_message(error: Any) -> str:
    if isinstance(error, BaseException):
        message = str(error)
        return message or type(error).__name__
    if error is None:
        return "unknown error"
    return str(error)


def _status_of(error: Any) -> Optional[int]:
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    return value if isinstance(value, int) else None


def _code_of(error: Any) -> Optional[str]:
    code = getattr(error, "code", None)
    if isinstance(code, str):
        return code.upper()
    number = getattr(error, "errno", None)
    if isinstance(number, int):
        return errno.errorcode.get(number)
    return None


class ErrorClassifier:
    """
    Classifies failures and decides whether to retry.

    Usage:
        classifier = ErrorClassifier()
        decision = classifier.decide(exc, ErrorContext(step="generate", attempt=1))
        if decision.retry:
            await asyncio.sleep(decision.delay_ms / 1000)
    """

    def __init__(self, config: Optional[RetryConfig] = None):
        self.config = config or RetryConfig()

    def classify(self, error: Any) -> ErrorKind:
        """Map an error to its kind. First matching category wins."""
        message = _error_message(error).lower()
        status = _status_of(error)
        code = _code_of(error)

        rate_limited = status == 429 or bool(_RATE_LIMIT_WORDS.search(message))
        quota = bool(_QUOTA_WORDS.search(message))

        if isinstance(error, PydanticValidationError) or _VALIDATION_WORDS.search(message):
            return ErrorKind.VALIDATION
        if not rate_limited and not quota and (
            _API_WORDS.search(message) or (status is not None and status >= 400)
        ):
            return ErrorKind.API
        if rate_limited:
            return ErrorKind.RATE_LIMIT
        if isinstance(error, TimeoutError) or code == "ETIMEDOUT" or _TIMEOUT_WORDS.search(message):
            return ErrorKind.TIMEOUT
        if (
            isinstance(error, ConnectionError)
            or code in ("ECONNRESET", "ECONNREFUSED", "ENOTFOUND")
            or _NETWORK_WORDS.search(message)
        ):
            return ErrorKind.NETWORK
        if isinstance(error, (json.JSONDecodeError, SyntaxError)) or _PARSING_WORDS.search(message):
            return ErrorKind.PARSING
        if (
            isinstance(error, OSError)
            or (code is not None and code.startswith("E"))
            or _FS_WORDS.search(message)
        ):
            return ErrorKind.FILE_SYSTEM
        if quota:
            return ErrorKind.QUOTA_EXCEEDED
        return ErrorKind.UNKNOWN

    def severity(self, kind: ErrorKind, context: ErrorContext) -> ErrorSeverity:
        if kind == ErrorKind.QUOTA_EXCEEDED or (kind == ErrorKind.API and context.is_final_attempt):
            return ErrorSeverity.CRITICAL
        if kind in (ErrorKind.API, ErrorKind.PARSING, ErrorKind.FILE_SYSTEM):
            return ErrorSeverity.HIGH
        if kind in (ErrorKind.TIMEOUT, ErrorKind.NETWORK, ErrorKind.RATE_LIMIT):
            return ErrorSeverity.MEDIUM
        return ErrorSeverity.LOW

    def is_retryable(self, kind: ErrorKind, context: ErrorContext,
                     config: Optional[RetryConfig] = None) -> bool:
        config = config or self.config
        max_attempts = min(context.max_attempts, config.max_attempts)
        if context.attempt >= max_attempts:
            return False
        if kind in NON_RETRYABLE_KINDS:
            return False
        return kind in config.retryable_kinds

    def analyze(self, error: Any, context: ErrorContext,
                config: Optional[RetryConfig] = None) -> ErrorAnalysis:
        """Classify a failure and derive severity, retryability and messages."""
        config = config or self.config
        kind = self.classify(error)
        delay = backoff_delay(context.attempt, config)

        action = SUGGESTED_ACTIONS[kind]
        if kind == ErrorKind.RATE_LIMIT:
            action = action.format(seconds=-(-delay // 1000))

        step_name = (context.step or "unknown").replace("_", " ")
        analysis = ErrorAnalysis(
            kind=kind,
            severity=self.severity(kind, context),
            retryable=self.is_retryable(kind, context, config),
            suggested_delay_ms=delay,
            suggested_action=action,
            user_message=USER_MESSAGES[kind].format(step=step_name),
            technical_detail=self._technical_detail(error),
        )

        logger.warning(
            "Error classified",
            step=context.step,
            session_id=context.session_id,
            kind=analysis.kind.value,
            severity=analysis.severity.value,
            retryable=analysis.retryable,
            attempt=f"{context.attempt}/{context.max_attempts}",
            user_message=analysis.user_message,
        )
        logger.debug(
            "Error technical detail",
            step=context.step,
            session_id=context.session_id,
            detail=analysis.technical_detail,
            extra=context.extra,
        )
        return analysis

    def decide(self, error: Any, context: ErrorContext,
               config: Optional[RetryConfig] = None) -> RetryDecision:
        """
        Decide whether to retry after a failure.

        Never raises: an internal failure degrades to "do not retry".
        """
        try:
            config = config or self.config
            analysis = self.analyze(error, context, config)
            retry = analysis.retryable
            delay = analysis.suggested_delay_ms if retry else 0
            if retry:
                logger.warning(
                    "Retry scheduled",
                    step=context.step,
                    next_attempt=context.attempt + 1,
                    max_attempts=config.max_attempts,
                    delay_ms=delay,
                    reason=analysis.suggested_action,
                )
            else:
                logger.error(
                    "Step abandoned",
                    step=context.step,
                    kind=analysis.kind.value,
                    reason="non-retryable" if analysis.kind in NON_RETRYABLE_KINDS else "attempts exhausted",
                    final_attempt=context.attempt,
                )
            return RetryDecision(retry=retry, delay_ms=delay, analysis=analysis)
        except Exception as e:
            logger.exception("Retry decision failed", step=getattr(context, "step", None), error=str(e))
            return RetryDecision(retry=False, delay_ms=0, analysis=None)

    @staticmethod
    def _technical_detail(error: Any) -> str:
        message = _error_message(error)
        if isinstance(error, BaseException):
            trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
            return f"{type(error).__name__}: {message}\n\n{trace}".rstrip()
        return message


def error_report(error: Any, context: ErrorContext, analysis: ErrorAnalysis) -> str:
    """Markdown report for one failure."""
    extra = json.dumps(context.extra, indent=2, default=str) if context.extra else "None"
    return f"""# Error Report - {utc_timestamp()}

## General
- **Session ID**: {context.session_id or 'n/a'}
- **Step**: {context.step}
- **Attempt**: {context.attempt}/{context.max_attempts}
- **Duration**: {context.duration_ms}ms

## Analysis
- **Kind**: {analysis.kind.value}
- **Severity**: {analysis.severity.value}
- **Retryable**: {'yes' if analysis.retryable else 'no'}
- **Suggested action**: {analysis.suggested_action}

## User Message
{analysis.user_message}

## Technical Detail
```
{analysis.technical_detail}
```

## Additional Context
{extra}
"""


def group_by_kind(
    errors: Iterable[Tuple[Any, ErrorContext]],
    classifier: Optional[ErrorClassifier] = None,
) -> Dict[ErrorKind, List[Tuple[Any, ErrorContext]]]:
    """Group a batch of (error, context) pairs by kind, e.g. after cascading failures."""
    classifier = classifier or ErrorClassifier()
    groups: Dict[ErrorKind, List[Tuple[Any, ErrorContext]]] = defaultdict(list)
    for error, context in errors:
        groups[classifier.classify(error)].append((error, context))
    logger.info("Cascading errors grouped", kinds={k.value: len(v) for k, v in groups.items()})
    return dict(groups)
