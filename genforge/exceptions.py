"""
GenForge exception hierarchy.

Copyright (c) 2025 GenForge
"""

from typing import Optional


class GenForgeError(Exception):
    """Base class for all GenForge errors."""


class ArtifactError(GenForgeError):
    """Raised when an artifact cannot be inspected."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class RetryExhausted(GenForgeError):
    """Raised when an operation fails terminally under the retry policy."""

    def __init__(self, message: str, analysis=None, attempts: int = 0, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.analysis = analysis
        self.attempts = attempts
        self.last_error = last_error


class GenerationCancelled(GenForgeError):
    """Raised when a cancellation signal interrupts a retry loop."""

    def __init__(self, message: str = "Generation cancelled", attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts


class QualityGateError(GenForgeError):
    """Raised when a generated artifact scores below the session quality gate."""

    def __init__(self, score: int, threshold: float, artifact_name: str = ""):
        super().__init__(
            f"validation failed: quality gate not met for {artifact_name or 'artifact'} "
            f"(score {score} < threshold {threshold:g})"
        )
        self.score = score
        self.threshold = threshold
        self.artifact_name = artifact_name


class UnknownSuiteError(GenForgeError, KeyError):
    """Raised when a scenario suite name is not registered."""

    def __init__(self, name: str, available=None):
        self.name = name
        self.available = list(available or [])
        super().__init__(f"Unknown suite: {name!r} (available: {', '.join(self.available) or 'none'})")

    def __str__(self) -> str:
        return self.args[0]
