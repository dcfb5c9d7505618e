"""
GenForge: adaptive generation quality and recovery.

Intent analysis, session-driven personalization, error classification with
retry policy, multi-dimensional artifact validation and scenario suites for
an application generator.

Copyright (c) 2025 GenForge
"""

__version__ = "0.1.0"

from genforge.intent import analyze_request
from genforge.personalization import personalize
from genforge.recovery import classify_and_decide
from genforge.regression import run_regression_suite
from genforge.validation import validate_artifact

__all__ = [
    "__version__",
    "analyze_request",
    "classify_and_decide",
    "personalize",
    "run_regression_suite",
    "validate_artifact",
]
