"""
GenForge Scenario Runner.

Named suites of generation scenarios with expected domain, features and
minimum quality score, run against per-case artifacts.

Copyright (c) 2025 GenForge
"""

from typing import Optional

from .fixtures import ArtifactProvider, FixtureArtifactProvider, component_name
from .runner import (
    CaseResult,
    ExpectationMatch,
    RegressionRunner,
    SuiteResult,
    SuiteSummary,
    detect_features,
    domain_matches,
)
from .suites import BUILTIN_SUITES, CaseKind, ScenarioCase, ScenarioSuite

_runner: Optional[RegressionRunner] = None


def get_regression_runner() -> RegressionRunner:
    """Get or create the shared runner."""
    global _runner
    if _runner is None:
        _runner = RegressionRunner()
    return _runner


async def run_regression_suite(name: str) -> SuiteResult:
    """Run a built-in suite by name with fixture artifacts."""
    return await get_regression_runner().run_suite(name)


__all__ = [
    "ArtifactProvider",
    "BUILTIN_SUITES",
    "CaseKind",
    "CaseResult",
    "ExpectationMatch",
    "FixtureArtifactProvider",
    "RegressionRunner",
    "ScenarioCase",
    "ScenarioSuite",
    "SuiteResult",
    "SuiteSummary",
    "component_name",
    "detect_features",
    "domain_matches",
    "get_regression_runner",
    "run_regression_suite",
]
