"""
Scenario runner.

Runs suites of scenario cases: each case gets a fresh artifact from the
provider, which is validated with fallbacks and checked against the case's
expected domain, features and minimum score.

Copyright (c) 2025 GenForge
"""

import asyncio
import logging
import math
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional

from genforge.config import get_config
from genforge.exceptions import UnknownSuiteError
from genforge.utils import monotonic_ms, utc_now
from genforge.validation import Artifact, ArtifactValidator, ValidationResult, get_validator
from genforge.validation.models import round_half_up

from .fixtures import ArtifactProvider, FixtureArtifactProvider
from .suites import BUILTIN_SUITES, ScenarioCase, ScenarioSuite, suites_by_name

logger = logging.getLogger(__name__)

COMPONENT_EXTENSIONS = (".tsx", ".jsx")

# Artifact paths that count as proof of a domain, by component-name keyword
DOMAIN_KEYWORDS: Dict[str, tuple] = {
    "ecommerce": ("product", "cart"),
    "blog": ("post", "article"),
    "portfolio": ("gallery", "project"),
}
SAAS_MARKERS = ("contexts", "components/business")

# Features proven by a specific file rather than a component name
FEATURE_MARKERS: Dict[str, tuple] = {
    "dashboard": ("contexts/DashboardContext.tsx",),
    "dashboardcontext": ("contexts/DashboardContext.tsx",),
    "analytics": ("contexts/AnalyticsContext.tsx",),
    "analyticscontext": ("contexts/AnalyticsContext.tsx",),
    "metrics": ("components/business/MetricsCard.tsx",),
    "metricscard": ("components/business/MetricsCard.tsx",),
}
FEATURE_ALIASES: Dict[str, tuple] = {
    "authentication": ("auth", "login"),
    "auth": ("auth", "login"),
}


def _key(text: str) -> str:
    return re.sub(r"[^a-z0-9]", "", text.lower())


def component_keys(artifact: Artifact) -> List[str]:
    """Normalized component file names under components/."""
    keys = []
    for path in artifact.list_files("components", COMPONENT_EXTENSIONS):
        stem = path.rsplit("/", 1)[-1].rsplit(".", 1)[0]
        keys.append(_key(stem))
    return keys


def domain_matches(artifact: Artifact, expected_domain: str) -> bool:
    """Whether the artifact shows the expected domain; unknown domains match."""
    if expected_domain == "saas":
        return any(artifact.exists(marker) for marker in SAAS_MARKERS)
    keywords = DOMAIN_KEYWORDS.get(expected_domain)
    if keywords is None:
        return True
    return any(word in key for key in component_keys(artifact) for word in keywords)


def detect_features(artifact: Artifact, expected_features) -> List[str]:
    """The expected features the artifact actually carries."""
    keys = component_keys(artifact)
    found = []
    for feature in expected_features:
        feature_key = _key(feature)
        needles = (feature_key,) + FEATURE_ALIASES.get(feature_key, ())
        present = any(needle and needle in key for key in keys for needle in needles)
        if not present:
            present = any(artifact.exists(path) for path in FEATURE_MARKERS.get(feature_key, ()))
        if present:
            found.append(feature)
    return found


def features_match(found: int, expected: int, threshold: float = 0.6) -> bool:
    if expected == 0:
        return True
    return found >= math.ceil(expected * threshold - 1e-9)


@dataclass
class ExpectationMatch:
    domain: bool = False
    features: bool = False
    score: bool = False

    @property
    def all(self) -> bool:
        return self.domain and self.features and self.score


@dataclass
class CaseResult:
    case: ScenarioCase
    success: bool
    validation: Optional[ValidationResult] = None
    error: Optional[str] = None
    duration_ms: int = 0
    matched: ExpectationMatch = field(default_factory=ExpectationMatch)
    detected_features: List[str] = field(default_factory=list)

    @property
    def score(self) -> int:
        return self.validation.overall_score if self.validation else 0


@dataclass
class SuiteSummary:
    total: int = 0
    passed: int = 0
    failed: int = 0
    average_score: int = 0
    average_duration_ms: int = 0

    @classmethod
    def from_results(cls, results: List[CaseResult]) -> "SuiteSummary":
        if not results:
            return cls()
        passed = sum(1 for r in results if r.success)
        return cls(
            total=len(results),
            passed=passed,
            failed=len(results) - passed,
            average_score=round_half_up(sum(r.score for r in results) / len(results)),
            average_duration_ms=round_half_up(sum(r.duration_ms for r in results) / len(results)),
        )


@dataclass
class SuiteResult:
    suite: ScenarioSuite
    started_at: datetime
    finished_at: datetime
    results: List[CaseResult]
    summary: SuiteSummary


class RegressionRunner:
    """
    Runs scenario suites against freshly provided artifacts.

    Usage:
        runner = RegressionRunner()
        result = await runner.run_suite("Domain Coverage")
        print(runner.generate_report([result]))
    """

    def __init__(
        self,
        provider: Optional[ArtifactProvider] = None,
        validator: Optional[ArtifactValidator] = None,
        suites: Optional[List[ScenarioSuite]] = None,
        settings=None,
    ):
        self.provider = provider or FixtureArtifactProvider()
        self.validator = validator or get_validator()
        self.suites = list(suites if suites is not None else BUILTIN_SUITES)
        self.settings = settings or get_config().regression

    def available_suites(self) -> List[str]:
        return [suite.name for suite in self.suites]

    def get_suite(self, name: str) -> ScenarioSuite:
        try:
            return suites_by_name(self.suites)[name]
        except KeyError:
            raise UnknownSuiteError(name, self.available_suites()) from None

    async def run_case(self, case: ScenarioCase) -> CaseResult:
        """Run one case. Never raises: failures become a failed result."""
        started = monotonic_ms()
        try:
            artifact = await self.provider.provide(case)
            validation = await self.validator.validate_with_fallbacks(artifact)
            found = detect_features(artifact, case.expected_features)
            matched = ExpectationMatch(
                domain=domain_matches(artifact, case.expected_domain),
                features=features_match(len(found), len(case.expected_features),
                                        self.settings.feature_threshold),
                score=validation.overall_score >= case.min_score,
            )
            return CaseResult(
                case=case,
                success=matched.all,
                validation=validation,
                duration_ms=int(monotonic_ms() - started),
                matched=matched,
                detected_features=found,
            )
        except Exception as e:
            logger.warning(f"Case {case.name!r} failed with an error: {e}")
            return CaseResult(
                case=case,
                success=False,
                error=str(e) or type(e).__name__,
                duration_ms=int(monotonic_ms() - started),
            )

    async def run_suite(self, name: str) -> SuiteResult:
        """Run every case of a suite; raises UnknownSuiteError for unknown names."""
        suite = self.get_suite(name)
        logger.info(f"Running suite {suite.name!r} ({len(suite.cases)} cases)")
        started_at = utc_now()

        if self.settings.max_concurrent > 1:
            semaphore = asyncio.Semaphore(self.settings.max_concurrent)

            async def bounded(case: ScenarioCase) -> CaseResult:
                async with semaphore:
                    return await self.run_case(case)

            results = list(await asyncio.gather(*(bounded(case) for case in suite.cases)))
        else:
            results = []
            for index, case in enumerate(suite.cases, 1):
                result = await self.run_case(case)
                results.append(result)
                status = "passed" if result.success else "failed"
                logger.info(f"[{index}/{len(suite.cases)}] {case.name}: {status} "
                            f"(score {result.score}, {result.duration_ms}ms)")

        summary = SuiteSummary.from_results(results)
        logger.info(f"Suite {suite.name!r}: {summary.passed}/{summary.total} passed, "
                    f"average score {summary.average_score}")
        return SuiteResult(
            suite=suite,
            started_at=started_at,
            finished_at=utc_now(),
            results=results,
            summary=summary,
        )

    async def run_all_suites(self) -> List[SuiteResult]:
        results = []
        for suite in self.suites:
            results.append(await self.run_suite(suite.name))
        return results

    @staticmethod
    def verdict(success_rate: int, average_score: int) -> str:
        if success_rate >= 90 and average_score >= 80:
            return "PASSED"
        if success_rate >= 75 and average_score >= 70:
            return "FUNCTIONAL"
        return "PARTIAL"

    def generate_report(self, results: List[SuiteResult]) -> str:
        """Markdown report over one or more suite results."""
        lines = [
            "# Scenario Report",
            "",
            f"*Generated {utc_now().strftime('%Y-%m-%d %H:%M UTC')}*",
            "",
            "## Suites",
            "",
        ]
        total = 0
        passed = 0
        weighted_score = 0
        failures = []
        for result in results:
            summary = result.summary
            total += summary.total
            passed += summary.passed
            weighted_score += summary.average_score * summary.total
            lines.append(f"### {result.suite.name}")
            lines.append(f"- **Cases**: {summary.passed}/{summary.total}")
            lines.append(f"- **Average score**: {summary.average_score}%")
            lines.append(f"- **Average duration**: {summary.average_duration_ms}ms")
            lines.append("")
            failures.extend((result.suite.name, r) for r in result.results if not r.success)

        success_rate = round_half_up(passed / total * 100) if total else 0
        average_score = round_half_up(weighted_score / total) if total else 0

        lines.append("## Overall")
        lines.append(f"- **Success rate**: {success_rate}%")
        lines.append(f"- **Average score**: {average_score}%")
        lines.append(f"- **Cases passed**: {passed}/{total}")
        lines.append("")

        if failures:
            lines.append("## Failures")
            for suite_name, failure in failures:
                if failure.error:
                    reason = f"error: {failure.error}"
                else:
                    missed = [k for k, ok in vars(failure.matched).items() if not ok]
                    reason = "missed " + ", ".join(missed)
                lines.append(f"- {suite_name} / {failure.case.name}: {reason}")
            lines.append("")

        lines.append("## Verdict")
        lines.append(f"**{self.verdict(success_rate, average_score)}**")
        return "\n".join(lines)
