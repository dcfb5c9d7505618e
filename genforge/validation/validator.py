"""
Artifact validator.

Runs the six checks concurrently under a semaphore, each bounded by a
timeout, and combines them into a weighted overall score. A check that
fails or times out scores 0 for its dimension instead of failing the
validation.

Copyright (c) 2025 GenForge
"""

import asyncio
import logging
from dataclasses import replace
from typing import Awaitable, Callable, Dict, List, Optional

from genforge.config import get_config
from genforge.utils import monotonic_ms

from . import checks
from .artifacts import Artifact
from .build import BuildRunner, get_build_runner
from .context import (
    adjust_scores,
    contextual_overall,
    contextual_recommendations,
    contextual_suggestions,
    detect_context,
    weights,
)
from .models import AppContext, Diagnosis, Dimension, DimensionScore, ValidationResult

logger = logging.getLogger(__name__)

EMERGENCY_SCORE = 30
EMERGENCY_SUGGESTIONS = [
    "Validation failed: the artifact may be corrupted",
    "Check file integrity and dependencies",
]


def emergency_result(artifact_name: str, context: Optional[AppContext] = None) -> ValidationResult:
    """Fixed result returned when validation itself fails."""
    dimensions = {d: DimensionScore(score=EMERGENCY_SCORE, findings=["Emergency fallback"]) for d in Dimension}
    dimensions[Dimension.COMPILATION] = DimensionScore(
        score=0,
        findings=["Emergency fallback"],
        details={"build_succeeded": False, "output": "Emergency fallback"},
    )
    return ValidationResult(
        artifact_name=artifact_name,
        overall_score=EMERGENCY_SCORE,
        dimensions=dimensions,
        suggestions=list(EMERGENCY_SUGGESTIONS),
        duration_ms=0,
        context=context,
        weights=weights(context),
        fallbacks_used=["emergency"],
        build_succeeded=False,
    )


def base_suggestions(dimensions: Dict[Dimension, DimensionScore]) -> List[str]:
    """Suggestions derived from dimension scores."""
    suggestions = []
    structure = dimensions[Dimension.STRUCTURE]
    compilation = dimensions[Dimension.COMPILATION].details
    quality = dimensions[Dimension.QUALITY].details
    performance = dimensions[Dimension.PERFORMANCE].details

    if structure.score < 80:
        suggestions.append("Complete the base structure (package.json, tsconfig, app layout)")
    if not compilation.get("typecheck_passed", False):
        suggestions.append("Fix type errors")
    lint_issues = compilation.get("lint_issues")
    if lint_issues is not None and lint_issues > 5:
        suggestions.append(f"Reduce lint issues ({lint_issues} found)")
    if not compilation.get("build_succeeded", False):
        suggestions.append("Fix build errors before deploying")
    if quality.get("code_quality", 100) < 70:
        suggestions.append("Improve code quality (shorter functions, less complexity)")
    if quality.get("maintainability", 100) < 70:
        suggestions.append("Reduce duplicated code")
    if dimensions[Dimension.FUNCTIONALITY].score < 70:
        suggestions.append("Complete components (props, exports, behaviour)")
    if performance.get("bundle_size", 0) > 500_000:
        suggestions.append("Reduce bundle size (code splitting, lazy loading)")
    if dimensions[Dimension.ACCESSIBILITY].score < 80:
        suggestions.append("Improve accessibility (alt text, labels, heading structure)")
    return suggestions


class ArtifactValidator:
    """
    Multi-dimensional artifact validator.

    Usage:
        validator = ArtifactValidator()
        result = await validator.validate(DirectoryArtifact("apps/my-app"))
        print(result.overall_score, result.suggestions)
    """

    def __init__(self, build_runner: Optional[BuildRunner] = None, settings=None):
        self.settings = settings or get_config().validation
        self.build_runner = build_runner or get_build_runner(self.settings)

    def _check_plan(self, artifact: Artifact) -> Dict[Dimension, Callable[[], Awaitable[DimensionScore]]]:
        budget = self.settings.performance_budget_bytes
        return {
            Dimension.STRUCTURE: lambda: asyncio.to_thread(checks.check_structure, artifact),
            Dimension.COMPILATION: lambda: checks.check_compilation(artifact, self.build_runner),
            Dimension.QUALITY: lambda: asyncio.to_thread(checks.check_quality, artifact),
            Dimension.FUNCTIONALITY: lambda: asyncio.to_thread(checks.check_functionality, artifact),
            Dimension.PERFORMANCE: lambda: asyncio.to_thread(checks.check_performance, artifact, budget),
            Dimension.ACCESSIBILITY: lambda: asyncio.to_thread(checks.check_accessibility, artifact),
        }

    async def _run_check(self, semaphore: asyncio.Semaphore, dimension: Dimension,
                         check: Callable[[], Awaitable[DimensionScore]]) -> DimensionScore:
        async with semaphore:
            try:
                return await asyncio.wait_for(check(), timeout=self.settings.check_timeout)
            except asyncio.TimeoutError:
                logger.warning(f"{dimension.value} check timed out after {self.settings.check_timeout}s")
                return DimensionScore(score=0, findings=[f"{dimension.value} check timed out"],
                                      details={"error": "timeout"})
            except Exception as e:
                logger.warning(f"{dimension.value} check failed: {e}")
                return DimensionScore(score=0, findings=[f"{dimension.value} check failed: {e}"],
                                      details={"error": str(e)})

    async def run_checks(self, artifact: Artifact) -> Dict[Dimension, DimensionScore]:
        """Run all six checks concurrently and join on all of them."""
        plan = self._check_plan(artifact)
        semaphore = asyncio.Semaphore(max(1, self.settings.max_workers))
        results = await asyncio.gather(*(self._run_check(semaphore, d, c) for d, c in plan.items()))
        return dict(zip(plan.keys(), results))

    async def validate(self, artifact: Artifact) -> ValidationResult:
        """Context-free validation with default weights."""
        started = monotonic_ms()
        dimensions = await self.run_checks(artifact)
        w = weights(None)
        overall = w.combine({d: s.score for d, s in dimensions.items()})
        result = ValidationResult(
            artifact_name=artifact.name,
            overall_score=overall,
            dimensions=dimensions,
            suggestions=base_suggestions(dimensions),
            duration_ms=int(monotonic_ms() - started),
            context=None,
            weights=w,
            build_succeeded=bool(dimensions[Dimension.COMPILATION].details.get("build_succeeded", False)),
        )
        logger.info(f"Validated {artifact.name}: overall={overall}")
        return result

    async def validate_in_context(self, artifact: Artifact,
                                  context: Optional[AppContext] = None) -> ValidationResult:
        """Validation re-weighted and adjusted for the artifact's context."""
        context = context or detect_context(artifact)
        base = await self.validate(artifact)
        return self.apply_context(base, context)

    @staticmethod
    def apply_context(base: ValidationResult, context: AppContext) -> ValidationResult:
        """Re-derive a result under a context. Pure."""
        scores = base.scores()
        details = {d: s.details for d, s in base.dimensions.items()}
        adjusted, notes = adjust_scores(scores, details, context)

        dimensions = {
            d: replace(s, score=adjusted[d]) if adjusted[d] != s.score else s
            for d, s in base.dimensions.items()
        }
        prepend, append = contextual_suggestions(context)
        if notes:
            logger.debug(f"{base.artifact_name}: context adjustments {notes}")
        return replace(
            base,
            overall_score=contextual_overall(adjusted, context),
            dimensions=dimensions,
            suggestions=prepend + list(base.suggestions) + append,
            context=context,
            weights=weights(context),
        )

    async def validate_with_fallbacks(self, artifact: Artifact,
                                      context: Optional[AppContext] = None) -> ValidationResult:
        """
        Total validation: rescues low scores and never raises.

        If the overall score is below the fallback threshold, bounded rescue
        floors are applied and recorded in ``fallbacks_used``. If validation
        itself fails, the emergency result is returned.
        """
        try:
            context = context or detect_context(artifact)
            result = await self.validate_in_context(artifact, context)
            return self.rescue(result, artifact)
        except Exception as e:
            logger.error(f"Validation of {getattr(artifact, 'name', artifact)!r} failed, using emergency result: {e}")
            return emergency_result(getattr(artifact, "name", str(artifact)), context)

    def rescue(self, result: ValidationResult, artifact: Artifact) -> ValidationResult:
        if result.overall_score >= self.settings.fallback_score_threshold:
            return result

        fallbacks = ["low_score"]
        scores = result.scores()

        if scores[Dimension.STRUCTURE] < 50 and checks.has_essential_files(artifact):
            scores[Dimension.STRUCTURE] = max(scores[Dimension.STRUCTURE], 60)
            fallbacks.append("essential_files")

        if not result.build_succeeded and scores[Dimension.STRUCTURE] > 70:
            scores[Dimension.COMPILATION] = max(scores[Dimension.COMPILATION], 40)
            fallbacks.append("build_failure")

        dimensions = {
            d: replace(s, score=scores[d]) if scores[d] != s.score else s
            for d, s in result.dimensions.items()
        }
        overall = contextual_overall(scores, result.context)
        logger.info(f"{result.artifact_name}: fallbacks {fallbacks}, overall {result.overall_score} -> {overall}")
        return replace(
            result,
            overall_score=overall,
            dimensions=dimensions,
            fallbacks_used=list(result.fallbacks_used) + fallbacks,
        )

    async def diagnose(self, artifact: Artifact) -> Diagnosis:
        """Context, context-aware validation and recommendations."""
        context = detect_context(artifact)
        validation = await self.validate_in_context(artifact, context)
        return Diagnosis(
            context=context,
            validation=validation,
            recommendations=contextual_recommendations(context, validation.overall_score),
        )
