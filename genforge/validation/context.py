"""
Context-aware scoring.

The same artifact may legitimately score differently depending on what it
is (a throwaway test app, a mature product). All of that variation is
contained here: detect_context() classifies the artifact, weights() maps a
context to a WeightVector, and adjust_scores() applies bounded bonuses.
Same artifact and same context always give the same score.

Copyright (c) 2025 GenForge
"""

import json
import logging
from typing import Dict, List, Optional, Tuple

from .artifacts import Artifact
from .models import AppContext, Dimension, GenerationMethod, MaturityLevel, WeightVector

logger = logging.getLogger(__name__)

TEST_NAME_MARKERS = ("test", "phase")
MANUAL_NAME_MARKERS = ("test-app",)
GENERATOR_MANIFEST = "genforge.json"

ADVANCED_FEATURE_MARKERS = (
    "contexts/DashboardContext.tsx",
    "contexts/AnalyticsContext.tsx",
    "components/business/MetricsCard.tsx",
    "components/business/AnalyticsChart.tsx",
)

PRODUCTION_MARKERS = (
    "Dockerfile",
    "vercel.json",
    ".github/workflows",
    "next.config.js",
)

DEFAULT_WEIGHTS = WeightVector()
TEST_ARTIFACT_WEIGHTS = WeightVector(
    structure=0.20,
    compilation=0.20,
    quality=0.25,
    functionality=0.25,
    performance=0.05,
    accessibility=0.05,
)

STRUCTURE_BONUS = 15
LINT_TOLERANCE_BONUS = 10
ADVANCED_BONUSES: Dict[Dimension, int] = {
    Dimension.FUNCTIONALITY: 20,
    Dimension.QUALITY: 10,
    Dimension.PERFORMANCE: 5,
}
ADVANCED_MATURITY_BONUS = 5


def _read_json(artifact: Artifact, path: str) -> Optional[dict]:
    if not artifact.exists(path):
        return None
    try:
        data = json.loads(artifact.read_text(path))
    except ValueError:
        logger.debug(f"{artifact.name}: {path} is not valid JSON")
        return None
    return data if isinstance(data, dict) else None


def detect_context(artifact: Artifact) -> AppContext:
    """Classify an artifact from its name and file layout."""
    name = artifact.name.lower()
    is_test = any(marker in name for marker in TEST_NAME_MARKERS)

    generator_manifest = _read_json(artifact, GENERATOR_MANIFEST)
    if any(marker in name for marker in MANUAL_NAME_MARKERS):
        method = GenerationMethod.MANUAL
    elif generator_manifest is not None:
        method = GenerationMethod.AUTOMATED
    else:
        method = GenerationMethod.UNKNOWN

    advanced = any(artifact.exists(marker) for marker in ADVANCED_FEATURE_MARKERS)

    if advanced:
        domain = "saas"
    elif generator_manifest and isinstance(generator_manifest.get("domain"), str):
        domain = generator_manifest["domain"]
    else:
        domain = "app"

    maturity = MaturityLevel.BASIC
    manifest = _read_json(artifact, "package.json")
    if manifest is not None:
        dev_deps = manifest.get("devDependencies") or {}
        scripts = manifest.get("scripts") or {}
        if len(dev_deps) > 5 and len(scripts) > 3:
            maturity = MaturityLevel.INTERMEDIATE
    if advanced:
        maturity = MaturityLevel.ADVANCED
    if any(artifact.exists(marker) for marker in PRODUCTION_MARKERS):
        maturity = MaturityLevel.PRODUCTION

    return AppContext(
        is_test_artifact=is_test,
        maturity_level=maturity,
        domain_type=domain,
        has_advanced_features=advanced,
        generation_method=method,
    )


def weights(context: Optional[AppContext]) -> WeightVector:
    """Weights for a context. Pure; both vectors sum to 1.0."""
    if context is not None and context.is_test_artifact:
        return TEST_ARTIFACT_WEIGHTS
    return DEFAULT_WEIGHTS


def adjust_scores(
    scores: Dict[Dimension, int],
    details: Dict[Dimension, dict],
    context: AppContext,
) -> Tuple[Dict[Dimension, int], List[str]]:
    """
    Apply the bounded context bonuses.

    Returns the adjusted scores and a note per bonus applied.
    """
    adjusted = dict(scores)
    notes = []

    if context.is_test_artifact:
        structure = details.get(Dimension.STRUCTURE, {})
        optional_total = structure.get("optional_total", 0)
        optional_missing = structure.get("optional_missing", optional_total)
        if adjusted[Dimension.STRUCTURE] < 80 and optional_missing <= optional_total * 0.5:
            adjusted[Dimension.STRUCTURE] = min(adjusted[Dimension.STRUCTURE] + STRUCTURE_BONUS, 100)
            notes.append("structure_tolerance")

        lint_issues = details.get(Dimension.COMPILATION, {}).get("lint_issues")
        if lint_issues is not None and 0 < lint_issues <= 10:
            adjusted[Dimension.COMPILATION] = min(adjusted[Dimension.COMPILATION] + LINT_TOLERANCE_BONUS, 100)
            notes.append("lint_tolerance")

    if context.has_advanced_features:
        for dimension, bonus in ADVANCED_BONUSES.items():
            adjusted[dimension] = min(adjusted[dimension] + bonus, 100)
        notes.append("advanced_features")

    return adjusted, notes


def contextual_overall(scores: Dict[Dimension, int], context: Optional[AppContext]) -> int:
    """Overall score under the context's weights, plus the maturity bonus."""
    overall = weights(context).combine(scores)
    if context is not None and context.maturity_level == MaturityLevel.ADVANCED:
        overall = min(overall + ADVANCED_MATURITY_BONUS, 100)
    return overall


def contextual_suggestions(context: AppContext) -> Tuple[List[str], List[str]]:
    """Suggestions to prepend and to append for a context."""
    prepend = []
    append = []
    if context.has_advanced_features:
        prepend.append("Advanced feature bundles detected: quality bonus applied")
    if context.is_test_artifact:
        prepend.append("Test artifact detected: validation thresholds adapted")
        if not context.has_advanced_features:
            append.append("Consider adding advanced feature bundles (contexts, business components) for a better score")
    return prepend, append


def contextual_recommendations(context: AppContext, overall_score: int) -> List[str]:
    """Recommendations for diagnose()."""
    recommendations = []
    if context.is_test_artifact and context.generation_method == GenerationMethod.MANUAL:
        recommendations.append("Manual artifact detected: consider automated generation for full optimizations")
    if not context.has_advanced_features and context.domain_type == "saas":
        recommendations.append("SaaS artifact without advanced bundles: add contexts and business components")
    if overall_score < 70:
        recommendations.append("Low score: enable fallbacks and automatic fixes")
    if context.maturity_level == MaturityLevel.BASIC:
        recommendations.append("Basic artifact: add dev dependencies and quality scripts")
    return recommendations
