"""
Validation data types.

Copyright (c) 2025 GenForge
"""

import math
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Any, Dict, List, Optional


def round_half_up(value: float) -> int:
    """Round .5 up, as score arithmetic expects."""
    return int(math.floor(value + 0.5 + 1e-9))


class Dimension(str, Enum):
    """Quality dimensions, in weighting order."""
    STRUCTURE = "structure"
    COMPILATION = "compilation"
    QUALITY = "quality"
    FUNCTIONALITY = "functionality"
    PERFORMANCE = "performance"
    ACCESSIBILITY = "accessibility"


class MaturityLevel(str, Enum):
    BASIC = "basic"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    PRODUCTION = "production"


class GenerationMethod(str, Enum):
    MANUAL = "manual"
    AUTOMATED = "automated"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class WeightVector:
    """Per-dimension weights. Always sums to 1.0."""
    structure: float = 0.25
    compilation: float = 0.25
    quality: float = 0.20
    functionality: float = 0.15
    performance: float = 0.10
    accessibility: float = 0.05

    def __post_init__(self):
        total = self.total()
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ValueError(f"Weights must sum to 1.0 (got {total})")
        if any(getattr(self, f.name) < 0 for f in fields(self)):
            raise ValueError("Weights must be non-negative")

    def total(self) -> float:
        return sum(getattr(self, f.name) for f in fields(self))

    def of(self, dimension: Dimension) -> float:
        return getattr(self, dimension.value)

    def combine(self, scores: Dict[Dimension, float]) -> int:
        """Weighted sum of dimension scores, rounded half up."""
        return round_half_up(sum(scores.get(d, 0) * self.of(d) for d in Dimension))

    def as_dict(self) -> Dict[str, float]:
        return {d.value: self.of(d) for d in Dimension}


@dataclass(frozen=True)
class AppContext:
    """Derived classification of an artifact. Never persisted."""
    is_test_artifact: bool = False
    maturity_level: MaturityLevel = MaturityLevel.BASIC
    domain_type: str = "app"
    has_advanced_features: bool = False
    generation_method: GenerationMethod = GenerationMethod.UNKNOWN


@dataclass
class DimensionScore:
    """Score of one dimension with what was found."""
    score: int
    findings: List[str] = field(default_factory=list)
    details: Dict[str, Any] = field(default_factory=dict)


@dataclass
class BuildReport:
    """What a BuildRunner found."""
    typecheck_passed: bool = False
    lint_issues: Optional[int] = None  # None when lint could not run
    build_succeeded: bool = False
    output: str = ""

    @property
    def lint_passed(self) -> bool:
        return self.lint_issues == 0


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one artifact."""
    artifact_name: str
    overall_score: int
    dimensions: Dict[Dimension, DimensionScore]
    suggestions: List[str] = field(default_factory=list)
    duration_ms: int = 0
    context: Optional[AppContext] = None
    weights: WeightVector = field(default_factory=WeightVector)
    fallbacks_used: List[str] = field(default_factory=list)
    build_succeeded: bool = False

    def score_of(self, dimension: Dimension) -> int:
        return self.dimensions[dimension].score

    def scores(self) -> Dict[Dimension, int]:
        return {d: s.score for d, s in self.dimensions.items()}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "artifact_name": self.artifact_name,
            "overall_score": self.overall_score,
            "dimensions": {
                d.value: {"score": s.score, "findings": list(s.findings)}
                for d, s in self.dimensions.items()
            },
            "suggestions": list(self.suggestions),
            "duration_ms": self.duration_ms,
            "weights": self.weights.as_dict(),
            "fallbacks_used": list(self.fallbacks_used),
            "build_succeeded": self.build_succeeded,
        }


@dataclass
class Diagnosis:
    """Context, validation and recommendations for one artifact."""
    context: AppContext
    validation: ValidationResult
    recommendations: List[str] = field(default_factory=list)
