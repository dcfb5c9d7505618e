"""
GenForge Artifact Validation.

Scores a generated application across six dimensions (structure,
compilation, code quality, functional completeness, performance,
accessibility), adapts the weighting to the artifact's context and
rescues low scores with bounded fallbacks.

Copyright (c) 2025 GenForge
"""

from pathlib import Path
from typing import Optional, Union

from .artifacts import Artifact, DirectoryArtifact, InMemoryArtifact, as_artifact
from .build import BuildRunner, StaticBuildRunner, SubprocessBuildRunner, get_build_runner
from .context import detect_context, weights
from .models import (
    AppContext,
    BuildReport,
    Diagnosis,
    Dimension,
    DimensionScore,
    GenerationMethod,
    MaturityLevel,
    ValidationResult,
    WeightVector,
)
from .validator import ArtifactValidator, emergency_result

_validator: Optional[ArtifactValidator] = None


def get_validator() -> ArtifactValidator:
    """Get or create the shared validator."""
    global _validator
    if _validator is None:
        _validator = ArtifactValidator()
    return _validator


async def validate_artifact(artifact: Union[str, Path, Artifact],
                            context: Optional[AppContext] = None) -> ValidationResult:
    """
    Validate an artifact (or a path to one). Never raises.

    The context is detected from the artifact unless given.
    """
    return await get_validator().validate_with_fallbacks(as_artifact(artifact), context)


__all__ = [
    "AppContext",
    "Artifact",
    "ArtifactValidator",
    "BuildReport",
    "BuildRunner",
    "Diagnosis",
    "Dimension",
    "DimensionScore",
    "DirectoryArtifact",
    "GenerationMethod",
    "InMemoryArtifact",
    "MaturityLevel",
    "StaticBuildRunner",
    "SubprocessBuildRunner",
    "ValidationResult",
    "WeightVector",
    "as_artifact",
    "detect_context",
    "emergency_result",
    "get_build_runner",
    "get_validator",
    "validate_artifact",
    "weights",
]
