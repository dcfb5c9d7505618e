"""
GenForge Personalization Engine.

Applies a prioritized, declarative rule set to an analysis and a session
and returns the ordered modifications to make to the generation request,
with a confidence score.

Rules compound: every matching rule contributes, highest priority first.

Copyright (c) 2025 GenForge
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence

from genforge.config import get_config
from genforge.intent import Analysis
from genforge.persistence import Session
from genforge.sessions import Recommendation, RecommendationKind
from genforge.utils import clamp

from .rules import (
    DEFAULT_RULES,
    FREQUENT_FEATURES_TARGET,
    ModificationKind,
    PersonalizationRule,
    TemplateModification,
    frequent_feature_candidates,
)

logger = logging.getLogger(__name__)

BASE_CONFIDENCE = 0.8
DEFAULT_SUCCESS_RATE = 0.7
MIN_CONFIDENCE = 0.3
MAX_CONFIDENCE = 0.95

RECOMMENDATION_KIND_MAP: Dict[RecommendationKind, ModificationKind] = {
    RecommendationKind.TECH: ModificationKind.ADD_COMPONENT,
    RecommendationKind.FEATURE: ModificationKind.ADD_FEATURE,
    RecommendationKind.ARCHITECTURE: ModificationKind.CHANGE_ARCHITECTURE,
    RecommendationKind.OPTIMIZATION: ModificationKind.MODIFY_STYLE,
}


@dataclass
class PersonalizedTemplate:
    """Base template plus the modifications chosen for it."""
    base_template: str
    modifications: List[TemplateModification] = field(default_factory=list)
    confidence: float = 1.0
    reasoning: List[str] = field(default_factory=list)

    def has_modification(self, kind: ModificationKind, target: Optional[str] = None) -> bool:
        return any(
            m.kind == kind and (target is None or m.target == target)
            for m in self.modifications
        )


class TemplatePersonalizer:
    """
    Rule-driven template personalizer.

    Usage:
        personalizer = TemplatePersonalizer()
        result = personalizer.personalize("saas-starter", analysis, session)
        prompt = personalizer.apply_modifications(template_text, result.modifications)
    """

    def __init__(self, rules: Optional[Sequence[PersonalizationRule]] = None, settings=None):
        self.rules = list(rules) if rules is not None else list(DEFAULT_RULES)
        self.settings = settings or get_config().personalization

    def personalize(
        self,
        base_template: str,
        analysis: Analysis,
        session: Optional[Session] = None,
        recommendations: Optional[Sequence[Recommendation]] = None,
    ) -> PersonalizedTemplate:
        """Compute the personalized template for one request."""
        if session is None:
            return PersonalizedTemplate(
                base_template=base_template,
                modifications=[],
                confidence=1.0,
                reasoning=["No user session: base template used unchanged"],
            )

        matching = [rule for rule in self.rules if rule.matches(analysis, session, self.settings)]
        # sorted() is stable, so equal priorities keep declaration order
        matching = sorted(matching, key=lambda rule: rule.priority, reverse=True)

        modifications: List[TemplateModification] = []
        reasoning: List[str] = []

        for rule in matching:
            for modification in rule.modifications:
                modification = replace(modification, priority=rule.priority)
                if modification.target == FREQUENT_FEATURES_TARGET:
                    features = self._frequent_features_for(analysis, session)
                    if not features:
                        continue
                    modification = replace(modification, value=tuple(features))
                    reasoning.append(f"{modification.reason}: {', '.join(features)}")
                else:
                    reasoning.append(modification.reason)
                modifications.append(modification)

        for rec in recommendations or ():
            if rec.confidence > self.settings.recommendation_min_confidence:
                modifications.append(TemplateModification(
                    kind=RECOMMENDATION_KIND_MAP.get(rec.kind, ModificationKind.ADD_FEATURE),
                    target=getattr(rec.kind, "value", str(rec.kind)),
                    value=rec.title,
                    reason=rec.description,
                    priority=0,
                ))
                reasoning.append(f"Recommendation: {rec.title} (confidence {round(rec.confidence * 100)}%)")

        confidence = self.calculate_confidence(len(modifications), analysis, session)
        logger.debug(
            f"Personalized {base_template!r}: {len(matching)} rules, "
            f"{len(modifications)} modifications, confidence={confidence:.2f}"
        )
        return PersonalizedTemplate(
            base_template=base_template,
            modifications=modifications,
            confidence=confidence,
            reasoning=reasoning,
        )

    def _frequent_features_for(self, analysis: Analysis, session: Session) -> List[str]:
        candidates = frequent_feature_candidates(session, self.settings.frequent_feature_min_count)
        fresh = [feature for feature in candidates if feature not in analysis.key_features]
        return fresh[:self.settings.frequent_feature_top_n]

    @staticmethod
    def calculate_confidence(modification_count: int, analysis: Analysis, session: Session) -> float:
        """Confidence in a personalization, in [0.3, 0.95]."""
        success_rate = session.success_rate
        if success_rate is None:
            success_rate = DEFAULT_SUCCESS_RATE
        expertise = session.preferences.domain_expertise.get(analysis.domain, 0.0)

        confidence = BASE_CONFIDENCE
        confidence *= 0.5 + success_rate * 0.5
        confidence *= 0.7 + expertise * 0.3
        confidence -= min(modification_count * 0.05, 0.2)
        return clamp(confidence, MIN_CONFIDENCE, MAX_CONFIDENCE)

    def apply_modifications(self, template: str, modifications: Sequence[TemplateModification]) -> str:
        """Render modifications as annotated lines after a template."""
        for modification in modifications:
            template = self._apply_one(template, modification)
        return template

    @staticmethod
    def _apply_one(template: str, modification: TemplateModification) -> str:
        header = f"\n// PERSONALIZATION: {modification.reason}\n"
        value = modification.value
        items = list(value) if isinstance(value, (list, tuple)) else None

        if modification.kind == ModificationKind.ADD_COMPONENT and items is not None:
            return template + header + "// Added components:\n" + "".join(f"  // + {i}\n" for i in items)
        if modification.kind == ModificationKind.ADD_FEATURE and items is not None:
            return template + header + "// Added features:\n" + "".join(f"  // + {i}\n" for i in items)
        if modification.kind == ModificationKind.REMOVE_COMPONENT and items is not None:
            return template + header + "// Removed components:\n" + "".join(f"  // - {i}\n" for i in items)
        if modification.kind == ModificationKind.CHANGE_ARCHITECTURE:
            return template + header + f"// Architecture: {value}\n"
        if modification.kind == ModificationKind.MODIFY_STYLE:
            return template + header + f"// Style: {value}\n"
        # add/remove with a scalar value
        sign = "-" if modification.kind == ModificationKind.REMOVE_COMPONENT else "+"
        return template + header + f"  // {sign} {value}\n"

    @staticmethod
    def summarize(result: PersonalizedTemplate) -> str:
        """Human readable summary of a personalization."""
        lines = [
            f"Personalization applied with {round(result.confidence * 100)}% confidence",
            "",
            "Modifications:",
        ]
        lines.extend(f"- [{m.priority}] {m.reason}" for m in result.modifications)
        lines.extend(["", "Reasoning:"])
        lines.extend(f"- {reason}" for reason in result.reasoning)
        return "\n".join(lines)


_personalizer: Optional[TemplatePersonalizer] = None


def get_personalizer() -> TemplatePersonalizer:
    """Get or create the shared personalizer."""
    global _personalizer
    if _personalizer is None:
        _personalizer = TemplatePersonalizer()
    return _personalizer


def personalize(
    base_template: str,
    analysis: Analysis,
    session: Optional[Session] = None,
    recommendations: Optional[Sequence[Recommendation]] = None,
) -> PersonalizedTemplate:
    """Personalize a template with the default rule set."""
    return get_personalizer().personalize(base_template, analysis, session, recommendations)


__all__ = [
    "DEFAULT_RULES",
    "ModificationKind",
    "PersonalizationRule",
    "PersonalizedTemplate",
    "TemplateModification",
    "TemplatePersonalizer",
    "get_personalizer",
    "personalize",
]
