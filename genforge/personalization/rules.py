"""
Personalization rule table.

Each rule is plain data: a predicate over (analysis, session, settings), a
priority and the modifications it contributes. The engine evaluates them
generically, passing its own personalization settings.

Copyright (c) 2025 GenForge
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, List, Tuple

from genforge.intent import Analysis, Audience, Complexity
from genforge.persistence import Session, SpeedPreference

FREQUENT_FEATURES_TARGET = "frequent_features"


class ModificationKind(str, Enum):
    """What a modification does to the generation request."""
    ADD_COMPONENT = "add_component"
    REMOVE_COMPONENT = "remove_component"
    MODIFY_STYLE = "modify_style"
    ADD_FEATURE = "add_feature"
    CHANGE_ARCHITECTURE = "change_architecture"


@dataclass(frozen=True)
class TemplateModification:
    """Single adjustment to a generation template."""
    kind: ModificationKind
    target: str
    value: Any
    reason: str
    priority: int = 0


@dataclass(frozen=True)
class PersonalizationRule:
    """Declarative personalization rule."""
    name: str
    condition: Callable[[Analysis, Session, Any], bool]
    priority: int
    modifications: Tuple[TemplateModification, ...] = field(default_factory=tuple)

    def matches(self, analysis: Analysis, session: Session, settings) -> bool:
        """Evaluate the condition against the engine's personalization settings."""
        return bool(self.condition(analysis, session, settings))


def _expertise(analysis: Analysis, session: Session) -> float:
    return session.preferences.domain_expertise.get(analysis.domain, 0.0)


def recent_failure_count(session: Session, window: int = 3) -> int:
    return sum(1 for entry in session.recent(window) if not entry.outcome.success)


def frequent_feature_candidates(session: Session, min_count: int) -> List[str]:
    """Features used at least ``min_count`` times, most used first."""
    ranked = sorted(
        session.preferences.frequent_features.items(),
        key=lambda kv: kv[1],
        reverse=True,
    )
    return [feature for feature, count in ranked if count >= min_count]


def _mod(kind: ModificationKind, target: str, value: Any, reason: str) -> TemplateModification:
    return TemplateModification(kind=kind, target=target, value=value, reason=reason)


DEFAULT_RULES: List[PersonalizationRule] = [
    PersonalizationRule(
        name="expert_user",
        condition=lambda a, s, cfg: _expertise(a, s) > 0.7 and a.complexity != Complexity.ENTERPRISE,
        priority=8,
        modifications=(
            _mod(ModificationKind.ADD_FEATURE, "advanced_features",
                 ("error_boundaries", "performance_monitoring", "seo_optimization"),
                 "High domain expertise: add advanced features"),
            _mod(ModificationKind.CHANGE_ARCHITECTURE, "structure", "enterprise_patterns",
                 "Experienced user: richer architecture"),
        ),
    ),
    PersonalizationRule(
        name="recent_failures",
        condition=lambda a, s, cfg: recent_failure_count(s) >= 2,
        priority=10,
        modifications=(
            _mod(ModificationKind.CHANGE_ARCHITECTURE, "complexity", "simplified",
                 "Recent failures: simplify architecture"),
            _mod(ModificationKind.REMOVE_COMPONENT, "optional_features",
                 ("advanced_animations", "complex_state_management"),
                 "Reduce complexity to avoid repeated errors"),
        ),
    ),
    PersonalizationRule(
        name="nextjs_preference",
        condition=lambda a, s, cfg: "nextjs" in s.preferences.favorite_technologies and not a.tech_preferences,
        priority=6,
        modifications=(
            _mod(ModificationKind.ADD_COMPONENT, "nextjs_features",
                 ("app_router", "server_components", "image_optimization"),
                 "Next.js preference: add framework specific features"),
        ),
    ),
    PersonalizationRule(
        name="fast_generation",
        condition=lambda a, s, cfg: s.preferences.speed_preference == SpeedPreference.FAST,
        priority=5,
        modifications=(
            _mod(ModificationKind.REMOVE_COMPONENT, "optional_optimizations",
                 ("detailed_comments", "extensive_testing", "complex_animations"),
                 "Fast generation mode: drop optional optimizations"),
        ),
    ),
    PersonalizationRule(
        name="saas_analytics",
        condition=lambda a, s, cfg: a.domain == "saas" and "analytics" in a.key_features,
        priority=7,
        modifications=(
            _mod(ModificationKind.ADD_COMPONENT, "saas_analytics",
                 ("real_time_charts", "dashboard_widgets", "export_functionality"),
                 "SaaS with analytics: add visualization components"),
        ),
    ),
    PersonalizationRule(
        name="enterprise_audience",
        condition=lambda a, s, cfg: a.target_audience == Audience.ENTERPRISE and a.complexity != Complexity.SIMPLE,
        priority=8,
        modifications=(
            _mod(ModificationKind.ADD_FEATURE, "enterprise_features",
                 ("audit_logs", "rbac", "api_rate_limiting", "multi_tenancy"),
                 "Enterprise audience: add professional features"),
            _mod(ModificationKind.MODIFY_STYLE, "design_system", "professional_theme",
                 "Professional theme for an enterprise audience"),
        ),
    ),
    PersonalizationRule(
        name="frequent_features",
        condition=lambda a, s, cfg: bool(frequent_feature_candidates(s, cfg.frequent_feature_min_count)),
        priority=4,
        modifications=(
            # value is filled in by the engine at apply time
            _mod(ModificationKind.ADD_FEATURE, FREQUENT_FEATURES_TARGET, (),
                 "Add frequently used features"),
        ),
    ),
    PersonalizationRule(
        name="high_quality_threshold",
        condition=lambda a, s, cfg: s.preferences.quality_threshold > 85,
        priority=6,
        modifications=(
            _mod(ModificationKind.ADD_FEATURE, "quality_features",
                 ("typescript_strict", "eslint_strict", "comprehensive_tests", "accessibility_compliance"),
                 "High quality threshold: add quality tooling"),
        ),
    ),
]
