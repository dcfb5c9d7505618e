"""
GenForge Intent Analyzer.

Turns a free-text generation request into a structured analysis:
intent, domain, complexity tier, target audience, key features and
technology hints.

Matching is table driven. Every table below is scanned in declaration
order; the analyzer itself holds no state and never raises.

Copyright (c) 2025 GenForge
"""

import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Pattern, Tuple

logger = logging.getLogger(__name__)

DEFAULT_INTENT = "build_web_application"
DEFAULT_DOMAIN = "generic"
DEFAULT_CONFIDENCE = 0.3
MAX_CONFIDENCE = 0.95


class Complexity(str, Enum):
    """Complexity tiers, ordered from lightest to heaviest."""
    SIMPLE = "simple"
    MEDIUM = "medium"
    COMPLEX = "complex"
    ENTERPRISE = "enterprise"

    def next_tier(self) -> "Complexity":
        """Return the tier above this one (enterprise stays enterprise)."""
        tiers = list(Complexity)
        index = tiers.index(self)
        return tiers[min(index + 1, len(tiers) - 1)]


class Audience(str, Enum):
    """Who the generated application is for."""
    PERSONAL = "personal"
    SMALL_BUSINESS = "small-business"
    ENTERPRISE = "enterprise"
    DEVELOPER = "developer"


class EntityType(str, Enum):
    """Kinds of entities extracted from a request."""
    FEATURE = "feature"
    TECH = "tech"
    STYLE = "style"
    TARGET = "target"
    COMPLEXITY = "complexity"


@dataclass(frozen=True)
class TechPreference:
    """Technology mentioned in a request."""
    category: str  # frontend, backend, database, deployment
    value: str
    explicit: bool = True


@dataclass(frozen=True)
class Entity:
    """Entity extracted from a request, with an extraction confidence."""
    type: EntityType
    value: str
    confidence: float


@dataclass(frozen=True)
class Analysis:
    """Structured interpretation of a request. Immutable once built."""
    intent: str = DEFAULT_INTENT
    domain: str = DEFAULT_DOMAIN
    confidence: float = DEFAULT_CONFIDENCE
    complexity: Complexity = Complexity.MEDIUM
    target_audience: Audience = Audience.SMALL_BUSINESS
    key_features: Tuple[str, ...] = ()
    tech_preferences: Tuple[TechPreference, ...] = ()
    entities: Tuple[Entity, ...] = field(default=(), compare=False)

    @property
    def has_explicit_tech(self) -> bool:
        return any(pref.explicit for pref in self.tech_preferences)

    def to_dict(self) -> Dict[str, Any]:
        """Snapshot used for session history."""
        return {
            "intent": self.intent,
            "domain": self.domain,
            "confidence": self.confidence,
            "complexity": self.complexity.value,
            "target_audience": self.target_audience.value,
            "key_features": list(self.key_features),
            "tech_preferences": [
                {"category": p.category, "value": p.value, "explicit": p.explicit}
                for p in self.tech_preferences
            ],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Analysis":
        """Rebuild an analysis from a history snapshot."""
        return cls(
            intent=data.get("intent", DEFAULT_INTENT),
            domain=data.get("domain", DEFAULT_DOMAIN),
            confidence=float(data.get("confidence", DEFAULT_CONFIDENCE)),
            complexity=Complexity(data.get("complexity", Complexity.MEDIUM.value)),
            target_audience=Audience(data.get("target_audience", Audience.SMALL_BUSINESS.value)),
            key_features=tuple(data.get("key_features", ())),
            tech_preferences=tuple(
                TechPreference(p["category"], p["value"], p.get("explicit", True))
                for p in data.get("tech_preferences", ())
            ),
        )


@dataclass(frozen=True)
class IntentPattern:
    """Row of the intent table."""
    pattern: Pattern
    intent: str
    domain: str
    weight: float


def _rx(expr: str) -> Pattern:
    return re.compile(expr, re.IGNORECASE)


# Weights are distinct so that the strict "greater than" comparison never
# depends on declaration order. Primary patterns of a domain outrank the
# secondary ones, and saas > ecommerce > blog > portfolio on overlap.
INTENT_PATTERNS: List[IntentPattern] = [
    IntentPattern(_rx(r"\b(?:saas|dashboard|analytics|metrics|admin|app|subscriptions?|billing)\b"),
                  "build_saas_application", "saas", 0.94),
    IntentPattern(_rx(r"\b(?:crm|customers?|gestion|relation|leads?|pipeline)\b"),
                  "build_crm_system", "saas", 0.88),
    IntentPattern(_rx(r"\b(?:boutique|shop|store|ecommerce|e-commerce|vente|produits?|panier|commande)\b"),
                  "build_ecommerce_site", "ecommerce", 0.93),
    IntentPattern(_rx(r"\b(?:marketplace|place de march[ée]|vendeurs?|acheteurs?|multi-vendor)\b"),
                  "build_marketplace", "ecommerce", 0.89),
    IntentPattern(_rx(r"\b(?:blog|cms|articles?|contenu|publication|[ée]ditoriale)\b"),
                  "build_blog_cms", "blog", 0.92),
    IntentPattern(_rx(r"\b(?:news|actualit[ée]s|magazine|presse|journal)\b"),
                  "build_news_site", "blog", 0.87),
    IntentPattern(_rx(r"\b(?:portfolio|vitrine|pr[ée]sentation|showcase)\b"),
                  "build_portfolio", "portfolio", 0.91),
    IntentPattern(_rx(r"\b(?:agence|agency|studio|freelance|cr[ée]atif|designer)\b"),
                  "build_agency_site", "portfolio", 0.85),
]

TECH_PATTERNS: List[Tuple[Pattern, str, str]] = [
    # Frontend
    (_rx(r"\breact\b"), "frontend", "react"),
    (_rx(r"\bnext\.?js\b"), "frontend", "nextjs"),
    (_rx(r"\bvue(?:\.?js)?\b"), "frontend", "vue"),
    (_rx(r"\bsvelte\b"), "frontend", "svelte"),
    # Styling
    (_rx(r"\btailwind"), "frontend", "tailwindcss"),
    (_rx(r"\bbootstrap\b"), "frontend", "bootstrap"),
    (_rx(r"\bmaterial.ui\b|\bmui\b"), "frontend", "mui"),
    # Backend
    (_rx(r"\bnode\.?js\b|\bexpress\b"), "backend", "nodejs"),
    (_rx(r"\bpython\b|\bdjango\b|\bflask\b"), "backend", "python"),
    (_rx(r"\bphp\b|\blaravel\b"), "backend", "php"),
    # Database
    (_rx(r"\bmongo(?:db)?\b"), "database", "mongodb"),
    (_rx(r"\bpostgres(?:ql)?\b"), "database", "postgresql"),
    (_rx(r"\bmysql\b"), "database", "mysql"),
    (_rx(r"\bsupabase\b"), "database", "supabase"),
    # Deployment
    (_rx(r"\bvercel\b|\bnetlify\b"), "deployment", "vercel"),
    (_rx(r"\bdocker\b"), "deployment", "docker"),
]

COMPLEXITY_INDICATORS: List[Tuple[Pattern, Complexity, float]] = [
    (_rx(r"\b(?:simple|basique|basic|minimal)\b"), Complexity.SIMPLE, 1.0),
    (_rx(r"\b(?:complexe|avanc[ée]|advanced|enterprise|professionnel)\b"), Complexity.COMPLEX, 0.95),
    (_rx(r"\bmulti.?user|\bmulti.?tenant|\bscalable\b|\bperformance\b"), Complexity.ENTERPRISE, 0.9),
    (_rx(r"\bauth|\bautorisation\b|\bs[ée]curit[ée]\b|\bsecurity\b"), Complexity.MEDIUM, 0.7),
]

ADVANCED_FEATURE_MARKERS = _rx(r"\b(?:api|database|auth\w*|payments?|notifications?|e-?mails?|admin|dashboard)\b")
ENTERPRISE_MARKERS = _rx(r"\b(?:multi-tenant|scalability|performance|security|audit|compliance)\b")
SIMPLE_MARKERS = _rx(r"\b(?:simple|basic|minimal)\b")

AUDIENCE_RULES: List[Tuple[Pattern, Audience]] = [
    (_rx(r"\b(?:personal|personnel|priv[ée]|hobby)\b"), Audience.PERSONAL),
    (_rx(r"\b(?:enterprise|entreprise|corporation|scalable|multi-tenant)\b"), Audience.ENTERPRISE),
    (_rx(r"\b(?:developers?|dev|api|sdk|library|framework)\b"), Audience.DEVELOPER),
]

FEATURE_PATTERNS: Dict[str, List[Tuple[Pattern, str]]] = {
    "common": [
        (_rx(r"\bauth\w*|\blogin\b|\bsign-?up\b"), "authentication"),
        (_rx(r"\b(?:dashboard|admin|administration)\b"), "admin_dashboard"),
        (_rx(r"\b(?:notifications?|e-?mails?|sms|alerts?)\b"), "notifications"),
        (_rx(r"\b(?:search|recherche|filters?|filtrage)\b"), "search_filtering"),
        (_rx(r"\b(?:responsive|mobile|tablet)\b"), "responsive_design"),
    ],
    "saas": [
        (_rx(r"\b(?:subscriptions?|abonnement|billing|facturation)\b"), "subscription_management"),
        (_rx(r"\b(?:analytics|m[ée]triques|statistics|stats)\b"), "analytics"),
        (_rx(r"\bmulti.?tenant|\bmulti.?user"), "multi_tenancy"),
    ],
    "ecommerce": [
        (_rx(r"\b(?:panier|cart|basket)\b"), "shopping_cart"),
        (_rx(r"\b(?:payments?|paiement|checkout|commande)\b"), "payment_processing"),
        (_rx(r"\b(?:inventory|stock|produits?)\b"), "inventory_management"),
    ],
    "blog": [
        (_rx(r"\b(?:comments?|commentaires?|discussion)\b"), "comments_system"),
        (_rx(r"\b(?:tags?|cat[ée]gories?|category|categories)\b"), "content_categorization"),
        (_rx(r"\b(?:seo|r[ée]f[ée]rencement|meta)\b"), "seo_optimization"),
    ],
    "portfolio": [
        (_rx(r"\b(?:gallery|galerie|images?|photos?)\b"), "media_gallery"),
        (_rx(r"\b(?:contact|forms?|formulaire)\b"), "contact_form"),
        (_rx(r"\b(?:testimonials?|t[ée]moignages?|reviews?)\b"), "testimonials"),
    ],
}


class IntentAnalyzer:
    """
    Rule-table intent analyzer.

    Usage:
        analyzer = IntentAnalyzer()
        analysis = analyzer.analyze("SaaS dashboard with analytics and billing")
        print(analysis.domain, analysis.complexity)
    """

    def __init__(self, intent_patterns: Optional[List[IntentPattern]] = None):
        self.intent_patterns = intent_patterns if intent_patterns is not None else INTENT_PATTERNS

    def analyze(self, text: Any) -> Analysis:
        """
        Analyze a request.

        Never raises: unusable input or an internal failure yields the
        default analysis.
        """
        if not isinstance(text, str) or not text.strip():
            return Analysis()

        try:
            intent, domain, confidence = self._match_intent(text)
            tech = self._extract_tech_preferences(text)
            complexity = self._determine_complexity(text)
            audience = self._determine_audience(text)
            features = self._extract_key_features(text, domain)
            entities = self._extract_entities(features, tech, complexity, audience)
        except Exception as e:
            logger.error(f"Intent analysis failed, using default analysis: {e}")
            return Analysis()

        analysis = Analysis(
            intent=intent,
            domain=domain,
            confidence=confidence,
            complexity=complexity,
            target_audience=audience,
            key_features=features,
            tech_preferences=tech,
            entities=entities,
        )
        logger.debug(
            f"Analyzed request: domain={domain} intent={intent} "
            f"complexity={complexity.value} features={len(features)}"
        )
        return analysis

    def _match_intent(self, text: str) -> Tuple[str, str, float]:
        best = (DEFAULT_INTENT, DEFAULT_DOMAIN, DEFAULT_CONFIDENCE)
        for row in self.intent_patterns:
            if row.pattern.search(text):
                confidence = min(row.weight, MAX_CONFIDENCE)
                if confidence > best[2]:
                    best = (row.intent, row.domain, confidence)
        return best

    def _extract_tech_preferences(self, text: str) -> Tuple[TechPreference, ...]:
        prefs = []
        for pattern, category, value in TECH_PATTERNS:
            if pattern.search(text):
                prefs.append(TechPreference(category=category, value=value, explicit=True))
        return tuple(prefs)

    def _determine_complexity(self, text: str) -> Complexity:
        complexity = Complexity.MEDIUM
        best_weight = 0.0
        for pattern, tier, weight in COMPLEXITY_INDICATORS:
            if pattern.search(text) and weight > best_weight:
                complexity = tier
                best_weight = weight

        # Length heuristics take precedence over the indicator pass.
        words = len(text.split())
        if words > 100 or ENTERPRISE_MARKERS.search(text):
            return Complexity.ENTERPRISE
        if words > 50 or ADVANCED_FEATURE_MARKERS.search(text):
            return Complexity.COMPLEX
        if words < 20 and SIMPLE_MARKERS.search(text):
            return Complexity.SIMPLE
        return complexity

    def _determine_audience(self, text: str) -> Audience:
        for pattern, audience in AUDIENCE_RULES:
            if pattern.search(text):
                return audience
        return Audience.SMALL_BUSINESS

    def _extract_key_features(self, text: str, domain: str) -> Tuple[str, ...]:
        features: List[str] = []
        for pattern, feature in FEATURE_PATTERNS["common"] + FEATURE_PATTERNS.get(domain, []):
            if feature not in features and pattern.search(text):
                features.append(feature)
        return tuple(features)

    def _extract_entities(self, features, tech, complexity: Complexity,
                          audience: Audience) -> Tuple[Entity, ...]:
        entities = [Entity(EntityType.FEATURE, feature, 0.8) for feature in features]
        entities.extend(
            Entity(EntityType.TECH, pref.value, 0.9 if pref.explicit else 0.6) for pref in tech
        )
        entities.append(Entity(EntityType.COMPLEXITY, complexity.value, 0.7))
        entities.append(Entity(EntityType.TARGET, audience.value, 0.6))
        return tuple(entities)


_analyzer: Optional[IntentAnalyzer] = None


def get_intent_analyzer() -> IntentAnalyzer:
    """Get or create the shared analyzer."""
    global _analyzer
    if _analyzer is None:
        _analyzer = IntentAnalyzer()
    return _analyzer


def analyze_request(text: Any) -> Analysis:
    """Analyze a free-text request."""
    return get_intent_analyzer().analyze(text)


__all__ = [
    "Analysis",
    "Audience",
    "Complexity",
    "Entity",
    "EntityType",
    "IntentAnalyzer",
    "IntentPattern",
    "TechPreference",
    "analyze_request",
    "get_intent_analyzer",
    "INTENT_PATTERNS",
]
