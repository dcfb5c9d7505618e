"""
GenForge Session Manager.

Owns the in-memory shape of a user's session: history append, preference
learning and contextual recommendations. Storage is delegated to a
SessionStore backend (see genforge.persistence).

There is no "current session": every call takes the session, or its id,
explicitly. Concurrent requests for one session are serialized with a
per-session asyncio.Lock; different sessions never contend. A lock lives
only while some request holds or waits on it.

Copyright (c) 2025 GenForge
"""

import asyncio
import logging
import weakref
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from genforge.config import get_config
from genforge.intent import Analysis, Complexity
from genforge.persistence import (
    GenerationOutcome,
    HistoryEntry,
    Session,
    SessionStore,
    get_session_store,
)
from genforge.utils import utc_now

logger = logging.getLogger(__name__)

MAX_EXPERTISE = 1.0

DOMAIN_DEFAULT_TECH: Dict[str, List[str]] = {
    "saas": ["nextjs", "react", "tailwindcss"],
    "ecommerce": ["nextjs", "react", "tailwindcss", "stripe"],
    "blog": ["nextjs", "react", "tailwindcss", "contentful"],
    "portfolio": ["nextjs", "react", "tailwindcss", "framer-motion"],
}


class RecommendationKind(str, Enum):
    """Recommendation categories."""
    TECH = "tech"
    FEATURE = "feature"
    ARCHITECTURE = "architecture"
    OPTIMIZATION = "optimization"


class Impact(str, Enum):
    """Expected impact of following a recommendation."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class Recommendation:
    """Contextual suggestion derived from a session."""
    kind: RecommendationKind
    title: str
    description: str
    confidence: float
    reasoning: str
    impact: Impact = Impact.LOW
    target: str = ""
    value: str = ""


class SessionManager:
    """
    Session lifecycle and preference learning.

    Usage:
        manager = SessionManager()
        async with manager.session_lock("user-42"):
            session = manager.get_or_create("user-42")
            manager.record_outcome(session, analysis, outcome, "todo app")
            manager.save(session)
    """

    def __init__(self, store: Optional[SessionStore] = None, settings=None):
        self.store = store if store is not None else get_session_store()
        self.settings = settings or get_config().session
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def session_lock(self, session_id: str) -> asyncio.Lock:
        """Lock serializing work on one session."""
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    def get(self, session_id: str) -> Optional[Session]:
        return self.store.load(session_id)

    def get_or_create(self, session_id: str, user_id: Optional[str] = None) -> Session:
        """Load a session, creating and saving a fresh one on first use."""
        session = self.store.load(session_id)
        if session is None:
            session = Session(session_id=session_id, user_id=user_id)
            self.store.save(session)
            logger.info(f"Created session {session_id}")
        return session

    def save(self, session: Session) -> None:
        self.store.save(session)

    def delete(self, session_id: str) -> bool:
        """Delete a session at the user's request."""
        deleted = self.store.delete(session_id)
        if deleted:
            logger.info(f"Deleted session {session_id}")
        return deleted

    def list_sessions(self) -> List[str]:
        return self.store.list_ids()

    def record_outcome(
        self,
        session: Session,
        analysis: Analysis,
        outcome: GenerationOutcome,
        request_summary: str = "",
    ) -> Session:
        """
        Append a history entry and update learned preferences.

        Mutates and returns ``session``; persisting it is the caller's job.
        """
        now = utc_now()
        session.last_activity_at = now
        session.generation_count += 1
        session.history.append(HistoryEntry(
            timestamp=now,
            request_summary=request_summary,
            analysis=analysis.to_dict(),
            outcome=outcome,
        ))

        prefs = session.preferences

        expertise = prefs.domain_expertise.get(analysis.domain, 0.0) + self.settings.expertise_step
        prefs.domain_expertise[analysis.domain] = round(min(expertise, MAX_EXPERTISE), 4)

        if outcome.success:
            for pref in analysis.tech_preferences:
                if pref.explicit:
                    prefs.add_technology(pref.value)

        for feature in analysis.key_features:
            prefs.frequent_features[feature] = prefs.frequent_features.get(feature, 0) + 1

        if (
            outcome.success
            and outcome.score is not None
            and outcome.score > self.settings.ratchet_min_score
            and analysis.complexity == prefs.complexity_preference
            and prefs.complexity_preference != Complexity.ENTERPRISE
            and session.generation_count > self.settings.ratchet_min_generations
        ):
            previous = prefs.complexity_preference
            prefs.complexity_preference = previous.next_tier()
            logger.info(
                f"Session {session.session_id}: complexity preference "
                f"{previous.value} -> {prefs.complexity_preference.value}"
            )

        return session

    def generate_recommendations(self, analysis: Analysis, session: Optional[Session]) -> List[Recommendation]:
        """Contextual recommendations, highest confidence first."""
        if session is None:
            return []

        recommendations: List[Recommendation] = []
        prefs = session.preferences

        recent_failures = [h for h in session.recent(3) if not h.outcome.success]
        if len(recent_failures) >= 2:
            recommendations.append(Recommendation(
                kind=RecommendationKind.OPTIMIZATION,
                title="Simplify the request",
                description="Recent generations failed. Try a simpler prompt or fewer features.",
                confidence=0.8,
                reasoning=f"{len(recent_failures)} recent failures detected",
                impact=Impact.HIGH,
                target="complexity",
                value="reduced",
            ))

        expertise = prefs.domain_expertise.get(analysis.domain, 0.0)
        if expertise < 0.3:
            recommendations.append(Recommendation(
                kind=RecommendationKind.ARCHITECTURE,
                title="Beginner-friendly architecture",
                description=f"For {analysis.domain}, start from a simple structure with the essential patterns.",
                confidence=0.7,
                reasoning=f"Limited expertise in {analysis.domain}",
                impact=Impact.MEDIUM,
                target="architecture",
                value="essential_patterns",
            ))
        elif expertise > 0.7:
            recommendations.append(Recommendation(
                kind=RecommendationKind.FEATURE,
                title="Advanced features",
                description="Advanced features can be added automatically for an experienced user.",
                confidence=0.8,
                reasoning=f"Strong expertise in {analysis.domain}",
                impact=Impact.MEDIUM,
                target="features",
                value="advanced",
            ))

        suggested_tech = self._suggest_technologies(analysis, session)
        if suggested_tech:
            recommendations.append(Recommendation(
                kind=RecommendationKind.TECH,
                title="Recommended technologies",
                description=f"Based on your preferences: {', '.join(suggested_tech)}",
                confidence=0.6,
                reasoning="Based on previous technology choices",
                target="stack",
                value=",".join(suggested_tech),
            ))

        if prefs.frequent_features and len(analysis.key_features) < 3:
            top = sorted(prefs.frequent_features.items(), key=lambda kv: kv[1], reverse=True)[:3]
            missing = [feature for feature, _ in top if feature not in analysis.key_features]
            if missing:
                recommendations.append(Recommendation(
                    kind=RecommendationKind.FEATURE,
                    title="Features you use often",
                    description=f"You may want: {', '.join(missing[:2])}",
                    confidence=0.5,
                    reasoning="Based on your most used features",
                    target="features",
                    value=",".join(missing[:2]),
                ))

        recommendations.sort(key=lambda r: r.confidence, reverse=True)
        return recommendations

    def _suggest_technologies(self, analysis: Analysis, session: Session) -> List[str]:
        if analysis.tech_preferences:
            return []
        suggestions = list(dict.fromkeys(session.preferences.favorite_technologies))
        for tech in DOMAIN_DEFAULT_TECH.get(analysis.domain, ["react", "tailwindcss"]):
            if len(suggestions) < 3 and tech not in suggestions:
                suggestions.append(tech)
        return suggestions[:3]


_manager: Optional[SessionManager] = None


def get_session_manager() -> SessionManager:
    """Get or create the shared session manager."""
    global _manager
    if _manager is None:
        _manager = SessionManager()
    return _manager


__all__ = [
    "Impact",
    "Recommendation",
    "RecommendationKind",
    "SessionManager",
    "get_session_manager",
]
