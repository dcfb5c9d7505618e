"""
Tests for the Session Manager.

Copyright (c) 2025 GenForge
"""

import asyncio
import gc
import pytest

from genforge.intent import Analysis, Complexity, TechPreference
from genforge.persistence import GenerationOutcome, HistoryEntry, Session
from genforge.persistence.memory_backend import MemorySessionStore
from genforge.sessions import Impact, RecommendationKind, SessionManager


def _analysis(**kwargs):
    defaults = dict(intent="build_saas_application", domain="saas", confidence=0.94)
    defaults.update(kwargs)
    return Analysis(**defaults)


class TestSessionLifecycle:
    """Test session creation and storage."""

    def setup_method(self):
        self.store = MemorySessionStore()
        self.manager = SessionManager(store=self.store)

    def test_get_or_create(self):
        """Test a session is created and persisted on first use."""
        session = self.manager.get_or_create("s-1", user_id="u-1")

        assert session.session_id == "s-1"
        assert self.store.load("s-1").user_id == "u-1"
        assert self.manager.get_or_create("s-1").user_id == "u-1"

    def test_delete(self):
        """Test explicit deletion."""
        self.manager.get_or_create("s-1")

        assert self.manager.delete("s-1") is True
        assert self.manager.get("s-1") is None
        assert self.manager.list_sessions() == []

    def test_session_lock_per_id(self):
        """Test one lock per session id."""
        lock = self.manager.session_lock("a")

        assert self.manager.session_lock("a") is lock
        assert self.manager.session_lock("b") is not lock

    @pytest.mark.asyncio
    async def test_released_locks_are_dropped(self):
        """Test locks nobody holds are not kept per session id."""
        for index in range(50):
            async with self.manager.session_lock(f"s-{index}"):
                pass
        gc.collect()

        assert len(self.manager._locks) == 0

    @pytest.mark.asyncio
    async def test_lock_serializes_same_session(self):
        """Test concurrent work on one session never interleaves."""
        events = []

        async def work(tag):
            async with self.manager.session_lock("shared"):
                events.append(f"start-{tag}")
                await asyncio.sleep(0.01)
                events.append(f"end-{tag}")

        await asyncio.gather(work("a"), work("b"))

        assert events in (
            ["start-a", "end-a", "start-b", "end-b"],
            ["start-b", "end-b", "start-a", "end-a"],
        )


class TestRecordOutcome:
    """Test preference learning from outcomes."""

    def setup_method(self):
        self.manager = SessionManager(store=MemorySessionStore())

    def test_history_and_count(self):
        """Test an outcome appends history and bumps the count."""
        session = Session(session_id="s")
        analysis = _analysis(key_features=("analytics",))

        self.manager.record_outcome(session, analysis, GenerationOutcome(success=True, score=75), "saas app")

        assert session.generation_count == 1
        assert len(session.history) == 1
        assert session.history[0].request_summary == "saas app"
        assert session.history[0].analysis["domain"] == "saas"
        assert session.preferences.frequent_features == {"analytics": 1}

    def test_expertise_capped(self):
        """Test expertise grows by 0.1 and never exceeds 1.0."""
        session = Session(session_id="s")
        for _ in range(12):
            self.manager.record_outcome(session, _analysis(), GenerationOutcome(success=True))

        assert session.preferences.domain_expertise["saas"] == 1.0

    def test_tech_added_only_on_success(self):
        """Test explicit tech becomes a favourite only after a success."""
        session = Session(session_id="s")
        analysis = _analysis(tech_preferences=(TechPreference("frontend", "vue"),))

        self.manager.record_outcome(session, analysis, GenerationOutcome(success=False))
        assert session.preferences.favorite_technologies == []

        self.manager.record_outcome(session, analysis, GenerationOutcome(success=True))
        assert session.preferences.favorite_technologies == ["vue"]

    def test_complexity_ratchet(self):
        """Test the preference moves up one tier after enough good results."""
        session = Session(session_id="s")
        analysis = _analysis(complexity=Complexity.MEDIUM)

        for _ in range(3):
            self.manager.record_outcome(session, analysis, GenerationOutcome(success=True, score=90))
        assert session.preferences.complexity_preference == Complexity.MEDIUM

        self.manager.record_outcome(session, analysis, GenerationOutcome(success=True, score=90))
        assert session.preferences.complexity_preference == Complexity.COMPLEX

    def test_no_ratchet_on_low_score(self):
        """Test scores at or below 80 never ratchet."""
        session = Session(session_id="s")
        session.generation_count = 10

        self.manager.record_outcome(session, _analysis(), GenerationOutcome(success=True, score=80))

        assert session.preferences.complexity_preference == Complexity.MEDIUM

    def test_enterprise_stays(self):
        """Test enterprise is the last tier."""
        session = Session(session_id="s")
        session.generation_count = 10
        session.preferences.complexity_preference = Complexity.ENTERPRISE

        self.manager.record_outcome(session, _analysis(complexity=Complexity.ENTERPRISE),
                                    GenerationOutcome(success=True, score=99))

        assert session.preferences.complexity_preference == Complexity.ENTERPRISE


class TestRecommendations:
    """Test contextual recommendations."""

    def setup_method(self):
        self.manager = SessionManager(store=MemorySessionStore())

    def test_no_session(self):
        """Test no session means no recommendations."""
        assert self.manager.generate_recommendations(_analysis(), None) == []

    def test_failures_and_beginner(self):
        """Test recent failures and low expertise, highest confidence first."""
        session = Session(session_id="s")
        for success in (True, False, False):
            session.history.append(HistoryEntry(outcome=GenerationOutcome(success=success)))

        recs = self.manager.generate_recommendations(_analysis(), session)

        assert recs[0].kind == RecommendationKind.OPTIMIZATION
        assert recs[0].impact == Impact.HIGH
        assert recs[0].confidence == 0.8
        assert any(r.kind == RecommendationKind.ARCHITECTURE for r in recs)
        assert [r.confidence for r in recs] == sorted((r.confidence for r in recs), reverse=True)

    def test_expert_gets_features(self):
        """Test high expertise suggests advanced features."""
        session = Session(session_id="s")
        session.preferences.domain_expertise["saas"] = 0.9

        recs = self.manager.generate_recommendations(_analysis(), session)

        assert any(r.kind == RecommendationKind.FEATURE and r.value == "advanced" for r in recs)
        assert not any(r.kind == RecommendationKind.ARCHITECTURE for r in recs)

    def test_technology_suggestions(self):
        """Test favourites come first, then domain defaults, three at most."""
        session = Session(session_id="s")
        session.preferences.favorite_technologies = ["vue"]

        recs = self.manager.generate_recommendations(_analysis(domain="ecommerce"), session)
        tech = [r for r in recs if r.kind == RecommendationKind.TECH]

        assert tech[0].value == "vue,nextjs,react"

    def test_no_tech_suggestion_with_explicit_tech(self):
        """Test explicit tech in the request suppresses suggestions."""
        session = Session(session_id="s")
        analysis = _analysis(tech_preferences=(TechPreference("frontend", "svelte"),))

        recs = self.manager.generate_recommendations(analysis, session)

        assert not any(r.kind == RecommendationKind.TECH for r in recs)

    def test_frequent_features(self):
        """Test often used features missing from the request."""
        session = Session(session_id="s")
        session.preferences.frequent_features = {"analytics": 5, "authentication": 4, "search_filtering": 1}

        recs = self.manager.generate_recommendations(_analysis(key_features=("analytics",)), session)
        frequent = [r for r in recs if r.title == "Features you use often"]

        assert frequent[0].value == "authentication,search_filtering"
        assert frequent[0].confidence == 0.5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
