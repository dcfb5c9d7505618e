"""
Tests for Persistence Service.
"""

import os
import pytest
from unittest.mock import patch

from genforge.persistence.models import (
    GenerationOutcome, HistoryEntry, Session, SessionPreferences, SpeedPreference
)
from genforge.persistence.memory_backend import MemorySessionStore, get_memory_session_store
from genforge.persistence.file_backend import FileSessionStore


class TestModels:
    """Test Pydantic models."""

    def test_session_defaults(self):
        """Test Session model creation."""
        session = Session(session_id="s-1", user_id="user-1")

        assert session.session_id == "s-1"
        assert session.generation_count == 0
        assert session.history == []
        assert session.started_at.tzinfo is not None
        assert session.success_rate is None

    def test_preference_defaults(self):
        """Test SessionPreferences defaults."""
        prefs = SessionPreferences()

        assert prefs.favorite_styles == ["tailwindcss"]
        assert prefs.complexity_preference.value == "medium"
        assert prefs.quality_threshold == 70.0
        assert prefs.speed_preference == SpeedPreference.BALANCED

    def test_add_technology_is_a_set(self):
        """Test favourite technologies never repeat."""
        prefs = SessionPreferences()
        prefs.add_technology("nextjs")
        prefs.add_technology("nextjs")

        assert prefs.favorite_technologies == ["nextjs"]

    def test_history_entry_is_frozen(self):
        """Test history entries cannot be modified."""
        entry = HistoryEntry(outcome=GenerationOutcome(success=True, score=80))

        with pytest.raises(Exception):
            entry.request_summary = "changed"

    def test_recent_and_success_rate(self):
        """Test recent() and success_rate."""
        session = Session()
        for success in (True, False, True, True):
            session.history.append(HistoryEntry(outcome=GenerationOutcome(success=success)))

        assert len(session.recent(3)) == 3
        assert session.recent(0) == []
        assert session.recent(3)[0].outcome.success is False
        assert session.success_rate == 0.75


class TestMemorySessionStore:
    """Test in-memory session store."""

    def setup_method(self):
        self.store = MemorySessionStore()

    def test_save_and_load(self):
        """Test a saved session loads back."""
        self.store.save(Session(session_id="s-1", user_id="u"))

        loaded = self.store.load("s-1")
        assert loaded is not None
        assert loaded.user_id == "u"

    def test_load_missing(self):
        """Test loading an unknown id."""
        assert self.store.load("nope") is None

    def test_copies_isolate_callers(self):
        """Test callers never share state with the store."""
        session = Session(session_id="s-1")
        self.store.save(session)
        session.generation_count = 99

        loaded = self.store.load("s-1")
        assert loaded.generation_count == 0

        loaded.preferences.add_technology("vue")
        assert self.store.load("s-1").preferences.favorite_technologies == []

    def test_delete_and_list(self):
        """Test delete and list_ids."""
        self.store.save(Session(session_id="a"))
        self.store.save(Session(session_id="b"))

        assert sorted(self.store.list_ids()) == ["a", "b"]
        assert self.store.delete("a") is True
        assert self.store.delete("a") is False
        assert self.store.list_ids() == ["b"]

    def test_singleton(self):
        """Test the module singleton."""
        assert get_memory_session_store() is get_memory_session_store()


class TestFileSessionStore:
    """Test JSON file session store."""

    def test_roundtrip(self, tmp_path):
        """Test a session survives a save / load through disk."""
        store = FileSessionStore(tmp_path)
        session = Session(session_id="s-1", user_id="u")
        session.preferences.domain_expertise["saas"] = 0.4
        session.history.append(HistoryEntry(
            request_summary="saas app",
            analysis={"domain": "saas"},
            outcome=GenerationOutcome(success=True, score=88, duration_ms=1200, artifact_count=12),
        ))
        store.save(session)

        assert (tmp_path / "s-1.json").exists()
        loaded = FileSessionStore(tmp_path).load("s-1")
        assert loaded.preferences.domain_expertise == {"saas": 0.4}
        assert loaded.history[0].outcome.score == 88
        assert loaded.history[0].timestamp == session.history[0].timestamp

    def test_missing_and_delete(self, tmp_path):
        """Test missing sessions and deletion."""
        store = FileSessionStore(tmp_path)

        assert store.load("missing") is None
        store.save(Session(session_id="s-2"))
        assert store.list_ids() == ["s-2"]
        assert store.delete("s-2") is True
        assert store.delete("s-2") is False

    def test_rejects_unsafe_ids(self, tmp_path):
        """Test ids cannot escape the directory."""
        store = FileSessionStore(tmp_path)

        with pytest.raises(ValueError):
            store.load("../etc/passwd")
        with pytest.raises(ValueError):
            store.save(Session(session_id="a/b"))

    def test_no_temp_files_left(self, tmp_path):
        """Test atomic writes leave only the session file."""
        store = FileSessionStore(tmp_path)
        store.save(Session(session_id="s-3"))
        store.save(Session(session_id="s-3", user_id="again"))

        assert sorted(p.name for p in tmp_path.iterdir()) == ["s-3.json"]
        assert store.load("s-3").user_id == "again"


class TestGetSessionStore:
    """Test backend selection."""

    def setup_method(self):
        from genforge.config import GenForgeConfig
        GenForgeConfig.reset()

    def teardown_method(self):
        from genforge.config import GenForgeConfig
        GenForgeConfig.reset()
        import genforge.persistence.file_backend as file_backend
        file_backend._session_store = None

    def test_memory_by_default(self):
        """Test the memory backend is the default."""
        from genforge.persistence import get_session_store

        assert isinstance(get_session_store(), MemorySessionStore)

    def test_file_backend(self, tmp_path):
        """Test SESSION_BACKEND=file selects the file store."""
        from genforge.persistence import get_session_store
        import genforge.persistence.file_backend as file_backend
        file_backend._session_store = None

        with patch.dict(os.environ, {"SESSION_BACKEND": "file", "SESSIONS_DIR": str(tmp_path)}):
            store = get_session_store()

        assert isinstance(store, FileSessionStore)
        assert store.directory == tmp_path


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
