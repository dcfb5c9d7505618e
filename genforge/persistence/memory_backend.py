"""
In-Memory Backend for Persistence.

Default session storage for development and tests.

Copyright (c) 2025 GenForge
"""

import logging
from threading import Lock
from typing import Dict, List, Optional

from .models import Session

logger = logging.getLogger(__name__)

# Singleton instance
_session_store = None


class MemorySessionStore:
    """In-memory session store.

    Sessions are deep-copied on the way in and out, so callers never share
    mutable state with the store.
    """

    def __init__(self):
        self._sessions: Dict[str, Session] = {}
        self._lock = Lock()

    def load(self, session_id: str) -> Optional[Session]:
        """Get session by ID."""
        with self._lock:
            session = self._sessions.get(session_id)
            return session.model_copy(deep=True) if session else None

    def save(self, session: Session) -> None:
        """Insert or replace a session."""
        with self._lock:
            self._sessions[session.session_id] = session.model_copy(deep=True)

    def delete(self, session_id: str) -> bool:
        """Delete a session."""
        with self._lock:
            return self._sessions.pop(session_id, None) is not None

    def list_ids(self) -> List[str]:
        """List stored session IDs."""
        with self._lock:
            return list(self._sessions)

    def clear(self):
        """Clear all data."""
        with self._lock:
            self._sessions.clear()


def get_memory_session_store() -> MemorySessionStore:
    """Get memory session store singleton."""
    global _session_store
    if _session_store is None:
        _session_store = MemorySessionStore()
        logger.info("In-memory session store initialized")
    return _session_store
