"""
GenForge Persistence Service.

Session storage behind a two-method contract:
- load(session_id) -> Optional[Session]
- save(session) -> None

Backends: in-memory (default) and one-JSON-file-per-session.

Copyright (c) 2025 GenForge
"""

from typing import List, Optional, Protocol

from .models import (
    GenerationOutcome,
    HistoryEntry,
    Session,
    SessionPreferences,
    SpeedPreference,
)

__version__ = "0.1.0"


class SessionStore(Protocol):
    """Contract every session backend satisfies."""

    def load(self, session_id: str) -> Optional[Session]: ...

    def save(self, session: Session) -> None: ...

    def delete(self, session_id: str) -> bool: ...

    def list_ids(self) -> List[str]: ...


def get_session_store() -> SessionStore:
    """Get session store for the configured backend."""
    from genforge.config import get_config
    settings = get_config().session
    if settings.backend == "file":
        from .file_backend import get_file_session_store
        return get_file_session_store(settings.sessions_dir)
    else:
        from .memory_backend import get_memory_session_store
        return get_memory_session_store()


__all__ = [
    "GenerationOutcome",
    "HistoryEntry",
    "Session",
    "SessionPreferences",
    "SessionStore",
    "SpeedPreference",
    "get_session_store",
]
