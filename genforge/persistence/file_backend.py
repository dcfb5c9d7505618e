"""
File Backend for Persistence.

Stores one JSON document per session under a directory.

Copyright (c) 2025 GenForge
"""

import logging
import os
import re
import tempfile
from pathlib import Path
from threading import Lock
from typing import List, Optional, Union

from pydantic import ValidationError

from .models import Session

logger = logging.getLogger(__name__)

_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")

# Singleton instance
_session_store = None


class FileSessionStore:
    """JSON-file session store."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)
        self._lock = Lock()

    def _path(self, session_id: str) -> Path:
        if not _SAFE_ID.match(session_id) or session_id in (".", ".."):
            raise ValueError(f"Invalid session id: {session_id!r}")
        return self.directory / f"{session_id}.json"

    def load(self, session_id: str) -> Optional[Session]:
        """Read a session file, or None if it does not exist."""
        path = self._path(session_id)
        with self._lock:
            if not path.exists():
                return None
            raw = path.read_text(encoding="utf-8")
        try:
            return Session.model_validate_json(raw)
        except ValidationError as e:
            logger.error(f"Corrupt session file {path}: {e}")
            raise

    def save(self, session: Session) -> None:
        """Write a session file atomically."""
        path = self._path(session.session_id)
        payload = session.model_dump_json(indent=2)
        with self._lock:
            fd, tmp = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp, path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise

    def delete(self, session_id: str) -> bool:
        """Remove a session file."""
        path = self._path(session_id)
        with self._lock:
            if not path.exists():
                return False
            path.unlink()
            return True

    def list_ids(self) -> List[str]:
        """List stored session IDs."""
        with self._lock:
            return sorted(p.stem for p in self.directory.glob("*.json"))


def get_file_session_store(directory: Optional[str] = None) -> FileSessionStore:
    """Get file session store singleton."""
    global _session_store
    if _session_store is None:
        if directory is None:
            from genforge.config import get_config
            directory = get_config().session.sessions_dir
        _session_store = FileSessionStore(directory)
        logger.info(f"File session store initialized at {directory}")
    return _session_store
