"""
Artifact inspection primitives.

An artifact is a generated application: a tree of files addressed by
POSIX-style relative paths ("app/page.tsx"). Two implementations share
one read-only interface:

- DirectoryArtifact: an application on disk
- InMemoryArtifact: a path -> content map, used for stubs and fixtures

Copyright (c) 2025 GenForge
"""

import os
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Optional, Protocol, Sequence, Union

from genforge.exceptions import ArtifactError

SKIPPED_DIRS = {"node_modules", ".next", ".git", "dist", "build"}


def _normalize(path: str) -> str:
    normalized = str(PurePosixPath(path.replace("\\", "/"))).lstrip("/")
    return "" if normalized == "." else normalized


def _has_extension(path: str, extensions: Sequence[str]) -> bool:
    return not extensions or any(path.endswith(ext) for ext in extensions)


class Artifact(Protocol):
    """Read-only view of a generated application."""

    name: str

    def exists(self, path: str) -> bool: ...

    def read_text(self, path: str) -> str: ...

    def list_files(self, prefix: str = "", extensions: Sequence[str] = ()) -> List[str]: ...

    def size_of(self, path: str) -> int: ...


class DirectoryArtifact:
    """Artifact backed by a directory."""

    def __init__(self, root: Union[str, Path], name: Optional[str] = None):
        self.root = Path(root)
        self.name = name or self.root.name

    def _resolve(self, path: str) -> Path:
        return self.root / _normalize(path)

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def read_text(self, path: str) -> str:
        try:
            return self._resolve(path).read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            raise ArtifactError(f"Cannot read {path}: {e}", path=path) from e

    def size_of(self, path: str) -> int:
        try:
            return self._resolve(path).stat().st_size
        except OSError as e:
            raise ArtifactError(f"Cannot stat {path}: {e}", path=path) from e

    def list_files(self, prefix: str = "", extensions: Sequence[str] = ()) -> List[str]:
        base = self._resolve(prefix)
        if not base.is_dir():
            return []
        files = []
        for dirpath, dirnames, filenames in os.walk(base):
            dirnames[:] = sorted(d for d in dirnames if not d.startswith(".") and d not in SKIPPED_DIRS)
            for filename in sorted(filenames):
                rel = Path(dirpath, filename).relative_to(self.root).as_posix()
                if _has_extension(rel, extensions):
                    files.append(rel)
        return files

    def __repr__(self) -> str:
        return f"DirectoryArtifact({str(self.root)!r})"


class InMemoryArtifact:
    """Artifact backed by a dict of path -> text content."""

    def __init__(self, name: str, files: Optional[Dict[str, str]] = None,
                 directories: Iterable[str] = ()):
        self.name = name
        self._files: Dict[str, str] = {_normalize(p): content for p, content in (files or {}).items()}
        self._dirs = {_normalize(d) for d in directories}

    @property
    def files(self) -> Dict[str, str]:
        return dict(self._files)

    def exists(self, path: str) -> bool:
        path = _normalize(path)
        if path in self._files or path in self._dirs:
            return True
        prefix = path + "/"
        return any(p.startswith(prefix) for p in self._files) or any(d.startswith(prefix) for d in self._dirs)

    def read_text(self, path: str) -> str:
        try:
            return self._files[_normalize(path)]
        except KeyError:
            raise ArtifactError(f"No such file: {path}", path=path) from None

    def size_of(self, path: str) -> int:
        return len(self.read_text(path).encode("utf-8"))

    def list_files(self, prefix: str = "", extensions: Sequence[str] = ()) -> List[str]:
        prefix = _normalize(prefix)
        lead = prefix + "/" if prefix else ""
        selected = []
        for path in sorted(self._files):
            if not path.startswith(lead):
                continue
            parts = path.split("/")
            if any(part.startswith(".") or part in SKIPPED_DIRS for part in parts[:-1]):
                continue
            if _has_extension(path, extensions):
                selected.append(path)
        return selected

    def __repr__(self) -> str:
        return f"InMemoryArtifact({self.name!r}, {len(self._files)} files)"


def as_artifact(ref: Union[str, Path, Artifact]) -> Artifact:
    """Accept a path or an artifact object."""
    if isinstance(ref, (str, Path)):
        return DirectoryArtifact(ref)
    return ref
