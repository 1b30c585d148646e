"""File access behind a small repository interface.

Every pipeline stage reads and writes through a :class:`FileRepository` so the
whole flow, extraction through execution, can run against an in-memory file
set in tests.
"""

from __future__ import annotations

import fnmatch
import logging
import os
import shutil
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

from .config import SKIP_DIRS
from .errors import RootDirectoryError

logger = logging.getLogger(__name__)


def matches_any(rel_path: str, patterns: Iterable[str]) -> bool:
    """Glob-match a POSIX relative path; a leading ``**/`` also matches zero dirs."""
    for pattern in patterns:
        if fnmatch.fnmatchcase(rel_path, pattern):
            return True
        if pattern.startswith("**/") and fnmatch.fnmatchcase(rel_path, pattern[3:]):
            return True
    return False


class FileRepository(ABC):
    """Abstract read/write/exists/copy access to source files."""

    @abstractmethod
    def read_text(self, path: Path) -> str:
        ...

    @abstractmethod
    def write_text(self, path: Path, content: str) -> None:
        ...

    @abstractmethod
    def exists(self, path: Path) -> bool:
        """Return True if *path* is an existing regular file."""
        ...

    @abstractmethod
    def copy(self, src: Path, dst: Path) -> None:
        """Copy *src* verbatim to *dst*, creating parent directories."""
        ...

    @abstractmethod
    def list_files(self, root: Path, skip_dirs: Iterable[str] = ()) -> List[Path]:
        """Return every file under *root*, sorted.

        Raises:
            RootDirectoryError: if *root* is not a readable directory.
        """
        ...

    def iter_sources(
        self,
        root: Path,
        include: Sequence[str],
        exclude: Sequence[str],
        skip_dirs: Iterable[str] = (),
    ) -> List[Path]:
        """Files under *root* matching *include* and none of *exclude*."""
        selected: List[Path] = []
        for path in self.list_files(root, skip_dirs):
            rel = path.relative_to(root).as_posix()
            if not matches_any(rel, include):
                continue
            if matches_any(rel, exclude):
                continue
            selected.append(path)
        return selected


class DiskFileRepository(FileRepository):
    """Local file-system implementation."""

    def read_text(self, path: Path) -> str:
        with open(path, "r", encoding="utf-8", newline="") as f:
            return f.read()

    def write_text(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(content)

    def exists(self, path: Path) -> bool:
        return path.is_file()

    def copy(self, src: Path, dst: Path) -> None:
        dst.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(src, dst)
        # The backup must be on disk before the original is touched.
        with open(dst, "rb+") as f:
            os.fsync(f.fileno())

    def list_files(self, root: Path, skip_dirs: Iterable[str] = ()) -> List[Path]:
        if not root.is_dir():
            raise RootDirectoryError(f"Not a directory: {root}")
        skip = set(SKIP_DIRS) | set(skip_dirs)
        found: List[Path] = []

        def _on_error(exc: OSError) -> None:
            if Path(exc.filename or "") == root:
                raise RootDirectoryError(f"Cannot read {root}: {exc.strerror}") from exc
            logger.warning("Skipping unreadable directory %s: %s", exc.filename, exc.strerror)

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
            dirnames[:] = sorted(d for d in dirnames if d not in skip)
            for name in filenames:
                found.append(Path(dirpath) / name)
        return sorted(found)


class InMemoryFileRepository(FileRepository):
    """Dictionary-backed repository used by tests and dry simulations."""

    def __init__(self, files: Optional[Dict[Path, str]] = None) -> None:
        self.files: Dict[Path, str] = {Path(p): c for p, c in (files or {}).items()}
        self.fail_writes: set = set()

    def read_text(self, path: Path) -> str:
        try:
            return self.files[path]
        except KeyError:
            raise FileNotFoundError(str(path)) from None

    def write_text(self, path: Path, content: str) -> None:
        if path in self.fail_writes:
            raise OSError(f"write refused: {path}")
        self.files[path] = content

    def exists(self, path: Path) -> bool:
        return path in self.files

    def copy(self, src: Path, dst: Path) -> None:
        if dst in self.fail_writes:
            raise OSError(f"write refused: {dst}")
        self.files[dst] = self.read_text(src)

    def list_files(self, root: Path, skip_dirs: Iterable[str] = ()) -> List[Path]:
        skip = set(SKIP_DIRS) | set(skip_dirs)
        found = []
        for path in self.files:
            try:
                rel = path.relative_to(root)
            except ValueError:
                continue
            if any(part in skip for part in rel.parts[:-1]):
                continue
            found.append(path)
        if not found and not any(root in p.parents for p in self.files):
            raise RootDirectoryError(f"Not a directory: {root}")
        return sorted(found)
