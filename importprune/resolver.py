"""Module specifier resolution: relative paths, path aliases, probe suffixes."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

from .config import PROBE_SUFFIXES
from .errors import ResolutionError
from .filesystem import DiskFileRepository, FileRepository

logger = logging.getLogger(__name__)


def is_relative(specifier: str) -> bool:
    return specifier.startswith("./") or specifier.startswith("../") or specifier in (".", "..")


class ModuleResolver:
    """Map a specifier plus the file that contains it to a file on disk.

    Aliases use tsconfig ``paths`` keys: ``"@/*"`` is a prefix alias that
    matches ``"@/lib/x"``; a key without ``*`` only matches itself. Longer
    prefixes are tried first.
    """

    def __init__(
        self,
        aliases: Optional[Mapping[str, Path]] = None,
        repository: Optional[FileRepository] = None,
        probe_suffixes: Tuple[str, ...] = PROBE_SUFFIXES,
    ) -> None:
        self.repository = repository or DiskFileRepository()
        self.probe_suffixes = probe_suffixes
        self._prefix_aliases: List[Tuple[str, Path]] = []
        self._exact_aliases: Dict[str, Path] = {}
        for pattern, target in (aliases or {}).items():
            if pattern.endswith("*"):
                prefix = pattern[:-1]
                if prefix:
                    self._prefix_aliases.append((prefix, Path(target)))
            else:
                self._exact_aliases[pattern] = Path(target)
        self._prefix_aliases.sort(key=lambda item: len(item[0]), reverse=True)

    def candidate(self, specifier: str, from_file: Path) -> Optional[Path]:
        """Return the un-probed path for *specifier*, or ``None`` if it is external."""
        if is_relative(specifier):
            return _normalize(from_file.parent / specifier)

        if specifier in self._exact_aliases:
            return _normalize(self._exact_aliases[specifier])
        for prefix, target in self._prefix_aliases:
            if specifier.startswith(prefix):
                return _normalize(target / specifier[len(prefix):])

        return None

    def resolve_file(self, specifier: str, from_file: Path) -> Path:
        """Resolve *specifier* to an existing file.

        Raises:
            ResolutionError: if the specifier is external or no probed file exists.
        """
        base = self.candidate(specifier, from_file)
        if base is None:
            raise ResolutionError(specifier, from_file)
        for suffix in self.probe_suffixes:
            probe = Path(str(base) + suffix) if suffix else base
            if self.repository.exists(probe):
                return probe
        raise ResolutionError(specifier, from_file, candidate=base)

    def locate(self, specifier: str, from_file: Path) -> Optional[Path]:
        """Like :meth:`resolve_file` but returns ``None`` instead of raising."""
        try:
            return self.resolve_file(specifier, from_file)
        except ResolutionError as exc:
            logger.debug("Unresolved import %s", exc)
            return None


def _normalize(path: Path) -> Path:
    return Path(os.path.normpath(str(path)))
