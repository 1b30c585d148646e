"""Exception hierarchy for the analysis and removal pipeline."""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class ImportPruneError(Exception):
    """Base class for every error raised by importprune."""


class ParseError(ImportPruneError):
    """A source file could not be read or parsed."""

    def __init__(self, file_path: Path, message: str) -> None:
        super().__init__(f"{file_path}: {message}")
        self.file_path = file_path
        self.message = message


class ResolutionError(ImportPruneError):
    """A module specifier does not map to a file on disk."""

    def __init__(self, specifier: str, from_file: Path, candidate: Optional[Path] = None) -> None:
        super().__init__(f"cannot resolve '{specifier}' from {from_file}")
        self.specifier = specifier
        self.from_file = from_file
        self.candidate = candidate


class ValidationError(ImportPruneError):
    """A planned action no longer matches the file it targets."""


class WriteError(ImportPruneError):
    """Backing up or rewriting a file failed."""

    def __init__(self, file_path: Path, message: str) -> None:
        super().__init__(f"{file_path}: {message}")
        self.file_path = file_path


class ConfigError(ImportPruneError):
    """The project configuration could not be loaded."""


class RootDirectoryError(ImportPruneError):
    """The project root cannot be enumerated."""


class BackupNotFoundError(ImportPruneError):
    """No backup session with the requested id exists."""
