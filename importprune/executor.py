"""Backup-first, line-based application of execution plans."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Sequence

from .errors import BackupNotFoundError, RootDirectoryError, ValidationError, WriteError
from .filesystem import DiskFileRepository, FileRepository
from .models import (
    ActionKind,
    BackupEntry,
    BackupSession,
    BatchResult,
    ExecutionOutcome,
    ExecutionPlan,
    ExecutionState,
    OptimizationAction,
)
from .planner import validate_action

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"


def new_session_id() -> str:
    return f"{datetime.now().strftime('%Y%m%d_%H%M%S')}_{uuid.uuid4().hex[:8]}"


def apply_actions(lines: List[str], actions: Sequence[OptimizationAction]) -> int:
    """Apply *actions* to *lines* in place and return how many were applied.

    Actions run from the bottom of the file up so earlier line numbers stay
    valid. On a tie the insertion runs first: it targets the gap below the
    tied line, which a removal of that line would shift.
    """
    ordered = sorted(actions, key=lambda a: (-a.line, 0 if a.is_insertion else 1))
    applied = 0
    for action in ordered:
        if action.kind is ActionKind.IMPLEMENT_MISSING:
            logger.warning("Manual implementation required: %s", action.reason)
            continue
        try:
            validate_action(action, lines)
        except ValidationError as exc:
            logger.warning("Skipping %s at line %d: %s", action.kind.value, action.line, exc)
            continue
        if action.is_insertion:
            lines.insert(action.line, action.new_text or "")
        else:
            del lines[action.line - 1]
        applied += 1
    return applied


class SafeExecutor:
    """Applies plans one file at a time, each behind a verbatim backup.

    Per file the state moves ``PENDING -> BACKED_UP -> MUTATED -> COMMITTED``;
    any error marks the file ``FAILED`` and the batch moves on. A failed file
    is left as it was last written; its backup stays in the session for
    :meth:`restore`.
    """

    def __init__(
        self,
        root: Path,
        backup_root: Path,
        repository: Optional[FileRepository] = None,
    ) -> None:
        self.root = Path(root)
        self.backup_root = Path(backup_root)
        self.repository = repository or DiskFileRepository()

    def execute(self, plans: Sequence[ExecutionPlan]) -> BatchResult:
        if not plans:
            return BatchResult(session_id=None)

        session = BackupSession(
            session_id=new_session_id(),
            created_at=datetime.now().isoformat(),
            root=self.root,
        )
        result = BatchResult(session_id=session.session_id)
        logger.info("Backup session %s: %d file(s)", session.session_id, len(plans))

        for plan in plans:
            outcome = self.execute_plan(plan, session)
            result.outcomes.append(outcome)
            if outcome.succeeded:
                logger.info("%s", outcome)
            else:
                logger.warning("%s", outcome)

        self._write_manifest(session)
        return result

    def execute_plan(self, plan: ExecutionPlan, session: BackupSession) -> ExecutionOutcome:
        outcome = ExecutionOutcome(file_path=plan.file_path)
        try:
            outcome.backup_path = self._backup(plan.file_path, session)
            outcome.state = ExecutionState.BACKED_UP

            lines = self.repository.read_text(plan.file_path).split("\n")
            outcome.applied = apply_actions(lines, plan.actions)
            outcome.state = ExecutionState.MUTATED

            if outcome.applied:
                self.repository.write_text(plan.file_path, "\n".join(lines))
            outcome.state = ExecutionState.COMMITTED
        except Exception as exc:
            outcome.state = ExecutionState.FAILED
            outcome.applied = 0
            outcome.error = str(exc)
        return outcome

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def session_dir(self, session_id: str) -> Path:
        return self.backup_root / session_id

    def _backup(self, file_path: Path, session: BackupSession) -> Path:
        try:
            rel = file_path.relative_to(self.root)
        except ValueError:
            raise WriteError(file_path, f"outside project root {self.root}") from None
        backup = self.session_dir(session.session_id) / rel
        try:
            self.repository.copy(file_path, backup)
        except OSError as exc:
            raise WriteError(file_path, f"backup failed: {exc}") from exc
        session.entries.append(BackupEntry(original=file_path, backup=backup))
        return backup

    def _write_manifest(self, session: BackupSession) -> None:
        path = self.session_dir(session.session_id) / MANIFEST_NAME
        try:
            self.repository.write_text(path, json.dumps(session.to_dict(), indent=2))
        except OSError as exc:
            logger.error("Could not write backup manifest %s: %s", path, exc)

    def list_sessions(self) -> List[BackupSession]:
        """All backup sessions under the backup root, newest first."""
        try:
            files = self.repository.list_files(self.backup_root)
        except RootDirectoryError:
            return []
        sessions = []
        for path in files:
            if path.name != MANIFEST_NAME or path.parent.parent != self.backup_root:
                continue
            try:
                sessions.append(_session_from_dict(json.loads(self.repository.read_text(path))))
            except (OSError, ValueError, KeyError) as exc:
                logger.warning("Ignoring unreadable manifest %s: %s", path, exc)
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)

    def load_session(self, session_id: str) -> BackupSession:
        path = self.session_dir(session_id) / MANIFEST_NAME
        try:
            return _session_from_dict(json.loads(self.repository.read_text(path)))
        except OSError:
            raise BackupNotFoundError(f"No backup session '{session_id}' in {self.backup_root}") from None
        except (ValueError, KeyError) as exc:
            raise BackupNotFoundError(f"Corrupt manifest for session '{session_id}': {exc}") from exc

    def restore(self, session_id: str) -> List[Path]:
        """Copy every backed-up file of *session_id* over its original.

        Returns:
            The restored original paths.

        Raises:
            BackupNotFoundError: if the session or its manifest is missing.
            WriteError: if a file cannot be restored.
        """
        session = self.load_session(session_id)
        restored: List[Path] = []
        for entry in session.entries:
            try:
                self.repository.copy(entry.backup, entry.original)
            except OSError as exc:
                raise WriteError(entry.original, f"restore failed: {exc}") from exc
            restored.append(entry.original)
        logger.info("Restored %d file(s) from session %s", len(restored), session_id)
        return restored


def _session_from_dict(data: dict) -> BackupSession:
    return BackupSession(
        session_id=data["session_id"],
        created_at=data["created_at"],
        root=Path(data["root"]),
        entries=[
            BackupEntry(original=Path(f["original"]), backup=Path(f["backup"]))
            for f in data["files"]
        ],
    )
