"""Tests for backup-first plan execution and restore."""

import json
from pathlib import Path

import pytest

from importprune.errors import BackupNotFoundError
from importprune.executor import MANIFEST_NAME, SafeExecutor, apply_actions
from importprune.filesystem import DiskFileRepository, InMemoryFileRepository
from importprune.models import (
    ActionKind,
    BackupSession,
    ExecutionPlan,
    ExecutionState,
    OptimizationAction,
    Risk,
)

ROOT = Path("/proj")
BACKUPS = ROOT / ".backup-import-optimization"


def removal(line, text, kind=ActionKind.REMOVE_IMPORT):
    return OptimizationAction(kind, line, text, "unused", Risk.LOW)


def comment(line, above, text="// Preserved: test"):
    return OptimizationAction(ActionKind.ADD_COMMENT, line, above, "note", Risk.LOW, new_text=text)


class _TruncatingRepository(InMemoryFileRepository):
    """Writes the first half of the content, then fails."""

    def __init__(self, files):
        super().__init__(files)
        self.truncate = set(files)

    def write_text(self, path, content):
        if path in self.truncate:
            self.files[path] = content[: len(content) // 2]
            raise OSError(f"disk full: {path}")
        super().write_text(path, content)


SOURCE = "\n".join([
    "import { a } from './a';",
    "import { b } from './b';",
    "import { c } from './c';",
    "import { d } from './d';",
    "import { e } from './e';",
    "use(a, c, e);",
    "",
])


class TestApplyActions:
    """Line arithmetic of in-memory application."""

    def test_descending_removals_keep_order(self, extractor):
        lines = SOURCE.split("\n")
        applied = apply_actions(lines, [
            removal(2, "import { b } from './b';"),
            removal(4, "import { d } from './d';"),
        ])

        assert applied == 2
        assert lines == [
            "import { a } from './a';",
            "import { c } from './c';",
            "import { e } from './e';",
            "use(a, c, e);",
            "",
        ]

        analysis = extractor.extract(ROOT / "a.ts", "\n".join(lines))
        assert [r.source for r in analysis.imports] == ["./a", "./c", "./e"]
        assert [r.line for r in analysis.imports] == [1, 2, 3]

    def test_insertion_runs_before_removal_on_same_line(self):
        lines = SOURCE.split("\n")
        apply_actions(lines, [
            removal(2, "import { b } from './b';"),
            comment(2, "import { c } from './c';"),
        ])

        assert lines[:3] == [
            "import { a } from './a';",
            "// Preserved: test",
            "import { c } from './c';",
        ]

    def test_removal_sharing_a_line_with_code_is_skipped(self):
        lines = ["import { a } from './a'; boot();", "use(a);", ""]
        assert apply_actions(lines, [removal(1, "import { a } from './a';")]) == 0
        assert lines[0] == "import { a } from './a'; boot();"

    def test_out_of_range_action_is_skipped(self):
        lines = SOURCE.split("\n")
        assert apply_actions(lines, [removal(99, "import { z } from './z';")]) == 0
        assert "\n".join(lines) == SOURCE

    def test_implement_missing_is_not_applied(self):
        lines = SOURCE.split("\n")
        action = OptimizationAction(ActionKind.IMPLEMENT_MISSING, 0, "", "write it", Risk.LOW)
        assert apply_actions(lines, [action]) == 0
        assert "\n".join(lines) == SOURCE


class TestSafeExecutor:
    """State machine, backups and restore."""

    def _setup(self, files):
        repo = InMemoryFileRepository({ROOT / rel: text for rel, text in files.items()})
        return repo, SafeExecutor(ROOT, BACKUPS, repo)

    def test_backup_matches_original_and_file_is_rewritten(self):
        repo, executor = self._setup({"src/a.ts": SOURCE})
        plan = ExecutionPlan(ROOT / "src/a.ts", (removal(2, "import { b } from './b';"),))

        result = executor.execute([plan])

        (outcome,) = result.outcomes
        assert outcome.state is ExecutionState.COMMITTED
        assert outcome.applied == 1
        assert outcome.backup_path == BACKUPS / result.session_id / "src/a.ts"
        assert repo.files[outcome.backup_path] == SOURCE
        assert "import { b }" not in repo.files[ROOT / "src/a.ts"]
        assert result.files_modified == 1
        assert result.actions_executed == 1

    def test_manifest_records_session(self):
        repo, executor = self._setup({"a.ts": SOURCE})
        result = executor.execute([ExecutionPlan(ROOT / "a.ts", (removal(1, "import { a } from './a';"),))])

        manifest = json.loads(repo.files[BACKUPS / result.session_id / MANIFEST_NAME])
        assert manifest["session_id"] == result.session_id
        assert manifest["files"] == [
            {"original": str(ROOT / "a.ts"), "backup": str(BACKUPS / result.session_id / "a.ts")}
        ]

    def test_failed_file_does_not_stop_batch(self):
        repo, executor = self._setup({"a.ts": SOURCE, "b.ts": SOURCE})
        repo.fail_writes.add(ROOT / "a.ts")
        plans = [
            ExecutionPlan(ROOT / "a.ts", (removal(1, "import { a } from './a';"),)),
            ExecutionPlan(ROOT / "b.ts", (removal(1, "import { a } from './a';"),)),
        ]

        result = executor.execute(plans)

        failed, ok = result.outcomes
        assert failed.state is ExecutionState.FAILED
        assert "write refused" in failed.error
        assert repo.files[ROOT / "a.ts"] == SOURCE
        assert repo.files[failed.backup_path] == SOURCE
        assert ok.state is ExecutionState.COMMITTED
        assert result.failures == [failed]
        assert result.files_modified == 1

    def test_failed_write_is_not_restored_automatically(self):
        repo = _TruncatingRepository({ROOT / "a.ts": SOURCE})
        executor = SafeExecutor(ROOT, BACKUPS, repo)
        plan = ExecutionPlan(ROOT / "a.ts", (removal(1, "import { a } from './a';"),))

        result = executor.execute([plan])

        (outcome,) = result.outcomes
        assert outcome.state is ExecutionState.FAILED
        assert outcome.applied == 0
        written = SOURCE.split("\n", 1)[1]
        assert repo.files[ROOT / "a.ts"] == written[: len(written) // 2]
        assert repo.files[outcome.backup_path] == SOURCE

        assert executor.restore(result.session_id) == [ROOT / "a.ts"]
        assert repo.files[ROOT / "a.ts"] == SOURCE

    def test_backup_failure_leaves_original_untouched(self):
        repo, executor = self._setup({"a.ts": SOURCE})
        plan = ExecutionPlan(ROOT / "a.ts", (removal(1, "import { a } from './a';"),))
        session_id = "fixed"
        repo.fail_writes.add(BACKUPS / session_id / "a.ts")

        outcome = executor.execute_plan(plan, BackupSession(session_id, "now", ROOT))

        assert outcome.state is ExecutionState.FAILED
        assert outcome.backup_path is None
        assert repo.files[ROOT / "a.ts"] == SOURCE

    def test_empty_batch_creates_no_session(self):
        _, executor = self._setup({"a.ts": SOURCE})
        result = executor.execute([])
        assert result.session_id is None
        assert executor.list_sessions() == []

    def test_list_and_restore(self):
        repo, executor = self._setup({"a.ts": SOURCE})
        result = executor.execute([ExecutionPlan(ROOT / "a.ts", (removal(1, "import { a } from './a';"),))])
        assert repo.files[ROOT / "a.ts"] != SOURCE

        sessions = executor.list_sessions()
        assert [s.session_id for s in sessions] == [result.session_id]

        restored = executor.restore(result.session_id)
        assert restored == [ROOT / "a.ts"]
        assert repo.files[ROOT / "a.ts"] == SOURCE

    def test_restore_unknown_session(self):
        _, executor = self._setup({"a.ts": SOURCE})
        with pytest.raises(BackupNotFoundError):
            executor.restore("19700101_000000_deadbeef")


def test_disk_execution_preserves_crlf(temp_dir: Path):
    """Test a real file keeps its line endings and gets a mirrored backup."""
    source = "import { a } from './a';\r\nimport { b } from './b';\r\nuse(b);\r\n"
    target = temp_dir / "src" / "a.ts"
    target.parent.mkdir(parents=True)
    target.write_bytes(source.encode("utf-8"))
    backups = temp_dir / ".backup-import-optimization"
    executor = SafeExecutor(temp_dir, backups, DiskFileRepository())

    result = executor.execute([ExecutionPlan(target, (removal(1, "import { a } from './a';"),))])

    assert result.outcomes[0].succeeded
    assert target.read_bytes() == b"import { b } from './b';\r\nuse(b);\r\n"
    backup = backups / result.session_id / "src" / "a.ts"
    assert backup.read_bytes() == source.encode("utf-8")
    assert (backups / result.session_id / MANIFEST_NAME).exists()
