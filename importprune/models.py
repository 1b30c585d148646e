"""Core data models shared by extraction, classification, planning and execution."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Tuple


class Category(str, Enum):
    PRESERVE = "PRESERVE"
    REMOVE = "REMOVE"
    IMPLEMENT = "IMPLEMENT"
    RELOCATE = "RELOCATE"


class Risk(str, Enum):
    """Risk tier of a finding. Ordered LOW < MEDIUM < HIGH."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self.value]

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Risk):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Risk):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Risk):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Risk):
            return NotImplemented
        return self.rank >= other.rank


_RISK_RANK = {"LOW": 0, "MEDIUM": 1, "HIGH": 2}


class ActionKind(str, Enum):
    REMOVE_IMPORT = "REMOVE_IMPORT"
    REMOVE_EXPORT = "REMOVE_EXPORT"
    ADD_COMMENT = "ADD_COMMENT"
    IMPLEMENT_MISSING = "IMPLEMENT_MISSING"


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ImportRecord:
    """One ``import`` statement.

    ``imported_names`` are the locally bound names (empty for side-effect
    imports). ``exported_names`` are the same bindings as the source module
    exports them: ``"default"`` for a default binding, ``"*"`` for a
    namespace binding, the pre-alias name for ``{a as b}``.
    """
    source: str
    imported_names: Tuple[str, ...]
    is_type_only: bool
    is_default: bool
    line: int
    raw_text: str
    exported_names: Tuple[str, ...] = ()
    end_line: int = 0

    @property
    def is_namespace(self) -> bool:
        return "*" in self.exported_names


@dataclass(frozen=True)
class ExportRecord:
    """One exported binding.

    ``export * from 'x'`` is recorded as name ``"*"``. For ``export { a as b }``
    ``name`` is ``b`` and ``local_name`` is ``a``.
    ``export * as ns from 'x'`` is recorded as name ``ns`` with
    ``is_namespace`` set. ``export { a as default }`` is a default export.
    """
    name: str
    is_default: bool
    line: int
    raw_text: str
    re_export_source: Optional[str] = None
    is_declaration: bool = False
    end_line: int = 0
    local_name: Optional[str] = None
    is_namespace: bool = False

    @property
    def source_name(self) -> str:
        """Name of the binding inside the exporting module (before any alias)."""
        return self.local_name or self.name


@dataclass(frozen=True)
class DynamicImportRef:
    raw_expression: str


@dataclass(frozen=True)
class FileAnalysis:
    file_path: Path
    imports: Tuple[ImportRecord, ...]
    exports: Tuple[ExportRecord, ...]
    dynamic_imports: Tuple[DynamicImportRef, ...]
    source: str = field(default="", repr=False, compare=False)


@dataclass(frozen=True)
class ParseFailure:
    file_path: Path
    error: str


@dataclass(frozen=True)
class ProjectGraph:
    """All per-file analyses plus the reverse usage indexes built from them."""
    by_file: Mapping[Path, FileAnalysis]
    symbol_usage: Mapping[str, FrozenSet[Path]]
    module_usage: Mapping[str, FrozenSet[Path]] = field(default_factory=dict)
    parse_failures: Tuple[ParseFailure, ...] = ()

    def consumers_of(self, symbol: str) -> FrozenSet[Path]:
        return self.symbol_usage.get(symbol, frozenset())

    def importers_of(self, specifier: str) -> FrozenSet[Path]:
        return self.module_usage.get(specifier, frozenset())


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Classification:
    category: Category
    risk: Risk
    reason: str
    recommendation: str

    @property
    def auto_applicable(self) -> bool:
        return self.category is Category.REMOVE and self.risk is Risk.LOW


@dataclass(frozen=True)
class ImportFinding:
    record: ImportRecord
    classification: Classification

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "import",
            "source": self.record.source,
            "names": list(self.record.imported_names),
            "line": self.record.line,
            "raw_text": self.record.raw_text,
            "category": self.classification.category.value,
            "risk": self.classification.risk.value,
            "reason": self.classification.reason,
            "recommendation": self.classification.recommendation,
        }


@dataclass(frozen=True)
class ExportFinding:
    record: ExportRecord
    used: bool
    classification: Classification

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": "export",
            "name": self.record.name,
            "line": self.record.line,
            "raw_text": self.record.raw_text,
            "used": self.used,
            "category": self.classification.category.value,
            "risk": self.classification.risk.value,
            "reason": self.classification.reason,
            "recommendation": self.classification.recommendation,
        }


@dataclass(frozen=True)
class FileFindings:
    file_path: Path
    imports: Tuple[ImportFinding, ...]
    exports: Tuple[ExportFinding, ...]

    @property
    def unused_imports(self) -> List[ImportFinding]:
        return [f for f in self.imports if f.classification.category is Category.REMOVE]

    @property
    def unused_exports(self) -> List[ExportFinding]:
        return [f for f in self.exports if f.classification.category is Category.REMOVE]


@dataclass(frozen=True)
class ProjectFindings:
    by_file: Mapping[Path, FileFindings]

    @property
    def total_unused_imports(self) -> int:
        return sum(len(f.unused_imports) for f in self.by_file.values())

    @property
    def total_unused_exports(self) -> int:
        return sum(len(f.unused_exports) for f in self.by_file.values())

    def to_dict(self, root: Optional[Path] = None) -> Dict[str, Any]:
        """Per-file mapping of unused imports and exports, keyed by path."""
        files: Dict[str, Any] = {}
        for path in sorted(self.by_file):
            findings = self.by_file[path]
            if not findings.unused_imports and not findings.unused_exports:
                continue
            key = path.relative_to(root).as_posix() if root else str(path)
            files[key] = {
                "unused_imports": [f.to_dict() for f in findings.unused_imports],
                "unused_exports": [f.to_dict() for f in findings.unused_exports],
            }
        return {
            "files_analyzed": len(self.by_file),
            "unused_imports": self.total_unused_imports,
            "unused_exports": self.total_unused_exports,
            "files": files,
        }


# ---------------------------------------------------------------------------
# Planning & execution
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OptimizationAction:
    kind: ActionKind
    line: int
    old_text: str
    reason: str
    risk: Risk
    new_text: Optional[str] = None

    @property
    def is_insertion(self) -> bool:
        return self.kind is ActionKind.ADD_COMMENT


@dataclass(frozen=True)
class ExecutionPlan:
    file_path: Path
    actions: Tuple[OptimizationAction, ...]


class ExecutionState(str, Enum):
    PENDING = "PENDING"
    BACKED_UP = "BACKED_UP"
    MUTATED = "MUTATED"
    COMMITTED = "COMMITTED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class BackupEntry:
    original: Path
    backup: Path


@dataclass
class BackupSession:
    session_id: str
    created_at: str
    root: Path
    entries: List[BackupEntry] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "created_at": self.created_at,
            "root": str(self.root),
            "files": [
                {"original": str(e.original), "backup": str(e.backup)} for e in self.entries
            ],
        }


@dataclass
class ExecutionOutcome:
    file_path: Path
    state: ExecutionState = ExecutionState.PENDING
    backup_path: Optional[Path] = None
    applied: int = 0
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.state is ExecutionState.COMMITTED

    def __str__(self) -> str:
        if self.succeeded:
            return f"✅ {self.file_path}: {self.applied} action(s) applied"
        return f"❌ {self.file_path}: {self.error}"


@dataclass
class BatchResult:
    session_id: Optional[str]
    outcomes: List[ExecutionOutcome] = field(default_factory=list)

    @property
    def files_modified(self) -> int:
        return sum(1 for o in self.outcomes if o.succeeded)

    @property
    def actions_executed(self) -> int:
        return sum(o.applied for o in self.outcomes if o.succeeded)

    @property
    def failures(self) -> List[ExecutionOutcome]:
        return [o for o in self.outcomes if o.state is ExecutionState.FAILED]
