"""Risk-classified usage decisions for imports and exports.

Import decisions follow a fixed, ordered rule list; the first rule that
matches wins and later rules are never consulted:

1. framework-essential source            -> PRESERVE / HIGH
2. side-effect import or stylesheet      -> PRESERVE / HIGH
3. type-only import that is referenced   -> PRESERVE / MEDIUM
4. name appears in a dynamic import      -> PRESERVE / HIGH
5. name referenced in the file           -> PRESERVE / LOW
6. specifier imported by several files   -> PRESERVE / MEDIUM
7. otherwise                             -> REMOVE   / LOW

Reference checks are textual (see :mod:`importprune.usage`), so a name that
only appears in a comment still counts as used. Anything above LOW risk is
never applied automatically, which bounds the cost of those misses.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from . import config
from .models import (
    Category,
    Classification,
    ExportFinding,
    ExportRecord,
    FileAnalysis,
    FileFindings,
    ImportFinding,
    ImportRecord,
    ProjectFindings,
    ProjectGraph,
    Risk,
)
from .resolver import ModuleResolver
from .usage import UsageOracle, WordBoundaryOracle

logger = logging.getLogger(__name__)


FRAMEWORK_ESSENTIAL = Classification(
    Category.PRESERVE, Risk.HIGH,
    "Framework essential import (React, Next.js, etc.)",
    "Keep - required for framework functionality",
)
SIDE_EFFECT = Classification(
    Category.PRESERVE, Risk.HIGH,
    "Side-effect import (CSS, polyfills, configurations)",
    "Keep - required for side effects",
)
TYPE_ONLY_USED = Classification(
    Category.PRESERVE, Risk.MEDIUM,
    "Type-only import used in type annotations",
    "Keep - required for TypeScript compilation",
)
DYNAMIC_USE = Classification(
    Category.PRESERVE, Risk.HIGH,
    "Used in dynamic import expressions",
    "Keep - required for dynamic loading",
)
USED_IN_FILE = Classification(
    Category.PRESERVE, Risk.LOW,
    "Import is actively used in the file",
    "Keep - actively used",
)
SHARED_MODULE = Classification(
    Category.PRESERVE, Risk.MEDIUM,
    "Import is used in other parts of the codebase",
    "Keep - used elsewhere",
)
UNUSED_IMPORT = Classification(
    Category.REMOVE, Risk.LOW,
    "Import is not used anywhere in the file",
    "Safe to remove",
)

EXPORT_USED = Classification(
    Category.PRESERVE, Risk.LOW,
    "Export is imported by other files",
    "Keep - used by other modules",
)
DEFAULT_EXPORT = Classification(
    Category.PRESERVE, Risk.HIGH,
    "Default exports are never removed automatically",
    "Review manually - may be an entry point loaded by a framework",
)
WILDCARD_EXPORT = Classification(
    Category.PRESERVE, Risk.HIGH,
    "Wildcard re-export forwards every binding of another module",
    "Review manually",
)
UNUSED_EXPORT = Classification(
    Category.REMOVE, Risk.LOW,
    "Export is not used by other files",
    "Safe to remove",
)
UNUSED_EXPORT_LOCAL = Classification(
    Category.REMOVE, Risk.MEDIUM,
    "Export is not used by other files but the declaration is referenced locally",
    "Drop the export keyword by hand - deleting the line would break local references",
)


@dataclass(frozen=True)
class _Consumption:
    """One import or re-export in *from_file* that resolves to a project file."""
    from_file: Path
    local_names: FrozenSet[str]
    source_names: FrozenSet[str]
    is_default: bool
    wildcard: bool

    def uses(self, export: ExportRecord) -> bool:
        if self.wildcard:
            return True
        if export.is_default and self.is_default:
            return True
        return export.name in self.local_names or export.name in self.source_names


class UsageClassifier:
    """Classify every import and export of a :class:`ProjectGraph`."""

    def __init__(
        self,
        resolver: ModuleResolver,
        oracle: Optional[UsageOracle] = None,
        framework_essentials: Iterable[str] = config.FRAMEWORK_ESSENTIALS,
        side_effect_modules: Iterable[str] = config.SIDE_EFFECT_MODULES,
        stylesheet_extensions: Iterable[str] = config.STYLESHEET_EXTENSIONS,
        shared_module_guard: bool = True,
    ) -> None:
        self.resolver = resolver
        self.oracle = oracle or WordBoundaryOracle()
        self.framework_essentials: Tuple[str, ...] = tuple(framework_essentials)
        self.side_effect_modules: FrozenSet[str] = frozenset(side_effect_modules)
        self.stylesheet_extensions: Tuple[str, ...] = tuple(stylesheet_extensions)
        self.shared_module_guard = shared_module_guard

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def classify_import(
        self,
        record: ImportRecord,
        analysis: FileAnalysis,
        graph: ProjectGraph,
    ) -> Classification:
        if self.is_framework_essential(record):
            return FRAMEWORK_ESSENTIAL
        if self.is_side_effect(record):
            return SIDE_EFFECT

        referenced = self._is_referenced(record, analysis)
        if record.is_type_only and referenced:
            return TYPE_ONLY_USED
        if self._used_dynamically(record, analysis):
            return DYNAMIC_USE
        if referenced:
            return USED_IN_FILE
        if self.shared_module_guard and len(graph.importers_of(record.source)) > 1:
            return SHARED_MODULE
        return UNUSED_IMPORT

    def is_framework_essential(self, record: ImportRecord) -> bool:
        return any(record.source.startswith(prefix) for prefix in self.framework_essentials)

    def is_side_effect(self, record: ImportRecord) -> bool:
        if not record.imported_names:
            return True
        if record.source.endswith(self.stylesheet_extensions):
            return True
        return record.source in self.side_effect_modules

    def _is_referenced(self, record: ImportRecord, analysis: FileAnalysis) -> bool:
        return any(
            self.oracle.is_referenced(name, analysis.source, record.raw_text)
            for name in record.imported_names
        )

    @staticmethod
    def _used_dynamically(record: ImportRecord, analysis: FileAnalysis) -> bool:
        return any(
            name in ref.raw_expression
            for ref in analysis.dynamic_imports
            for name in record.imported_names
        )

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    def consumption_index(self, graph: ProjectGraph) -> Dict[Path, List[_Consumption]]:
        """Map each project file to the imports and re-exports that resolve to it."""
        index: Dict[Path, List[_Consumption]] = {}
        for path, analysis in graph.by_file.items():
            for record in analysis.imports:
                target = self.resolver.locate(record.source, path)
                if target is None:
                    continue
                index.setdefault(target, []).append(_Consumption(
                    from_file=path,
                    local_names=frozenset(record.imported_names),
                    source_names=frozenset(record.exported_names),
                    is_default=record.is_default,
                    wildcard=record.is_namespace,
                ))
            for export in analysis.exports:
                if not export.re_export_source:
                    continue
                target = self.resolver.locate(export.re_export_source, path)
                if target is None:
                    continue
                index.setdefault(target, []).append(_Consumption(
                    from_file=path,
                    local_names=frozenset(),
                    source_names=frozenset({export.source_name}),
                    is_default=export.source_name == "default",
                    wildcard=export.name == "*" or export.is_namespace,
                ))
        return index

    def is_export_used(
        self,
        record: ExportRecord,
        file_path: Path,
        graph: ProjectGraph,
        index: Optional[Dict[Path, List[_Consumption]]] = None,
    ) -> bool:
        if index is None:
            index = self.consumption_index(graph)
        return any(
            c.from_file != file_path and c.uses(record)
            for c in index.get(file_path, [])
        )

    def classify_export(
        self,
        record: ExportRecord,
        analysis: FileAnalysis,
        graph: ProjectGraph,
        index: Optional[Dict[Path, List[_Consumption]]] = None,
    ) -> ExportFinding:
        if record.name == "*":
            return ExportFinding(record, used=True, classification=WILDCARD_EXPORT)
        used = self.is_export_used(record, analysis.file_path, graph, index)
        if used:
            return ExportFinding(record, used=True, classification=EXPORT_USED)
        if record.is_default:
            return ExportFinding(record, used=False, classification=DEFAULT_EXPORT)
        if record.is_declaration and self.oracle.is_referenced(
            record.name, analysis.source, record.raw_text
        ):
            return ExportFinding(record, used=False, classification=UNUSED_EXPORT_LOCAL)
        return ExportFinding(record, used=False, classification=UNUSED_EXPORT)

    # ------------------------------------------------------------------
    # Whole project
    # ------------------------------------------------------------------

    def classify_file(
        self,
        analysis: FileAnalysis,
        graph: ProjectGraph,
        index: Optional[Dict[Path, List[_Consumption]]] = None,
    ) -> FileFindings:
        if index is None:
            index = self.consumption_index(graph)
        imports = tuple(
            ImportFinding(record, self.classify_import(record, analysis, graph))
            for record in analysis.imports
        )
        exports = tuple(
            self.classify_export(record, analysis, graph, index)
            for record in analysis.exports
        )
        return FileFindings(file_path=analysis.file_path, imports=imports, exports=exports)

    def classify_project(self, graph: ProjectGraph) -> ProjectFindings:
        index = self.consumption_index(graph)
        by_file = {
            path: self.classify_file(analysis, graph, index)
            for path, analysis in graph.by_file.items()
        }
        findings = ProjectFindings(by_file=by_file)
        logger.info(
            "Classified %d files: %d unused imports, %d unused exports",
            len(by_file), findings.total_unused_imports, findings.total_unused_exports,
        )
        return findings
