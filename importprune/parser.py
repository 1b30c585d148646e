"""Import/export extraction for JavaScript and TypeScript using Tree-sitter.

Tree-sitter produces a *concrete syntax tree* that keeps every token, so the
raw text and line span of each ``import`` / ``export`` statement can be read
straight from the tree. Grammars come from the per-language
``tree-sitter-typescript`` and ``tree-sitter-javascript`` packages.

A file whose tree contains ``ERROR`` or missing nodes is rejected with
:class:`~importprune.errors.ParseError`: an analysis built from a broken tree
could under-report imports and make symbols elsewhere look unused.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import tree_sitter_javascript
import tree_sitter_typescript
from tree_sitter import Language, Parser

from .config import LANGUAGE_MAP
from .errors import ParseError
from .filesystem import DiskFileRepository, FileRepository
from .models import DynamicImportRef, ExportRecord, FileAnalysis, ImportRecord

logger = logging.getLogger(__name__)

_DECLARATION_TYPES = {
    "function_declaration",
    "generator_function_declaration",
    "function_signature",
    "class_declaration",
    "abstract_class_declaration",
    "interface_declaration",
    "type_alias_declaration",
    "enum_declaration",
}
_VARIABLE_TYPES = {"lexical_declaration", "variable_declaration"}
_DYNAMIC_ARG_TYPES = {"template_string", "binary_expression"}


def _load_languages() -> Dict[str, Language]:
    return {
        "typescript": Language(tree_sitter_typescript.language_typescript()),
        "tsx": Language(tree_sitter_typescript.language_tsx()),
        "javascript": Language(tree_sitter_javascript.language()),
    }


class SourceExtractor:
    """Turn one file's source text into a :class:`FileAnalysis`.

    Grammars are loaded once per extractor; a fresh ``Parser`` is created per
    file so a single extractor can be shared by worker threads.
    """

    def __init__(self, repository: Optional[FileRepository] = None) -> None:
        self.repository = repository or DiskFileRepository()
        self._languages = _load_languages()

    def language_for(self, file_path: Path) -> Optional[str]:
        name = file_path.name
        if name.endswith(".d.ts"):
            return "typescript"
        return LANGUAGE_MAP.get(file_path.suffix)

    def supports(self, file_path: Path) -> bool:
        return self.language_for(file_path) is not None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def analyze_file(self, file_path: Path) -> FileAnalysis:
        """Read *file_path* through the repository and extract it.

        Raises:
            ParseError: if the file cannot be read, decoded or parsed.
        """
        try:
            source = self.repository.read_text(file_path)
        except (OSError, UnicodeDecodeError) as exc:
            raise ParseError(file_path, f"unreadable: {exc}") from exc
        return self.extract(file_path, source)

    def extract(self, file_path: Path, source: str) -> FileAnalysis:
        lang = self.language_for(file_path)
        if lang is None:
            raise ParseError(file_path, f"unsupported file type '{file_path.suffix}'")

        source_bytes = source.encode("utf-8")
        tree = Parser(self._languages[lang]).parse(source_bytes)
        root = tree.root_node
        if root.has_error:
            raise ParseError(file_path, f"syntax error near line {_first_error_line(root)}")

        walker = _StatementWalker(source_bytes)
        imports: List[ImportRecord] = []
        exports: List[ExportRecord] = []
        for child in root.children:
            if child.type == "import_statement":
                record = walker.import_record(child)
                if record is not None:
                    imports.append(record)
            elif child.type == "export_statement":
                exports.extend(walker.export_records(child))

        dynamic = walker.dynamic_imports(root)
        logger.debug(
            "%s: %d imports, %d exports, %d dynamic imports",
            file_path, len(imports), len(exports), len(dynamic),
        )
        return FileAnalysis(
            file_path=file_path,
            imports=tuple(imports),
            exports=tuple(exports),
            dynamic_imports=tuple(dynamic),
            source=source,
        )


# ===================================================================
# Tree walking helpers
# ===================================================================

class _StatementWalker:
    """Reads records out of statement nodes of one parsed file."""

    def __init__(self, source_bytes: bytes) -> None:
        self.source_bytes = source_bytes

    def text(self, node: Any) -> str:
        return self.source_bytes[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    def span(self, node: Any) -> Tuple[int, int, str]:
        raw = self.text(node).rstrip()
        line = node.start_point[0] + 1
        return line, line + raw.count("\n"), raw

    def string_value(self, node: Any) -> str:
        raw = self.text(node)
        if len(raw) >= 2 and raw[0] in "'\"`" and raw[-1] == raw[0]:
            return raw[1:-1]
        return raw

    def name_of(self, node: Any) -> str:
        if node.type == "string":
            return self.string_value(node)
        return self.text(node)

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def import_record(self, node: Any) -> Optional[ImportRecord]:
        source_node = node.child_by_field_name("source")
        if source_node is None:
            # import x = require("...")
            return None

        line, end_line, raw = self.span(node)
        is_type_only = any(c.type in ("type", "typeof") for c in node.children)
        local: List[str] = []
        exported: List[str] = []
        is_default = False

        clause = _child_of_type(node, "import_clause")
        if clause is not None:
            for part in clause.named_children:
                if part.type == "identifier":
                    is_default = True
                    local.append(self.text(part))
                    exported.append("default")
                elif part.type == "namespace_import":
                    ident = _child_of_type(part, "identifier")
                    if ident is not None:
                        local.append(self.text(ident))
                        exported.append("*")
                elif part.type == "named_imports":
                    for spec in part.named_children:
                        if spec.type != "import_specifier":
                            continue
                        name = spec.child_by_field_name("name")
                        alias = spec.child_by_field_name("alias")
                        if name is None:
                            continue
                        local.append(self.name_of(alias if alias is not None else name))
                        exported.append(self.name_of(name))

        return ImportRecord(
            source=self.string_value(source_node),
            imported_names=tuple(local),
            is_type_only=is_type_only,
            is_default=is_default,
            line=line,
            raw_text=raw,
            exported_names=tuple(exported),
            end_line=end_line,
        )

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    def export_records(self, node: Any) -> List[ExportRecord]:
        line, end_line, raw = self.span(node)
        source_node = node.child_by_field_name("source")
        re_export = self.string_value(source_node) if source_node is not None else None
        declaration = node.child_by_field_name("declaration")

        def record(
            name: str,
            is_default: bool = False,
            is_declaration: bool = False,
            local_name: Optional[str] = None,
            is_namespace: bool = False,
        ) -> ExportRecord:
            return ExportRecord(
                name=name,
                is_default=is_default,
                line=line,
                raw_text=raw,
                re_export_source=re_export,
                is_declaration=is_declaration,
                end_line=end_line,
                local_name=local_name,
                is_namespace=is_namespace,
            )

        if any(c.type == "default" for c in node.children):
            name = "default"
            if declaration is not None:
                name_node = declaration.child_by_field_name("name")
                if name_node is not None:
                    name = self.text(name_node)
            return [record(name, is_default=True, is_declaration=declaration is not None)]

        clause = _child_of_type(node, "export_clause")
        if clause is not None:
            records = []
            for spec in clause.named_children:
                if spec.type != "export_specifier":
                    continue
                name = spec.child_by_field_name("name")
                alias = spec.child_by_field_name("alias")
                if name is None:
                    continue
                exported = self.name_of(alias if alias is not None else name)
                records.append(record(
                    exported,
                    is_default=exported == "default",
                    local_name=self.name_of(name),
                ))
            return records

        namespace = _child_of_type(node, "namespace_export")
        if namespace is not None:
            named = namespace.named_children
            if named:
                return [record(self.name_of(named[-1]), is_namespace=True)]
            return []

        if re_export is not None and any(c.type == "*" for c in node.children):
            return [record("*")]

        if declaration is not None:
            return [record(name, is_declaration=True) for name in self.declared_names(declaration)]

        return []

    def declared_names(self, declaration: Any) -> List[str]:
        if declaration.type in _DECLARATION_TYPES:
            name_node = declaration.child_by_field_name("name")
            return [self.text(name_node)] if name_node is not None else []
        if declaration.type in _VARIABLE_TYPES:
            names = []
            for declarator in declaration.named_children:
                if declarator.type != "variable_declarator":
                    continue
                name_node = declarator.child_by_field_name("name")
                if name_node is not None and name_node.type == "identifier":
                    names.append(self.text(name_node))
            return names
        return []

    # ------------------------------------------------------------------
    # Dynamic imports
    # ------------------------------------------------------------------

    def dynamic_imports(self, root: Any) -> List[DynamicImportRef]:
        """Collect ``import(...)`` arguments that are literal, template or concatenation."""
        refs: List[DynamicImportRef] = []
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "call_expression":
                func = node.child_by_field_name("function")
                if func is not None and func.type == "import":
                    arg = _first_argument(node)
                    if arg is not None:
                        if arg.type == "string":
                            refs.append(DynamicImportRef(self.string_value(arg)))
                        elif arg.type in _DYNAMIC_ARG_TYPES:
                            refs.append(DynamicImportRef(self.text(arg)))
            stack.extend(reversed(node.children))
        return refs


def _child_of_type(node: Any, node_type: str) -> Optional[Any]:
    for child in node.children:
        if child.type == node_type:
            return child
    return None


def _first_argument(call_node: Any) -> Optional[Any]:
    args = call_node.child_by_field_name("arguments")
    if args is None:
        return None
    for child in args.named_children:
        if child.type != "comment":
            return child
    return None


def _first_error_line(root: Any) -> int:
    stack = [root]
    while stack:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            return node.start_point[0] + 1
        stack.extend(reversed([c for c in node.children if c.has_error or c.is_missing]))
    return root.start_point[0] + 1
