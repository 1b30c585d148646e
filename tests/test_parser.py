"""Tests for the Tree-sitter import/export extractor."""

from pathlib import Path

import pytest

from importprune.errors import ParseError
from importprune.filesystem import InMemoryFileRepository
from importprune.models import DynamicImportRef
from importprune.parser import SourceExtractor


TS_FILE = Path("/proj/src/a.ts")


def test_language_detection(extractor: SourceExtractor):
    """Test extension to grammar mapping."""
    assert extractor.language_for(Path("a.ts")) == "typescript"
    assert extractor.language_for(Path("a.d.ts")) == "typescript"
    assert extractor.language_for(Path("a.tsx")) == "tsx"
    assert extractor.language_for(Path("a.jsx")) == "javascript"
    assert extractor.language_for(Path("a.mjs")) == "javascript"
    assert extractor.language_for(Path("a.py")) is None
    assert not extractor.supports(Path("styles.css"))


class TestImports:
    """Import statement extraction."""

    def test_named_and_aliased_imports(self, extractor: SourceExtractor):
        analysis = extractor.extract(TS_FILE, "import { foo, bar as baz } from './b';\n")

        assert len(analysis.imports) == 1
        record = analysis.imports[0]
        assert record.source == "./b"
        assert record.imported_names == ("foo", "baz")
        assert record.exported_names == ("foo", "bar")
        assert record.line == 1
        assert record.end_line == 1
        assert record.raw_text == "import { foo, bar as baz } from './b';"
        assert not record.is_default
        assert not record.is_type_only

    def test_default_and_namespace_imports(self, extractor: SourceExtractor):
        source = "import React from 'react';\nimport * as utils from './utils';\n"
        analysis = extractor.extract(TS_FILE, source)

        default, namespace = analysis.imports
        assert default.is_default
        assert default.imported_names == ("React",)
        assert default.exported_names == ("default",)
        assert namespace.is_namespace
        assert namespace.imported_names == ("utils",)
        assert namespace.line == 2

    def test_side_effect_import_has_no_names(self, extractor: SourceExtractor):
        analysis = extractor.extract(TS_FILE, "import './styles.css';\n")

        assert analysis.imports[0].source == "./styles.css"
        assert analysis.imports[0].imported_names == ()

    def test_type_only_import(self, extractor: SourceExtractor):
        analysis = extractor.extract(TS_FILE, "import type { User } from './types';\n")

        assert analysis.imports[0].is_type_only
        assert analysis.imports[0].imported_names == ("User",)

    def test_multi_line_import_span(self, extractor: SourceExtractor):
        source = "import {\n  foo,\n  bar,\n} from './b';\nfoo();\n"
        analysis = extractor.extract(TS_FILE, source)

        record = analysis.imports[0]
        assert record.line == 1
        assert record.end_line == 4
        assert record.imported_names == ("foo", "bar")

    def test_double_quoted_specifier(self, extractor: SourceExtractor):
        analysis = extractor.extract(Path("/proj/a.js"), 'import x from "lodash";\n')
        assert analysis.imports[0].source == "lodash"


class TestExports:
    """Export statement extraction."""

    def test_exported_function(self, extractor: SourceExtractor):
        analysis = extractor.extract(TS_FILE, "export function bar() {}\n")

        record = analysis.exports[0]
        assert record.name == "bar"
        assert record.is_declaration
        assert not record.is_default
        assert record.re_export_source is None

    def test_anonymous_default_export(self, extractor: SourceExtractor):
        analysis = extractor.extract(TS_FILE, "export default function() {}\n")

        record = analysis.exports[0]
        assert record.is_default
        assert record.name == "default"

    def test_export_clause_with_alias(self, extractor: SourceExtractor):
        source = "const a = 1;\nconst b = 2;\nexport { a, b as c };\n"
        analysis = extractor.extract(TS_FILE, source)

        names = [(e.name, e.source_name, e.line) for e in analysis.exports]
        assert names == [("a", "a", 3), ("c", "b", 3)]

    @pytest.mark.parametrize("source", [
        "function foo() {}\nexport { foo as default };\n",
        "export { default } from './x';\n",
    ])
    def test_clause_exporting_default_is_default(self, extractor: SourceExtractor, source):
        analysis = extractor.extract(TS_FILE, source)

        (record,) = analysis.exports
        assert record.name == "default"
        assert record.is_default

    def test_re_exports(self, extractor: SourceExtractor):
        source = (
            "export * from './all';\n"
            "export { x as y } from './x';\n"
            "export * as ns from './ns';\n"
        )
        analysis = extractor.extract(TS_FILE, source)

        star, aliased, namespace = analysis.exports
        assert star.name == "*"
        assert star.re_export_source == "./all"
        assert aliased.name == "y"
        assert aliased.local_name == "x"
        assert aliased.re_export_source == "./x"
        assert namespace.name == "ns"
        assert namespace.re_export_source == "./ns"
        assert namespace.is_namespace
        assert not star.is_namespace and not aliased.is_namespace

    def test_variable_and_type_declarations(self, extractor: SourceExtractor):
        source = (
            "export const x = 1, y = 2;\n"
            "export interface Props { id: string }\n"
            "export type Id = string;\n"
            "export enum Color { Red }\n"
            "export class Widget {}\n"
        )
        analysis = extractor.extract(TS_FILE, source)

        assert [e.name for e in analysis.exports] == ["x", "y", "Props", "Id", "Color", "Widget"]
        assert all(e.is_declaration for e in analysis.exports)


class TestDynamicImports:
    """Dynamic ``import()`` collection."""

    def test_literal_and_template_arguments(self, extractor: SourceExtractor):
        source = (
            "async function load(name: string) {\n"
            "  await import('./static');\n"
            "  return import(`./pages/${name}`);\n"
            "}\n"
        )
        analysis = extractor.extract(TS_FILE, source)

        assert DynamicImportRef("./static") in analysis.dynamic_imports
        assert DynamicImportRef("`./pages/${name}`") in analysis.dynamic_imports

    def test_concatenated_argument(self, extractor: SourceExtractor):
        source = "const load = () => import('./pages/' + 'Home');\n"
        analysis = extractor.extract(TS_FILE, source)

        assert analysis.dynamic_imports == (DynamicImportRef("'./pages/' + 'Home'"),)

    def test_dynamic_import_is_not_a_static_import(self, extractor: SourceExtractor):
        analysis = extractor.extract(TS_FILE, "const m = import('./m');\n")
        assert analysis.imports == ()


class TestErrors:
    """Parse failures."""

    def test_syntax_error_raises(self, extractor: SourceExtractor):
        with pytest.raises(ParseError) as exc_info:
            extractor.extract(TS_FILE, "import { from './b';\nconst = ;\n")
        assert exc_info.value.file_path == TS_FILE

    def test_unsupported_extension_raises(self, extractor: SourceExtractor):
        with pytest.raises(ParseError):
            extractor.extract(Path("/proj/readme.md"), "# hi\n")

    def test_unreadable_file_raises(self):
        extractor = SourceExtractor(InMemoryFileRepository())
        with pytest.raises(ParseError, match="unreadable"):
            extractor.analyze_file(Path("/proj/missing.ts"))

    def test_tsx_source(self, extractor: SourceExtractor):
        source = "import React from 'react';\nexport const App = () => <div>hi</div>;\n"
        analysis = extractor.extract(Path("/proj/App.tsx"), source)

        assert analysis.imports[0].source == "react"
        assert analysis.exports[0].name == "App"
