"""Project graph: per-file analyses plus reverse usage indexes.

Built in two phases. Phase one parses every file independently on a thread
pool. Phase two runs only once every parse has finished and indexes which
files consume each imported symbol and each module specifier; export usage
can only be judged once every file's imports are known.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, FrozenSet, Iterable, List, Set, Tuple

from .errors import ParseError
from .models import FileAnalysis, ParseFailure, ProjectGraph
from .parser import SourceExtractor
from .resolver import ModuleResolver

logger = logging.getLogger(__name__)


def parse_files(
    extractor: SourceExtractor,
    files: Iterable[Path],
    workers: int = 1,
) -> Tuple[Dict[Path, FileAnalysis], List[ParseFailure]]:
    """Phase one: extract every file. Failures are collected, not raised."""
    analyses: Dict[Path, FileAnalysis] = {}
    failures: List[ParseFailure] = []
    paths = list(files)

    with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
        future_to_path = {pool.submit(extractor.analyze_file, p): p for p in paths}
        for future in as_completed(future_to_path):
            path = future_to_path[future]
            try:
                analyses[path] = future.result()
            except ParseError as exc:
                logger.warning("Excluding %s from analysis: %s", path, exc.message)
                failures.append(ParseFailure(file_path=path, error=exc.message))

    failures.sort(key=lambda f: f.file_path)
    return analyses, failures


def build_graph(
    analyses: Dict[Path, FileAnalysis],
    parse_failures: Iterable[ParseFailure] = (),
) -> ProjectGraph:
    """Phase two: index bound names and specifiers to the files importing them."""
    symbol_usage: Dict[str, Set[Path]] = {}
    module_usage: Dict[str, Set[Path]] = {}

    for path, analysis in analyses.items():
        for record in analysis.imports:
            module_usage.setdefault(record.source, set()).add(path)
            for name in record.imported_names:
                symbol_usage.setdefault(name, set()).add(path)

    return ProjectGraph(
        by_file=dict(sorted(analyses.items())),
        symbol_usage={k: frozenset(v) for k, v in symbol_usage.items()},
        module_usage={k: frozenset(v) for k, v in module_usage.items()},
        parse_failures=tuple(parse_failures),
    )


def build_project_graph(
    extractor: SourceExtractor,
    files: Iterable[Path],
    workers: int = 1,
) -> ProjectGraph:
    analyses, failures = parse_files(extractor, files, workers=workers)
    graph = build_graph(analyses, failures)
    logger.info(
        "Project graph: %d files, %d symbols, %d parse failures",
        len(graph.by_file), len(graph.symbol_usage), len(graph.parse_failures),
    )
    return graph


# ===================================================================
# Circular imports
# ===================================================================

def dependency_edges(graph: ProjectGraph, resolver: ModuleResolver) -> Dict[Path, List[Path]]:
    """Resolved file -> file edges for imports and re-exports inside the project."""
    edges: Dict[Path, List[Path]] = {}
    for path, analysis in graph.by_file.items():
        targets: List[Path] = []
        specifiers = [r.source for r in analysis.imports]
        specifiers += [e.re_export_source for e in analysis.exports if e.re_export_source]
        for specifier in specifiers:
            target = resolver.locate(specifier, path)
            if target is not None and target in graph.by_file and target not in targets:
                targets.append(target)
        edges[path] = targets
    return edges


def find_import_cycles(graph: ProjectGraph, resolver: ModuleResolver) -> List[List[Path]]:
    """Return each import cycle once, as a path that starts and ends on the same file."""
    edges = dependency_edges(graph, resolver)
    cycles: List[List[Path]] = []
    seen: Set[FrozenSet[Path]] = set()
    visited: Set[Path] = set()

    for start in edges:
        if start in visited:
            continue
        # Iterative DFS; each frame is (node, iterator over its targets).
        stack = [(start, iter(edges[start]))]
        on_path = [start]
        on_path_set = {start}
        visited.add(start)
        while stack:
            node, targets = stack[-1]
            advanced = False
            for target in targets:
                if target in on_path_set:
                    cycle = on_path[on_path.index(target):] + [target]
                    key = frozenset(cycle)
                    if key not in seen:
                        seen.add(key)
                        cycles.append(cycle)
                    continue
                if target in visited:
                    continue
                visited.add(target)
                stack.append((target, iter(edges.get(target, []))))
                on_path.append(target)
                on_path_set.add(target)
                advanced = True
                break
            if not advanced:
                stack.pop()
                on_path_set.discard(on_path.pop())
    return cycles
