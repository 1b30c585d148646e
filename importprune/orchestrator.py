"""Orchestrator wiring extraction, classification, planning and execution."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from .classifier import UsageClassifier
from .config import SKIP_DIRS
from .config_manager import PruneConfig
from .executor import SafeExecutor
from .filesystem import DiskFileRepository, FileRepository
from .graph import build_project_graph, find_import_cycles
from .models import BackupSession, BatchResult, ExecutionPlan, ProjectFindings, ProjectGraph
from .parser import SourceExtractor
from .planner import OptimizationPlanner
from .resolver import ModuleResolver
from .usage import UsageOracle

logger = logging.getLogger(__name__)


@dataclass
class AnalysisReport:
    graph: ProjectGraph
    findings: ProjectFindings
    cycles: List[List[Path]] = field(default_factory=list)


class PruneOrchestrator:
    """Runs the pipeline for one project root; every stage shares one repository."""

    def __init__(
        self,
        config: PruneConfig,
        repository: Optional[FileRepository] = None,
        oracle: Optional[UsageOracle] = None,
    ):
        self.config = config
        self.repository = repository or DiskFileRepository()
        self.extractor = SourceExtractor(self.repository)
        self.resolver = ModuleResolver(config.aliases, self.repository)
        self.classifier = UsageClassifier(
            self.resolver,
            oracle=oracle,
            framework_essentials=config.framework_essentials,
            side_effect_modules=config.side_effect_modules,
            stylesheet_extensions=config.stylesheet_extensions,
            shared_module_guard=config.shared_module_guard,
        )
        self.planner = OptimizationPlanner(self.repository, config.annotate_preserved)
        self.executor = SafeExecutor(config.root, config.backup_root, self.repository)

    def discover(self) -> List[Path]:
        """Source files selected by the include/exclude globs.

        Raises:
            RootDirectoryError: if the project root cannot be listed.
        """
        skip = set(SKIP_DIRS) | {self.config.backup_dir.name}
        files = self.repository.iter_sources(
            self.config.root, self.config.include, self.config.exclude, skip,
        )
        return [f for f in files if self.extractor.supports(f)]

    def analyze(self) -> AnalysisReport:
        files = self.discover()
        logger.info("Analyzing %d file(s) under %s", len(files), self.config.root)
        graph = build_project_graph(self.extractor, files, workers=self.config.workers)
        findings = self.classifier.classify_project(graph)
        cycles = find_import_cycles(graph, self.resolver)
        if cycles:
            logger.info("Found %d import cycle(s)", len(cycles))
        return AnalysisReport(graph=graph, findings=findings, cycles=cycles)

    def plan(self, report: AnalysisReport) -> List[ExecutionPlan]:
        return self.planner.build_plans(report.findings)

    def execute(self, plans: Sequence[ExecutionPlan]) -> BatchResult:
        return self.executor.execute(plans)

    def backups(self) -> List[BackupSession]:
        return self.executor.list_sessions()

    def restore(self, session_id: str) -> List[Path]:
        return self.executor.restore(session_id)
