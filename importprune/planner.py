"""Turn classified findings into per-file execution plans.

Only REMOVE findings with LOW risk become removal actions. Everything the
planner emits is LOW risk, so the executor never has to judge risk itself.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Set

from .errors import ValidationError
from .filesystem import DiskFileRepository, FileRepository
from .models import (
    ActionKind,
    Category,
    ExecutionPlan,
    FileFindings,
    ImportFinding,
    OptimizationAction,
    ProjectFindings,
    Risk,
)

logger = logging.getLogger(__name__)

COMMENT_PREFIX = "// Preserved: "


class OptimizationPlanner:
    """Build :class:`ExecutionPlan` objects and validate them against the files."""

    def __init__(
        self,
        repository: Optional[FileRepository] = None,
        annotate_preserved: bool = False,
    ) -> None:
        self.repository = repository or DiskFileRepository()
        self.annotate_preserved = annotate_preserved

    def build_plans(self, findings: ProjectFindings) -> List[ExecutionPlan]:
        plans: List[ExecutionPlan] = []
        for path in sorted(findings.by_file):
            plan = self.plan_file(findings.by_file[path])
            if plan is not None:
                plans.append(plan)
        logger.info(
            "Planned %d action(s) across %d file(s)",
            sum(len(p.actions) for p in plans), len(plans),
        )
        return plans

    def plan_file(self, file_findings: FileFindings) -> Optional[ExecutionPlan]:
        """Plan one file. Returns ``None`` when nothing survives validation."""
        proposed = self.propose(file_findings)
        if not proposed:
            return None

        path = file_findings.file_path
        try:
            lines = self.repository.read_text(path).split("\n")
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Not planning %s: cannot re-read file (%s)", path, exc)
            return None

        accepted: List[OptimizationAction] = []
        for action in proposed:
            try:
                validate_action(action, lines)
            except ValidationError as exc:
                logger.warning("Dropping action for %s: %s", path, exc)
                continue
            accepted.append(action)

        if not accepted:
            return None
        return ExecutionPlan(file_path=path, actions=tuple(accepted))

    def propose(self, file_findings: FileFindings) -> List[OptimizationAction]:
        """Candidate actions for one file, before checking the file on disk."""
        blocked = _blocked_lines(file_findings)
        actions: List[OptimizationAction] = []
        removal_lines: Set[int] = set()

        def add_removal(kind: ActionKind, line: int, end_line: int, raw: str, reason: str) -> None:
            if end_line > line:
                logger.debug("Skipping multi-line statement at %s:%d", file_findings.file_path, line)
                return
            if line in blocked or line in removal_lines:
                return
            removal_lines.add(line)
            actions.append(OptimizationAction(kind, line, raw, reason, Risk.LOW))

        for finding in file_findings.imports:
            cls = finding.classification
            if cls.auto_applicable:
                rec = finding.record
                add_removal(ActionKind.REMOVE_IMPORT, rec.line, rec.end_line, rec.raw_text, cls.reason)
            elif self.annotate_preserved and _wants_comment(finding):
                actions.append(OptimizationAction(
                    kind=ActionKind.ADD_COMMENT,
                    line=finding.record.line - 1,
                    old_text=finding.record.raw_text,
                    reason="Add clarity for preserved import",
                    risk=Risk.LOW,
                    new_text=COMMENT_PREFIX + cls.reason,
                ))

        for export in file_findings.exports:
            cls = export.classification
            if cls.auto_applicable:
                rec = export.record
                add_removal(ActionKind.REMOVE_EXPORT, rec.line, rec.end_line, rec.raw_text, cls.reason)

        return actions


def _wants_comment(finding: ImportFinding) -> bool:
    cls = finding.classification
    return cls.category is Category.PRESERVE and cls.risk > Risk.LOW


def _blocked_lines(file_findings: FileFindings) -> Set[int]:
    """Lines holding at least one binding that must stay."""
    blocked: Set[int] = set()
    for finding in list(file_findings.imports) + list(file_findings.exports):
        if not finding.classification.auto_applicable:
            blocked.add(finding.record.line)
    return blocked


def validate_action(action: OptimizationAction, lines: Sequence[str]) -> None:
    """Check *action* against the current file *lines*.

    Raises:
        ValidationError: if the target line is out of range, no longer
            holds the statement the action was planned for, or holds other
            code that deleting the line would take with it.
    """
    first = action.old_text.split("\n", 1)[0].strip()
    if action.is_insertion:
        if not 0 <= action.line < len(lines):
            raise ValidationError(f"line {action.line} outside [0, {len(lines) - 1}]")
        if first and first not in lines[action.line]:
            raise ValidationError(f"line {action.line + 1} no longer holds {first!r}")
        if action.line > 0 and lines[action.line - 1].strip() == (action.new_text or "").strip():
            raise ValidationError(f"comment already present above line {action.line + 1}")
        return

    if not 1 <= action.line <= len(lines):
        raise ValidationError(f"line {action.line} outside [1, {len(lines)}]")
    if first not in lines[action.line - 1]:
        raise ValidationError(f"line {action.line} no longer holds {first!r}")
    if not _holds_only(lines[action.line - 1], first):
        raise ValidationError(f"line {action.line} holds other code besides {first!r}")


def _holds_only(line: str, statement: str) -> bool:
    """True when *line* is *statement* plus at most a ``;`` and a ``//`` comment."""
    before, _, after = line.partition(statement)
    if before.strip():
        return False
    rest = after.strip().lstrip(";").strip()
    return not rest or rest.startswith("//")

