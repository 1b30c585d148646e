"""Typer-based CLI for importprune."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config_manager import PruneConfig, load_config
from .errors import ImportPruneError
from .models import ExecutionPlan, ProjectFindings
from .orchestrator import AnalysisReport, PruneOrchestrator

app = typer.Typer(
    help="🧹 importprune: find and safely remove unused imports and exports in JS/TS projects.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

RISK_STYLES = {"LOW": "green", "MEDIUM": "yellow", "HIGH": "red"}


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"importprune v{__version__}")
        raise typer.Exit()


def _setup_logging(verbose: bool) -> None:
    logger = logging.getLogger("importprune")
    logger.handlers = [
        RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True)
    ]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main(
    ctx: typer.Context,
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress and per-file decisions."),
    config_path: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Path to an importprune.toml file.",
    ),
):
    """importprune: classify imports/exports by risk and remove only the safe ones."""
    _setup_logging(verbose)
    ctx.obj = {"config_path": config_path}


def _load(ctx: typer.Context, root: Path) -> PruneConfig:
    config_path = (ctx.obj or {}).get("config_path")
    try:
        return load_config(root, config_path)
    except ImportPruneError as exc:
        _fail(exc)


def _fail(exc: Exception):
    console.print(f"[red]✗[/red] {exc}")
    raise typer.Exit(code=1)


def _rel(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return str(path)


# ===================================================================
# analyze
# ===================================================================

@app.command("analyze")
def analyze(
    ctx: typer.Context,
    root: Path = typer.Argument(..., help="Project root to analyze."),
    as_json: bool = typer.Option(False, "--json", help="Print findings as JSON."),
):
    """Report unused imports and exports without touching any file."""
    cfg = _load(ctx, root)
    try:
        report = PruneOrchestrator(cfg).analyze()
    except ImportPruneError as exc:
        _fail(exc)

    if as_json:
        payload = report.findings.to_dict(cfg.root)
        payload["parse_failures"] = [
            {"file": _rel(f.file_path, cfg.root), "error": f.error}
            for f in report.graph.parse_failures
        ]
        payload["cycles"] = [[_rel(p, cfg.root) for p in cycle] for cycle in report.cycles]
        typer.echo(json.dumps(payload, indent=2))
        return

    _print_findings(report.findings, cfg.root)
    _print_report_extras(report, cfg.root)
    typer.echo(
        f"Files analyzed: {len(report.findings.by_file)} | "
        f"Unused imports: {report.findings.total_unused_imports} | "
        f"Unused exports: {report.findings.total_unused_exports}"
    )


def _print_findings(findings: ProjectFindings, root: Path) -> None:
    table = Table(title="Unused imports and exports", show_header=True)
    table.add_column("File", style="cyan")
    table.add_column("Line", justify="right")
    table.add_column("Kind")
    table.add_column("Name")
    table.add_column("Risk")
    table.add_column("Reason", min_width=20)

    rows = 0
    for path in sorted(findings.by_file):
        file_findings = findings.by_file[path]
        for f in file_findings.unused_imports:
            risk = f.classification.risk.value
            table.add_row(
                _rel(path, root), str(f.record.line), "import",
                ", ".join(f.record.imported_names) or f.record.source,
                f"[{RISK_STYLES[risk]}]{risk}[/{RISK_STYLES[risk]}]",
                f.classification.reason,
            )
            rows += 1
        for e in file_findings.unused_exports:
            risk = e.classification.risk.value
            table.add_row(
                _rel(path, root), str(e.record.line), "export", e.record.name,
                f"[{RISK_STYLES[risk]}]{risk}[/{RISK_STYLES[risk]}]",
                e.classification.reason,
            )
            rows += 1

    if rows:
        console.print(table)
    else:
        console.print("[green]✓[/green] No unused imports or exports found.")


def _print_report_extras(report: AnalysisReport, root: Path) -> None:
    for failure in report.graph.parse_failures:
        console.print(f"[yellow]⚠️  Skipped {_rel(failure.file_path, root)}:[/yellow] {escape(failure.error)}")
    for cycle in report.cycles:
        console.print("[yellow]↻ Import cycle:[/yellow] " + " → ".join(_rel(p, root) for p in cycle))


# ===================================================================
# optimize
# ===================================================================

@app.command("optimize")
def optimize(
    ctx: typer.Context,
    root: Path = typer.Argument(..., help="Project root to optimize."),
    execute: bool = typer.Option(False, "--execute", help="Apply the plan. Without it this is a dry run."),
    annotate_preserved: bool = typer.Option(
        False, "--annotate-preserved", help="Insert a comment above imports kept for safety.",
    ),
):
    """Plan (and with --execute apply) LOW-risk removals behind a backup."""
    cfg = _load(ctx, root)
    if annotate_preserved:
        cfg.annotate_preserved = True

    try:
        orchestrator = PruneOrchestrator(cfg)
        report = orchestrator.analyze()
        plans = orchestrator.plan(report)
    except ImportPruneError as exc:
        _fail(exc)

    _print_plans(plans, cfg.root)
    total = sum(len(p.actions) for p in plans)

    if not execute:
        typer.echo(f"Dry run: {total} action(s) planned in {len(plans)} file(s).")
        if total:
            typer.echo("Re-run with --execute to apply them.")
        return

    if not plans:
        typer.echo("Nothing to apply.")
        return

    result = orchestrator.execute(plans)
    for outcome in result.outcomes:
        typer.echo(str(outcome))
    typer.echo(
        f"Applied {result.actions_executed} action(s) to {result.files_modified} file(s); "
        f"{len(result.failures)} failure(s)."
    )
    typer.echo(f"Backup session: {result.session_id}")


def _print_plans(plans: List[ExecutionPlan], root: Path) -> None:
    if not plans:
        return
    table = Table(title="Optimization plan", show_header=True)
    table.add_column("File", style="cyan")
    table.add_column("Line", justify="right")
    table.add_column("Action")
    table.add_column("Statement", min_width=20)
    for plan in plans:
        for action in sorted(plan.actions, key=lambda a: a.line):
            table.add_row(
                _rel(plan.file_path, root), str(action.line), action.kind.value,
                escape(action.new_text or action.old_text),
            )
    console.print(table)


# ===================================================================
# backups / restore
# ===================================================================

@app.command("backups")
def backups(
    ctx: typer.Context,
    root: Path = typer.Argument(..., help="Project root whose backups to list."),
):
    """List backup sessions, newest first."""
    cfg = _load(ctx, root)
    sessions = PruneOrchestrator(cfg).backups()
    if not sessions:
        typer.echo("No backups found.")
        raise typer.Exit(code=0)

    table = Table(title="Backup sessions", show_header=True)
    table.add_column("Session", style="cyan")
    table.add_column("Created")
    table.add_column("Files", justify="right")
    for session in sessions:
        table.add_row(session.session_id, session.created_at, str(len(session.entries)))
    console.print(table)


@app.command("restore")
def restore(
    ctx: typer.Context,
    root: Path = typer.Argument(..., help="Project root the session belongs to."),
    session_id: str = typer.Argument(..., help="Backup session to restore."),
):
    """Copy every file of a backup session back over its original."""
    cfg = _load(ctx, root)
    try:
        restored = PruneOrchestrator(cfg).restore(session_id)
    except ImportPruneError as exc:
        _fail(exc)
    for path in restored:
        typer.echo(f"Restored {_rel(path, cfg.root)}")
    typer.echo(f"Restored {len(restored)} file(s) from session {session_id}.")


if __name__ == "__main__":
    app()
