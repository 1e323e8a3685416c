"""
RustGuard CLI Commands.

Exit codes:
  0  scan ran and found no violations (or all were fixed)
  1  scan ran and violations remain
  2  scan could not run (invalid root, no readable files)
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from rustguard.audit.logger import AuditLogger
from rustguard.config import settings
from rustguard.core.errors import RustguardError
from rustguard.engine.pipeline import Pipeline
from rustguard.models.fix_models import FixStatus
from rustguard.models.rule_models import ScanResult, ViolationKind
from rustguard.models.run_models import PipelineRun

console = Console()

EXIT_CLEAN = 0
EXIT_VIOLATIONS = 1
EXIT_SCAN_FAILED = 2

MAX_SHOWN_PER_KIND = 10

_KIND_CHOICE = click.Choice([k.value for k in ViolationKind])


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """RustGuard: Rust coding-standards scanner and conservative fixer."""
    _configure_logging(verbose)


def _run_or_exit(**kwargs: object) -> PipelineRun:
    try:
        return Pipeline().run(**kwargs)  # type: ignore[arg-type]
    except RustguardError as e:
        console.print(f"[bold red]Scan could not run:[/bold red] {e}")
        raise SystemExit(EXIT_SCAN_FAILED)


def _print_scan(scan: ScanResult) -> None:
    if not scan.violations:
        console.print(f"[bold green]No violations found in {scan.files_scanned} files[/bold green]")
    else:
        by_kind: dict[ViolationKind, list] = {}
        for v in scan.violations:
            by_kind.setdefault(v.kind, []).append(v)
        for kind, items in by_kind.items():
            table = Table(title=f"{kind.value} ({len(items)})", show_lines=False)
            table.add_column("Location", style="cyan")
            table.add_column("Severity")
            table.add_column("Message")
            for v in items[:MAX_SHOWN_PER_KIND]:
                colour = "red" if v.severity.value == "error" else "yellow"
                table.add_row(f"{v.file}:{v.line}", f"[{colour}]{v.severity.value}[/{colour}]", v.message)
            console.print(table)
            if len(items) > MAX_SHOWN_PER_KIND:
                console.print(f"  ... and {len(items) - MAX_SHOWN_PER_KIND} more")
        counts = scan.severity_counts
        console.print(
            f"[bold red]{scan.total} violations[/bold red] in {scan.files_scanned} files "
            f"({counts['error']} errors, {counts['warning']} warnings)"
        )
    for issue in scan.issues:
        console.print(f"  [yellow]{issue.category.value}[/yellow] {issue.file} {issue.message}")


def _print_artifacts(run: PipelineRun) -> None:
    for path in run.artifacts:
        console.print(f"[blue]Wrote[/blue] {path}")


@cli.command("validate")
@click.argument("path", default=".", type=click.Path())
@click.option("--ai-report", is_flag=True, help="Also write AI analysis artifacts")
def validate_cmd(path: str, ai_report: bool) -> None:
    """Scan PATH and report violations."""
    console.print(f"[bold blue]Validating {path}...[/bold blue]")
    run = _run_or_exit(root=path, analyze=ai_report, write_artifacts=ai_report, command="validate")
    _print_scan(run.scan)
    _print_artifacts(run)
    raise SystemExit(EXIT_VIOLATIONS if run.scan.total else EXIT_CLEAN)


@cli.command("fix")
@click.argument("path", default=".", type=click.Path())
@click.option("--dry-run", is_flag=True, help="Compute fixes without writing files")
@click.option("--ai", "ai_report", is_flag=True, help="Analyse deferred violations and write artifacts")
@click.option("--only", multiple=True, type=_KIND_CHOICE, help="Only handle these violation kinds")
@click.option("--skip", multiple=True, type=_KIND_CHOICE, help="Ignore these violation kinds")
@click.option("--limit", type=int, default=None, help="Handle at most N violations")
def fix_cmd(
    path: str,
    dry_run: bool,
    ai_report: bool,
    only: tuple[str, ...],
    skip: tuple[str, ...],
    limit: int | None,
) -> None:
    """Apply conservative fixes under PATH."""
    console.print(f"[bold blue]Fixing {path}{' (dry run)' if dry_run else ''}...[/bold blue]")
    run = _run_or_exit(
        root=path,
        fix=True,
        dry_run=dry_run,
        analyze=ai_report,
        write_artifacts=ai_report,
        only=[ViolationKind(k) for k in only] or None,
        skip=[ViolationKind(k) for k in skip] or None,
        limit=limit,
        command="fix",
    )
    summary = run.fix_summary
    if summary is not None:
        verb = "Would fix" if dry_run else "Fixed"
        console.print(f"[bold green]{verb} {summary.fixed}[/bold green], skipped {summary.skipped}")
        for outcome in summary.outcomes:
            if outcome.status == FixStatus.FIXED:
                v = outcome.violation
                shown = outcome.rewritten_line.strip() or "(line removed)"
                console.print(f"  [green]{v.file}:{v.line}[/green] {shown}")
        for reason, count in sorted(summary.skip_reasons.items()):
            console.print(f"  [yellow]skipped[/yellow] {count} x {reason}")
    _print_artifacts(run)
    raise SystemExit(run.exit_code)


@cli.command("analyze")
@click.argument("path", default=".", type=click.Path())
def analyze_cmd(path: str) -> None:
    """Write AI analysis artifacts for PATH without changing any file."""
    console.print(f"[bold blue]Analysing {path}...[/bold blue]")
    run = _run_or_exit(root=path, analyze=True, write_artifacts=True, command="analyze")
    report = run.report
    if report is not None:
        console.print(
            f"Analysed {len(report.violation_analyses)} violations "
            f"({report.metadata.analyzable_violations} AI-fixable), "
            f"{len(report.fix_strategies)} strategies"
        )
    _print_artifacts(run)
    raise SystemExit(EXIT_VIOLATIONS if run.scan.total else EXIT_CLEAN)


@cli.command("check")
@click.argument("path", default=".", type=click.Path())
def check_cmd(path: str) -> None:
    """Scan PATH and run cargo fmt/clippy/build/audit."""
    run = _run_or_exit(root=path, analyze=False, write_artifacts=False, run_tools=True, command="check")
    _print_scan(run.scan)
    for tool in run.tool_checks:
        if tool.skipped:
            console.print(f"[yellow]{tool.name}: SKIPPED[/yellow] ({tool.output})")
        elif tool.passed:
            console.print(f"[bold green]{tool.name}: PASS[/bold green]")
        else:
            console.print(f"[bold red]{tool.name}: FAIL[/bold red]")
            console.print(tool.output)
    raise SystemExit(run.exit_code)


@cli.command("history")
@click.argument("path", default=".", type=click.Path())
@click.option("--limit", type=int, default=20, help="Show at most N runs")
@click.option("--command", "command_name", default=None, help="Only runs of this command")
def history_cmd(path: str, limit: int, command_name: str | None) -> None:
    """Show recent runs recorded in PATH's audit log."""
    entries = AuditLogger(Path(path) / settings.audit_log_path).read_recent(limit, command_name)
    if not entries:
        console.print("[yellow]No recorded runs[/yellow]")
        raise SystemExit(EXIT_CLEAN)

    table = Table(title=f"Recent runs ({len(entries)})")
    table.add_column("When", style="cyan")
    table.add_column("Run")
    table.add_column("Command")
    table.add_column("Violations", justify="right")
    table.add_column("Fixed", justify="right")
    table.add_column("Result")
    for entry in entries:
        result = f"[red]{entry.fatal_error}[/red]" if entry.fatal_error else "[green]ok[/green]"
        table.add_row(
            entry.timestamp,
            entry.run_id,
            entry.command,
            str(entry.violations_found),
            str(entry.fixed),
            result,
        )
    console.print(table)
    raise SystemExit(EXIT_CLEAN)


if __name__ == "__main__":
    cli()
