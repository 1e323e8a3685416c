"""
Pipeline — Main orchestrator for scan, fix and analysis runs.

Full pipeline:
1. Run rule engine → ordered violation list
2. Conservative fixer (optional) → fix summary + deferred violations
3. Semantic analysis of deferred violations (capped)
4. Code-pattern detection over the files already read
5. Build the immutable AIAnalysisReport and write artifacts
6. Optional cargo tool checks
7. Audit record

Synchronous and single-pass. Fatal errors (invalid root, nothing readable)
abort the run; everything else is accumulated into the report.
"""

from __future__ import annotations

import logging
import time
import uuid
from pathlib import Path

from rustguard.audit.logger import AuditLogger
from rustguard.config import settings
from rustguard.core.errors import RustguardError
from rustguard.core.patterns import detect_code_patterns
from rustguard.core.rule_engine import RuleEngine
from rustguard.core.semantic import SemanticAnalyzer
from rustguard.core.toolchain import run_standard_checks
from rustguard.engine.conservative_fixer import ConservativeFixer
from rustguard.engine.report_builder import ReportBuilder
from rustguard.engine.report_writer import write_reports
from rustguard.models.analysis_models import AIAnalysisReport
from rustguard.models.rule_models import ScanIssue, Violation, ViolationKind
from rustguard.models.run_models import AuditEntry, PipelineRun

logger = logging.getLogger("rustguard.engine.pipeline")


def select_violations(
    violations: list[Violation],
    only: list[ViolationKind] | None = None,
    skip: list[ViolationKind] | None = None,
    limit: int | None = None,
) -> list[Violation]:
    """Filter by kind and cap the count, keeping the original order."""
    selected = [
        v for v in violations
        if (not only or v.kind in only) and (not skip or v.kind not in skip)
    ]
    return selected[:limit] if limit is not None else selected


def _issue_text(issue: ScanIssue) -> str:
    where = f"{issue.file}: " if issue.file else ""
    return f"{issue.category.value}: {where}{issue.message}"


def build_analysis_report(
    violations: list[Violation],
    project_path: str,
    root: str | Path | None = None,
    sources: dict[str, str] | None = None,
    issues: list[ScanIssue] | None = None,
    total_violations: int | None = None,
) -> AIAnalysisReport:
    """
    Analyse violations and assemble the report. Pure apart from reading the
    affected files once each (skipped when *sources* already holds them).
    """
    builder = ReportBuilder(project_path=project_path, total_violations=total_violations)
    builder.add_errors([_issue_text(i) for i in issues or []])

    analyzer = SemanticAnalyzer(root=root, sources=sources)
    analyses, errors = analyzer.analyze(violations)
    builder.add_analyses(analyses)
    builder.add_errors(errors)
    builder.set_code_patterns(detect_code_patterns(analyses, analyzer.contents))
    return builder.build()


class Pipeline:
    """
    Ties together: rule engine → conservative fixer → semantic analysis →
    report artifacts → audit.
    """

    def __init__(
        self,
        rule_engine: RuleEngine | None = None,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self.rule_engine = rule_engine or RuleEngine()
        self.audit_logger = audit_logger

    def run(
        self,
        root: str | Path,
        fix: bool = False,
        dry_run: bool = False,
        analyze: bool = True,
        write_artifacts: bool = True,
        run_tools: bool = False,
        only: list[ViolationKind] | None = None,
        skip: list[ViolationKind] | None = None,
        limit: int | None = None,
        command: str = "run",
    ) -> PipelineRun:
        """
        Execute the pipeline against one crate or workspace root.

        Raises:
            InvalidRootError / NoReadableFilesError from the scan stage.
        """
        start_time = time.monotonic()
        run_id = uuid.uuid4().hex[:12]
        root_path = Path(root)
        audit = self.audit_logger
        if audit is None and root_path.is_dir():
            audit = AuditLogger(root_path / settings.audit_log_path)
        logger.info(f"Pipeline {run_id} starting for {root_path} (fix={fix}, dry_run={dry_run})")

        try:
            # ── Step 1: Scan ──
            scan = self.rule_engine.scan(root_path)
            run = PipelineRun(run_id=run_id, scan=scan)
            targets = select_violations(scan.violations, only, skip, limit)

            # ── Step 2: Conservative fixes ──
            deferred = targets
            if fix:
                fixer = ConservativeFixer(rule_engine=RuleEngine(workers=1), dry_run=dry_run)
                run.fix_summary = fixer.fix_files(root_path, targets)
                deferred = run.fix_summary.deferred

            # ── Step 3-5: Analyse deferred violations and write artifacts ──
            if analyze:
                run.report = build_analysis_report(
                    deferred,
                    project_path=str(root_path),
                    root=root_path,
                    issues=scan.issues,
                    total_violations=scan.total,
                )
                if write_artifacts:
                    run.artifacts = [str(p) for p in write_reports(run.report, root_path)]

            # ── Step 6: External tools ──
            if run_tools:
                run.tool_checks = run_standard_checks(root_path)
        except RustguardError as e:
            if audit is not None:
                audit.log(AuditEntry(run_id=run_id, root=str(root_path), command=command, fatal_error=str(e)))
            logger.error(f"Pipeline {run_id} aborted: {e}")
            raise

        run.duration_ms = round((time.monotonic() - start_time) * 1000, 2)

        # ── Step 7: Audit ──
        audit = audit or AuditLogger(root_path / settings.audit_log_path)
        audit.log(
            AuditEntry(
                run_id=run_id,
                root=str(root_path),
                command=command,
                files_scanned=scan.files_scanned,
                violations_found=scan.total,
                fixed=run.fix_summary.fixed if run.fix_summary else 0,
                skipped=run.fix_summary.skipped if run.fix_summary else 0,
                analyzed=len(run.report.violation_analyses) if run.report else 0,
                issues=len(scan.issues),
                duration_ms=run.duration_ms,
            )
        )
        logger.info(
            f"Pipeline {run_id} complete: {scan.total} violations, "
            f"exit code {run.exit_code}, {run.duration_ms:.0f}ms"
        )
        return run
