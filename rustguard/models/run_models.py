"""
Run Data Models — External tool checks, pipeline run records, and audit entries.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from rustguard.models.analysis_models import AIAnalysisReport
from rustguard.models.fix_models import FixSummary
from rustguard.models.rule_models import ScanResult


class ToolCheckResult(BaseModel):
    """Pass/fail plus raw output of one cargo subprocess. Never parsed further."""

    name: str
    command: list[str]
    passed: bool
    skipped: bool = Field(default=False, description="True when the tool is not installed")
    output: str = ""
    duration_ms: float = 0.0


class PipelineRun(BaseModel):
    run_id: str
    scan: ScanResult
    fix_summary: FixSummary | None = None
    report: AIAnalysisReport | None = None
    artifacts: list[str] = Field(default_factory=list)
    tool_checks: list[ToolCheckResult] = Field(default_factory=list)
    duration_ms: float = 0.0

    @property
    def exit_code(self) -> int:
        """0 when clean, 1 when violations remain after the run."""
        remaining = self.scan.total
        if self.fix_summary is not None and not self.fix_summary.dry_run:
            remaining -= self.fix_summary.fixed
        failed_tools = any(not t.passed and not t.skipped for t in self.tool_checks)
        return 1 if remaining > 0 or failed_tools else 0


class AuditEntry(BaseModel):
    timestamp: str = Field(default="", description="UTC time the entry was written")
    run_id: str
    root: str
    command: str
    files_scanned: int = 0
    violations_found: int = 0
    fixed: int = 0
    skipped: int = 0
    analyzed: int = 0
    issues: int = 0
    duration_ms: float = 0.0
    fatal_error: str | None = None
