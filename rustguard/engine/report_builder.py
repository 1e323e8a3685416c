"""
Report Builder — Accumulates analysis results into one immutable report.

The builder is the only mutable state of an analysis run. It is passed
through the pipeline stages and consumed exactly once by `build()`.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from rustguard.core.errors import ReportAlreadyBuiltError
from rustguard.core.strategies import applicable_strategies
from rustguard.llm.prompt_builder import build_ai_instructions
from rustguard.models.analysis_models import (
    AIAnalysisReport,
    AnalysisMetadata,
    CodePatterns,
    ViolationAnalysis,
)

logger = logging.getLogger("rustguard.engine.report_builder")

TOOL_VERSION = "1.0.0"


class ReportBuilder:
    """
    Usage:
        builder = ReportBuilder(project_path="crate/")
        builder.add_analyses(analyses)
        builder.set_code_patterns(patterns)
        report = builder.build()
    """

    def __init__(self, project_path: str, total_violations: int | None = None) -> None:
        self.project_path = project_path
        self.total_violations = total_violations
        self._analyses: list[ViolationAnalysis] = []
        self._patterns = CodePatterns()
        self._errors: list[str] = []
        self._built = False

    def _check_open(self) -> None:
        if self._built:
            raise ReportAlreadyBuiltError("ReportBuilder has already produced its report")

    def add_analyses(self, analyses: list[ViolationAnalysis]) -> ReportBuilder:
        self._check_open()
        self._analyses.extend(analyses)
        return self

    def set_code_patterns(self, patterns: CodePatterns) -> ReportBuilder:
        self._check_open()
        self._patterns = patterns
        return self

    def add_errors(self, errors: list[str]) -> ReportBuilder:
        self._check_open()
        self._errors.extend(errors)
        return self

    def build(self, timestamp: datetime | None = None) -> AIAnalysisReport:
        """Freeze everything accumulated so far into the report. Callable once."""
        self._check_open()
        self._built = True

        when = timestamp or datetime.now(timezone.utc)
        deep = sum(1 for a in self._analyses if a.deep_analyzed)
        fixable = sum(1 for a in self._analyses if a.ai_fixable)
        total = self.total_violations if self.total_violations is not None else len(self._analyses)
        report = AIAnalysisReport(
            metadata=AnalysisMetadata(
                timestamp=when.isoformat(),
                total_violations=total,
                analyzable_violations=fixable,
                project_path=self.project_path,
                analysis_depth="semantic" if deep else "surface",
                tool_version=TOOL_VERSION,
            ),
            violation_analyses=list(self._analyses),
            code_patterns=self._patterns,
            fix_strategies=applicable_strategies(self._analyses),
            ai_instructions=build_ai_instructions(self._analyses),
            errors=list(self._errors),
        )
        logger.info(
            f"Report built: {len(self._analyses)} analyses, "
            f"{len(report.fix_strategies)} strategies, {len(self._errors)} errors"
        )
        return report
