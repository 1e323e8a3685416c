"""
Orchestrator Instructions — Renders an AIAnalysisReport as a markdown brief.

Groups violations by fix complexity, cheapest first, with a short preview
per group so the document stays readable on large violation sets.
"""

from __future__ import annotations

from rustguard.config import settings
from rustguard.models.analysis_models import AIAnalysisReport, FixComplexity, ViolationAnalysis

HIGH_CONFIDENCE = 0.8
MEDIUM_CONFIDENCE = 0.5


def confidence_buckets(analyses: list[ViolationAnalysis]) -> tuple[int, int, int]:
    """(high > 0.8, medium 0.5-0.8, low <= 0.5)."""
    high = sum(1 for a in analyses if a.confidence > HIGH_CONFIDENCE)
    medium = sum(1 for a in analyses if MEDIUM_CONFIDENCE < a.confidence <= HIGH_CONFIDENCE)
    return high, medium, len(analyses) - high - medium


def group_by_complexity(
    analyses: list[ViolationAnalysis],
) -> list[tuple[FixComplexity, list[ViolationAnalysis]]]:
    groups: dict[FixComplexity, list[ViolationAnalysis]] = {}
    for analysis in analyses:
        groups.setdefault(analysis.fix_complexity, []).append(analysis)
    return [(level, groups[level]) for level in sorted(groups)]


def render_orchestrator_instructions(report: AIAnalysisReport, preview: int | None = None) -> str:
    preview = settings.instruction_preview_size if preview is None else preview
    analyses = report.violation_analyses
    high, medium, low = confidence_buckets(analyses)
    meta = report.metadata

    out: list[str] = [
        "# AI Orchestrator Instructions",
        "",
        f"Generated: {meta.timestamp}",
        f"Project: `{meta.project_path}`",
        "",
        "## Overview",
        "",
        f"- Total violations: {meta.total_violations}",
        f"- AI-fixable: {meta.analyzable_violations}",
        f"- Deeply analysed: {sum(1 for a in analyses if a.deep_analyzed)}",
        f"- High confidence (> {HIGH_CONFIDENCE}): {high}",
        f"- Medium confidence ({MEDIUM_CONFIDENCE}-{HIGH_CONFIDENCE}): {medium}",
        f"- Low confidence (<= {MEDIUM_CONFIDENCE}): {low}",
        f"- Architectural style: {report.code_patterns.architectural_style.value}",
        f"- Error handling pattern: {report.code_patterns.error_handling_pattern.value}",
        "",
        "## Fix Priority",
        "",
    ]

    groups = group_by_complexity(analyses)
    if not groups:
        out.append("No violations to fix.")
        out.append("")
    for level, members in groups:
        out.append(f"### {level.value.title()} ({len(members)})")
        out.append("")
        for analysis in members[:preview]:
            v = analysis.violation
            out.append(
                f"- `{v.file}:{v.line}` {v.kind.value} "
                f"(confidence {analysis.confidence:.2f}): {v.message}"
            )
            if analysis.fix_recommendation:
                out.append(f"  - Recommendation: {analysis.fix_recommendation}")
        if len(members) > preview:
            out.append(f"- ... and {len(members) - preview} more")
        out.append("")

    out.extend(["## Recommended Strategies", ""])
    if report.fix_strategies:
        out.append("| Violation | Strategy | Confidence | Est. minutes |")
        out.append("|---|---|---|---|")
        for strategy in report.fix_strategies:
            out.append(
                f"| {strategy.violation_kind.value} | {strategy.strategy_name} | "
                f"{strategy.confidence:.1f} | {strategy.estimated_time_minutes} |"
            )
        out.append("")
        for strategy in report.fix_strategies:
            out.append(f"### {strategy.strategy_name}")
            out.append("")
            out.append(strategy.description)
            out.append("")
            out.extend(f"{i}. {step}" for i, step in enumerate(strategy.steps, 1))
            if strategy.risks:
                out.append("")
                out.append(f"Risks: {'; '.join(strategy.risks)}")
            out.append("")
    else:
        out.extend(["No strategies required.", ""])

    instructions = report.ai_instructions
    out.extend(["## AI Agent Instructions", "", "```", instructions.system_prompt.rstrip(), "```", ""])
    out.extend(["### Validation Criteria", ""])
    out.extend(f"- {criterion}" for criterion in instructions.validation_criteria)
    out.extend(["", "### Rollback", "", instructions.rollback_instructions, ""])

    if report.errors:
        out.extend(["## Issues During Analysis", ""])
        out.extend(f"- {error}" for error in report.errors)
        out.append("")

    return "\n".join(out)
