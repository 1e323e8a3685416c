"""
Tests for the analysis report — builder lifecycle, agent instructions,
orchestrator markdown and artifact files.
"""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from rustguard.core.errors import ReportAlreadyBuiltError
from rustguard.core.rule_engine import RuleEngine
from rustguard.engine.pipeline import build_analysis_report
from rustguard.engine.report_builder import TOOL_VERSION, ReportBuilder
from rustguard.engine.report_writer import load_report, report_stamp, write_reports
from rustguard.llm.orchestrator import confidence_buckets, render_orchestrator_instructions
from rustguard.llm.prompt_builder import ROLLBACK_INSTRUCTIONS, SYSTEM_PROMPT
from rustguard.models.analysis_models import FixComplexity


@pytest.fixture
def mixed_report(mixed_rust_code):
    violations = RuleEngine(workers=1).check_source("src/lib.rs", mixed_rust_code).violations
    return build_analysis_report(
        violations, project_path="demo", sources={"src/lib.rs": mixed_rust_code}
    )


def test_builder_is_single_use():
    builder = ReportBuilder(project_path="demo")
    builder.build()
    with pytest.raises(ReportAlreadyBuiltError):
        builder.build()
    with pytest.raises(ReportAlreadyBuiltError):
        builder.add_errors(["late"])


def test_empty_report_is_complete():
    when = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    report = ReportBuilder(project_path="demo").build(timestamp=when)
    assert report.metadata.timestamp == "2026-03-01T12:00:00+00:00"
    assert report.metadata.total_violations == 0
    assert report.metadata.analysis_depth == "surface"
    assert report.metadata.tool_version == TOOL_VERSION
    assert report.violation_analyses == []
    assert report.fix_strategies == []
    assert report.ai_instructions.violation_prompts == []
    assert report.ai_instructions.system_prompt == SYSTEM_PROMPT

    markdown = render_orchestrator_instructions(report)
    assert "No violations to fix." in markdown
    assert "No strategies required." in markdown
    assert "## Issues During Analysis" not in markdown


def test_report_contents(mixed_report):
    meta = mixed_report.metadata
    assert meta.total_violations == 6
    assert meta.analyzable_violations == 5
    assert meta.analysis_depth == "semantic"
    assert len(mixed_report.ai_instructions.violation_prompts) == 6
    assert mixed_report.ai_instructions.rollback_instructions == ROLLBACK_INSTRUCTIONS
    assert [s.strategy_name for s in mixed_report.fix_strategies] == [
        "Progressive Error Handling Migration",
        "Implement Missing Functionality",
    ]


def test_report_is_immutable(mixed_report):
    with pytest.raises(ValidationError):
        mixed_report.errors = ["changed"]


def test_violation_prompt_contents(mixed_report):
    prompts = {p.violation_id: p for p in mixed_report.ai_instructions.violation_prompts}
    prompt = prompts["unwrap_in_production:src/lib.rs:37"]
    assert "at line 37" in prompt.prompt
    assert "Function: fmt" in prompt.prompt
    assert "Inside trait implementation: impl std::fmt::Display for Config" in prompt.prompt
    assert ">>    37 | " in prompt.prompt
    assert prompt.required_knowledge


def test_errors_carried_into_report(mixed_rust_code):
    builder = ReportBuilder(project_path="demo").add_errors(["io: src/x.rs: denied"])
    report = builder.build()
    assert report.errors == ["io: src/x.rs: denied"]
    assert "## Issues During Analysis" in render_orchestrator_instructions(report)


def test_markdown_groups_cheapest_first(mixed_report):
    markdown = render_orchestrator_instructions(mixed_report, preview=2)
    headings = [line for line in markdown.splitlines() if line.startswith("### ") and "(" in line]
    assert headings == ["### Trivial (1)", "### Simple (3)", "### Moderate (1)", "### Complex (1)"]
    assert "- ... and 1 more" in markdown
    assert markdown.startswith("# AI Orchestrator Instructions")
    assert "- AI-fixable: 5" in markdown
    assert "- Deeply analysed: 6" in markdown
    assert "  - Recommendation: Handle the discarded value or remove the `let _ =` statement" in markdown
    assert "| unwrap_in_production | Progressive Error Handling Migration | 0.8 | 15 |" in markdown


def test_confidence_buckets(mixed_report):
    high, medium, low = confidence_buckets(mixed_report.violation_analyses)
    assert high + medium + low == 6
    assert high >= 1


def _stamped(report, timestamp):
    return report.model_copy(update={"metadata": report.metadata.model_copy(update={"timestamp": timestamp})})


def test_json_round_trip(tmp_path, mixed_report):
    report = _stamped(mixed_report, "2026-01-02T03:04:05+00:00")
    json_path, md_path = write_reports(report, tmp_path)

    assert json_path == tmp_path / ".rustguard" / "ai-analysis" / "ai_analysis_20260102_030405.json"
    assert md_path.name == "orchestrator_instructions_20260102_030405.md"
    assert load_report(json_path) == report
    assert md_path.read_text().startswith("# AI Orchestrator Instructions")


@pytest.mark.parametrize(
    "timestamp",
    ["2026-01-02T03:04:05+00:00", "2026-01-02T05:04:05+02:00", "2026-01-01T22:04:05-05:00"],
)
def test_artifact_stamp_is_report_utc_time(timestamp, mixed_report):
    assert report_stamp(_stamped(mixed_report, timestamp)) == "20260102_030405"


def test_artifact_stamp_matches_built_timestamp(tmp_path):
    when = datetime(2026, 3, 1, 12, 30, 15, tzinfo=timezone.utc)
    report = ReportBuilder(project_path="demo").build(timestamp=when)
    json_path, md_path = write_reports(report, tmp_path)
    assert json_path.name == "ai_analysis_20260301_123015.json"
    assert md_path.name == "orchestrator_instructions_20260301_123015.md"


def test_round_trip_keeps_complexity_order(tmp_path, mixed_report):
    json_path, _ = write_reports(mixed_report, tmp_path)
    loaded = load_report(json_path)
    assert max(a.fix_complexity for a in loaded.violation_analyses) == FixComplexity.COMPLEX
