"""
Report Writer — Persists the analysis report and orchestrator instructions.

Artifacts land in `<root>/<report_dir>/`:
  ai_analysis_<YYYYmmdd_HHMMSS>.json
  orchestrator_instructions_<YYYYmmdd_HHMMSS>.md

The stamp is the report's own UTC `metadata.timestamp`, so the filenames and
the report contents name the same instant.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from rustguard.config import settings
from rustguard.llm.orchestrator import render_orchestrator_instructions
from rustguard.models.analysis_models import AIAnalysisReport

logger = logging.getLogger("rustguard.engine.report_writer")


def report_directory(root: str | Path) -> Path:
    return Path(root) / settings.report_dir


def report_stamp(report: AIAnalysisReport) -> str:
    when = datetime.fromisoformat(report.metadata.timestamp)
    if when.tzinfo is not None:
        when = when.astimezone(timezone.utc)
    return when.strftime("%Y%m%d_%H%M%S")


def write_reports(report: AIAnalysisReport, root: str | Path) -> list[Path]:
    """Write both artifacts and return their paths. I/O errors propagate."""
    out_dir = report_directory(root)
    out_dir.mkdir(parents=True, exist_ok=True)
    stamp = report_stamp(report)

    json_path = out_dir / f"ai_analysis_{stamp}.json"
    json_path.write_text(report.model_dump_json(indent=2), encoding="utf-8")

    md_path = out_dir / f"orchestrator_instructions_{stamp}.md"
    md_path.write_text(render_orchestrator_instructions(report), encoding="utf-8")

    logger.info(f"Reports written: {json_path.name}, {md_path.name}")
    return [json_path, md_path]


def load_report(path: str | Path) -> AIAnalysisReport:
    return AIAnalysisReport.model_validate_json(Path(path).read_text(encoding="utf-8"))
