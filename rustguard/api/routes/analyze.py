"""
Analyze Route — POST /analyze

Scans in-memory sources, runs semantic analysis on every violation and
returns the AIAnalysisReport plus its orchestrator markdown.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from rustguard.api.dependencies import get_rule_engine, sources_from_request
from rustguard.core.rule_engine import RuleEngine
from rustguard.engine.pipeline import build_analysis_report
from rustguard.llm.orchestrator import render_orchestrator_instructions
from rustguard.models.api_models import AnalyzeRequest, AnalyzeResponse

logger = logging.getLogger("rustguard.api.analyze")

router = APIRouter()


@router.post("/analyze", response_model=AnalyzeResponse)
def analyze_sources(request: AnalyzeRequest, engine: RuleEngine = Depends(get_rule_engine)):
    sources = sources_from_request(request.files)
    scan = engine.check_sources(sources, root=request.project_path)
    report = build_analysis_report(
        scan.violations,
        project_path=request.project_path,
        sources=sources,
        issues=scan.issues,
    )
    logger.info(f"/analyze: {len(report.violation_analyses)} analyses")
    return AnalyzeResponse(
        scan=scan,
        report=report,
        orchestrator_instructions=render_orchestrator_instructions(report),
    )
