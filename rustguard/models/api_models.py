"""
API Data Models — Request and response bodies for the HTTP service.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from rustguard.models.analysis_models import AIAnalysisReport
from rustguard.models.fix_models import FixSummary
from rustguard.models.rule_models import ScanResult, ViolationKind


class SourceFileInput(BaseModel):
    path: str = Field(..., min_length=1, description="Path label, e.g. 'src/lib.rs'")
    content: str = Field(..., description="Full Rust source text")


class ScanRequest(BaseModel):
    files: list[SourceFileInput] = Field(..., min_length=1)


class FixRequest(BaseModel):
    files: list[SourceFileInput] = Field(..., min_length=1)
    only: list[ViolationKind] | None = Field(default=None, description="Restrict to these kinds")


class AnalyzeRequest(BaseModel):
    files: list[SourceFileInput] = Field(..., min_length=1)
    project_path: str = Field(default="<memory>", description="Label recorded in report metadata")


class FixedFile(BaseModel):
    path: str
    content: str
    changed: bool


class FixResponse(BaseModel):
    summary: FixSummary
    files: list[FixedFile]


class AnalyzeResponse(BaseModel):
    scan: ScanResult
    report: AIAnalysisReport
    orchestrator_instructions: str
