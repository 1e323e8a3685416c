"""
Health Check Route — GET /health
"""

from __future__ import annotations

from fastapi import APIRouter

from rustguard.engine.report_builder import TOOL_VERSION
from rustguard.models.rule_models import ViolationKind

router = APIRouter()


@router.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "version": TOOL_VERSION,
        "rules": [k.value for k in ViolationKind],
    }
