"""
Scan Route — POST /scan

Runs every rule against in-memory Rust sources. Never touches disk.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from rustguard.api.dependencies import get_rule_engine, sources_from_request
from rustguard.core.rule_engine import RuleEngine
from rustguard.models.api_models import ScanRequest
from rustguard.models.rule_models import ScanResult

logger = logging.getLogger("rustguard.api.scan")

router = APIRouter()


@router.post("/scan", response_model=ScanResult)
def scan_sources(request: ScanRequest, engine: RuleEngine = Depends(get_rule_engine)):
    """Return the ordered violation list with severity and kind counts."""
    sources = sources_from_request(request.files)
    result = engine.check_sources(sources, root="<memory>")
    logger.info(f"/scan: {result.files_scanned} files, {result.total} violations")
    return result
