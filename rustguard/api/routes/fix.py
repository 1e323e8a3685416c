"""
Fix Route — POST /fix

Applies the conservative fixer to in-memory sources and returns the
rewritten files together with per-violation outcomes.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from rustguard.api.dependencies import get_fixer, get_rule_engine, sources_from_request
from rustguard.core.rule_engine import RuleEngine
from rustguard.engine.conservative_fixer import ConservativeFixer
from rustguard.engine.pipeline import select_violations
from rustguard.models.api_models import FixedFile, FixRequest, FixResponse
from rustguard.models.fix_models import FixStatus, FixSummary

logger = logging.getLogger("rustguard.api.fix")

router = APIRouter()


@router.post("/fix", response_model=FixResponse)
def fix_sources(
    request: FixRequest,
    engine: RuleEngine = Depends(get_rule_engine),
    fixer: ConservativeFixer = Depends(get_fixer),
):
    """
    Fix unsafe extraction and plain discards where it is provably local; defer everything else.

    Pipeline: scan → predicates → rewrite → re-scan → accept or keep original
    """
    sources = sources_from_request(request.files)
    scan = engine.check_sources(sources, root="<memory>")
    targets = select_violations(scan.violations, only=request.only)

    summary = FixSummary()
    files: list[FixedFile] = []
    for path, content in sorted(sources.items()):
        file_violations = [v for v in targets if v.file == path]
        result = fixer.fix_source(path, content, file_violations)
        for outcome in result.outcomes:
            summary.record(outcome)
        if result.changed and any(o.status == FixStatus.FIXED for o in result.outcomes):
            summary.files_modified.append(path)
        files.append(FixedFile(path=path, content=result.rewritten, changed=result.changed))

    logger.info(f"/fix: {summary.fixed} fixed, {summary.skipped} skipped")
    return FixResponse(summary=summary, files=files)
