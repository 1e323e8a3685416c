"""
FastAPI Dependencies — Shared singletons injected via Depends().
"""

from __future__ import annotations

from functools import lru_cache

from fastapi import HTTPException

from rustguard.config import settings
from rustguard.core.rule_engine import RuleEngine
from rustguard.engine.conservative_fixer import ConservativeFixer
from rustguard.models.api_models import SourceFileInput


@lru_cache
def get_rule_engine() -> RuleEngine:
    """Shared rule engine singleton."""
    return RuleEngine()


def get_fixer() -> ConservativeFixer:
    """Fresh fixer per request with its own single-threaded rule engine."""
    return ConservativeFixer(rule_engine=RuleEngine(workers=1))


def sources_from_request(files: list[SourceFileInput]) -> dict[str, str]:
    """Validate request files and index them by path."""
    if len(files) > settings.max_request_files:
        raise HTTPException(
            status_code=400,
            detail=f"At most {settings.max_request_files} files per request",
        )
    sources: dict[str, str] = {}
    for f in files:
        if f.path in sources:
            raise HTTPException(status_code=400, detail=f"Duplicate file path: {f.path}")
        if len(f.content.encode("utf-8")) > settings.max_file_size_bytes:
            raise HTTPException(
                status_code=400,
                detail=f"{f.path} exceeds {settings.max_file_size_bytes} bytes",
            )
        sources[f.path] = f.content
    return sources
