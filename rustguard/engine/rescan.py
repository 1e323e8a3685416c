"""
Re-Scan Module — Re-runs the rule engine on rewritten source to verify a fix.

After the fixer rewrites a file:
1. Re-parse the rewritten source; it must not gain syntax errors
2. Re-run the rule engine
3. Confirm every rewritten line no longer extracts unsafely in code
4. Confirm no violation appears that was not there before
5. Return pass/fail verdict
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from rustguard.core.ast_parser import parse_rust
from rustguard.core.rule_engine import RuleEngine
from rustguard.core.source_text import mask_source, split_lines
from rustguard.models.rule_models import Violation, ViolationKind

logger = logging.getLogger("rustguard.engine.rescan")

_CODE_EXTRACTION = (".unwrap()", ".expect(")


@dataclass
class RescanResult:
    """Result of re-scanning rewritten code."""

    passed: bool = False
    parse_ok: bool = False
    target_eliminated: bool = False
    new_violations_introduced: list[str] = field(default_factory=list)
    remaining: list[Violation] = field(default_factory=list)
    details: str = ""


def rescan_rewritten_source(
    original_source: str,
    rewritten_source: str,
    file_path: str,
    rewritten_lines: list[int],
    original_violations: list[Violation],
    rule_engine: RuleEngine | None = None,
) -> RescanResult:
    """
    Re-scan rewritten source to verify the fix.

    Args:
        original_source: File content before the rewrite
        rewritten_source: File content after the rewrite
        file_path: File path for context
        rewritten_lines: 1-indexed lines the fixer changed
        original_violations: Violations reported for the original content
        rule_engine: Optional RuleEngine instance (creates new if None)

    Returns:
        RescanResult with pass/fail verdict
    """
    engine = rule_engine or RuleEngine(workers=1)
    result = RescanResult()

    # Step 1: Parse rewritten source
    before = parse_rust(original_source, file_path)
    after = parse_rust(rewritten_source, file_path)
    result.parse_ok = after.parsed or not before.parsed
    if not result.parse_ok:
        result.details = f"Rewrite introduced syntax errors: {'; '.join(after.parse_errors)}"
        logger.warning(f"{file_path}: {result.details}")
        return result

    # Step 2: Run rule engine
    scan = engine.check_source(file_path, rewritten_source)
    result.remaining = list(scan.violations)

    # Step 3: Rewritten lines must be free of unsafe extraction in code
    masked = split_lines(mask_source(rewritten_source))
    still_present = [
        line
        for line in rewritten_lines
        if 1 <= line <= len(masked) and any(tok in masked[line - 1] for tok in _CODE_EXTRACTION)
    ]
    result.target_eliminated = not still_present

    # Step 4: No new violations
    before_keys = {(v.kind, v.line) for v in original_violations}
    result.new_violations_introduced = [
        f"{v.kind.value} at line {v.line}"
        for v in scan.violations
        if (v.kind, v.line) not in before_keys and v.kind != ViolationKind.UNWRAP_IN_PRODUCTION
    ]

    # Step 5: Determine pass/fail
    result.passed = result.target_eliminated and not result.new_violations_introduced
    if result.passed:
        result.details = f"Re-scan passed: {len(rewritten_lines)} line(s) fixed in {file_path}"
        logger.info(result.details)
    else:
        parts = []
        if still_present:
            parts.append(f"extraction still present on lines {still_present}")
        if result.new_violations_introduced:
            parts.append(f"new violations: {', '.join(result.new_violations_introduced)}")
        result.details = f"Re-scan failed: {'; '.join(parts)}"
        logger.warning(result.details)
    return result
