"""
Unwrap In Production Rule — Detects `.unwrap()` and `.expect(` outside tests.

Matching is literal on the raw line, so a call spelled out inside a string
literal is still reported; only `//` comment lines are ignored here. Telling
code from literals is left to the fixer, which refuses to touch the latter.

Skipped entirely for test/bench/example/generated files and for files that
opt out of both lints with `#![allow(clippy::unwrap_used, clippy::expect_used)]`;
a file allowing only one of them is still checked for the other. Lines inside
`#[cfg(test)]` modules and `#[test]` / `#[tokio::test]` / `#[bench]`
functions are skipped too.
"""

from __future__ import annotations

import re

from rustguard.core.source_file import SourceFile
from rustguard.models.rule_models import KIND_SEVERITY, Violation, ViolationKind


KIND = ViolationKind.UNWRAP_IN_PRODUCTION

UNWRAP_PATTERN = re.compile(r"\.unwrap\(\)")
EXPECT_PATTERN = re.compile(r"\.expect\(")


def check(source: SourceFile) -> list[Violation]:
    """Detect unsafe value extraction in production code."""
    if source.is_test_file or (source.allows_unwrap and source.allows_expect):
        return []

    violations: list[Violation] = []
    for idx, line in enumerate(source.lines):
        if line.lstrip().startswith("//"):
            continue
        has_unwrap = not source.allows_unwrap and UNWRAP_PATTERN.search(line) is not None
        has_expect = not source.allows_expect and EXPECT_PATTERN.search(line) is not None
        if not (has_unwrap or has_expect):
            continue
        if source.in_test_region(idx + 1):
            continue

        call = ".unwrap()" if has_unwrap else ".expect()"
        violations.append(
            Violation(
                kind=KIND,
                file=source.path,
                line=idx + 1,
                message=f"BANNED: {call} in production code - use proper error handling with ?",
                severity=KIND_SEVERITY[KIND],
            )
        )
    return violations
