"""
Underscore Bandaid Rule — Detects placeholder names that silence the compiler.

Triggers on:
  1. Function parameters named `_something` (a bare `_` pattern is allowed)
  2. `let _ = expr;` statements that throw a value away

Both are matched against code only; literals and comments never trigger.
"""

from __future__ import annotations

import re

from rustguard.core.source_file import SourceFile
from rustguard.models.rule_models import KIND_SEVERITY, Violation, ViolationKind


KIND = ViolationKind.UNDERSCORE_BANDAID

PLACEHOLDER_PARAM = re.compile(r"^_\w+$")
DISCARD_LET = re.compile(r"^\s*let\s+_\s*=")


def is_discard_let(masked_line: str) -> bool:
    """`let _ = ...`: the value is intentionally dropped."""
    return DISCARD_LET.match(masked_line) is not None


def check(source: SourceFile) -> list[Violation]:
    violations: list[Violation] = []
    seen: set[int] = set()

    for fn in source.module.functions:
        for param in fn.parameters:
            if not PLACEHOLDER_PARAM.match(param.name) or param.line in seen:
                continue
            seen.add(param.line)
            violations.append(
                Violation(
                    kind=KIND,
                    file=source.path,
                    line=param.line,
                    message=(
                        f"BANNED: underscore parameter '{param.name}' in fn '{fn.name}' - "
                        "implement the missing functionality or remove the parameter"
                    ),
                    severity=KIND_SEVERITY[KIND],
                )
            )

    for idx, masked_line in enumerate(source.masked):
        if idx + 1 in seen or not is_discard_let(masked_line):
            continue
        violations.append(
            Violation(
                kind=KIND,
                file=source.path,
                line=idx + 1,
                message="BANNED: `let _ =` discards a value - handle the result explicitly",
                severity=KIND_SEVERITY[KIND],
            )
        )

    return violations
