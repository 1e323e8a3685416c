"""
Function Too Large Rule — Flags functions spanning more lines than allowed.

Function boundaries come from the ModuleAST index: tree-sitter spans when the
file parses, brace-scanner spans otherwise.
"""

from __future__ import annotations

from rustguard.config import settings
from rustguard.core.source_file import SourceFile
from rustguard.models.rule_models import KIND_SEVERITY, Violation, ViolationKind


KIND = ViolationKind.FUNCTION_TOO_LARGE


def check(source: SourceFile) -> list[Violation]:
    """Detect oversized functions, one violation at each function's first line."""
    violations: list[Violation] = []
    for fn in source.module.functions:
        if fn.line_count <= settings.max_function_lines:
            continue
        violations.append(
            Violation(
                kind=KIND,
                file=source.path,
                line=fn.start_line,
                message=(
                    f"Function '{fn.name}' has {fn.line_count} lines, "
                    f"maximum allowed is {settings.max_function_lines}"
                ),
                severity=KIND_SEVERITY[KIND],
            )
        )
    return violations
