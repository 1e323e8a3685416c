"""
Line Too Long Rule — Plain character count per line.
"""

from __future__ import annotations

from rustguard.config import settings
from rustguard.core.source_file import SourceFile
from rustguard.models.rule_models import KIND_SEVERITY, Violation, ViolationKind


KIND = ViolationKind.LINE_TOO_LONG


def check(source: SourceFile) -> list[Violation]:
    limit = settings.max_line_length
    return [
        Violation(
            kind=KIND,
            file=source.path,
            line=idx + 1,
            message=f"Line has {len(line)} characters, maximum allowed is {limit}",
            severity=KIND_SEVERITY[KIND],
        )
        for idx, line in enumerate(source.lines)
        if len(line) > limit
    ]
