"""
File Too Large Rule — Flags files whose physical line count exceeds the limit.

One violation per file, reported at the last line.
"""

from __future__ import annotations

from rustguard.config import settings
from rustguard.core.source_file import SourceFile
from rustguard.models.rule_models import KIND_SEVERITY, Violation, ViolationKind


KIND = ViolationKind.FILE_TOO_LARGE


def check(source: SourceFile) -> list[Violation]:
    line_count = len(source.lines)
    if line_count <= settings.max_file_lines:
        return []
    return [
        Violation(
            kind=KIND,
            file=source.path,
            line=line_count,
            message=f"File has {line_count} lines, maximum allowed is {settings.max_file_lines}",
            severity=KIND_SEVERITY[KIND],
        )
    ]
