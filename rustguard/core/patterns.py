"""
Code Pattern Detector — Codebase-level idioms and anti-patterns.

Works only on file contents that were already read for analysis, plus the
violation list itself. No additional I/O.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from typing import Mapping

from rustguard.config import settings
from rustguard.models.analysis_models import (
    ArchitecturalStyle,
    CodePatterns,
    ErrorHandlingStyle,
    ErrorPattern,
    Pattern,
    ViolationAnalysis,
)
from rustguard.models.rule_models import Violation, ViolationKind

logger = logging.getLogger("rustguard.core.patterns")

MAX_SAMPLE_LOCATIONS = 5

_BUILDER = re.compile(r"\bstruct\s+\w*Builder\b|\bfn\s+builder\s*\(")
_CONSTRUCTOR = re.compile(r"\bfn\s+(?:new|from_\w+|with_\w+)\s*[<(]")
_MOD_DECL = re.compile(r"^\s*(?:pub(?:\([^)]*\))?\s+)?mod\s+\w+", re.MULTILINE)

_STYLE_TO_PATTERN: dict[ErrorHandlingStyle, ErrorPattern] = {
    ErrorHandlingStyle.ANYHOW: ErrorPattern.RESULT_EVERYWHERE,
    ErrorHandlingStyle.STD_RESULT: ErrorPattern.RESULT_EVERYWHERE,
    ErrorHandlingStyle.THISERROR_CUSTOM: ErrorPattern.CUSTOM_ERRORS,
    ErrorHandlingStyle.OPTION_BASED: ErrorPattern.OPTION_HEAVY,
    ErrorHandlingStyle.PANIC: ErrorPattern.PANIC_HEAVY,
}


def _locations(violations: list[Violation]) -> list[str]:
    return [f"{v.file}:{v.line}" for v in violations[:MAX_SAMPLE_LOCATIONS]]


def detect_anti_patterns(violations: list[Violation]) -> list[Pattern]:
    by_kind: dict[ViolationKind, list[Violation]] = {}
    for v in violations:
        by_kind.setdefault(v.kind, []).append(v)

    patterns: list[Pattern] = []
    unwraps = by_kind.get(ViolationKind.UNWRAP_IN_PRODUCTION, [])
    if len(unwraps) > settings.excessive_unwrap_threshold:
        patterns.append(
            Pattern(
                name="Excessive Unwrapping",
                description="Widespread use of .unwrap()/.expect() where errors should propagate",
                frequency=len(unwraps),
                locations=_locations(unwraps),
            )
        )
    placeholders = by_kind.get(ViolationKind.UNDERSCORE_BANDAID, [])
    if placeholders:
        patterns.append(
            Pattern(
                name="Placeholder Parameters",
                description="Underscore-prefixed names hiding unimplemented or ignored values",
                frequency=len(placeholders),
                locations=_locations(placeholders),
            )
        )
    oversized = by_kind.get(ViolationKind.FUNCTION_TOO_LARGE, []) + by_kind.get(
        ViolationKind.FILE_TOO_LARGE, []
    )
    if oversized:
        patterns.append(
            Pattern(
                name="Oversized Units",
                description="Functions or files above the size limits that need decomposition",
                frequency=len(oversized),
                locations=_locations(oversized),
            )
        )
    return patterns


def detect_common_patterns(contents: Mapping[str, str]) -> list[Pattern]:
    builders = [path for path, text in contents.items() if _BUILDER.search(text)]
    constructors = [path for path, text in contents.items() if _CONSTRUCTOR.search(text)]

    patterns: list[Pattern] = []
    if builders:
        patterns.append(
            Pattern(
                name="Builder Pattern",
                description="Types assembled through dedicated builder structs or methods",
                frequency=len(builders),
                locations=builders[:MAX_SAMPLE_LOCATIONS],
            )
        )
    if constructors:
        patterns.append(
            Pattern(
                name="Factory Constructors",
                description="Associated `new` / `from_*` / `with_*` constructor functions",
                frequency=len(constructors),
                locations=constructors[:MAX_SAMPLE_LOCATIONS],
            )
        )
    return patterns


def classify_file_style(text: str) -> ArchitecturalStyle:
    if len(_MOD_DECL.findall(text)) > 5:
        return ArchitecturalStyle.MODULAR
    if "async fn" in text and "tokio" in text:
        return ArchitecturalStyle.EVENT_DRIVEN
    if "layer" in text.lower():
        return ArchitecturalStyle.LAYERED
    return ArchitecturalStyle.UNKNOWN


def detect_architectural_style(contents: Mapping[str, str]) -> ArchitecturalStyle:
    sample = sorted(contents.items())[: settings.pattern_sample_files]
    counts = Counter(classify_file_style(text) for _, text in sample)
    counts.pop(ArchitecturalStyle.UNKNOWN, None)
    if not counts:
        return ArchitecturalStyle.UNKNOWN
    ranked = counts.most_common()
    if len(ranked) > 1 and ranked[0][1] == ranked[1][1]:
        return ArchitecturalStyle.MIXED
    return ranked[0][0]


def detect_error_pattern(
    analyses: list[ViolationAnalysis], violations: list[Violation]
) -> ErrorPattern:
    unwraps = sum(1 for v in violations if v.kind == ViolationKind.UNWRAP_IN_PRODUCTION)
    if unwraps > settings.panic_heavy_threshold:
        return ErrorPattern.PANIC_HEAVY

    styles = {
        a.code_context.error_handling_style
        for a in analyses
        if a.code_context is not None
        and a.code_context.error_handling_style != ErrorHandlingStyle.UNKNOWN
    }
    mapped = {_STYLE_TO_PATTERN[s] for s in styles}
    if len(mapped) == 1:
        return mapped.pop()
    return ErrorPattern.MIXED_ERROR_HANDLING


def detect_code_patterns(
    analyses: list[ViolationAnalysis],
    contents: Mapping[str, str],
) -> CodePatterns:
    violations = [a.violation for a in analyses]
    patterns = CodePatterns(
        common_patterns=detect_common_patterns(contents),
        anti_patterns=detect_anti_patterns(violations),
        architectural_style=detect_architectural_style(contents),
        error_handling_pattern=detect_error_pattern(analyses, violations),
    )
    logger.debug(
        f"Patterns: {len(patterns.common_patterns)} common, "
        f"{len(patterns.anti_patterns)} anti, style={patterns.architectural_style.value}"
    )
    return patterns
