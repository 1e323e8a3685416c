"""
Fix Complexity, Fixability & Confidence — Fixed decision tables and additive scoring.

Both are pure functions of the violation kind and recovered context, so the
same input always ranks the same way.
"""

from __future__ import annotations

import re

from rustguard.models.analysis_models import (
    CodeContext,
    ErrorHandlingStyle,
    FixComplexity,
    ValueShape,
)
from rustguard.models.rule_models import ViolationKind

_WRAPPER_TYPE = re.compile(r"^(?:[A-Za-z_]\w*::)*(?P<name>\w*Result|Option)\b")

BASE_CONFIDENCE = 0.5
FUNCTION_KNOWN_BOOST = 0.10
RETURN_TYPE_KNOWN_BOOST = 0.15
CALLS_TRACED_BOOST = 0.10
ERROR_STYLE_BOOST = 0.15

# Violations about the whole file: context never moves their confidence.
FILE_SCOPED_KINDS = frozenset({ViolationKind.FILE_TOO_LARGE})


def return_shape(return_type: str | None) -> ValueShape:
    """Shape of the outermost return type: `Result`, `io::Result`, `Option`..."""
    if not return_type:
        return ValueShape.UNKNOWN
    match = _WRAPPER_TYPE.match(return_type.strip())
    if match is None:
        return ValueShape.UNKNOWN
    return ValueShape.OPTION if match.group("name") == "Option" else ValueShape.RESULT


def returns_wrapper(return_type: str | None) -> bool:
    return return_shape(return_type) != ValueShape.UNKNOWN


def assess_fix_complexity(
    kind: ViolationKind,
    context: CodeContext | None,
    intentional_drop: bool = False,
) -> FixComplexity:
    """
    Decision table keyed by (kind, wrapper return type, trait impl, intentional drop).

    Size violations ignore context entirely: they are never fixable by
    rewriting a single line.
    """
    if kind == ViolationKind.FILE_TOO_LARGE:
        return FixComplexity.ARCHITECTURAL
    if kind == ViolationKind.FUNCTION_TOO_LARGE:
        return FixComplexity.COMPLEX
    if kind == ViolationKind.LINE_TOO_LONG:
        return FixComplexity.TRIVIAL

    in_trait_impl = context.in_trait_impl if context is not None else False
    wrapper = returns_wrapper(context.return_type) if context is not None else False

    if kind == ViolationKind.UNWRAP_IN_PRODUCTION:
        if in_trait_impl:
            return FixComplexity.COMPLEX if wrapper else FixComplexity.ARCHITECTURAL
        return FixComplexity.SIMPLE if wrapper else FixComplexity.MODERATE

    if kind == ViolationKind.UNDERSCORE_BANDAID:
        if in_trait_impl:
            return FixComplexity.ARCHITECTURAL
        return FixComplexity.TRIVIAL if intentional_drop else FixComplexity.MODERATE

    raise ValueError(f"No complexity rule for violation kind: {kind}")


def compute_confidence(
    kind: ViolationKind,
    function_known: bool,
    return_type_known: bool,
    calls_traced: bool,
    error_style: ErrorHandlingStyle,
) -> float:
    """clamp(0.5 + 0.10·fn + 0.15·ret + 0.10·calls + 0.15·style, 0, 1)."""
    if kind in FILE_SCOPED_KINDS:
        return BASE_CONFIDENCE

    score = BASE_CONFIDENCE
    if function_known:
        score += FUNCTION_KNOWN_BOOST
    if return_type_known:
        score += RETURN_TYPE_KNOWN_BOOST
    if calls_traced:
        score += CALLS_TRACED_BOOST
    if error_style in (ErrorHandlingStyle.ANYHOW, ErrorHandlingStyle.STD_RESULT):
        score += ERROR_STYLE_BOOST
    return round(min(max(score, 0.0), 1.0), 2)


def assess_fixability(kind: ViolationKind, complexity: FixComplexity) -> bool:
    """Whether an external agent can fix the violation without a design decision."""
    if kind == ViolationKind.UNWRAP_IN_PRODUCTION:
        return complexity <= FixComplexity.SIMPLE
    if kind == ViolationKind.LINE_TOO_LONG:
        return True
    if kind == ViolationKind.UNDERSCORE_BANDAID:
        return complexity < FixComplexity.ARCHITECTURAL
    return False


def fix_recommendation(
    kind: ViolationKind,
    ai_fixable: bool,
    context: CodeContext | None = None,
    intentional_drop: bool = False,
) -> str | None:
    """One-line hint for a fixable violation; None when it needs a human."""
    if not ai_fixable:
        return None
    if kind == ViolationKind.UNWRAP_IN_PRODUCTION:
        if context is not None and context.error_handling_style == ErrorHandlingStyle.ANYHOW:
            return "Replace .unwrap()/.expect(msg) with ? or .context(msg)?"
        return "Replace .unwrap()/.expect() with the ? operator"
    if kind == ViolationKind.LINE_TOO_LONG:
        return "Break the line after a comma, operator or method call"
    if kind == ViolationKind.UNDERSCORE_BANDAID:
        if intentional_drop:
            return "Handle the discarded value or remove the `let _ =` statement"
        return "Either use the parameter or remove it from the function signature"
    return None
