"""
Prompt Builder — Builds agent instructions from deterministic analysis output.

Nothing here calls a model. The output is an advisory instruction set for a
human or an external fixing agent:
- A static system prompt stating remediation goals and constraints
- One prompt per analysed violation, filled from its context and scores
- Context requirements, validation criteria and rollback instructions
"""

from __future__ import annotations

from rustguard.models.analysis_models import (
    AIInstructions,
    ViolationAnalysis,
    ViolationPrompt,
)
from rustguard.models.rule_models import ViolationKind


SYSTEM_PROMPT = """\
You are an expert Rust developer tasked with fixing code violations reported by a deterministic standards checker.

The violations below are FACTS detected by the checker. Do not invent new issues.

Your goals:
1. Preserve the existing behaviour of the code exactly
2. Prefer explicit error handling: propagate failures with ? instead of panicking
3. Keep the crate compiling and its tests passing after every change
4. Keep each change as small as possible and limited to the reported location

STRICT RULES:
- Never introduce .unwrap(), .expect() or panic! in production code
- Never rename public items or change public signatures unless the strategy requires it
- Do not silence violations with underscore-prefixed names or #[allow] attributes
- If a fix cannot be made safely, leave the code unchanged and mark it for manual review
"""

CONTEXT_REQUIREMENTS = [
    "Full file content for every file with a violation",
    "Function signatures of the enclosing functions and their callers",
    "Import statements of each affected file",
    "Existing test coverage for the affected functions",
]

VALIDATION_CRITERIA = [
    "Code must compile (cargo build)",
    "All existing tests must pass (cargo test)",
    "No new violations introduced on re-scan",
    "Performance must not be degraded",
]

ROLLBACK_INSTRUCTIONS = "If changes break compilation or tests, revert and mark for manual review"

EXPECTED_OUTPUT_FORMAT = "Unified diff against the reported file, followed by a one-line rationale"

_REQUIRED_KNOWLEDGE: dict[ViolationKind, list[str]] = {
    ViolationKind.UNWRAP_IN_PRODUCTION: [
        "Rust error handling with Result and Option",
        "The ? operator and From conversions",
        "anyhow / thiserror conventions",
    ],
    ViolationKind.UNDERSCORE_BANDAID: [
        "Trait method signatures and object safety",
        "Intended behaviour of the ignored value",
    ],
    ViolationKind.FUNCTION_TOO_LARGE: [
        "Extract-function refactoring under the borrow checker",
    ],
    ViolationKind.FILE_TOO_LARGE: [
        "Rust module system, visibility and re-exports",
    ],
    ViolationKind.LINE_TOO_LONG: [
        "rustfmt conventions",
    ],
}

_missing = set(ViolationKind) - set(_REQUIRED_KNOWLEDGE)
if _missing:
    raise RuntimeError(f"No required-knowledge entry for: {sorted(k.value for k in _missing)}")


def _snippet(analysis: ViolationAnalysis) -> str:
    ctx = analysis.code_context
    if ctx is None or not ctx.line_window:
        return "(not captured)"
    numbered = []
    for offset, text in enumerate(ctx.line_window):
        line_no = ctx.window_start_line + offset
        marker = ">>" if line_no == analysis.violation.line else "  "
        numbered.append(f"{marker} {line_no:>5} | {text}")
    return "\n".join(numbered)


def build_violation_prompt(analysis: ViolationAnalysis) -> ViolationPrompt:
    v = analysis.violation
    ctx = analysis.code_context
    function = ctx.function_name if ctx and ctx.function_name else "unknown"
    return_type = ctx.return_type if ctx and ctx.return_type else "unknown"
    style = ctx.error_handling_style.value if ctx else "unknown"
    trait_note = f"\nInside trait implementation: {ctx.trait_impl}" if ctx and ctx.in_trait_impl else ""
    hint = f"Recommendation: {analysis.fix_recommendation}\n" if analysis.fix_recommendation else ""

    prompt = (
        f"Fix the {v.kind.value} violation in {v.file} at line {v.line}.\n"
        f"Message: {v.message}\n"
        f"Function: {function}\n"
        f"Return type: {return_type}\n"
        f"Error handling style: {style}{trait_note}\n"
        f"Fix complexity: {analysis.fix_complexity.value}\n"
        f"Confidence: {analysis.confidence:.2f}\n"
        f"{hint}\n"
        f"Code:\n{_snippet(analysis)}\n"
    )
    return ViolationPrompt(
        violation_id=v.violation_id,
        prompt=prompt,
        required_knowledge=list(_REQUIRED_KNOWLEDGE[v.kind]),
        expected_output_format=EXPECTED_OUTPUT_FORMAT,
    )


def build_ai_instructions(analyses: list[ViolationAnalysis]) -> AIInstructions:
    """
    Build the advisory instruction set for an external fixing agent.

    An empty analysis list still yields a complete instruction set with no
    per-violation prompts.
    """
    return AIInstructions(
        system_prompt=SYSTEM_PROMPT,
        violation_prompts=[build_violation_prompt(a) for a in analyses],
        context_requirements=list(CONTEXT_REQUIREMENTS),
        validation_criteria=list(VALIDATION_CRITERIA),
        rollback_instructions=ROLLBACK_INSTRUCTIONS,
    )
