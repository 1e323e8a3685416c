"""
Fix Strategies — Static remediation plans, one per violation kind.
"""

from __future__ import annotations

from rustguard.models.analysis_models import FixStrategy, ViolationAnalysis
from rustguard.models.rule_models import ViolationKind, kind_rank


STRATEGY_TABLE: dict[ViolationKind, FixStrategy] = {
    ViolationKind.UNWRAP_IN_PRODUCTION: FixStrategy(
        violation_kind=ViolationKind.UNWRAP_IN_PRODUCTION,
        strategy_name="Progressive Error Handling Migration",
        description="Replace panicking extraction with error propagation, widening return types where needed",
        steps=[
            "Identify the function's current return type",
            "If it already returns Result or Option, replace .unwrap()/.expect() with ?",
            "Otherwise change the signature to return Result and update the callers",
            "Attach context to propagated errors (anyhow::Context or a custom error variant)",
            "Run cargo build and cargo test to confirm behaviour is unchanged",
        ],
        prerequisites=["anyhow or thiserror available as a dependency"],
        risks=["Breaking API changes when public signatures change", "Callers must handle the new error path"],
        confidence=0.8,
        estimated_time_minutes=15,
    ),
    ViolationKind.UNDERSCORE_BANDAID: FixStrategy(
        violation_kind=ViolationKind.UNDERSCORE_BANDAID,
        strategy_name="Implement Missing Functionality",
        description="Use or remove placeholder parameters and handle discarded values",
        steps=[
            "Find out why the value is ignored",
            "Implement the logic that should consume the parameter, or remove it",
            "Replace `let _ =` with explicit handling of the result",
            "Update trait definitions and callers if a signature changes",
        ],
        prerequisites=["Understanding of the intended behaviour"],
        risks=["Trait signatures may be fixed by external crates", "Removing parameters breaks callers"],
        confidence=0.6,
        estimated_time_minutes=30,
    ),
    ViolationKind.FUNCTION_TOO_LARGE: FixStrategy(
        violation_kind=ViolationKind.FUNCTION_TOO_LARGE,
        strategy_name="Refactor large functions",
        description="Extract cohesive blocks into well-named helper functions",
        steps=[
            "Identify independent blocks of logic inside the function",
            "Extract each block into a private helper with explicit inputs and outputs",
            "Keep error propagation intact across the new boundaries",
            "Re-run tests after each extraction",
        ],
        prerequisites=["Test coverage of the function's behaviour"],
        risks=["Borrow-checker friction when splitting code that shares mutable state"],
        confidence=0.5,
        estimated_time_minutes=45,
    ),
    ViolationKind.FILE_TOO_LARGE: FixStrategy(
        violation_kind=ViolationKind.FILE_TOO_LARGE,
        strategy_name="Split large files into modules",
        description="Move related items into submodules and re-export the public surface",
        steps=[
            "Group the file's items by responsibility",
            "Create a submodule per group and move the items",
            "Re-export public items from the parent module to keep paths stable",
            "Fix visibility (pub(crate), pub(super)) where items cross modules",
        ],
        prerequisites=["Agreement on the module layout"],
        risks=["Public paths change if re-exports are missed", "Merge conflicts with concurrent work"],
        confidence=0.4,
        estimated_time_minutes=60,
    ),
    ViolationKind.LINE_TOO_LONG: FixStrategy(
        violation_kind=ViolationKind.LINE_TOO_LONG,
        strategy_name="Reformat long lines",
        description="Let rustfmt wrap the line, or break long literals and chains by hand",
        steps=[
            "Run cargo fmt",
            "Split long string literals with concat! or line continuations",
            "Introduce intermediate bindings for long method chains",
        ],
        prerequisites=["rustfmt installed"],
        risks=["None beyond formatting churn"],
        confidence=0.9,
        estimated_time_minutes=2,
    ),
}

_missing = set(ViolationKind) - set(STRATEGY_TABLE)
if _missing:
    raise RuntimeError(f"No fix strategy for: {sorted(k.value for k in _missing)}")


def get_strategy(kind: ViolationKind) -> FixStrategy:
    return STRATEGY_TABLE[kind]


def applicable_strategies(analyses: list[ViolationAnalysis]) -> list[FixStrategy]:
    """Strategies for the kinds present, in kind declaration order."""
    kinds = {a.violation.kind for a in analyses}
    return [get_strategy(k) for k in sorted(kinds, key=kind_rank)]
