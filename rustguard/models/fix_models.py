"""
Fix Data Models — Outcomes of the conservative fixer.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, computed_field

from rustguard.models.rule_models import Violation


class FixStatus(str, Enum):
    FIXED = "fixed"
    SKIPPED = "skipped"


class SkipReason(str, Enum):
    TEST_FILE = "test or bench file"
    INSIDE_LITERAL = "inside literal"
    TRAIT_IMPL = "inside trait impl"
    NO_WRAPPER_RETURN = "return type not result or option"
    NO_ENCLOSING_FUNCTION = "no enclosing function"
    INSIDE_CLOSURE = "inside closure or async block"
    UNPARSEABLE = "unparseable source"
    NOT_REWRITABLE = "call shape not rewritable"
    NO_CONSERVATIVE_REWRITE = "no conservative rewrite"
    VALIDATION_FAILED = "rewrite failed validation"
    IO_ERROR = "io error"


class FixOutcome(BaseModel):
    violation: Violation
    status: FixStatus
    reason: SkipReason | None = None
    original_line: str = ""
    rewritten_line: str = ""


class FixSummary(BaseModel):
    """Counts of fixed and skipped violations for one fixer run."""

    fixed: int = 0
    skipped: int = 0
    dry_run: bool = False
    files_modified: list[str] = Field(
        default_factory=list, description="Files rewritten (or that would be, on a dry run)"
    )
    outcomes: list[FixOutcome] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def skip_reasons(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for outcome in self.outcomes:
            if outcome.reason is not None:
                counts[outcome.reason.value] = counts.get(outcome.reason.value, 0) + 1
        return counts

    @property
    def deferred(self) -> list[Violation]:
        return [o.violation for o in self.outcomes if o.status == FixStatus.SKIPPED]

    def record(self, outcome: FixOutcome) -> None:
        self.outcomes.append(outcome)
        if outcome.status == FixStatus.FIXED:
            self.fixed += 1
        else:
            self.skipped += 1
