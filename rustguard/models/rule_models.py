"""
Rule Engine Data Models — Violations, scan issues, and scan results.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, computed_field


class ViolationKind(str, Enum):
    """Closed set of violation categories.

    Every consumer (rule registry, fixer, strategy table) keys on this enum
    and checks exhaustiveness at import time.
    """

    FILE_TOO_LARGE = "file_too_large"
    FUNCTION_TOO_LARGE = "function_too_large"
    LINE_TOO_LONG = "line_too_long"
    UNWRAP_IN_PRODUCTION = "unwrap_in_production"
    UNDERSCORE_BANDAID = "underscore_bandaid"


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


KIND_SEVERITY: dict[ViolationKind, Severity] = {
    ViolationKind.FILE_TOO_LARGE: Severity.ERROR,
    ViolationKind.FUNCTION_TOO_LARGE: Severity.ERROR,
    ViolationKind.LINE_TOO_LONG: Severity.WARNING,
    ViolationKind.UNWRAP_IN_PRODUCTION: Severity.ERROR,
    ViolationKind.UNDERSCORE_BANDAID: Severity.ERROR,
}


def kind_rank(kind: ViolationKind) -> int:
    """Position of a kind in declaration order, used for stable sorting."""
    return list(ViolationKind).index(kind)


class Violation(BaseModel):
    """A single detected standards breach. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    kind: ViolationKind
    file: str = Field(..., description="File path, relative to the scanned root")
    line: int = Field(..., ge=1, description="1-indexed line number")
    message: str = Field(..., description="Human-readable explanation")
    severity: Severity

    @property
    def violation_id(self) -> str:
        return f"{self.kind.value}:{self.file}:{self.line}"


class IssueCategory(str, Enum):
    IO = "io"
    PARSE = "parse"
    RULE = "rule"


class ScanIssue(BaseModel):
    """A non-fatal problem recorded during a run instead of being raised."""

    model_config = ConfigDict(frozen=True)

    category: IssueCategory
    file: str = Field(default="", description="File the issue relates to, if any")
    message: str


class ScanResult(BaseModel):
    """Result of running all rules over a root directory or a set of sources."""

    root: str = ""
    violations: list[Violation] = Field(default_factory=list)
    files_scanned: int = 0
    issues: list[ScanIssue] = Field(default_factory=list)
    rules_executed: list[ViolationKind] = Field(default_factory=list)
    duration_ms: float = 0.0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return len(self.violations)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def severity_counts(self) -> dict[str, int]:
        counts = {s.value: 0 for s in Severity}
        for v in self.violations:
            counts[v.severity.value] += 1
        return counts

    @computed_field  # type: ignore[prop-decorator]
    @property
    def kind_counts(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for v in self.violations:
            counts[v.kind.value] = counts.get(v.kind.value, 0) + 1
        return counts
