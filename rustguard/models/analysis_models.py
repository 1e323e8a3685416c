"""
Semantic Analysis Data Models — Code context, fixability scoring, strategies,
agent instructions, and the final AI analysis report.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from rustguard.models.rule_models import Violation, ViolationKind


class ErrorHandlingStyle(str, Enum):
    ANYHOW = "anyhow"
    THISERROR_CUSTOM = "thiserror_custom"
    STD_RESULT = "std_result"
    OPTION_BASED = "option_based"
    PANIC = "panic"
    UNKNOWN = "unknown"


class ValueShape(str, Enum):
    RESULT = "result"
    OPTION = "option"
    UNKNOWN = "unknown"


class FixComplexity(str, Enum):
    """Total order: trivial < simple < moderate < complex < architectural."""

    TRIVIAL = "trivial"
    SIMPLE = "simple"
    MODERATE = "moderate"
    COMPLEX = "complex"
    ARCHITECTURAL = "architectural"

    @property
    def rank(self) -> int:
        return list(FixComplexity).index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, FixComplexity):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, FixComplexity):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, FixComplexity):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, FixComplexity):
            return NotImplemented
        return self.rank >= other.rank


class CodeContext(BaseModel):
    """Structural context recovered around a violation line."""

    function_name: str | None = None
    function_signature: str | None = None
    return_type: str | None = None
    is_async: bool = False
    is_generic: bool = False
    in_trait_impl: bool = False
    trait_impl: str | None = None
    imports: list[str] = Field(default_factory=list)
    line_window: list[str] = Field(
        default_factory=list, description="Source lines around the violation, verbatim"
    )
    window_start_line: int = Field(default=1, description="1-indexed line of line_window[0]")
    error_handling_style: ErrorHandlingStyle = ErrorHandlingStyle.UNKNOWN


class SemanticAnalysis(BaseModel):
    actual_shape: ValueShape = ValueShape.UNKNOWN
    expected_shape: ValueShape = ValueShape.UNKNOWN
    data_flow: list[str] = Field(default_factory=list, description="Line-tagged snippets")
    control_flow: list[str] = Field(default_factory=list)
    variable_usage: dict[str, list[int]] = Field(
        default_factory=dict, description="Local variable -> lines where it is declared"
    )
    function_calls: list[str] = Field(default_factory=list)
    error_propagation_path: list[str] = Field(default_factory=list)


class ViolationAnalysis(BaseModel):
    """Per-violation fixability assessment.

    Violations beyond the deep-analysis cap carry no context or semantic
    analysis, a kind-only complexity and the base confidence.
    """

    violation: Violation
    code_context: CodeContext | None = None
    semantic_analysis: SemanticAnalysis | None = None
    fix_complexity: FixComplexity
    dependencies: list[str] = Field(default_factory=list)
    side_effects: list[str] = Field(default_factory=list)
    confidence: float = Field(..., ge=0.0, le=1.0)
    deep_analyzed: bool = True
    ai_fixable: bool = Field(default=False, description="Fixable by an agent without a design decision")
    fix_recommendation: str | None = None


# ── Codebase patterns ──


class ArchitecturalStyle(str, Enum):
    MODULAR = "modular"
    EVENT_DRIVEN = "event_driven"
    LAYERED = "layered"
    MIXED = "mixed"
    UNKNOWN = "unknown"


class ErrorPattern(str, Enum):
    RESULT_EVERYWHERE = "result_everywhere"
    MIXED_ERROR_HANDLING = "mixed_error_handling"
    PANIC_HEAVY = "panic_heavy"
    OPTION_HEAVY = "option_heavy"
    CUSTOM_ERRORS = "custom_errors"


class Pattern(BaseModel):
    name: str
    description: str
    frequency: int = 0
    locations: list[str] = Field(default_factory=list, description="Sample 'file:line' locations")


class CodePatterns(BaseModel):
    common_patterns: list[Pattern] = Field(default_factory=list)
    anti_patterns: list[Pattern] = Field(default_factory=list)
    architectural_style: ArchitecturalStyle = ArchitecturalStyle.UNKNOWN
    error_handling_pattern: ErrorPattern = ErrorPattern.MIXED_ERROR_HANDLING


# ── Strategies and agent instructions ──


class FixStrategy(BaseModel):
    """Static remediation plan for one violation kind."""

    model_config = ConfigDict(frozen=True)

    violation_kind: ViolationKind
    strategy_name: str
    description: str
    steps: list[str]
    prerequisites: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    confidence: float
    estimated_time_minutes: int


class ViolationPrompt(BaseModel):
    violation_id: str
    prompt: str
    required_knowledge: list[str] = Field(default_factory=list)
    expected_output_format: str = ""


class AIInstructions(BaseModel):
    system_prompt: str
    violation_prompts: list[ViolationPrompt] = Field(default_factory=list)
    context_requirements: list[str] = Field(default_factory=list)
    validation_criteria: list[str] = Field(default_factory=list)
    rollback_instructions: str = ""


class AnalysisMetadata(BaseModel):
    timestamp: str = Field(..., description="UTC time the report was built, ISO-8601")
    total_violations: int
    analyzable_violations: int = Field(
        ..., description="Violations that received deep semantic analysis"
    )
    project_path: str
    analysis_depth: str = Field(default="semantic", description="'surface' or 'semantic'")
    tool_version: str


class AIAnalysisReport(BaseModel):
    """Immutable end product of the analysis layer."""

    model_config = ConfigDict(frozen=True)

    metadata: AnalysisMetadata
    violation_analyses: list[ViolationAnalysis] = Field(default_factory=list)
    code_patterns: CodePatterns = Field(default_factory=CodePatterns)
    fix_strategies: list[FixStrategy] = Field(default_factory=list)
    ai_instructions: AIInstructions
    errors: list[str] = Field(
        default_factory=list, description="Non-fatal issues accumulated during the run"
    )
