"""
Semantic Analyzer — Per-violation data-flow, control-flow and fixability facts.

For each deferred violation:
  1. Extract CodeContext (one read and one parse per file, shared)
  2. Trace value shapes, data flow, control flow and local declarations
  3. Assign FixComplexity from the decision table
  4. Score confidence from how much context was recovered

Only the first `deep_analysis_cap` violations get steps 1-2; the rest are
still listed with a kind-only complexity and base confidence. Everything
here is pure apart from the single file read per file.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from rustguard.config import settings
from rustguard.core.ast_parser import parse_rust
from rustguard.core.complexity import (
    BASE_CONFIDENCE,
    assess_fix_complexity,
    assess_fixability,
    compute_confidence,
    fix_recommendation,
    return_shape,
)
from rustguard.core.context import extract_code_context
from rustguard.core.rules.underscore_bandaid import is_discard_let
from rustguard.core.source_text import mask_source, split_lines
from rustguard.models.analysis_models import (
    CodeContext,
    SemanticAnalysis,
    ValueShape,
    ViolationAnalysis,
)
from rustguard.models.ast_models import FunctionSpan, ModuleAST
from rustguard.models.rule_models import Violation, ViolationKind

logger = logging.getLogger("rustguard.core.semantic")

MAX_DATA_FLOW = 8
MAX_CONTROL_FLOW = 20

SIDE_EFFECT_CALLS = frozenset(
    {"print", "println", "eprint", "eprintln", "write", "writeln", "flush", "spawn", "send"}
)
EXTRACTION_CALLS = frozenset({"unwrap", "expect"})
_KEYWORDS = frozenset(
    {
        "as", "async", "await", "break", "const", "continue", "crate", "dyn", "else",
        "enum", "extern", "false", "fn", "for", "if", "impl", "in", "let", "loop",
        "match", "mod", "move", "mut", "pub", "ref", "return", "self", "Self",
        "static", "struct", "super", "trait", "true", "type", "unsafe", "use",
        "where", "while", "Some", "None", "Ok", "Err",
    }
)

_CALL = re.compile(r"\b([A-Za-z_]\w*)\s*(?:::\s*<[^()]*>)?\s*(!)?\s*\(")
_IDENT = re.compile(r"\b([a-z_]\w*)\b")
_LET_BINDING = re.compile(r"\blet\s+(?:mut\s+)?([A-Za-z_]\w*)")
_CONTROL = re.compile(r"\b(?:if|match|for|while|loop)\b")
_PROPAGATION = re.compile(
    r"\?|\.unwrap\(\)|\.expect\(|\b(?:panic|unreachable|todo|unimplemented)!"
)


@dataclass
class FileView:
    """One file's text, masked text and parse, shared by all its violations."""

    path: str
    content: str
    lines: list[str]
    masked: list[str]
    module: ModuleAST

    @classmethod
    def from_content(cls, path: str, content: str) -> FileView:
        return cls(
            path=path,
            content=content,
            lines=split_lines(content),
            masked=split_lines(mask_source(content)),
            module=parse_rust(content, path),
        )

    def text(self, line: int) -> str:
        return self.lines[line - 1] if 1 <= line <= len(self.lines) else ""

    def code(self, line: int) -> str:
        return self.masked[line - 1] if 1 <= line <= len(self.masked) else ""


def _tag(view: FileView, line: int) -> str:
    return f"L{line}: {view.text(line).strip()}"


def _scope(view: FileView, fn: FunctionSpan | None, line: int) -> range:
    if fn is not None:
        return range(fn.start_line, fn.end_line + 1)
    radius = settings.context_window_radius
    return range(max(1, line - radius), min(len(view.lines), line + radius) + 1)


# ── Individual traces ──


def extract_function_calls(code_line: str) -> list[str]:
    """Call and macro names on a masked line, in order, without the extraction calls."""
    calls: list[str] = []
    for match in _CALL.finditer(code_line):
        name = match.group(1)
        if name in _KEYWORDS or name in EXTRACTION_CALLS or name in calls:
            continue
        calls.append(name)
    return calls


def infer_actual_shape(view: FileView, line: int, calls: list[str]) -> ValueShape:
    code = view.code(line)
    if "Result<" in code:
        return ValueShape.RESULT
    if "Option<" in code:
        return ValueShape.OPTION
    local = {fn.name: fn for fn in view.module.functions}
    for name in calls:
        if name in local:
            shape = return_shape(local[name].return_type)
            if shape != ValueShape.UNKNOWN:
                return shape
    return ValueShape.UNKNOWN


def collect_variable_usage(view: FileView, scope: range) -> dict[str, list[int]]:
    usage: dict[str, list[int]] = {}
    for line in scope:
        for match in _LET_BINDING.finditer(view.code(line)):
            usage.setdefault(match.group(1), []).append(line)
    return usage


def trace_data_flow(view: FileView, line: int, scope: range, usage: dict[str, list[int]]) -> list[str]:
    """Violation line, declarations it reads from, then later uses of what it binds."""
    code = view.code(line)
    flow = [_tag(view, line)]

    bound = {m.group(1) for m in _LET_BINDING.finditer(code)}
    used = [name for name in dict.fromkeys(_IDENT.findall(code)) if name not in _KEYWORDS]
    for name in used:
        if name in bound:
            continue
        for decl in usage.get(name, []):
            if decl < line and len(flow) < MAX_DATA_FLOW:
                flow.append(_tag(view, decl))

    for name in bound:
        pattern = re.compile(rf"\b{re.escape(name)}\b")
        for later in scope:
            if later <= line or len(flow) >= MAX_DATA_FLOW:
                continue
            if pattern.search(view.code(later)):
                flow.append(_tag(view, later))
    return flow[:MAX_DATA_FLOW]


def trace_control_flow(view: FileView, scope: range) -> list[str]:
    flow = [_tag(view, line) for line in scope if _CONTROL.search(view.code(line))]
    return flow[:MAX_CONTROL_FLOW]


def trace_error_propagation(view: FileView, scope: range) -> list[str]:
    return [_tag(view, line) for line in scope if _PROPAGATION.search(view.code(line))]


def perform_semantic_analysis(
    violation: Violation,
    context: CodeContext,
    view: FileView,
) -> SemanticAnalysis:
    fn = view.module.enclosing_function(violation.line) if view.module.parsed else None
    scope = _scope(view, fn, violation.line)
    calls = extract_function_calls(view.code(violation.line))
    usage = collect_variable_usage(view, scope)

    expected = ValueShape.UNKNOWN
    if violation.kind == ViolationKind.UNWRAP_IN_PRODUCTION:
        expected = return_shape(context.return_type)

    return SemanticAnalysis(
        actual_shape=infer_actual_shape(view, violation.line, calls),
        expected_shape=expected,
        data_flow=trace_data_flow(view, violation.line, scope, usage),
        control_flow=trace_control_flow(view, scope),
        variable_usage=usage,
        function_calls=calls,
        error_propagation_path=trace_error_propagation(view, scope),
    )


def extract_dependencies(context: CodeContext, calls: list[str]) -> list[str]:
    """Crate roots named in imports, then called names, deduplicated in order."""
    deps: list[str] = []
    for imp in context.imports:
        path = re.sub(r"^(?:pub(?:\([^)]*\))?\s+)?(?:use|extern\s+crate)\s+", "", imp)
        root = path.lstrip(":").split("::", 1)[0].strip(" ;{")
        if root and root not in ("crate", "self", "super") and root not in deps:
            deps.append(root)
    for name in calls:
        if name not in deps:
            deps.append(name)
    return deps


def identify_side_effects(calls: list[str]) -> list[str]:
    return [name for name in calls if name in SIDE_EFFECT_CALLS]


# ── Per-violation analysis ──


def analyze_violation(violation: Violation, view: FileView) -> ViolationAnalysis:
    context = extract_code_context(violation, view.content, view.module)
    semantic = perform_semantic_analysis(violation, context, view)
    intentional_drop = (
        violation.kind == ViolationKind.UNDERSCORE_BANDAID
        and is_discard_let(view.code(violation.line))
    )
    confidence = compute_confidence(
        violation.kind,
        function_known=context.function_name is not None,
        return_type_known=context.return_type is not None,
        calls_traced=bool(semantic.function_calls),
        error_style=context.error_handling_style,
    )
    complexity = assess_fix_complexity(violation.kind, context, intentional_drop)
    ai_fixable = assess_fixability(violation.kind, complexity)
    return ViolationAnalysis(
        violation=violation,
        code_context=context,
        semantic_analysis=semantic,
        fix_complexity=complexity,
        dependencies=extract_dependencies(context, semantic.function_calls),
        side_effects=identify_side_effects(semantic.function_calls),
        confidence=confidence,
        deep_analyzed=True,
        ai_fixable=ai_fixable,
        fix_recommendation=fix_recommendation(violation.kind, ai_fixable, context, intentional_drop),
    )


def surface_analysis(violation: Violation) -> ViolationAnalysis:
    """Listing for violations past the cap or whose file cannot be read."""
    complexity = assess_fix_complexity(violation.kind, None)
    ai_fixable = assess_fixability(violation.kind, complexity)
    return ViolationAnalysis(
        violation=violation,
        fix_complexity=complexity,
        confidence=BASE_CONFIDENCE,
        deep_analyzed=False,
        ai_fixable=ai_fixable,
        fix_recommendation=fix_recommendation(violation.kind, ai_fixable),
    )


class SemanticAnalyzer:
    """
    Runs deep analysis over a violation list.

    Usage:
        analyzer = SemanticAnalyzer(root)
        analyses, errors = analyzer.analyze(violations)
    """

    def __init__(
        self,
        root: str | Path | None = None,
        sources: Mapping[str, str] | None = None,
        cap: int | None = None,
    ) -> None:
        self.root = Path(root) if root is not None else None
        self.sources = dict(sources or {})
        self.cap = settings.deep_analysis_cap if cap is None else cap
        self._views: dict[str, FileView | None] = {}
        self.errors: list[str] = []

    @property
    def contents(self) -> dict[str, str]:
        """Contents of every file read so far, for pattern detection."""
        return {path: view.content for path, view in self._views.items() if view is not None}

    def _view(self, path: str) -> FileView | None:
        if path in self._views:
            return self._views[path]
        content = self.sources.get(path)
        if content is None and self.root is not None:
            try:
                content = (self.root / path).read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Cannot read {path} for analysis: {e}")
                self.errors.append(f"io: {path}: {e}")
        view = FileView.from_content(path, content) if content is not None else None
        self._views[path] = view
        return view

    def analyze(self, violations: list[Violation]) -> tuple[list[ViolationAnalysis], list[str]]:
        analyses: list[ViolationAnalysis] = []
        for index, violation in enumerate(violations):
            if index >= self.cap:
                analyses.append(surface_analysis(violation))
                continue
            view = self._view(violation.file)
            if view is None:
                analyses.append(surface_analysis(violation))
                continue
            try:
                analyses.append(analyze_violation(violation, view))
            except Exception as e:
                logger.warning(f"Analysis failed for {violation.violation_id}: {e}")
                self.errors.append(f"analysis: {violation.violation_id}: {type(e).__name__}: {e}")
                analyses.append(surface_analysis(violation))

        deep = sum(1 for a in analyses if a.deep_analyzed)
        logger.info(f"Analyzed {len(analyses)} violations ({deep} deep, cap {self.cap})")
        return analyses, list(self.errors)
