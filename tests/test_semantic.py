"""
Tests for Semantic Analyzer — complexity table, confidence scoring,
per-violation traces, the deep-analysis cap, and codebase patterns.
"""

import itertools

import pytest

from conftest import make_large_file
from rustguard.core.complexity import (
    assess_fix_complexity,
    assess_fixability,
    compute_confidence,
    fix_recommendation,
    return_shape,
)
from rustguard.core.patterns import (
    classify_file_style,
    detect_anti_patterns,
    detect_architectural_style,
    detect_code_patterns,
)
from rustguard.core.rule_engine import RuleEngine
from rustguard.core.semantic import (
    SemanticAnalyzer,
    extract_function_calls,
    identify_side_effects,
)
from rustguard.core.source_text import mask_source
from rustguard.core.strategies import STRATEGY_TABLE, applicable_strategies
from rustguard.models.analysis_models import (
    ArchitecturalStyle,
    CodeContext,
    ErrorHandlingStyle,
    ErrorPattern,
    FixComplexity,
    ValueShape,
)
from rustguard.models.rule_models import Severity, Violation, ViolationKind


def _analyze(path, content, cap=None):
    violations = RuleEngine(workers=1).check_source(path, content).violations
    analyses, errors = SemanticAnalyzer(sources={path: content}, cap=cap).analyze(violations)
    return {a.violation.line: a for a in analyses}, errors


# ── Complexity and confidence ──


def test_complexity_is_totally_ordered():
    levels = list(FixComplexity)
    assert levels == sorted(levels)
    assert FixComplexity.TRIVIAL < FixComplexity.SIMPLE < FixComplexity.ARCHITECTURAL
    assert max(levels) == FixComplexity.ARCHITECTURAL


@pytest.mark.parametrize(
    "return_type,shape",
    [
        ("Result<()>", ValueShape.RESULT),
        ("io::Result<String>", ValueShape.RESULT),
        ("std::fmt::Result", ValueShape.RESULT),
        ("Option<&String>", ValueShape.OPTION),
        ("Vec<Option<u8>>", ValueShape.UNKNOWN),
        ("&Option<u8>", ValueShape.UNKNOWN),
        (None, ValueShape.UNKNOWN),
    ],
)
def test_return_shape(return_type, shape):
    assert return_shape(return_type) == shape


@pytest.mark.parametrize("kind", [ViolationKind.FILE_TOO_LARGE, ViolationKind.FUNCTION_TOO_LARGE])
@pytest.mark.parametrize("in_trait_impl", [True, False])
@pytest.mark.parametrize("return_type", [None, "Result<()>", "Option<u8>", "usize"])
def test_size_violations_never_locally_fixable(kind, in_trait_impl, return_type):
    context = CodeContext(function_name="f", return_type=return_type, in_trait_impl=in_trait_impl)
    assert assess_fix_complexity(kind, context) in (FixComplexity.COMPLEX, FixComplexity.ARCHITECTURAL)
    assert assess_fix_complexity(kind, None) in (FixComplexity.COMPLEX, FixComplexity.ARCHITECTURAL)


def test_unwrap_complexity_table():
    unwrap = ViolationKind.UNWRAP_IN_PRODUCTION
    assert assess_fix_complexity(unwrap, CodeContext(return_type="Result<()>")) == FixComplexity.SIMPLE
    assert assess_fix_complexity(unwrap, CodeContext(return_type="u8")) == FixComplexity.MODERATE
    in_impl = CodeContext(return_type="std::fmt::Result", in_trait_impl=True)
    assert assess_fix_complexity(unwrap, in_impl) == FixComplexity.COMPLEX
    assert assess_fix_complexity(unwrap, CodeContext(in_trait_impl=True)) == FixComplexity.ARCHITECTURAL


def test_placeholder_complexity_table():
    kind = ViolationKind.UNDERSCORE_BANDAID
    assert assess_fix_complexity(kind, CodeContext(), intentional_drop=True) == FixComplexity.TRIVIAL
    assert assess_fix_complexity(kind, CodeContext()) == FixComplexity.MODERATE
    assert assess_fix_complexity(kind, CodeContext(in_trait_impl=True)) == FixComplexity.ARCHITECTURAL


def _score(kind, flags):
    fn, ret, calls, style = flags
    return compute_confidence(
        kind,
        function_known=fn,
        return_type_known=ret,
        calls_traced=calls,
        error_style=ErrorHandlingStyle.ANYHOW if style else ErrorHandlingStyle.UNKNOWN,
    )


@pytest.mark.parametrize("kind", list(ViolationKind))
def test_confidence_monotonic(kind):
    combos = list(itertools.product([False, True], repeat=4))
    for low, high in itertools.product(combos, combos):
        if all(h or not l for l, h in zip(low, high)):
            assert _score(kind, low) <= _score(kind, high)
    for flags in combos:
        assert 0.0 <= _score(kind, flags) <= 1.0


def test_confidence_values():
    kind = ViolationKind.UNWRAP_IN_PRODUCTION
    assert _score(kind, (False, False, False, False)) == 0.5
    assert _score(kind, (True, True, True, True)) == 1.0
    assert _score(kind, (True, False, False, False)) == 0.6
    assert compute_confidence(kind, False, False, False, ErrorHandlingStyle.STD_RESULT) == 0.65
    assert compute_confidence(kind, False, False, False, ErrorHandlingStyle.PANIC) == 0.5


def test_file_scoped_confidence_ignores_context():
    for flags in itertools.product([False, True], repeat=4):
        assert _score(ViolationKind.FILE_TOO_LARGE, flags) == 0.5


# ── Per-violation analysis ──


def test_mixed_module_analysis(mixed_rust_code):
    analyses, errors = _analyze("src/lib.rs", mixed_rust_code)
    assert errors == []
    assert analyses[14].fix_complexity == FixComplexity.SIMPLE
    assert analyses[19].fix_complexity == FixComplexity.SIMPLE
    assert analyses[28].fix_complexity == FixComplexity.MODERATE
    assert analyses[31].fix_complexity == FixComplexity.TRIVIAL
    assert analyses[37].fix_complexity == FixComplexity.COMPLEX
    assert analyses[43].fix_complexity == FixComplexity.SIMPLE
    assert analyses[43].confidence == 1.0
    assert all(a.deep_analyzed for a in analyses.values())


def test_mixed_module_fixability(mixed_rust_code):
    analyses, _ = _analyze("src/lib.rs", mixed_rust_code)
    fixable = sorted(line for line, a in analyses.items() if a.ai_fixable)
    assert fixable == [14, 19, 28, 31, 43]
    assert analyses[37].fix_recommendation is None
    assert analyses[19].fix_recommendation == "Replace .unwrap()/.expect(msg) with ? or .context(msg)?"
    assert analyses[28].fix_recommendation == "Either use the parameter or remove it from the function signature"
    assert analyses[31].fix_recommendation == "Handle the discarded value or remove the `let _ =` statement"


def test_semantic_traces(mixed_rust_code):
    analyses, _ = _analyze("src/lib.rs", mixed_rust_code)
    semantic = analyses[14].semantic_analysis
    assert semantic.expected_shape == ValueShape.OPTION
    assert semantic.actual_shape == ValueShape.OPTION
    assert semantic.function_calls == ["get"]
    assert semantic.data_flow == [
        "L14: let value = self.values.get(key).unwrap();",
        "L15: Some(value)",
    ]
    assert semantic.variable_usage == {"value": [14]}

    load = analyses[19].semantic_analysis
    assert load.control_flow == [
        "L20: for line in text.lines() {",
        "L21: if let Some((k, v)) = line.split_once('=') {",
    ]
    assert load.error_propagation_path == [
        'L19: let text = std::fs::read_to_string(path).expect("config file must exist");'
    ]


def test_dependencies_and_side_effects(mixed_rust_code):
    analyses, _ = _analyze("src/lib.rs", mixed_rust_code)
    assert analyses[14].dependencies == ["std", "anyhow", "get"]
    assert analyses[14].side_effects == []


def test_side_effect_names():
    line = 'println!("{}", x); tx.send(v).unwrap(); out.flush()'
    calls = extract_function_calls(mask_source(line))
    assert calls == ["println", "send", "flush"]
    assert identify_side_effects(calls) == ["println", "send", "flush"]


def test_trait_impl_without_wrapper_is_architectural(trait_impl_source):
    analyses, _ = _analyze("src/lib.rs", trait_impl_source)
    assert analyses[1].fix_complexity == FixComplexity.ARCHITECTURAL
    assert analyses[1].code_context.in_trait_impl


def test_oversized_file_analysis():
    analyses, _ = _analyze("src/big.rs", make_large_file(350))
    file_level = [a for a in analyses.values() if a.violation.kind == ViolationKind.FILE_TOO_LARGE]
    assert len(file_level) == 1
    assert file_level[0].fix_complexity == FixComplexity.ARCHITECTURAL
    assert file_level[0].confidence == 0.5


def test_unparseable_file_still_analysed(broken_rust_code):
    analyses, errors = _analyze("src/server.rs", broken_rust_code)
    analysis = analyses[5]
    assert errors == []
    assert analysis.deep_analyzed
    assert analysis.code_context.function_name is None
    assert analysis.code_context.in_trait_impl
    assert analysis.fix_complexity == FixComplexity.ARCHITECTURAL


def test_cap_limits_deep_analysis(mixed_rust_code):
    analyses, _ = _analyze("src/lib.rs", mixed_rust_code, cap=2)
    ordered = [analyses[line] for line in sorted(analyses)]
    assert [a.deep_analyzed for a in ordered] == [True, True, False, False, False, False]
    surface = ordered[-1]
    assert surface.code_context is None
    assert surface.semantic_analysis is None
    assert surface.confidence == 0.5
    assert surface.fix_complexity == FixComplexity.MODERATE


def test_unreadable_file_recorded(tmp_path):
    violation = Violation(
        kind=ViolationKind.UNWRAP_IN_PRODUCTION,
        file="src/missing.rs",
        line=3,
        message="m",
        severity=Severity.ERROR,
    )
    analyses, errors = SemanticAnalyzer(root=tmp_path).analyze([violation])
    assert not analyses[0].deep_analyzed
    assert len(errors) == 1
    assert errors[0].startswith("io: src/missing.rs")


def test_each_file_read_once(tmp_path, mixed_rust_code):
    (tmp_path / "lib.rs").write_text(mixed_rust_code)
    violations = RuleEngine().check_source("lib.rs", mixed_rust_code).violations
    analyzer = SemanticAnalyzer(root=tmp_path)
    analyzer.analyze(violations)
    assert list(analyzer.contents) == ["lib.rs"]


# ── Patterns and strategies ──


def test_code_patterns_for_mixed_module(mixed_rust_code):
    analyses, _ = _analyze("src/lib.rs", mixed_rust_code)
    patterns = detect_code_patterns(list(analyses.values()), {"src/lib.rs": mixed_rust_code})
    assert patterns.error_handling_pattern == ErrorPattern.RESULT_EVERYWHERE
    assert [p.name for p in patterns.anti_patterns] == ["Placeholder Parameters"]
    assert [p.name for p in patterns.common_patterns] == ["Factory Constructors"]
    assert patterns.architectural_style == ArchitecturalStyle.UNKNOWN


def test_excessive_unwrapping_detected():
    violations = [
        Violation(
            kind=ViolationKind.UNWRAP_IN_PRODUCTION,
            file="src/a.rs",
            line=i,
            message="m",
            severity=Severity.ERROR,
        )
        for i in range(1, 13)
    ]
    (pattern,) = detect_anti_patterns(violations)
    assert pattern.name == "Excessive Unwrapping"
    assert pattern.frequency == 12
    assert pattern.locations == [f"src/a.rs:{i}" for i in range(1, 6)]


def test_architectural_style_votes():
    modular = "\n".join(f"mod m{i};" for i in range(6))
    event = "use tokio;\nasync fn serve() {}\n"
    assert classify_file_style(modular) == ArchitecturalStyle.MODULAR
    assert classify_file_style(event) == ArchitecturalStyle.EVENT_DRIVEN
    assert detect_architectural_style({"a.rs": modular, "b.rs": modular, "c.rs": event}) == ArchitecturalStyle.MODULAR
    assert detect_architectural_style({"a.rs": modular, "b.rs": event}) == ArchitecturalStyle.MIXED
    assert detect_architectural_style({}) == ArchitecturalStyle.UNKNOWN


def test_strategy_table_covers_every_kind():
    assert set(STRATEGY_TABLE) == set(ViolationKind)
    for kind, strategy in STRATEGY_TABLE.items():
        assert strategy.violation_kind == kind
        assert strategy.steps
        assert 0.0 <= strategy.confidence <= 1.0


def test_applicable_strategies_follow_present_kinds(mixed_rust_code):
    analyses, _ = _analyze("src/lib.rs", mixed_rust_code)
    kinds = [s.violation_kind for s in applicable_strategies(list(analyses.values()))]
    assert set(kinds) == {ViolationKind.UNWRAP_IN_PRODUCTION, ViolationKind.UNDERSCORE_BANDAID}
    assert len(kinds) == 2


@pytest.mark.parametrize(
    "kind,complexity,expected",
    [
        (ViolationKind.UNWRAP_IN_PRODUCTION, FixComplexity.SIMPLE, True),
        (ViolationKind.UNWRAP_IN_PRODUCTION, FixComplexity.MODERATE, False),
        (ViolationKind.UNWRAP_IN_PRODUCTION, FixComplexity.COMPLEX, False),
        (ViolationKind.LINE_TOO_LONG, FixComplexity.TRIVIAL, True),
        (ViolationKind.UNDERSCORE_BANDAID, FixComplexity.MODERATE, True),
        (ViolationKind.UNDERSCORE_BANDAID, FixComplexity.ARCHITECTURAL, False),
        (ViolationKind.FUNCTION_TOO_LARGE, FixComplexity.COMPLEX, False),
        (ViolationKind.FILE_TOO_LARGE, FixComplexity.ARCHITECTURAL, False),
    ],
)
def test_fixability_table(kind, complexity, expected):
    assert assess_fixability(kind, complexity) is expected


def test_recommendation_only_when_fixable():
    assert fix_recommendation(ViolationKind.LINE_TOO_LONG, ai_fixable=False) is None
    assert fix_recommendation(ViolationKind.FUNCTION_TOO_LARGE, ai_fixable=True) is None
    assert (
        fix_recommendation(ViolationKind.UNWRAP_IN_PRODUCTION, ai_fixable=True)
        == "Replace .unwrap()/.expect() with the ? operator"
    )


def test_surface_unwrap_not_fixable(mixed_rust_code):
    analyses, _ = _analyze("src/lib.rs", mixed_rust_code, cap=0)
    unwrap = analyses[14]
    assert not unwrap.deep_analyzed
    assert not unwrap.ai_fixable
    assert unwrap.fix_recommendation is None
