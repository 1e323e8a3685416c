"""
Conservative Fixer — Layer 1 auto-fix for unsafe extraction and plain discards.

A violation is rewritten only when every safety predicate holds:
  (a) the file is production code (not a test, bench, example or generated file)
  (d) the extraction call sits in code, not inside a string or comment
  (c) the line is not inside a trait implementation, whose signatures are fixed
  (b) the enclosing function's return type is a Result or Option wrapper
  (e) the call is not inside a closure, async block or a macro call holding
      either, where `?` would bind to the inner scope instead of the function

The rewrite replaces `.unwrap()` / `.expect(msg)` with `?`, or with
`.context(msg)?` when the file imports `anyhow::Context` and the function
returns a Result.

A `let _ = value;` line whose value has no call, method, macro, index or
block is removed outright.
Anything else is deferred, never guessed.

Files are processed whole: read, transform every eligible line, re-parse,
re-scan, then write through a temp file and `os.replace`. A rewrite that
fails validation is discarded and all of its lines are skipped; a failed
write leaves the original file in place.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path

from rustguard.core.complexity import return_shape
from rustguard.core.rule_engine import RuleEngine
from rustguard.core.rules.underscore_bandaid import is_discard_let
from rustguard.core.source_file import SourceFile
from rustguard.models.analysis_models import ValueShape
from rustguard.models.fix_models import FixOutcome, FixStatus, FixSummary, SkipReason
from rustguard.models.rule_models import Violation, ViolationKind
from rustguard.engine.rescan import rescan_rewritten_source

logger = logging.getLogger("rustguard.engine.fixer")

_UNWRAP = ".unwrap()"
_EXPECT = ".expect("
_CONTEXT_IMPORT = re.compile(r"\banyhow::(?:Context\b|\{[^}]*\bContext\b|prelude::\*|\*)")
# A single path or literal: no call, method, operator, macro, index or block.
_PLAIN_VALUE = re.compile(r"^[\s\w:&\"']*\w[\s\w:&\"']*;\s*$")

FIXABLE_KINDS = (ViolationKind.UNWRAP_IN_PRODUCTION, ViolationKind.UNDERSCORE_BANDAID)

# Single writer per file: one lock per resolved path, shared process-wide.
_file_locks: dict[str, threading.Lock] = defaultdict(threading.Lock)
_file_locks_guard = threading.Lock()


def _lock_for(path: Path) -> threading.Lock:
    with _file_locks_guard:
        return _file_locks[str(path.resolve())]


@dataclass
class LineRewrite:
    """Result of rewriting one line's code-level extraction calls."""

    text: str
    replaced: int = 0
    unrewritable: int = 0


@dataclass
class FileFixResult:
    """Outcome of fixing one file's content in memory."""

    file_path: str
    original: str
    rewritten: str
    outcomes: list[FixOutcome] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.rewritten != self.original


def _code_positions(raw: str, masked: str, token: str) -> tuple[list[int], int]:
    """Offsets where *token* appears in code, and how many raw hits were in literals."""
    in_code: list[int] = []
    in_literal = 0
    start = raw.find(token)
    while start != -1:
        if masked[start:start + len(token)] == token:
            in_code.append(start)
        else:
            in_literal += 1
        start = raw.find(token, start + 1)
    return in_code, in_literal


def _matching_paren(masked: str, open_idx: int) -> int | None:
    depth = 0
    for k in range(open_idx, len(masked)):
        if masked[k] == "(":
            depth += 1
        elif masked[k] == ")":
            depth -= 1
            if depth == 0:
                return k
    return None


def rewrite_line(raw: str, masked: str, use_context: bool) -> LineRewrite:
    """
    Replace every code-level `.unwrap()` / `.expect(..)` on one line.

    `.expect(` calls whose closing paren is not on the same line cannot be
    rewritten and are counted in `unrewritable`.
    """
    edits: list[tuple[int, int, str]] = []
    unrewritable = 0

    for pos in _code_positions(raw, masked, _UNWRAP)[0]:
        edits.append((pos, pos + len(_UNWRAP), "?"))

    for pos in _code_positions(raw, masked, _EXPECT)[0]:
        close = _matching_paren(masked, pos + len(_EXPECT) - 1)
        if close is None:
            unrewritable += 1
            continue
        message = raw[pos + len(_EXPECT):close].strip()
        replacement = f".context({message})?" if use_context and message else "?"
        edits.append((pos, close + 1, replacement))

    text = raw
    for start, end, replacement in sorted(edits, reverse=True):
        text = text[:start] + replacement + text[end:]
    return LineRewrite(text=text, replaced=len(edits), unrewritable=unrewritable)


def has_context_import(imports: list[str]) -> bool:
    return any(_CONTEXT_IMPORT.search(imp) for imp in imports)


def is_plain_discard(masked_line: str) -> bool:
    """`let _ = value;` where dropping the value cannot run any code."""
    if not is_discard_let(masked_line):
        return False
    return _PLAIN_VALUE.match(masked_line.split("=", 1)[1]) is not None


def check_discard_preconditions(source: SourceFile, violation: Violation) -> SkipReason | None:
    """None means the `let _ =` line at the violation may be removed."""
    if source.is_test_file:
        return SkipReason.TEST_FILE
    idx = violation.line - 1
    if not 0 <= idx < len(source.masked) or not is_plain_discard(source.masked[idx]):
        return SkipReason.NO_CONSERVATIVE_REWRITE
    if not source.module.parsed:
        return SkipReason.UNPARSEABLE
    if source.module.enclosing_function(violation.line) is None:
        return SkipReason.NO_ENCLOSING_FUNCTION
    return None


def check_preconditions(source: SourceFile, violation: Violation) -> SkipReason | None:
    """Evaluate the safety predicates in order; None means the line may be rewritten."""
    if violation.kind == ViolationKind.UNDERSCORE_BANDAID:
        return check_discard_preconditions(source, violation)
    if violation.kind != ViolationKind.UNWRAP_IN_PRODUCTION:
        return SkipReason.NO_CONSERVATIVE_REWRITE
    if source.is_test_file:
        return SkipReason.TEST_FILE

    idx = violation.line - 1
    if not 0 <= idx < len(source.lines):
        return SkipReason.NOT_REWRITABLE
    raw, masked = source.lines[idx], source.masked[idx]
    in_code = [
        pos for token in (_UNWRAP, _EXPECT) for pos in _code_positions(raw, masked, token)[0]
    ]
    if not in_code:
        return SkipReason.INSIDE_LITERAL

    module = source.module
    if not module.parsed:
        return SkipReason.UNPARSEABLE
    fn = module.enclosing_function(violation.line)
    if fn is None:
        return SkipReason.NO_ENCLOSING_FUNCTION
    if fn.in_trait_impl or module.enclosing_trait_impl(violation.line) is not None:
        return SkipReason.TRAIT_IMPL
    if return_shape(fn.return_type) == ValueShape.UNKNOWN:
        return SkipReason.NO_WRAPPER_RETURN
    if any(fn.contains(block.start_line) and block.contains(violation.line) for block in module.closures):
        return SkipReason.INSIDE_CLOSURE
    return None


def _skipped(violation: Violation, reason: SkipReason, line: str = "") -> FixOutcome:
    return FixOutcome(violation=violation, status=FixStatus.SKIPPED, reason=reason, original_line=line)


def _atomic_write(path: Path, content: str) -> None:
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class ConservativeFixer:
    """
    Applies only provably-local rewrites and defers everything else.

    Usage:
        fixer = ConservativeFixer()
        summary = fixer.fix_files(root, scan.violations)
        deferred = summary.deferred
    """

    def __init__(self, rule_engine: RuleEngine | None = None, dry_run: bool = False) -> None:
        self.rule_engine = rule_engine or RuleEngine(workers=1)
        self.dry_run = dry_run

    def fix_source(self, file_path: str, content: str, violations: list[Violation]) -> FileFixResult:
        """
        Fix one file's content in memory. Pure: never touches disk.

        Args:
            file_path: Path label, used for test-file detection and logging
            content: Full file content
            violations: Violations reported for this file

        Returns:
            FileFixResult with the rewritten content and one outcome per violation
        """
        source = SourceFile(path=file_path, content=content)
        result = FileFixResult(file_path=file_path, original=content, rewritten=content)

        # ── Step 1: Evaluate safety predicates per violation ──
        use_context = has_context_import(source.module.imports)
        raw_lines = content.split("\n")
        pending: dict[int, list[Violation]] = {}
        rewrites: dict[int, LineRewrite] = {}
        removals: set[int] = set()

        for violation in violations:
            line_text = source.lines[violation.line - 1] if violation.line <= len(source.lines) else ""
            reason = check_preconditions(source, violation)
            if reason is not None:
                logger.info(f"Skip {violation.violation_id}: {reason.value}")
                result.outcomes.append(_skipped(violation, reason, line_text))
                continue

            idx = violation.line - 1
            if violation.kind == ViolationKind.UNDERSCORE_BANDAID:
                removals.add(idx)
                pending.setdefault(idx, []).append(violation)
                continue
            if idx not in rewrites:
                fn = source.module.enclosing_function(violation.line)
                context_ok = use_context and fn is not None and return_shape(fn.return_type) == ValueShape.RESULT
                rewrite = rewrite_line(raw_lines[idx].rstrip("\r"), source.masked[idx], context_ok)
                if raw_lines[idx].endswith("\r"):
                    rewrite.text += "\r"
                rewrites[idx] = rewrite
            if rewrites[idx].unrewritable or not rewrites[idx].replaced:
                result.outcomes.append(_skipped(violation, SkipReason.NOT_REWRITABLE, line_text))
                continue
            pending.setdefault(idx, []).append(violation)

        if not pending:
            return result

        # ── Step 2: Apply all line rewrites ──
        # Removed lines are blanked first so line numbers stay comparable
        # during the re-scan, then dropped once the rewrite is accepted.
        new_lines = list(raw_lines)
        for idx in pending:
            new_lines[idx] = "" if idx in removals else rewrites[idx].text
        rewritten = "\n".join(new_lines)

        # ── Step 3: Re-scan and accept or reject as a whole ──
        verdict = rescan_rewritten_source(
            original_source=content,
            rewritten_source=rewritten,
            file_path=file_path,
            rewritten_lines=[idx + 1 for idx in pending],
            original_violations=self.rule_engine.check_source(file_path, content).violations,
            rule_engine=self.rule_engine,
        )
        for idx, line_violations in sorted(pending.items()):
            for violation in line_violations:
                if verdict.passed:
                    result.outcomes.append(
                        FixOutcome(
                            violation=violation,
                            status=FixStatus.FIXED,
                            original_line=raw_lines[idx].rstrip("\r"),
                            rewritten_line=new_lines[idx].rstrip("\r"),
                        )
                    )
                else:
                    result.outcomes.append(
                        _skipped(violation, SkipReason.VALIDATION_FAILED, raw_lines[idx].rstrip("\r"))
                    )
        if verdict.passed:
            result.rewritten = "\n".join(line for i, line in enumerate(new_lines) if i not in removals)
        result.outcomes.sort(key=lambda o: (o.violation.line, o.violation.kind.value))
        return result

    def fix_file(self, root: Path, rel_path: str, violations: list[Violation]) -> FileFixResult:
        """Read, fix and atomically write one file under its single-writer lock."""
        path = root / rel_path
        with _lock_for(path):
            try:
                content = path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Cannot read {rel_path} for fixing: {e}")
                outcomes = [_skipped(v, SkipReason.IO_ERROR) for v in violations]
                return FileFixResult(rel_path, "", "", outcomes)

            result = self.fix_source(rel_path, content, violations)
            if not result.changed or self.dry_run:
                return result

            try:
                _atomic_write(path, result.rewritten)
            except OSError as e:
                # os.replace never ran, so the file on disk is still the original.
                logger.warning(f"Cannot write {rel_path}: {e}")
                result.rewritten = content
                result.outcomes = [
                    _skipped(o.violation, SkipReason.IO_ERROR, o.original_line)
                    if o.status == FixStatus.FIXED
                    else o
                    for o in result.outcomes
                ]
            return result

    def fix_files(self, root: str | Path, violations: list[Violation]) -> FixSummary:
        """
        Fix every eligible violation under *root*, one file at a time.

        Returns:
            FixSummary; `summary.deferred` lists what the fixer left alone,
            in the original violation order.
        """
        root_path = Path(root)
        by_file: dict[str, list[Violation]] = {}
        for violation in violations:
            by_file.setdefault(violation.file, []).append(violation)

        summary = FixSummary(dry_run=self.dry_run)
        outcomes: dict[str, FixOutcome] = {}
        for rel_path, file_violations in by_file.items():
            fixable = [v for v in file_violations if v.kind in FIXABLE_KINDS]
            for v in file_violations:
                if v.kind not in FIXABLE_KINDS:
                    outcomes[v.violation_id] = _skipped(v, SkipReason.NO_CONSERVATIVE_REWRITE)
            if not fixable:
                continue
            result = self.fix_file(root_path, rel_path, fixable)
            for outcome in result.outcomes:
                outcomes[outcome.violation.violation_id] = outcome
            if result.changed and any(o.status == FixStatus.FIXED for o in result.outcomes):
                summary.files_modified.append(rel_path)

        for violation in violations:
            summary.record(outcomes[violation.violation_id])

        logger.info(
            f"Fixer {'dry run' if self.dry_run else 'run'}: {summary.fixed} fixed, "
            f"{summary.skipped} skipped across {len(by_file)} files"
        )
        return summary
