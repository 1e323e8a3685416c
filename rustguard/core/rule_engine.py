"""
Rule Engine — Orchestrates all deterministic rules.

Runs every registered rule against every eligible Rust file under a root,
or against in-memory sources. Rules are pure functions of one SourceFile:
no network, no randomness, no shared state. Files are evaluated on a thread
pool and merged back in sorted path order, so two scans of the same input
return the same violations in the same order.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Mapping

from rustguard.config import settings
from rustguard.core.errors import NoReadableFilesError
from rustguard.core.file_scanner import discover_rust_files, read_source
from rustguard.core.source_file import SourceFile
from rustguard.models.rule_models import (
    IssueCategory,
    ScanIssue,
    ScanResult,
    Violation,
    ViolationKind,
    kind_rank,
)

# Import all rule modules
from rustguard.core.rules import (
    file_too_large,
    function_too_large,
    line_too_long,
    underscore_bandaid,
    unwrap_in_production,
)

logger = logging.getLogger("rustguard.core.rule_engine")

# Type for a rule check function
RuleCheckFn = Callable[[SourceFile], list[Violation]]

# Registry of all deterministic rules, one per violation kind
RULE_REGISTRY: dict[ViolationKind, RuleCheckFn] = {
    file_too_large.KIND: file_too_large.check,
    function_too_large.KIND: function_too_large.check,
    line_too_long.KIND: line_too_long.check,
    unwrap_in_production.KIND: unwrap_in_production.check,
    underscore_bandaid.KIND: underscore_bandaid.check,
}

_missing = set(ViolationKind) - set(RULE_REGISTRY)
if _missing:
    raise RuntimeError(f"No rule registered for: {sorted(k.value for k in _missing)}")


def _sort_key(violation: Violation) -> tuple[int, int]:
    return violation.line, kind_rank(violation.kind)


class RuleEngine:
    """
    Deterministic rule engine.

    Usage:
        engine = RuleEngine()
        result = engine.scan("path/to/crate")
    """

    def __init__(
        self,
        rules: dict[ViolationKind, RuleCheckFn] | None = None,
        workers: int | None = None,
    ) -> None:
        self.rules = rules or RULE_REGISTRY
        self.workers = workers or settings.scan_workers

    def check_file(self, source: SourceFile) -> tuple[list[Violation], list[ScanIssue]]:
        """Run every rule against one file. A failing rule yields no violations."""
        violations: list[Violation] = []
        issues: list[ScanIssue] = []

        if not source.module.parsed:
            detail = "; ".join(source.module.parse_errors)
            issues.append(
                ScanIssue(
                    category=IssueCategory.PARSE,
                    file=source.path,
                    message=f"Syntax tree has errors, used brace scanner ({detail})",
                )
            )

        for kind, check_fn in self.rules.items():
            try:
                violations.extend(check_fn(source))
            except Exception as e:
                logger.warning(f"Rule '{kind.value}' failed on {source.path}: {e}")
                issues.append(
                    ScanIssue(
                        category=IssueCategory.RULE,
                        file=source.path,
                        message=f"Rule '{kind.value}' failed: {type(e).__name__}: {e}",
                    )
                )

        violations.sort(key=_sort_key)
        return violations, issues

    def check_source(self, file_path: str, content: str) -> ScanResult:
        """Run all rules against a single in-memory source."""
        return self.check_sources({file_path: content})

    def check_sources(self, sources: Mapping[str, str], root: str = "") -> ScanResult:
        """
        Run all rules against in-memory sources.

        Args:
            sources: Mapping of relative file path -> file content.
            root: Label recorded on the result.

        Returns:
            ScanResult with violations ordered by path, then line, then kind.
        """
        start = time.monotonic()
        ordered = sorted(sources.items())
        files = [SourceFile(path=path, content=content) for path, content in ordered]

        with ThreadPoolExecutor(max_workers=max(1, self.workers)) as pool:
            per_file = list(pool.map(self.check_file, files))

        violations: list[Violation] = []
        issues: list[ScanIssue] = []
        for file_violations, file_issues in per_file:
            violations.extend(file_violations)
            issues.extend(file_issues)

        elapsed = (time.monotonic() - start) * 1000
        return ScanResult(
            root=root,
            violations=violations,
            files_scanned=len(files),
            issues=issues,
            rules_executed=list(self.rules),
            duration_ms=round(elapsed, 2),
        )

    def scan(self, root: str | Path) -> ScanResult:
        """
        Scan every eligible Rust file under *root*.

        Raises:
            InvalidRootError: root is missing or not a directory.
            NoReadableFilesError: no `*.rs` file could be read.
        """
        root_path = Path(root)
        paths = discover_rust_files(root_path)

        sources: dict[str, str] = {}
        read_issues: list[ScanIssue] = []
        for path in paths:
            rel = path.relative_to(root_path).as_posix()
            content, issue = read_source(path, rel)
            if issue is not None:
                read_issues.append(issue)
                continue
            sources[rel] = content

        if not sources:
            raise NoReadableFilesError(
                f"No readable Rust source files under {root_path} "
                f"({len(paths)} found, {len(read_issues)} unreadable)"
            )

        result = self.check_sources(sources, root=str(root_path))
        result.issues = read_issues + result.issues
        logger.info(
            f"Scanned {result.files_scanned} files under {root_path}: "
            f"{result.total} violations, {len(result.issues)} issues"
        )
        return result

    def run_single_rule(self, kind: ViolationKind, source: SourceFile) -> list[Violation]:
        """Run a single rule against a single file."""
        if kind not in self.rules:
            raise ValueError(f"Unknown rule: {kind}")
        return self.rules[kind](source)
