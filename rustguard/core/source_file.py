"""
Source File — one Rust file prepared for rule evaluation.

Bundles the raw lines, the literal-masked lines and the lazily built
ModuleAST so that every rule and the fixer work from the same view of a
file without re-reading or re-parsing it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import cached_property

from rustguard.core.ast_parser import parse_rust
from rustguard.core.source_text import find_block_end, mask_source, split_lines
from rustguard.models.ast_models import ModuleAST

_TEST_ATTRIBUTE = re.compile(
    r"#\[\s*(?:cfg\s*\(\s*test\s*\)|(?:tokio::|async_std::)?test\b[^\]]*|bench|rstest)\s*\]"
)
_UNWRAP_ALLOW = re.compile(r"#!\[\s*allow\s*\([^)]*clippy::unwrap_used\b")
_EXPECT_ALLOW = re.compile(r"#!\[\s*allow\s*\([^)]*clippy::expect_used\b")
_GENERATED_MARKERS = ("@generated", "// Code generated", "DO NOT EDIT")
_NON_PRODUCTION_DIRS = ("tests", "benches", "examples", "generated")


def is_test_path(path: str) -> bool:
    """Test, bench, example and build-script files are not production code."""
    normalized = path.replace("\\", "/")
    parts = normalized.split("/")
    name = parts[-1]
    if any(part in _NON_PRODUCTION_DIRS for part in parts[:-1]):
        return True
    return (
        name.endswith("_test.rs")
        or name.endswith("_tests.rs")
        or name == "tests.rs"
        or name == "build.rs"
        or name.endswith(".pb.rs")
    )


@dataclass
class SourceFile:
    path: str
    content: str
    lines: list[str] = field(init=False)
    masked: list[str] = field(init=False)

    def __post_init__(self) -> None:
        self.lines = split_lines(self.content)
        self.masked = split_lines(mask_source(self.content))

    @cached_property
    def module(self) -> ModuleAST:
        return parse_rust(self.content, self.path)

    @cached_property
    def is_generated(self) -> bool:
        head = "\n".join(self.lines[:5])
        return any(marker in head for marker in _GENERATED_MARKERS)

    @cached_property
    def is_test_file(self) -> bool:
        return is_test_path(self.path) or self.is_generated

    @cached_property
    def allows_unwrap(self) -> bool:
        """File-level `#![allow(clippy::unwrap_used)]`."""
        return any(_UNWRAP_ALLOW.search(line) for line in self.masked)

    @cached_property
    def allows_expect(self) -> bool:
        """File-level `#![allow(clippy::expect_used)]`."""
        return any(_EXPECT_ALLOW.search(line) for line in self.masked)

    @cached_property
    def test_regions(self) -> list[tuple[int, int]]:
        """1-indexed inclusive line spans of `#[cfg(test)]` modules and test functions."""
        regions: list[tuple[int, int]] = []
        for idx, line in enumerate(self.lines):
            attr = _TEST_ATTRIBUTE.search(line)
            if attr is None or not self.masked[idx][attr.start():attr.end()].strip():
                continue
            closed = find_block_end(self.masked, idx, attr.end())
            end = closed[0] + 1 if closed is not None else idx + 1
            regions.append((idx + 1, end))
        return regions

    def in_test_region(self, line: int) -> bool:
        return any(start <= line <= end for start, end in self.test_regions)
