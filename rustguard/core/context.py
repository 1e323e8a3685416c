"""
Context Extractor — Recovers the structural surroundings of a violation.

`extract_code_context(violation, file_content)` never fails:
  - the line window and imports always come from plain text
  - function facts come from the syntax tree, resolved to the innermost
    function enclosing the violation line by interval lookup
  - when the tree has errors, every AST-derived field is left empty and the
    trait-impl flag falls back to a brace-aware backward text scan
"""

from __future__ import annotations

import logging
import re

from rustguard.config import settings
from rustguard.core.ast_parser import is_trait_impl_header, parse_rust
from rustguard.core.source_text import collapse_whitespace, find_block_end, mask_source, split_lines
from rustguard.models.analysis_models import CodeContext, ErrorHandlingStyle
from rustguard.models.ast_models import ModuleAST
from rustguard.models.rule_models import Violation

logger = logging.getLogger("rustguard.core.context")

_PANIC_MARKERS = re.compile(r"\bpanic!|\.unwrap\(\)")


def detect_error_handling_style(content: str, imports: list[str]) -> ErrorHandlingStyle:
    """Classify the file's error-handling idiom, strongest signal first."""
    if any("anyhow" in imp or "eyre" in imp for imp in imports):
        return ErrorHandlingStyle.ANYHOW
    if any("thiserror" in imp for imp in imports):
        return ErrorHandlingStyle.THISERROR_CUSTOM
    if "Result<" in content:
        return ErrorHandlingStyle.STD_RESULT
    if "Option<" in content:
        return ErrorHandlingStyle.OPTION_BASED
    if _PANIC_MARKERS.search(content):
        return ErrorHandlingStyle.PANIC
    return ErrorHandlingStyle.UNKNOWN


def line_window(lines: list[str], line: int, radius: int | None = None) -> tuple[list[str], int]:
    """Lines within *radius* of *line* (1-indexed) and the window's first line number."""
    radius = settings.context_window_radius if radius is None else radius
    if not lines:
        return [], 1
    idx = min(max(line, 1), len(lines)) - 1
    start = max(0, idx - radius)
    end = min(len(lines), idx + radius + 1)
    return lines[start:end], start + 1


def find_trait_impl_by_text(lines: list[str], masked: list[str], line: int) -> str | None:
    """Nearest `impl ... for ...` header above *line* whose block is still open there."""
    for idx in range(min(line, len(masked)) - 1, -1, -1):
        if "impl" not in masked[idx]:
            continue
        header = collapse_whitespace(lines[idx].split("{", 1)[0])
        if not is_trait_impl_header(header):
            continue
        closed = find_block_end(masked, idx, masked[idx].find("impl"))
        if closed is None or closed[0] + 1 >= line:
            return header
    return None


def extract_code_context(
    violation: Violation,
    file_content: str,
    module: ModuleAST | None = None,
) -> CodeContext:
    """
    Build the CodeContext for one violation.

    Args:
        violation: The violation to locate.
        file_content: Full text of the violation's file.
        module: Pre-parsed ModuleAST for the same content, to share one parse
            across all violations of a file.
    """
    lines = split_lines(file_content)
    masked = split_lines(mask_source(file_content))
    module = module or parse_rust(file_content, violation.file)

    window, window_start = line_window(lines, violation.line)
    imports = list(module.imports)
    context = CodeContext(
        imports=imports,
        line_window=window,
        window_start_line=window_start,
        error_handling_style=detect_error_handling_style(file_content, imports),
    )

    if not module.parsed:
        context.trait_impl = find_trait_impl_by_text(lines, masked, violation.line)
        context.in_trait_impl = context.trait_impl is not None
        logger.debug(f"{violation.file}: text-only context for line {violation.line}")
        return context

    fn = module.enclosing_function(violation.line)
    if fn is not None:
        context.function_name = fn.name
        context.function_signature = fn.signature
        context.return_type = fn.return_type
        context.is_async = fn.is_async
        context.is_generic = fn.is_generic
        context.in_trait_impl = fn.in_trait_impl
        context.trait_impl = fn.trait_impl
    else:
        block = module.enclosing_trait_impl(violation.line)
        context.in_trait_impl = block is not None
        context.trait_impl = block.header if block is not None else None

    return context
