"""
AST Parser — Deterministic structure extraction for Rust source.

Builds the per-file function index (name, line span, signature, return type,
trait-impl membership) plus closure and trait-impl spans and the import list.
Macro calls whose arguments contain a closure or async block are recorded as
closure spans too, since the syntax tree does not parse macro arguments.

Primary path walks a tree-sitter syntax tree. When the tree has errors the
file is still indexed by a brace scanner over literal-masked text, and the
resulting ModuleAST is marked `parsed=False` so callers that need
syntax-tree certainty can refuse to act on it.
"""

from __future__ import annotations

import logging
import re

from rustguard.core.parser import RustParser, node_text
from rustguard.core.source_text import (
    collapse_whitespace,
    find_block_end,
    mask_source,
    split_lines,
)
from rustguard.models.ast_models import BlockSpan, FunctionSpan, ModuleAST, Parameter

logger = logging.getLogger("rustguard.core.ast_parser")

_IMPORT_START = re.compile(r"^\s*(?:pub(?:\s*\([^)]*\))?\s+)?use\s+|^\s*extern\s+crate\s+")
_FN_HEADER = re.compile(
    r"^\s*(?:pub(?:\s*\([^)]*\))?\s+)?"
    r"(?:(?:const|async|unsafe|default)\s+|extern\s+\"[^\"]*\"\s+)*"
    r"fn\s+(?P<name>[A-Za-z_]\w*)"
)
_IMPL_HEADER = re.compile(r"^\s*(?:unsafe\s+)?impl\b")
_RETURN_TYPE = re.compile(r"->\s*(?P<ret>.+?)(?:\s+where\b.*)?$")
_SELF_PARAM = re.compile(r"^&?\s*(?:'\w+\s+)?(?:mut\s+)?self$")
_MACRO_CLOSURE = re.compile(r"\||\basync\b")


# ── Imports (plain text, always available) ──


def collect_imports(lines: list[str], masked: list[str] | None = None) -> list[str]:
    """Return `use` / `extern crate` statements in order, one entry per statement."""
    masked = masked if masked is not None else split_lines(mask_source("\n".join(lines)))
    imports: list[str] = []
    i = 0
    while i < len(masked):
        if _IMPORT_START.match(masked[i]):
            parts = [lines[i]]
            j = i
            while ";" not in masked[j] and j + 1 < len(masked):
                j += 1
                parts.append(lines[j])
            imports.append(collapse_whitespace(" ".join(parts)))
            i = j + 1
            continue
        i += 1
    return imports


# ── tree-sitter path ──


def _enclosing_trait_impl(node, source: bytes) -> str | None:
    parent = node.parent
    while parent is not None:
        if parent.type == "impl_item":
            if parent.child_by_field_name("trait") is None:
                return None
            return _impl_header(parent, source)
        if parent.type in ("function_item", "closure_expression"):
            return None
        parent = parent.parent
    return None


def _impl_header(impl_node, source: bytes) -> str:
    body = impl_node.child_by_field_name("body")
    end = body.start_byte if body is not None else impl_node.end_byte
    return collapse_whitespace(source[impl_node.start_byte:end].decode("utf-8", errors="replace"))


def _function_from_node(node, source: bytes) -> FunctionSpan:
    name_node = node.child_by_field_name("name")
    body = node.child_by_field_name("body")
    ret = node.child_by_field_name("return_type")
    params_node = node.child_by_field_name("parameters")

    header_end = body.start_byte if body is not None else node.end_byte
    signature = collapse_whitespace(
        source[node.start_byte:header_end].decode("utf-8", errors="replace")
    )
    is_async = any(
        child.type == "function_modifiers" and "async" in node_text(child, source)
        for child in node.children
    )

    parameters: list[Parameter] = []
    if params_node is not None:
        for child in params_node.named_children:
            if child.type != "parameter":
                continue
            pattern = child.child_by_field_name("pattern")
            if pattern is None:
                continue
            name = node_text(pattern, source).strip()
            if name.startswith("mut "):
                name = name[4:].strip()
            parameters.append(Parameter(name=name, line=pattern.start_point[0] + 1))

    trait_impl = _enclosing_trait_impl(node, source)
    return FunctionSpan(
        name=node_text(name_node, source) if name_node is not None else "<anonymous>",
        start_line=node.start_point[0] + 1,
        end_line=node.end_point[0] + 1,
        signature=signature,
        return_type=collapse_whitespace(node_text(ret, source)) if ret is not None else None,
        is_async=is_async,
        is_generic=node.child_by_field_name("type_parameters") is not None,
        in_trait_impl=trait_impl is not None,
        trait_impl=trait_impl,
        parameters=parameters,
    )


def _index_tree(tree, source: bytes, module: ModuleAST) -> None:
    stack = [tree.root_node]
    while stack:
        node = stack.pop()
        if node.type == "function_item" and node.child_by_field_name("body") is not None:
            module.functions.append(_function_from_node(node, source))
        elif node.type in ("closure_expression", "async_block"):
            module.closures.append(
                BlockSpan(
                    kind="closure" if node.type == "closure_expression" else "async_block",
                    start_line=node.start_point[0] + 1,
                    end_line=node.end_point[0] + 1,
                )
            )
        elif node.type == "macro_invocation":
            # Macro arguments stay an unparsed token tree, so any closure or
            # async block inside is only visible as `|` or `async` tokens.
            if _MACRO_CLOSURE.search(mask_source(node_text(node, source))):
                module.closures.append(
                    BlockSpan(
                        kind="macro",
                        start_line=node.start_point[0] + 1,
                        end_line=node.end_point[0] + 1,
                        header=node_text(node.child_by_field_name("macro") or node, source)[:60],
                    )
                )
        elif node.type == "impl_item" and node.child_by_field_name("trait") is not None:
            module.trait_impls.append(
                BlockSpan(
                    kind="trait_impl",
                    start_line=node.start_point[0] + 1,
                    end_line=node.end_point[0] + 1,
                    header=_impl_header(node, source),
                )
            )
        stack.extend(reversed(node.children))


def _error_locations(root, limit: int = 3) -> list[str]:
    found: list[str] = []
    stack = [root]
    while stack and len(found) < limit:
        node = stack.pop()
        if node.type == "ERROR" or node.is_missing:
            found.append(f"syntax error near line {node.start_point[0] + 1}")
            continue
        if node.has_error:
            stack.extend(reversed(node.children))
    return found


# ── Brace-scanner fallback ──


def is_trait_impl_header(header: str) -> bool:
    """True for `impl<..> Trait for Type` shapes, ignoring `for` inside generics."""
    if not _IMPL_HEADER.match(header):
        return False
    depth = 0
    flat: list[str] = []
    for ch in header:
        if ch == "<":
            depth += 1
        elif ch == ">" and depth:
            depth -= 1
        elif depth == 0:
            flat.append(ch)
    top_level = "".join(flat).split(" where ", 1)[0]
    return re.search(r"\bfor\b", top_level) is not None


def _find_open_brace(masked: list[str], line_idx: int, col: int) -> tuple[int, int] | None:
    """First `{` outside parens/brackets, or None if a top-level `;` comes first."""
    depth = 0
    for li in range(line_idx, len(masked)):
        text = masked[li]
        for ci in range(col if li == line_idx else 0, len(text)):
            ch = text[ci]
            if ch in "([":
                depth += 1
            elif ch in ")]":
                depth -= 1
            elif ch == "{" and depth <= 0:
                return li, ci
            elif ch == ";" and depth <= 0:
                return None
    return None


def _split_top_level(text: str) -> list[str]:
    parts: list[str] = []
    depth = 0
    current: list[str] = []
    prev = ""
    for ch in text:
        if ch in "(<[":
            depth += 1
        elif ch in ")]" or (ch == ">" and prev != "-"):
            depth -= 1
        prev = ch
        if ch == "," and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    if "".join(current).strip():
        parts.append("".join(current))
    return parts


def _param_bounds(signature: str, name: str) -> tuple[int, int] | None:
    """Index of the parameter list's opening and closing parens."""
    head = re.search(rf"\bfn\s+{re.escape(name)}\b", signature)
    if head is None:
        return None
    k = head.end()
    angle = 0
    while k < len(signature):
        ch = signature[k]
        if ch == "<":
            angle += 1
        elif ch == ">" and angle:
            angle -= 1
        elif ch == "(" and angle == 0:
            break
        k += 1
    open_paren = k
    depth = 0
    for k in range(open_paren, len(signature)):
        if signature[k] == "(":
            depth += 1
        elif signature[k] == ")":
            depth -= 1
            if depth == 0:
                return open_paren, k
    return None


def _return_type_from_signature(signature: str, name: str) -> str | None:
    bounds = _param_bounds(signature, name)
    if bounds is None:
        return None
    match = _RETURN_TYPE.search(signature[bounds[1] + 1:])
    return match.group("ret").strip() if match else None


def _params_from_signature(
    signature: str, name: str, lines: list[str], start_idx: int, end_idx: int
) -> list[Parameter]:
    bounds = _param_bounds(signature, name)
    if bounds is None:
        return []
    open_paren, close_paren = bounds

    params: list[Parameter] = []
    for part in _split_top_level(signature[open_paren + 1:close_paren]):
        if ":" not in part:
            continue
        param_name = part.split(":", 1)[0].strip()
        if param_name.startswith("mut "):
            param_name = param_name[4:].strip()
        if not param_name or _SELF_PARAM.match(param_name):
            continue
        line = start_idx + 1
        for li in range(start_idx, end_idx + 1):
            if re.search(rf"(?<![\w]){re.escape(param_name)}\s*:", lines[li]):
                line = li + 1
                break
        params.append(Parameter(name=param_name, line=line))
    return params


def _scan_blocks(lines: list[str], masked: list[str], module: ModuleAST) -> None:
    for idx, text in enumerate(masked):
        impl = _IMPL_HEADER.match(text)
        if impl:
            opened = _find_open_brace(masked, idx, impl.end())
            if opened is None:
                continue
            header = collapse_whitespace(
                " ".join(lines[idx:opened[0]] + [lines[opened[0]][:opened[1]]])
            )
            if not is_trait_impl_header(header):
                continue
            closed = find_block_end(masked, opened[0], opened[1])
            if closed is not None:
                module.trait_impls.append(
                    BlockSpan(kind="trait_impl", start_line=idx + 1, end_line=closed[0] + 1, header=header)
                )

    for idx, text in enumerate(masked):
        match = _FN_HEADER.match(text)
        if not match:
            continue
        opened = _find_open_brace(masked, idx, match.end())
        if opened is None:
            continue
        closed = find_block_end(masked, opened[0], opened[1])
        if closed is None:
            module.parse_errors.append(f"unbalanced braces in fn '{match.group('name')}' at line {idx + 1}")
            continue
        header_lines = lines[idx:opened[0]] + [lines[opened[0]][:opened[1]]]
        signature = collapse_whitespace(" ".join(header_lines))
        name = match.group("name")
        trait = None
        for block in module.trait_impls:
            if block.contains(idx + 1) and (trait is None or block.start_line >= trait.start_line):
                trait = block
        module.functions.append(
            FunctionSpan(
                name=name,
                start_line=idx + 1,
                end_line=closed[0] + 1,
                signature=signature,
                return_type=_return_type_from_signature(signature, name),
                is_async=re.search(r"\basync\b", text[: match.start("name")]) is not None,
                is_generic=re.search(rf"fn\s+{re.escape(name)}\s*<", signature) is not None,
                in_trait_impl=trait is not None,
                trait_impl=trait.header if trait is not None else None,
                parameters=_params_from_signature(signature, name, lines, idx, opened[0]),
            )
        )


# ── Public API ──


def parse_rust(content: str, file_path: str = "<unknown>") -> ModuleAST:
    """
    Parse Rust source into a ModuleAST.

    Never raises for malformed input: a tree with syntax errors falls back to
    the brace scanner and the problem is recorded in `parse_errors`.
    """
    lines = split_lines(content)
    masked = split_lines(mask_source(content))
    module = ModuleAST(
        file_path=file_path,
        total_lines=len(lines),
        imports=collect_imports(lines, masked),
    )

    parser = RustParser()
    try:
        tree, source = parser.parse(content)
    except ValueError:
        module.parsed = False
        tree, _ = parser.parse_lenient(content)
        module.parse_errors.extend(_error_locations(tree.root_node) or ["syntax tree has errors"])
        logger.debug(f"{file_path}: tree-sitter reported errors, using brace scanner")
        _scan_blocks(lines, masked, module)
    else:
        _index_tree(tree, source, module)

    module.functions.sort(key=lambda fn: (fn.start_line, fn.end_line))
    module.closures.sort(key=lambda block: block.start_line)
    module.trait_impls.sort(key=lambda block: block.start_line)
    return module
