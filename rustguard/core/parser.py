"""
RustGuard — Rust source parser using tree-sitter.
"""

from __future__ import annotations

import tree_sitter_rust as tsrust
from tree_sitter import Language, Parser


RUST_LANGUAGE = Language(tsrust.language())


class RustParser:
    """Thin wrapper around tree-sitter for Rust source code.

    tree-sitter parsers are not shared across threads; create one per worker.
    """

    def __init__(self) -> None:
        self._parser = Parser(RUST_LANGUAGE)

    def parse(self, code: str) -> tuple:
        """Parse Rust source and return (tree, source_bytes).

        Raises ValueError if the tree contains syntax errors.
        """
        tree, source_bytes = self.parse_lenient(code)
        if tree.root_node.has_error:
            raise ValueError("Failed to parse Rust source code")
        return tree, source_bytes

    def parse_lenient(self, code: str) -> tuple:
        """Parse without rejecting error nodes. Used to locate syntax errors."""
        source_bytes = code.encode("utf-8")
        return self._parser.parse(source_bytes), source_bytes


def node_text(node, source: bytes) -> str:
    """Extract the source text for a tree-sitter node."""
    return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")
