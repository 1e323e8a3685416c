"""
AST Data Models — Structured representation of parsed Rust source.

Function spans form an interval index so that any line can be resolved to
the innermost function that textually encloses it.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class Parameter(BaseModel):
    name: str
    line: int


class FunctionSpan(BaseModel):
    """A function item with its line span and signature facts."""

    name: str
    start_line: int
    end_line: int
    signature: str = Field(default="", description="Header text up to the body, whitespace-collapsed")
    return_type: str | None = Field(default=None, description="Text after '->', if declared")
    is_async: bool = False
    is_generic: bool = False
    in_trait_impl: bool = False
    trait_impl: str | None = Field(
        default=None, description="Header of the enclosing 'impl Trait for Type' block"
    )
    parameters: list[Parameter] = Field(default_factory=list)

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    def contains(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line


class BlockSpan(BaseModel):
    """A line span for a closure, async block or impl block."""

    kind: str
    start_line: int
    end_line: int
    header: str = ""

    def contains(self, line: int) -> bool:
        return self.start_line <= line <= self.end_line


class ModuleAST(BaseModel):
    """Complete structural facts for one Rust source file."""

    file_path: str
    total_lines: int = 0
    functions: list[FunctionSpan] = Field(default_factory=list)
    closures: list[BlockSpan] = Field(default_factory=list)
    trait_impls: list[BlockSpan] = Field(default_factory=list)
    imports: list[str] = Field(default_factory=list)
    parsed: bool = Field(
        default=True, description="False when the syntax tree had errors and the brace scanner was used"
    )
    parse_errors: list[str] = Field(default_factory=list)

    def enclosing_function(self, line: int) -> FunctionSpan | None:
        """Innermost function whose span contains *line*."""
        best: FunctionSpan | None = None
        for fn in self.functions:
            if fn.contains(line) and (best is None or fn.start_line >= best.start_line):
                best = fn
        return best

    def in_closure(self, line: int) -> bool:
        return any(block.contains(line) for block in self.closures)

    def enclosing_trait_impl(self, line: int) -> BlockSpan | None:
        best: BlockSpan | None = None
        for block in self.trait_impls:
            if block.contains(line) and (best is None or block.start_line >= best.start_line):
                best = block
        return best
