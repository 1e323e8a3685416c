"""
Source Text Utilities — literal/comment masking and brace matching for Rust.

`mask_source` blanks the contents of string literals, char literals and
comments with spaces while keeping every newline, so the masked text lines
up with the original line-for-line and column-for-column. Pattern matches
run against the masked text never fire inside a literal or a comment.
"""

from __future__ import annotations

import re

_RAW_STRING_START = re.compile(r'[bc]?r(#*)"')
_CHAR_LITERAL = re.compile(
    r"'(?:\\(?:x[0-9a-fA-F]{2}|u\{[0-9a-fA-F]{1,6}\}|.)|[^\\'\n])'"
)


def split_lines(content: str) -> list[str]:
    """Physical lines without terminators. A trailing newline adds no line."""
    if not content:
        return []
    lines = content.split("\n")
    if content.endswith("\n"):
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def _is_ident_char(ch: str) -> bool:
    return ch.isalnum() or ch == "_"


def _blank(buf: list[str], start: int, end: int) -> None:
    for k in range(start, min(end, len(buf))):
        if buf[k] != "\n":
            buf[k] = " "


def mask_source(text: str) -> str:
    """Return *text* with literal contents and comments replaced by spaces.

    String delimiters stay in place; comments (including the `//` or `/*`
    markers) are blanked entirely. Nested block comments are honoured.
    """
    out = list(text)
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        prev_ident = i > 0 and _is_ident_char(text[i - 1])

        if ch == "/" and text.startswith("//", i):
            end = text.find("\n", i)
            end = n if end == -1 else end
            _blank(out, i, end)
            i = end
            continue

        if ch == "/" and text.startswith("/*", i):
            depth = 1
            j = i + 2
            while j < n and depth:
                if text.startswith("/*", j):
                    depth += 1
                    j += 2
                elif text.startswith("*/", j):
                    depth -= 1
                    j += 2
                else:
                    j += 1
            _blank(out, i, j)
            i = j
            continue

        if ch in "bcr" and not prev_ident:
            raw = _RAW_STRING_START.match(text, i)
            if raw:
                closer = '"' + raw.group(1)
                body_start = raw.end()
                end = text.find(closer, body_start)
                end = n if end == -1 else end
                _blank(out, body_start, end)
                i = end + len(closer)
                continue

        if ch == '"' or (ch in "bc" and not prev_ident and text.startswith('"', i + 1)):
            body_start = i + 1 if ch == '"' else i + 2
            j = body_start
            while j < n and text[j] != '"':
                j += 2 if text[j] == "\\" else 1
            _blank(out, body_start, j)
            i = j + 1
            continue

        if ch == "'":
            lit = _CHAR_LITERAL.match(text, i)
            if lit:
                _blank(out, i + 1, lit.end() - 1)
                i = lit.end()
                continue
            # lifetime or label
            i += 1
            continue

        i += 1
    return "".join(out)


def masked_lines(content: str) -> list[str]:
    return split_lines(mask_source(content))


def find_block_end(masked: list[str], line_idx: int, col: int) -> tuple[int, int] | None:
    """Locate the body that follows (line_idx, col) and return its closing brace.

    Scans forward for the first `{` (giving up at a `;` seen first, which
    marks a body-less declaration), then balances braces. Returns the
    0-indexed (line, col) of the matching `}`, or None if unbalanced.
    """
    depth = 0
    opened = False
    for li in range(line_idx, len(masked)):
        text = masked[li]
        start = col if li == line_idx else 0
        for ci in range(start, len(text)):
            c = text[ci]
            if c == "{":
                depth += 1
                opened = True
            elif c == "}" and opened:
                depth -= 1
                if depth == 0:
                    return li, ci
            elif c == ";" and not opened:
                return None
    return None


def collapse_whitespace(text: str) -> str:
    return " ".join(text.split())
