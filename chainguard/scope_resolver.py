"""
Scope Resolver

Determines the textual extent of a function (or any brace-delimited block)
by counting braces line by line. This is a syntactic heuristic, not a parser:
braces inside comments or string literals are counted like any other.
"""

import re
from typing import List, Optional

FUNCTION_HEADER = re.compile(
    r'\bfunction\s+\w+|\bmodifier\s+\w+|\b(?:constructor|fallback|receive)\s*\('
)

_BLOCK_COMMENT = re.compile(r'/\*.*?\*/', re.DOTALL)
_LINE_COMMENT = re.compile(r'//[^\n]*')


def function_span(lines: List[str], start_index: int) -> int:
    """
    Return the index of the line that closes the block opened at or after
    ``start_index``.

    Scans forward adding ``{`` and subtracting ``}`` per line. The block is
    closed on the first line where the running depth returns to zero after
    having been opened. If the source never balances, the last line index is
    returned.
    """
    if not lines:
        return 0
    last = len(lines) - 1
    start_index = max(0, min(start_index, last))

    depth = 0
    opened = False
    for i in range(start_index, len(lines)):
        line = lines[i]
        opens = line.count('{')
        depth += opens - line.count('}')
        if opens:
            opened = True
        if opened and depth <= 0:
            return i
    return last


def enclosing_function_start(lines: List[str], index: int) -> Optional[int]:
    """
    Index of the nearest function-like header (``function name``,
    ``modifier name``, ``constructor``, ``fallback``, ``receive``) at or
    above ``index``.
    """
    for i in range(min(index, len(lines) - 1), -1, -1):
        if FUNCTION_HEADER.search(lines[i]):
            return i
    return None


def enclosing_block_start(lines: List[str], index: int, column: Optional[int] = None) -> Optional[int]:
    """
    Index of the line holding the innermost unclosed ``{`` before position
    ``column`` of line ``index``. Only the text left of ``column`` counts on
    that line; the whole line counts when ``column`` is None.
    """
    if not lines:
        return None
    index = max(0, min(index, len(lines) - 1))

    depth = 0
    for i in range(index, -1, -1):
        text = lines[i][:column] if i == index and column is not None else lines[i]
        for char in reversed(text):
            if char == '}':
                depth += 1
            elif char == '{':
                if depth == 0:
                    return i
                depth -= 1
    return None


def strip_comments(source: str) -> str:
    """
    Blank out ``//`` and ``/* */`` comments while keeping the line count,
    so line indexes into the stripped text match the original.
    """
    def _keep_newlines(match: re.Match) -> str:
        return '\n' * match.group(0).count('\n')

    without_blocks = _BLOCK_COMMENT.sub(_keep_newlines, source)
    return _LINE_COMMENT.sub('', without_blocks)


def line_number_of(position: int, content: str) -> int:
    """1-based line number of a character offset."""
    return content[:position].count('\n') + 1
