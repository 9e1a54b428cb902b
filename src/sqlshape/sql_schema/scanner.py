"""Quote- and bracket-aware text primitives shared by every statement parser."""
from __future__ import annotations

import re

from .errors import UnbalancedDelimiters
from .models import SqlStatement

_CLOSERS = {"(": ")", "[": "]", "{": "}"}
_QUOTES = ("'", '"')
_DOLLAR_TAG = re.compile(r"\$(?:[A-Za-z_]\w*)?\$")


def is_escaped(text: str, index: int) -> bool:
    """Return True if the character at ``index`` follows an odd run of backslashes."""
    run = 0
    i = index - 1
    while i >= 0 and text[i] == "\\":
        run += 1
        i -= 1
    return run % 2 == 1


def matching_close(text: str, open_index: int) -> int:
    """Find the index of the delimiter that closes the one at ``open_index``.

    Characters inside single- or double-quoted spans are ignored, and a quote
    preceded by an odd number of backslashes does not open or close a span.

    Args:
        text: Text to scan
        open_index: Position of an opening ``(``, ``[`` or ``{``

    Returns:
        Index of the matching closing delimiter

    Raises:
        ValueError: If ``open_index`` does not point at an opening delimiter
        UnbalancedDelimiters: If the text ends before the delimiter is closed
    """
    if open_index < 0 or open_index >= len(text) or text[open_index] not in _CLOSERS:
        raise ValueError(f"No opening delimiter at index {open_index}")

    opener = text[open_index]
    closer = _CLOSERS[opener]
    depth = 0
    quote = None

    for i in range(open_index, len(text)):
        char = text[i]

        if quote:
            if char == quote and not is_escaped(text, i):
                quote = None
        elif char in _QUOTES:
            if not is_escaped(text, i):
                quote = char
        elif char == opener:
            depth += 1
        elif char == closer:
            depth -= 1
            if depth == 0:
                return i

    raise UnbalancedDelimiters(f"Unclosed '{opener}'", open_index)


def split_top_level(text: str, delimiter: str = ",") -> list[str]:
    """Split text on a delimiter that sits outside brackets and quotes.

    Segments are stripped and empty segments are dropped, so consecutive
    delimiters never produce blank entries.
    """
    parts = []
    current = []
    depth = 0
    quote = None

    for i, char in enumerate(text):
        if quote:
            if char == quote and not is_escaped(text, i):
                quote = None
        elif char in _QUOTES:
            if not is_escaped(text, i):
                quote = char
        elif char in "([":
            depth += 1
        elif char in ")]":
            depth -= 1
        elif char == delimiter and depth == 0:
            parts.append("".join(current))
            current = []
            continue
        current.append(char)

    parts.append("".join(current))
    return [part.strip() for part in parts if part.strip()]


def _quoted_span_end(text: str, index: int) -> int | None:
    """Return the index just past the quoted span starting at ``index``.

    Handles '...', "..." and $tag$...$tag$. Returns None when no span starts
    at ``index``; an unterminated span runs to the end of the text.
    """
    char = text[index]

    if char in _QUOTES:
        if is_escaped(text, index):
            return None
        i = index + 1
        while i < len(text):
            if text[i] == char and not is_escaped(text, i):
                return i + 1
            i += 1
        return len(text)

    if char == "$":
        tag_match = _DOLLAR_TAG.match(text, index)
        if not tag_match:
            return None
        tag = tag_match.group(0)
        end = text.find(tag, tag_match.end())
        return len(text) if end == -1 else end + len(tag)

    return None


def strip_comments(text: str) -> str:
    """Remove ``--`` and ``/* */`` comments that sit outside quoted text.

    Newlines are preserved so line numbers stay meaningful.
    """
    out = []
    i = 0
    n = len(text)

    while i < n:
        span_end = _quoted_span_end(text, i)
        if span_end is not None:
            out.append(text[i:span_end])
            i = span_end
            continue

        if text.startswith("--", i):
            newline = text.find("\n", i)
            i = n if newline == -1 else newline
            continue

        if text.startswith("/*", i):
            close = text.find("*/", i + 2)
            end = n if close == -1 else close + 2
            # Keep line structure intact
            out.append(" " + "\n" * text.count("\n", i, end))
            i = end
            continue

        out.append(text[i])
        i += 1

    return "".join(out)


def split_statements(content: str) -> list[SqlStatement]:
    """Split SQL content into statements with line numbers.

    Semicolons inside quoted strings and dollar-quoted bodies do not end a
    statement. Comments should already be stripped.

    Args:
        content: SQL file content

    Returns:
        List of SqlStatement objects in file order
    """
    statements = []
    start = 0
    i = 0
    n = len(content)

    while i < n:
        span_end = _quoted_span_end(content, i)
        if span_end is not None:
            i = span_end
            continue

        if content[i] == ";":
            _append_statement(statements, content, start, i)
            start = i + 1
        i += 1

    _append_statement(statements, content, start, n)
    return statements


def _append_statement(statements: list[SqlStatement], content: str, start: int, end: int) -> None:
    segment = content[start:end]
    text = segment.strip()
    if not text:
        return

    first = start + (len(segment) - len(segment.lstrip()))
    last = start + len(segment.rstrip())
    statements.append(SqlStatement(
        text=text,
        start_line=content.count("\n", 0, first) + 1,
        end_line=content.count("\n", 0, last) + 1,
    ))
