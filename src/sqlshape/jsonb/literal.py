"""Decode JSON/JSONB column defaults into Python values.

Two forms are understood:

- a quoted JSON literal, optionally cast: ``'{"theme": "dark"}'::jsonb``
- ``json[b]_build_object(k, v, ...)`` / ``json[b]_build_array(v, ...)`` calls,
  whose arguments may be nested calls or primitive literals

Anything else inside a build call (function calls, column references,
arithmetic) decodes to ``None``, which inference reports as ``unknown``.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any

from ..sql_schema.errors import UnbalancedDelimiters, UnparseableLiteral
from ..sql_schema.lexer import TokenKind, tokenize
from ..sql_schema.scanner import matching_close, split_top_level

logger = logging.getLogger(__name__)

_BUILD_CALL = re.compile(r"^(?:pg_catalog\.)?(jsonb?)_build_(object|array)\s*\(", re.IGNORECASE)
_CAST_SUFFIX = re.compile(r"::\s*([A-Za-z_][\w.]*(?:\s+[A-Za-z_]\w*)*)\s*(?:\[\s*\])?\s*$")
_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_JSON_CASTS = ("json", "jsonb", "pg_catalog.json", "pg_catalog.jsonb")


def parse_json_default(raw: str) -> Any:
    """Decode a column default into a value tree.

    Args:
        raw: DEFAULT expression text as written in the column definition

    Returns:
        Decoded value (dict, list, str, int, float, bool or None)

    Raises:
        UnparseableLiteral: If the expression is neither a quoted JSON
            literal nor a build call, or cannot be decoded
    """
    try:
        text, _ = _unwrap(raw)

        call = _BUILD_CALL.match(text)
        if call:
            return _decode_call(text, call)

        body = _string_literal(text)
        if body is None:
            raise UnparseableLiteral(f"Not a JSON literal or build call: {raw.strip()[:60]!r}")
        try:
            return json.loads(body)
        except json.JSONDecodeError as e:
            raise UnparseableLiteral(f"Invalid JSON in default: {e.msg}", e.pos) from e

    except UnbalancedDelimiters as e:
        raise UnparseableLiteral(f"Unbalanced default expression: {e}", e.position) from e


def decode_json_default(raw: str) -> Any:
    """Like ``parse_json_default`` but returns None instead of raising."""
    try:
        return parse_json_default(raw)
    except UnparseableLiteral as e:
        logger.debug(f"Could not decode JSON default: {e}")
        return None


def _unwrap(text: str) -> tuple[str, str | None]:
    """Strip enclosing parentheses and trailing casts, innermost cast last."""
    text = text.strip()
    cast = None
    while True:
        match = _CAST_SUFFIX.search(text)
        if match and _is_complete_operand(text[:match.start()].rstrip()):
            cast = match.group(1).lower()
            text = text[:match.start()].rstrip()
            continue
        if text.startswith("(") and matching_close(text, 0) == len(text) - 1:
            text = text[1:-1].strip()
            continue
        return text, cast


def _is_complete_operand(text: str) -> bool:
    """True for a single string literal, a balanced group or a call."""
    if not text:
        return False
    if text.endswith(")"):
        return True
    return _string_literal(text) is not None


def _string_literal(text: str) -> str | None:
    tokens = tokenize(text)
    if len(tokens) == 1 and tokens[0].kind is TokenKind.STRING:
        return tokens[0].value
    return None


def _decode_call(text: str, call: re.Match) -> Any:
    open_index = call.end() - 1
    close = matching_close(text, open_index)
    if close != len(text) - 1:
        raise UnparseableLiteral(f"Unexpected text after {call.group(0)}...)", close + 1)

    args = split_top_level(text[open_index + 1:close])

    if call.group(2).lower() == "array":
        return [_decode_value(arg) for arg in args]

    if len(args) % 2:
        raise UnparseableLiteral(f"{call.group(1)}_build_object needs key/value pairs, got {len(args)} argument(s)")

    result = {}
    for key_text, value_text in zip(args[::2], args[1::2]):
        key, _ = _unwrap(key_text)
        key_value = _string_literal(key)
        if key_value is None:
            raise UnparseableLiteral(f"Object key is not a string literal: {key_text!r}")
        result[key_value] = _decode_value(value_text)
    return result


def _decode_value(text: str) -> Any:
    text, cast = _unwrap(text)

    call = _BUILD_CALL.match(text)
    if call:
        return _decode_call(text, call)

    body = _string_literal(text)
    if body is not None:
        if cast in _JSON_CASTS:
            try:
                return json.loads(body)
            except json.JSONDecodeError as e:
                raise UnparseableLiteral(f"Invalid JSON in nested literal: {e.msg}", e.pos) from e
        return body

    if _NUMBER.match(text):
        number = float(text)
        if number.is_integer() and not any(c in text for c in ".eE"):
            return int(text)
        return number

    lowered = text.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if lowered == "null":
        return None

    # Function calls, column references and other expressions
    return None
