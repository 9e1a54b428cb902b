"""Parse failure taxonomy.

These exceptions never leave the package's public parse functions: each
``parse_*`` entry point absorbs them, logs the reason and returns ``None``.
"""
from __future__ import annotations


class ParseFailure(Exception):
    """Base class for a statement or literal that could not be parsed."""

    def __init__(self, message: str, position: int | None = None) -> None:
        super().__init__(message)
        self.position = position

    def __str__(self) -> str:
        message = super().__str__()
        if self.position is None:
            return message
        return f"{message} (at offset {self.position})"


class StatementNotRecognized(ParseFailure):
    """The statement does not match the grammar being tried."""


class UnbalancedDelimiters(ParseFailure):
    """Input ended inside a quoted span or with unclosed brackets."""


class UnparseableLiteral(ParseFailure):
    """A JSON column default could not be decoded into a value tree."""
