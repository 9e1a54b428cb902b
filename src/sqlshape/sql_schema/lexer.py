"""SQL tokenizer and the cursor the statement grammars consume.

The tokenizer classifies text into words, quoted identifiers, string
literals, numbers and punctuation. It does not know SQL keywords; grammars
match words case-insensitively through ``TokenStream``.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from .errors import StatementNotRecognized, UnbalancedDelimiters
from .scanner import is_escaped

_WORD = re.compile(r"[A-Za-z_][\w$]*")
_NUMBER = re.compile(r"(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")
_DOLLAR_TAG = re.compile(r"\$(?:[A-Za-z_]\w*)?\$")
_PARAM = re.compile(r"\$\d+")


class TokenKind(str, Enum):
    WORD = "word"
    QUOTED_IDENT = "quoted_ident"
    STRING = "string"
    NUMBER = "number"
    PUNCT = "punct"


@dataclass(frozen=True)
class Token:
    """A classified slice of SQL text.

    ``value`` is the unquoted identifier or string body for quoted tokens and
    the raw text otherwise; ``start``/``end`` are offsets into the source.
    """
    kind: TokenKind
    value: str
    start: int
    end: int

    @property
    def is_identifier(self) -> bool:
        return self.kind in (TokenKind.WORD, TokenKind.QUOTED_IDENT)

    def is_keyword(self, *words: str) -> bool:
        return self.kind is TokenKind.WORD and self.value.lower() in words

    def is_punct(self, char: str) -> bool:
        return self.kind is TokenKind.PUNCT and self.value == char


def tokenize(text: str) -> list[Token]:
    """Tokenize SQL text, skipping whitespace and comments.

    Raises:
        UnbalancedDelimiters: If a quoted span or block comment is unterminated
    """
    tokens = []
    i = 0
    n = len(text)

    while i < n:
        char = text[i]

        if char.isspace():
            i += 1
            continue

        if text.startswith("--", i):
            newline = text.find("\n", i)
            i = n if newline == -1 else newline
            continue

        if text.startswith("/*", i):
            close = text.find("*/", i + 2)
            if close == -1:
                raise UnbalancedDelimiters("Unterminated block comment", i)
            i = close + 2
            continue

        if char == "'":
            end = _find_quote_end(text, i, "'")
            tokens.append(Token(TokenKind.STRING, text[i + 1:end - 1].replace("''", "'"), i, end))
            i = end
            continue

        if char == '"':
            end = _find_quote_end(text, i, '"')
            tokens.append(Token(TokenKind.QUOTED_IDENT, text[i + 1:end - 1].replace('""', '"'), i, end))
            i = end
            continue

        if char == "$":
            tag_match = _DOLLAR_TAG.match(text, i)
            if tag_match:
                tag = tag_match.group(0)
                close = text.find(tag, tag_match.end())
                if close == -1:
                    raise UnbalancedDelimiters(f"Unterminated {tag} string", i)
                end = close + len(tag)
                tokens.append(Token(TokenKind.STRING, text[tag_match.end():close], i, end))
                i = end
                continue
            param_match = _PARAM.match(text, i)
            if param_match:
                tokens.append(Token(TokenKind.WORD, param_match.group(0), i, param_match.end()))
                i = param_match.end()
                continue

        number_match = _NUMBER.match(text, i)
        if number_match:
            tokens.append(Token(TokenKind.NUMBER, number_match.group(0), i, number_match.end()))
            i = number_match.end()
            continue

        word_match = _WORD.match(text, i)
        if word_match:
            tokens.append(Token(TokenKind.WORD, word_match.group(0), i, word_match.end()))
            i = word_match.end()
            continue

        if text.startswith("::", i):
            tokens.append(Token(TokenKind.PUNCT, "::", i, i + 2))
            i += 2
            continue

        tokens.append(Token(TokenKind.PUNCT, char, i, i + 1))
        i += 1

    return tokens


def _find_quote_end(text: str, start: int, quote: str) -> int:
    """Return the offset just past the quote closing the span opened at ``start``.

    A doubled quote stays inside the span; a quote after an odd run of
    backslashes is escaped.
    """
    i = start + 1
    while i < len(text):
        if text[i] == quote and not is_escaped(text, i):
            if i + 1 < len(text) and text[i + 1] == quote:
                i += 2
                continue
            return i + 1
        i += 1
    raise UnbalancedDelimiters(f"Unterminated {quote} quote", start)


class TokenStream:
    """Forward-only cursor over a token list.

    ``accept_*`` methods consume a token when it matches and return it (or
    True); ``expect_*`` methods raise StatementNotRecognized on a mismatch.
    """

    def __init__(self, tokens: list[Token], source: str = "") -> None:
        self.tokens = tokens
        self.source = source
        self.pos = 0

    @classmethod
    def from_text(cls, text: str) -> TokenStream:
        return cls(tokenize(text), text)

    def peek(self, offset: int = 0) -> Token | None:
        index = self.pos + offset
        if index < len(self.tokens):
            return self.tokens[index]
        return None

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def advance(self) -> Token:
        token = self.peek()
        if token is None:
            raise StatementNotRecognized("Unexpected end of statement", len(self.source))
        self.pos += 1
        return token

    def accept_keyword(self, *words: str) -> Token | None:
        token = self.peek()
        if token is not None and token.is_keyword(*words):
            self.pos += 1
            return token
        return None

    def accept_sequence(self, *words: str) -> bool:
        """Consume a run of keywords only if all of them are present."""
        for offset, word in enumerate(words):
            token = self.peek(offset)
            if token is None or not token.is_keyword(word):
                return False
        self.pos += len(words)
        return True

    def expect_keyword(self, *words: str) -> Token:
        token = self.accept_keyword(*words)
        if token is None:
            found = self.peek()
            raise StatementNotRecognized(
                f"Expected {' or '.join(w.upper() for w in words)}, found "
                f"{found.value if found else 'end of statement'!r}",
                found.start if found else len(self.source),
            )
        return token

    def expect_sequence(self, *words: str) -> None:
        for word in words:
            self.expect_keyword(word)

    def accept_punct(self, char: str) -> Token | None:
        token = self.peek()
        if token is not None and token.is_punct(char):
            self.pos += 1
            return token
        return None

    def expect_punct(self, char: str) -> Token:
        token = self.accept_punct(char)
        if token is None:
            found = self.peek()
            raise StatementNotRecognized(
                f"Expected {char!r}", found.start if found else len(self.source)
            )
        return token

    def identifier(self, allow_string: bool = False) -> str:
        """Consume a bare or double-quoted identifier and return its name."""
        token = self.peek()
        if token is not None and (
            token.is_identifier or (allow_string and token.kind is TokenKind.STRING)
        ):
            self.pos += 1
            return token.value
        raise StatementNotRecognized(
            "Expected identifier", token.start if token else len(self.source)
        )

    def qualified_name(self, default_schema: str) -> tuple[str, str]:
        """Consume ``[schema.]name`` and return ``(schema, name)``."""
        first = self.identifier(allow_string=True)
        if self.accept_punct("."):
            return first, self.identifier(allow_string=True)
        return default_schema, first

    def skip_group(self) -> tuple[int, int]:
        """Consume a parenthesized group starting at the cursor.

        Returns:
            Source offsets of the opening and closing parentheses
        """
        opening = self.expect_punct("(")
        depth = 1
        while True:
            token = self.peek()
            if token is None:
                raise UnbalancedDelimiters("Unclosed '('", opening.start)
            self.pos += 1
            if token.is_punct("("):
                depth += 1
            elif token.is_punct(")"):
                depth -= 1
                if depth == 0:
                    return opening.start, token.start

    def take_until_keywords(self, stop_words: frozenset[str], stop_punct: frozenset[str] = frozenset()) -> list[Token]:
        """Consume tokens up to (not including) a top-level stop word.

        Parenthesized groups are consumed whole, so stop words inside them do
        not end the run.
        """
        taken = []
        depth = 0
        while not self.at_end():
            token = self.peek()
            if depth == 0 and taken and (
                (token.kind is TokenKind.WORD and token.value.lower() in stop_words)
                or (token.kind is TokenKind.PUNCT and token.value in stop_punct)
            ):
                break
            if token.is_punct("(") or token.is_punct("["):
                depth += 1
            elif token.is_punct(")") or token.is_punct("]"):
                depth -= 1
            taken.append(token)
            self.pos += 1
        return taken

    def text_between(self, first: Token, last: Token) -> str:
        """Raw source text spanning two tokens, inclusive."""
        return self.source[first.start:last.end]

    def rest_text(self) -> str:
        token = self.peek()
        if token is None:
            return ""
        return self.source[token.start:].strip()
