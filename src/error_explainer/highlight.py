"""Categorizing tokenizer for source excerpts.

The tokenizer knows nothing about colors or markup: renderers map each
:class:`TokenCategory` to their own presentation. Output is a pure function of
the input text, so callers may re-run it freely.
"""

from __future__ import annotations

import io
import keyword
import tokenize
from enum import Enum
from typing import Iterable, Iterator, NamedTuple, Sequence

__all__ = [
    "TokenCategory",
    "Token",
    "TAB_WIDTH",
    "normalize_source",
    "iter_tokens",
    "coalesce",
    "tokenize_to_lines",
    "line_text",
]

TAB_WIDTH = 4


class TokenCategory(str, Enum):
    STRING = "string"
    COMMENT = "comment"
    KEYWORD = "keyword"
    HTML = "html"
    VARIABLE = "variable"
    FUNCTION = "function"
    METHOD = "method"
    DEFAULT = "default"


class Token(NamedTuple):
    category: TokenCategory
    text: str


_STRING_TYPES = frozenset(
    code
    for code in (
        tokenize.STRING,
        getattr(tokenize, "FSTRING_START", None),
        getattr(tokenize, "FSTRING_MIDDLE", None),
        getattr(tokenize, "FSTRING_END", None),
    )
    if code is not None
)
# Skipped when looking for the token next to an identifier.
_TRIVIAL_TYPES = frozenset({tokenize.NL, tokenize.COMMENT, tokenize.INDENT, tokenize.DEDENT})
_ACCESS_OPERATOR = "."


def normalize_source(source: str) -> str:
    """Unify line endings and expand tabs."""

    return source.replace("\r\n", "\n").replace("\r", "\n").replace("\t", " " * TAB_WIDTH)


def iter_tokens(source: str) -> Iterator[Token]:
    """Yield categorized tokens covering ``source`` exactly, whitespace included.

    When the Python tokenizer gives up (unbalanced brackets, template text,
    bad indentation) everything from the failure point on is yielded as a
    single :attr:`TokenCategory.HTML` run.
    """

    text = normalize_source(source)
    if not text:
        return
    offsets = _line_offsets(text)
    raw, failed = _scan(text)
    cursor = 0
    for index, tok in enumerate(raw):
        start = _offset(offsets, tok.start, len(text))
        end = _offset(offsets, tok.end, len(text))
        if start < cursor:
            continue
        if start > cursor:
            yield Token(TokenCategory.DEFAULT, text[cursor:start])
        if end > start:
            yield Token(_classify(raw, index), text[start:end])
        cursor = max(cursor, end)
    if cursor < len(text):
        yield Token(TokenCategory.HTML if failed else TokenCategory.DEFAULT, text[cursor:])


def coalesce(tokens: Iterable[Token]) -> Iterator[Token]:
    """Merge adjacent tokens that share a category."""

    pending: Token | None = None
    for token in tokens:
        if pending is not None and pending.category is token.category:
            pending = Token(pending.category, pending.text + token.text)
            continue
        if pending is not None:
            yield pending
        pending = token
    if pending is not None:
        yield pending


def tokenize_to_lines(source: str) -> list[list[Token]]:
    """Split ``source`` into per-line token runs; index 0 holds line 1."""

    text = normalize_source(source)
    if not text:
        return []
    lines: list[list[Token]] = [[]]
    for token in coalesce(iter_tokens(text)):
        for position, piece in enumerate(token.text.split("\n")):
            if position:
                lines.append([])
            if piece:
                lines[-1].append(Token(token.category, piece))
    if text.endswith("\n") and not lines[-1]:
        lines.pop()
    return lines


def line_text(tokens: Sequence[Token]) -> str:
    return "".join(token.text for token in tokens)


def _scan(text: str) -> tuple[list[tokenize.TokenInfo], bool]:
    tokens: list[tokenize.TokenInfo] = []
    try:
        for tok in tokenize.generate_tokens(io.StringIO(text).readline):
            tokens.append(tok)
    except (tokenize.TokenError, SyntaxError):
        return tokens, True
    return tokens, False


def _line_offsets(text: str) -> list[int]:
    offsets = [0]
    for index, char in enumerate(text):
        if char == "\n":
            offsets.append(index + 1)
    return offsets


def _offset(offsets: Sequence[int], position: tuple[int, int], limit: int) -> int:
    row, col = position
    if row - 1 >= len(offsets):
        return limit
    return min(offsets[max(row - 1, 0)] + col, limit)


def _classify(tokens: Sequence[tokenize.TokenInfo], index: int) -> TokenCategory:
    tok = tokens[index]
    if tok.type in _STRING_TYPES:
        return TokenCategory.STRING
    if tok.type == tokenize.COMMENT:
        return TokenCategory.COMMENT
    if tok.type == tokenize.OP:
        return TokenCategory.KEYWORD
    if tok.type != tokenize.NAME:
        return TokenCategory.DEFAULT
    if keyword.iskeyword(tok.string):
        return TokenCategory.KEYWORD
    following = _neighbour(tokens, index, 1)
    if following is not None and following.type == tokenize.OP and following.string == "(":
        preceding = _neighbour(tokens, index, -1)
        if preceding is not None and preceding.type == tokenize.OP and preceding.string == _ACCESS_OPERATOR:
            return TokenCategory.METHOD
        return TokenCategory.FUNCTION
    if keyword.issoftkeyword(tok.string) and tok.string != "_":
        return TokenCategory.KEYWORD
    return TokenCategory.VARIABLE


def _neighbour(
    tokens: Sequence[tokenize.TokenInfo], index: int, step: int
) -> tokenize.TokenInfo | None:
    cursor = index + step
    while 0 <= cursor < len(tokens):
        if tokens[cursor].type not in _TRIVIAL_TYPES:
            return tokens[cursor]
        cursor += step
    return None
