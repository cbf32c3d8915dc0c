"""Source excerpts around a faulting line, pre-tokenized for highlighting."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from ..highlight import Token, line_text, tokenize_to_lines
from ..utils.file_io import read_source

__all__ = ["ExcerptLine", "Excerpt", "DEFAULT_RADIUS", "build_excerpt", "excerpt_from_source"]

DEFAULT_RADIUS = 5


@dataclass(slots=True, frozen=True)
class ExcerptLine:
    number: int
    tokens: tuple[Token, ...]
    is_error: bool = False

    @property
    def text(self) -> str:
        return line_text(self.tokens)


@dataclass(slots=True, frozen=True)
class Excerpt:
    file: str
    line: int
    lines: tuple[ExcerptLine, ...]

    @property
    def gutter_width(self) -> int:
        return len(str(self.lines[-1].number)) if self.lines else 1


def excerpt_from_source(source: str, file: str, line: int, radius: int = DEFAULT_RADIUS) -> Excerpt | None:
    """Cut ``radius`` lines either side of ``line`` out of ``source``."""

    if line < 1:
        return None
    tokenized = tokenize_to_lines(source)
    if line > len(tokenized):
        return None
    first = max(1, line - radius)
    last = min(len(tokenized), line + radius)
    lines = tuple(
        ExcerptLine(number=number, tokens=tuple(tokenized[number - 1]), is_error=number == line)
        for number in range(first, last + 1)
    )
    return Excerpt(file=file, line=line, lines=lines)


def build_excerpt(
    file: str | None,
    line: int | None,
    radius: int = DEFAULT_RADIUS,
    *,
    reader: Callable[[str], str | None] = read_source,
) -> Excerpt | None:
    """Excerpt for a frame, or ``None`` when the file is not resolvable."""

    if not file or not line:
        return None
    source = reader(file)
    if source is None:
        return None
    return excerpt_from_source(source, file, line, radius)
