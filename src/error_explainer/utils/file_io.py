"""Tolerant source-file reads used for code excerpts."""

from __future__ import annotations

import codecs
import locale
import logging
from pathlib import Path

__all__ = ["read_text", "read_source"]

LOGGER = logging.getLogger(__name__)

# Ordered longest mark first: the UTF-32 LE mark begins with the UTF-16 LE one.
_BYTE_ORDER_MARKS: tuple[tuple[bytes, str], ...] = (
    (codecs.BOM_UTF32_LE, "utf-32"),
    (codecs.BOM_UTF32_BE, "utf-32"),
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)


def read_text(
    path: Path | str,
    *,
    encoding: str | None = None,
    errors: str = "strict",
    normalize_newlines: bool = True,
) -> str:
    """Decode ``path`` and, by default, fold ``\\r\\n`` and bare ``\\r`` into ``\\n``.

    Without an explicit ``encoding`` a byte order mark decides; otherwise UTF-8,
    the locale encoding and finally latin-1 are tried in turn.
    """

    data = Path(path).read_bytes()
    text = data.decode(encoding or _sniff_encoding(data), errors=errors)
    text = text.removeprefix("\ufeff")
    if normalize_newlines and "\r" in text:
        text = text.replace("\r\n", "\n").replace("\r", "\n")
    return text


def read_source(path: Path | str | None) -> str | None:
    """Return the contents of ``path`` or ``None`` when it cannot be read.

    Frames pointing at ``<stdin>``, ``<string>`` or deleted files simply have
    no excerpt.
    """

    if not path:
        return None
    target = Path(path)
    if not target.is_file():
        return None
    try:
        return read_text(target, errors="replace")
    except OSError as exc:
        LOGGER.debug("Unable to read %s for excerpt: %s", target, exc)
        return None


def _sniff_encoding(data: bytes) -> str:
    marked = next((name for mark, name in _BYTE_ORDER_MARKS if data.startswith(mark)), None)
    if marked is not None:
        return marked
    candidates = dict.fromkeys(("utf-8", locale.getpreferredencoding(False), "latin-1"))
    for candidate in filter(None, candidates):
        try:
            data.decode(candidate)
        except (UnicodeDecodeError, LookupError):
            continue
        return candidate
    return "latin-1"
