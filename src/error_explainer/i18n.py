"""JSON-backed string catalogs with locale → English → key fallback."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

__all__ = ["DEFAULT_LOCALE", "CATALOG_DIR", "translate", "available_locales"]

LOGGER = logging.getLogger(__name__)

DEFAULT_LOCALE = "en"
CATALOG_DIR = Path(__file__).resolve().parent / "resources" / "lang"


def translate(locale: str | None, key: str, params: Mapping[str, Any] | None = None) -> str:
    """Look up ``key`` (dot notation) and substitute ``{name}`` placeholders.

    Unknown locales fall back to English; unknown keys return the key itself so
    a missing entry is visible rather than blank.
    """

    resolved = _normalize_locale(locale)
    value = _lookup(resolved, key)
    if value is None and resolved != DEFAULT_LOCALE:
        value = _lookup(DEFAULT_LOCALE, key)
    if value is None:
        value = key
    if params:
        for name, replacement in params.items():
            value = value.replace("{" + name + "}", str(replacement))
    return value


def available_locales() -> tuple[str, ...]:
    return tuple(sorted(path.stem for path in CATALOG_DIR.glob("*.json")))


def _normalize_locale(locale: str | None) -> str:
    text = (locale or "").strip().lower()
    if text in {"", "0"}:
        return DEFAULT_LOCALE
    # "it_IT" and "it-IT" share the base catalog.
    base = text.replace("-", "_").split("_", 1)[0]
    return base if base.isalpha() else DEFAULT_LOCALE


def _lookup(locale: str, key: str) -> str | None:
    node: Any = _load_catalog(locale)
    for part in key.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    if isinstance(node, str) and node:
        return node
    return None


@lru_cache(maxsize=None)
def _load_catalog(locale: str) -> Mapping[str, Any]:
    path = CATALOG_DIR / f"{locale}.json"
    if not path.is_file():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        LOGGER.debug("Ignoring unreadable catalog %s: %s", path, exc)
        return {}
    return data if isinstance(data, dict) else {}
