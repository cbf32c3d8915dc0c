"""Regex-driven redaction of sensitive substrings before text leaves the process."""

from __future__ import annotations

import logging
import re
import reprlib
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Iterator, Mapping, Sequence

__all__ = [
    "RULE_SECRETS",
    "RULE_PII",
    "RULE_PAYMENT",
    "RULE_NETWORK",
    "ALL_RULES",
    "DEFAULT_MASKS",
    "DENYLISTED_KEYS",
    "ARG_MASK",
    "SanitizerConfig",
    "sanitize",
    "mask_args",
]

LOGGER = logging.getLogger(__name__)

RULE_SECRETS = "secrets"
RULE_PII = "pii"
RULE_PAYMENT = "payment"
RULE_NETWORK = "network"
ALL_RULES: frozenset[str] = frozenset({RULE_SECRETS, RULE_PII, RULE_PAYMENT, RULE_NETWORK})

DEFAULT_MASKS: Mapping[str, str] = {
    "default": "***REDACTED***",
    "email": "***@***",
    "phone": "+** **** ****",
}

DENYLISTED_KEYS: frozenset[str] = frozenset(
    {"password", "pwd", "pass", "secret", "token", "api_key", "authorization", "cookie", "set-cookie"}
)
ARG_MASK = "***MASKED***"

_AUTH_HEADER = re.compile(r"(Authorization:?\s*)(Bearer|Basic)(\s+)[A-Za-z0-9\-_.=:+/]+", re.IGNORECASE)
_JWT = re.compile(r"\beyJ[0-9A-Za-z_\-]+\.[0-9A-Za-z_\-]+\.[0-9A-Za-z_\-]+\b")
_CARD = re.compile(r"\b(?:\d{4}[\s\-]?\d{4}[\s\-]?\d{4}[\s\-]?\d{1,7}|\d{13,19})\b")
_EMAIL = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)
_PHONE = re.compile(r"\+\d{1,4}[\s\-]?\d{2,4}[\s\-]?\d{3,4}[\s\-]?\d{3,4}\b")
_NATIONAL_ID = re.compile(r"[A-Z]{6}\d{2}[A-Z]\d{2}[A-Z]\d{3}[A-Z]", re.IGNORECASE)
_IBAN = re.compile(r"[A-Z]{2}\d{2}[A-Z0-9]{11,30}")
_PRIVATE_IP = re.compile(
    r"\b(?:10\.(?:\d{1,3}\.){2}\d{1,3}"
    r"|192\.168\.(?:\d{1,3}\.)\d{1,3}"
    r"|172\.(?:1[6-9]|2\d|3[0-1])\.(?:\d{1,3}\.)\d{1,3})\b"
)
_COOKIE = re.compile(r"(Cookie:).*?(\r?\n)", re.IGNORECASE)

_ARG_REPR = reprlib.Repr()
_ARG_REPR.maxstring = 80
_ARG_REPR.maxother = 80


@dataclass(slots=True, frozen=True)
class SanitizerConfig:
    """Which rule groups run, which masks they use, and caller-supplied patterns.

    ``custom_regex`` maps pattern to replacement, either as an ordered mapping
    or as a sequence of ``(pattern, replacement)`` pairs; it runs before every
    built-in rule.
    """

    enabled_rules: frozenset[str] = ALL_RULES
    masks: Mapping[str, str] = field(default_factory=lambda: dict(DEFAULT_MASKS))
    custom_regex: Mapping[str, str] | Sequence[tuple[str, str]] = ()
    denylisted_keys: frozenset[str] = DENYLISTED_KEYS

    def mask(self, category: str) -> str:
        return self.masks.get(category) or self.masks.get("default") or DEFAULT_MASKS["default"]

    def enabled(self, rule: str) -> bool:
        return rule in self.enabled_rules


def sanitize(text: str, config: SanitizerConfig | None = None) -> str:
    """Return ``text`` with every enabled rule applied in fixed order.

    A rule whose pattern fails to compile or apply leaves the text unchanged
    for that rule only; this function never raises for bad patterns.
    """

    if not text:
        return text
    cfg = config or SanitizerConfig()

    for pattern, replacement in _custom_pairs(cfg.custom_regex):
        text = _apply(text, "custom", lambda value, p=pattern, r=replacement: re.sub(p, r, value))

    default_mask = cfg.mask("default")
    if cfg.enabled(RULE_SECRETS):
        text = _apply(text, "auth-header", lambda value: _AUTH_HEADER.sub(rf"\g<1>\g<2>\g<3>{_escape(default_mask)}", value))
        text = _apply(text, "jwt", lambda value: _JWT.sub(_literal(default_mask), value))

    # Card numbers run before PII so the phone rule never claims card digits.
    if cfg.enabled(RULE_PAYMENT):
        text = _apply(text, "card", lambda value: _CARD.sub(_literal(default_mask), value))

    if cfg.enabled(RULE_PII):
        email_mask = cfg.mask("email")
        phone_mask = cfg.mask("phone")
        text = _apply(text, "email", lambda value: _EMAIL.sub(_literal(email_mask), value))
        text = _apply(text, "phone", lambda value: _PHONE.sub(_literal(phone_mask), value))
        text = _apply(text, "national-id", lambda value: _NATIONAL_ID.sub(_literal(default_mask), value))
        text = _apply(text, "iban", lambda value: _IBAN.sub(_literal(default_mask), value))

    if cfg.enabled(RULE_NETWORK):
        text = _apply(text, "private-ip", lambda value: _PRIVATE_IP.sub(_literal(default_mask), value))
        text = _apply(text, "cookie", lambda value: _COOKIE.sub(rf"\g<1> {_escape(default_mask)}\g<2>", value))

    return text


def mask_args(
    values: Mapping[str, Any] | Iterable[tuple[str, Any]],
    *,
    denylist: Iterable[str] = DENYLISTED_KEYS,
) -> tuple[str, ...]:
    """Render ``name=value`` pairs for display, hiding denylisted parameter names."""

    blocked = {key.lower() for key in denylist}
    items = values.items() if isinstance(values, Mapping) else values
    rendered: list[str] = []
    for name, value in items:
        if str(name).lower() in blocked:
            rendered.append(f"{name}={ARG_MASK}")
        else:
            rendered.append(f"{name}={_safe_repr(value)}")
    return tuple(rendered)


def _custom_pairs(custom: Mapping[str, str] | Sequence[tuple[str, str]]) -> Iterator[tuple[str, str]]:
    entries = custom.items() if isinstance(custom, Mapping) else custom
    for entry in entries:
        try:
            pattern, replacement = entry
        except (TypeError, ValueError):
            LOGGER.debug("Sanitizer custom rule %r skipped: not a (pattern, replacement) pair", entry)
            continue
        yield pattern, replacement


def _apply(text: str, rule: str, substitute: Callable[[str], str]) -> str:
    try:
        return substitute(text)
    except (re.error, TypeError) as exc:
        LOGGER.debug("Sanitizer rule %s skipped: %s", rule, exc)
        return text


def _literal(mask: str) -> Callable[[re.Match[str]], str]:
    return lambda _match: mask


def _escape(mask: str) -> str:
    return mask.replace("\\", "\\\\")


def _safe_repr(value: Any) -> str:
    try:
        return _ARG_REPR.repr(value)
    except Exception:  # pragma: no cover - objects with broken __repr__
        return f"<{type(value).__name__}>"
