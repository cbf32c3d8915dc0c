"""Frozen configuration resolved from defaults, environment, and caller overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, Mapping

from .errors import ConfigurationError
from .sanitizer import ALL_RULES, DEFAULT_MASKS, SanitizerConfig

__all__ = [
    "Config",
    "SanitizeSettings",
    "OUTPUT_AUTO",
    "OUTPUT_TEXT",
    "OUTPUT_HTML",
    "OUTPUT_JSON",
    "OUTPUT_CHOICES",
    "BACKEND_NONE",
    "normalize_optional",
    "is_unset",
]

LOGGER = logging.getLogger(__name__)

OUTPUT_AUTO = "auto"
OUTPUT_TEXT = "text"
OUTPUT_HTML = "html"
OUTPUT_JSON = "json"
OUTPUT_CHOICES: tuple[str, ...] = (OUTPUT_AUTO, OUTPUT_TEXT, OUTPUT_HTML, OUTPUT_JSON)
BACKEND_NONE = "none"

_ENV_OVERRIDES: Mapping[str, str] = {
    "ERROR_EXPLAINER_BACKEND": "backend",
    "ERROR_EXPLAINER_MODEL": "model",
    "ERROR_EXPLAINER_LANG": "language",
    "ERROR_EXPLAINER_OUTPUT": "output",
    "ERROR_EXPLAINER_API_KEY": "api_key",
    "ERROR_EXPLAINER_API_URL": "api_url",
    "ERROR_EXPLAINER_TEMPLATE": "template",
    "ERROR_EXPLAINER_ROOT": "project_root",
    "ERROR_EXPLAINER_HOST_ROOT": "host_project_root",
    "ERROR_EXPLAINER_EDITOR": "editor_url",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "ERROR_EXPLAINER_ENABLED": "enabled",
    "ERROR_EXPLAINER_VERBOSE": "verbose",
    "ERROR_EXPLAINER_DEBUG_LOGGING": "debug_logging",
}
_SANITIZE_ENABLED_ENV = "ERROR_EXPLAINER_SANITIZE"
_SANITIZE_RULES_ENV = "ERROR_EXPLAINER_SANITIZE_RULES"
_SANITIZE_MASK_ENV = "ERROR_EXPLAINER_SANITIZE_MASK"
_TRUE_VALUES = {"1", "true", "yes", "on"}
_UNSET_STRINGS = {"", "0"}
# Fields whose values arrive as strings and may carry legacy "unset" spellings.
_OPTIONAL_STRING_FIELDS = frozenset(
    {
        "model",
        "api_key",
        "api_url",
        "template",
        "project_root",
        "host_project_root",
        "editor_url",
    }
)


def normalize_optional(value: Any) -> str | None:
    """Map ``None``, ``""`` and ``"0"`` to ``None``; stringify anything else."""

    if value is None:
        return None
    text = str(value)
    if text.strip() in _UNSET_STRINGS:
        return None
    return text


def is_unset(value: str | None) -> bool:
    return normalize_optional(value) is None


@dataclass(slots=True, frozen=True)
class SanitizeSettings:
    """Controls redaction of prompts before they leave the process."""

    enabled: bool = True
    rules: frozenset[str] = ALL_RULES
    mask: str = DEFAULT_MASKS["default"]
    custom_regex: tuple[tuple[str, str], ...] = ()


@dataclass(slots=True, frozen=True)
class Config:
    """Effective configuration for one pipeline pass."""

    enabled: bool = True
    backend: str = BACKEND_NONE
    model: str | None = None
    language: str = "en"
    output: str = OUTPUT_AUTO
    verbose: bool = False
    api_key: str | None = None
    api_url: str | None = None
    template: str | None = None
    project_root: str | None = None
    host_project_root: str | None = None
    editor_url: str | None = None
    debug_logging: bool = False
    sanitize: SanitizeSettings = field(default_factory=SanitizeSettings)

    def __post_init__(self) -> None:
        if self.output not in OUTPUT_CHOICES:
            raise ConfigurationError(
                f"Unknown output format {self.output!r}; expected one of {', '.join(OUTPUT_CHOICES)}"
            )

    @classmethod
    def resolve(
        cls,
        overrides: Mapping[str, Any] | None = None,
        *,
        environ: Mapping[str, str] | None = None,
    ) -> "Config":
        """Resolve defaults, then environment variables, then explicit ``overrides``."""

        env = os.environ if environ is None else environ
        values = _read_env(env)
        if overrides:
            values.update(_filter_overrides(overrides))
        sanitize = _merge_sanitize(_read_sanitize_env(env), values.pop("sanitize", None))
        values = _normalize_values(values)
        return cls(sanitize=sanitize, **values)

    @property
    def backend_id(self) -> str:
        return (self.backend or BACKEND_NONE).strip().lower()

    @property
    def ai_enabled(self) -> bool:
        return self.backend_id != BACKEND_NONE

    def with_overrides(self, **overrides: Any) -> "Config":
        return replace(self, **_normalize_values(_filter_overrides(overrides)))

    def sanitizer_config(self) -> SanitizerConfig:
        masks = dict(DEFAULT_MASKS)
        masks["default"] = self.sanitize.mask
        return SanitizerConfig(
            enabled_rules=frozenset(self.sanitize.rules),
            masks=masks,
            custom_regex=tuple(self.sanitize.custom_regex),
        )


def _read_env(env: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for env_name, field_name in _ENV_OVERRIDES.items():
        value = env.get(env_name)
        if value is not None:
            values[field_name] = value
    for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
        value = env.get(env_name)
        if value is not None:
            values[field_name] = _parse_bool(value)
    return values


def _read_sanitize_env(env: Mapping[str, str]) -> SanitizeSettings:
    settings = SanitizeSettings()
    enabled = env.get(_SANITIZE_ENABLED_ENV)
    if enabled is not None:
        settings = replace(settings, enabled=_parse_bool(enabled))
    rules = env.get(_SANITIZE_RULES_ENV)
    if rules is not None:
        settings = replace(settings, rules=_parse_rules(rules))
    mask = normalize_optional(env.get(_SANITIZE_MASK_ENV))
    if mask is not None:
        settings = replace(settings, mask=mask)
    return settings


def _merge_sanitize(base: SanitizeSettings, override: Any) -> SanitizeSettings:
    if override is None:
        return base
    if isinstance(override, SanitizeSettings):
        return override
    if isinstance(override, bool):
        return replace(base, enabled=override)
    if not isinstance(override, Mapping):
        raise ConfigurationError("sanitize override must be a bool, a mapping, or SanitizeSettings")
    updates: Dict[str, Any] = {}
    if "enabled" in override:
        updates["enabled"] = bool(override["enabled"])
    if "rules" in override:
        raw_rules = override["rules"]
        updates["rules"] = _parse_rules(raw_rules) if isinstance(raw_rules, str) else frozenset(raw_rules)
    if normalize_optional(override.get("mask")) is not None:
        updates["mask"] = str(override["mask"])
    if "custom_regex" in override:
        custom = override["custom_regex"]
        pairs = custom.items() if isinstance(custom, Mapping) else custom
        updates["custom_regex"] = tuple((str(pattern), str(repl)) for pattern, repl in pairs)
    return replace(base, **updates)


def _filter_overrides(overrides: Mapping[str, Any]) -> Dict[str, Any]:
    allowed = {item.name for item in fields(Config)}
    filtered: Dict[str, Any] = {}
    for key, value in overrides.items():
        if key not in allowed:
            LOGGER.debug("Ignoring unknown configuration override %s", key)
            continue
        if value is None:
            continue
        filtered[key] = value
    return filtered


def _normalize_values(values: Mapping[str, Any]) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for key, value in values.items():
        if key in _OPTIONAL_STRING_FIELDS:
            normalized[key] = normalize_optional(value)
        elif key in {"enabled", "verbose", "debug_logging"}:
            normalized[key] = _parse_bool(value) if isinstance(value, str) else bool(value)
        elif key == "output":
            normalized[key] = (str(value).strip().lower() or OUTPUT_AUTO)
        elif key == "language":
            normalized[key] = normalize_optional(value) or "en"
        elif key == "backend":
            normalized[key] = normalize_optional(value) or BACKEND_NONE
        else:
            normalized[key] = value
    return normalized


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in _TRUE_VALUES


def _parse_rules(raw: str) -> frozenset[str]:
    requested = {item.strip().lower() for item in raw.split(",") if item.strip()}
    unknown = requested - ALL_RULES
    if unknown:
        LOGGER.warning("Ignoring unknown sanitizer rules: %s", ", ".join(sorted(unknown)))
    return frozenset(requested & ALL_RULES)
