"""Capability interface and shared helpers for text-generation backends."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:  # pragma: no cover - import cycle guard
    from ..config import Config

__all__ = [
    "AIClient",
    "SYSTEM_PROMPT",
    "TEMPERATURE",
    "is_absent",
    "dig",
    "clean_text",
]

SYSTEM_PROMPT = "You are an assistant that explains Python errors in an educational and concise way."
TEMPERATURE = 0.2


@runtime_checkable
class AIClient(Protocol):
    """Anything able to turn a prompt into explanation text."""

    def generate_explanation(self, prompt: str, config: "Config") -> str | None:
        """Return the generated text, or ``None`` when no answer is available."""


def is_absent(value: Any) -> bool:
    """Return ``True`` for ``None``, blank strings and the legacy ``"0"`` marker."""

    if value is None:
        return True
    text = str(value).strip()
    return text in {"", "0"}


def dig(data: Any, *path: str | int) -> Any:
    """Walk nested mappings/lists along ``path``; ``None`` when any hop is missing."""

    node = data
    for step in path:
        if isinstance(step, int):
            if not isinstance(node, list) or not -len(node) <= step < len(node):
                return None
            node = node[step]
        else:
            if not isinstance(node, dict) or step not in node:
                return None
            node = node[step]
    return node


def clean_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    return value.strip()
