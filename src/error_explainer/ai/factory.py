"""Backend id → adapter selection."""

from __future__ import annotations

from typing import Callable, Dict

import httpx

from ..errors import ConfigurationError
from .anthropic import AnthropicClient
from .base import AIClient
from .google import GoogleClient
from .local import LocalClient
from .openai_compat import OpenAICompatibleClient

__all__ = ["make_client", "BACKENDS"]

_Builder = Callable[[httpx.Client | None], AIClient]

BACKENDS: Dict[str, _Builder] = {
    "local": lambda http: LocalClient(http_client=http),
    "api": lambda http: OpenAICompatibleClient(http_client=http),
    "openai": lambda http: OpenAICompatibleClient(http_client=http),
    "anthropic": lambda http: AnthropicClient(http_client=http),
    "google": lambda http: GoogleClient(http_client=http),
    "gemini": lambda http: GoogleClient(http_client=http),
}


def make_client(backend: str | None, *, http_client: httpx.Client | None = None) -> AIClient | None:
    """Return the adapter for ``backend``; ``None`` for the ``none`` sentinel.

    Raises :class:`ConfigurationError` for an unrecognized backend id.
    """

    key = (backend or "none").strip().lower()
    if key in {"", "none", "0"}:
        return None
    builder = BACKENDS.get(key)
    if builder is None:
        raise ConfigurationError(
            f"Unknown AI backend {backend!r}; expected one of none, {', '.join(sorted(BACKENDS))}"
        )
    return builder(http_client)
