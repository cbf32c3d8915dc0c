"""Adapter for OpenAI-compatible chat-completions endpoints via the ``openai`` SDK."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from openai import OpenAI, OpenAIError

from .base import SYSTEM_PROMPT, TEMPERATURE, clean_text, is_absent
from .http import build_timeout

if TYPE_CHECKING:  # pragma: no cover
    from ..config import Config

__all__ = ["OpenAICompatibleClient", "DEFAULT_OPENAI_URL", "sdk_base_url"]

LOGGER = logging.getLogger(__name__)

DEFAULT_OPENAI_URL = "https://api.openai.com/v1"
_COMPLETIONS_SUFFIX = "/chat/completions"
_TIMEOUT_SECONDS = 12.0


def sdk_base_url(api_url: str | None) -> str:
    """Reduce a configured endpoint to the base URL the SDK expects."""

    if is_absent(api_url):
        return DEFAULT_OPENAI_URL
    base = str(api_url).strip().rstrip("/")
    if base.endswith(_COMPLETIONS_SUFFIX):
        base = base[: -len(_COMPLETIONS_SUFFIX)]
    return base


class OpenAICompatibleClient:
    """Single-shot chat completion with retries disabled."""

    def __init__(self, *, http_client: httpx.Client | None = None) -> None:
        self._http_client = http_client

    def generate_explanation(self, prompt: str, config: "Config") -> str | None:
        if is_absent(config.api_key) or is_absent(config.model):
            return None
        owns_http = self._http_client is None
        http_client = self._http_client or httpx.Client(timeout=build_timeout(_TIMEOUT_SECONDS))
        try:
            client = OpenAI(
                api_key=str(config.api_key),
                base_url=sdk_base_url(config.api_url),
                timeout=build_timeout(_TIMEOUT_SECONDS),
                max_retries=0,
                http_client=http_client,
            )
            completion = client.chat.completions.create(
                model=str(config.model),
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                temperature=TEMPERATURE,
            )
        except (OpenAIError, httpx.HTTPError, ValueError) as exc:
            LOGGER.debug("OpenAI-compatible request failed: %s", exc.__class__.__name__)
            return None
        finally:
            if owns_http:
                http_client.close()
        return _first_choice_text(completion)


def _first_choice_text(completion: Any) -> str | None:
    choices = getattr(completion, "choices", None)
    if not choices:
        return None
    message = getattr(choices[0], "message", None)
    return clean_text(getattr(message, "content", None))
