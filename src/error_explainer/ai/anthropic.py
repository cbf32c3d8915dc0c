"""Adapter for the Anthropic Messages API."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx

from .base import SYSTEM_PROMPT, TEMPERATURE, clean_text, dig, is_absent
from .http import request_json

if TYPE_CHECKING:  # pragma: no cover
    from ..config import Config

__all__ = ["AnthropicClient", "DEFAULT_ANTHROPIC_URL", "ANTHROPIC_VERSION"]

DEFAULT_ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
_MAX_TOKENS = 400
_TIMEOUT_SECONDS = 12.0


class AnthropicClient:
    def __init__(self, *, http_client: httpx.Client | None = None) -> None:
        self._http_client = http_client

    def generate_explanation(self, prompt: str, config: "Config") -> str | None:
        if is_absent(config.api_key) or is_absent(config.model):
            return None
        url = config.api_url if not is_absent(config.api_url) else DEFAULT_ANTHROPIC_URL
        headers = {"x-api-key": str(config.api_key), "anthropic-version": ANTHROPIC_VERSION}
        payload = {
            "model": config.model,
            "max_tokens": _MAX_TOKENS,
            "system": SYSTEM_PROMPT,
            "temperature": TEMPERATURE,
            "messages": [{"role": "user", "content": [{"type": "text", "text": prompt}]}],
        }
        data = request_json(str(url), payload, headers=headers, timeout=_TIMEOUT_SECONDS, client=self._http_client)
        if data is None:
            return None
        return _extract_text(data)


def _extract_text(data: dict[str, Any]) -> str | None:
    text = clean_text(dig(data, "content", 0, "text"))
    if text is not None:
        return text
    blocks = data.get("content")
    if isinstance(blocks, list):
        for block in blocks:
            if isinstance(block, dict) and block.get("type") == "text":
                text = clean_text(block.get("text"))
                if text is not None:
                    return text
    return None
