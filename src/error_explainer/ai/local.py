"""Adapter for a local generation server (Ollama-style ``/api/generate``)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx

from .base import clean_text, dig, is_absent
from .http import request_json

if TYPE_CHECKING:  # pragma: no cover
    from ..config import Config

__all__ = ["LocalClient", "DEFAULT_LOCAL_URL"]

DEFAULT_LOCAL_URL = "http://localhost:11434"
_TIMEOUT_SECONDS = 10.0


class LocalClient:
    """Talks to a local model server; needs only a model id."""

    def __init__(self, *, http_client: httpx.Client | None = None) -> None:
        self._http_client = http_client

    def generate_explanation(self, prompt: str, config: "Config") -> str | None:
        if is_absent(config.model):
            return None
        base = config.api_url if not is_absent(config.api_url) else DEFAULT_LOCAL_URL
        url = f"{str(base).rstrip('/')}/api/generate"
        payload = {"model": config.model, "prompt": prompt, "stream": False}
        data = request_json(url, payload, timeout=_TIMEOUT_SECONDS, client=self._http_client)
        if data is None:
            return None
        text = clean_text(data.get("response"))
        if text is not None:
            return text
        # OpenAI-compatible local servers answer with a chat completion body.
        return clean_text(dig(data, "choices", 0, "message", "content"))
