"""Adapter for Google's generative-content (Gemini) API."""

from __future__ import annotations

from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx

from .base import TEMPERATURE, clean_text, dig, is_absent
from .http import request_json

if TYPE_CHECKING:  # pragma: no cover
    from ..config import Config

__all__ = ["GoogleClient", "DEFAULT_GOOGLE_URL"]

DEFAULT_GOOGLE_URL = "https://generativelanguage.googleapis.com/v1/models"
_TIMEOUT_SECONDS = 12.0


class GoogleClient:
    def __init__(self, *, http_client: httpx.Client | None = None) -> None:
        self._http_client = http_client

    def generate_explanation(self, prompt: str, config: "Config") -> str | None:
        if is_absent(config.api_key) or is_absent(config.model):
            return None
        base = config.api_url if not is_absent(config.api_url) else DEFAULT_GOOGLE_URL
        url = f"{str(base).rstrip('/')}/{quote(str(config.model), safe='')}:generateContent"
        payload = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {"temperature": TEMPERATURE},
        }
        data = request_json(
            url,
            payload,
            params={"key": str(config.api_key)},
            timeout=_TIMEOUT_SECONDS,
            client=self._http_client,
        )
        if data is None:
            return None
        text = clean_text(dig(data, "candidates", 0, "content", "parts", 0, "text"))
        if text is not None:
            return text
        return clean_text(dig(data, "candidates", 0, "output_text"))
