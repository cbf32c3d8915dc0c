"""One-shot JSON POST helper shared by the HTTP-based adapters."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping

import httpx

__all__ = ["CONNECT_TIMEOUT_CAP", "build_timeout", "request_json"]

LOGGER = logging.getLogger(__name__)

CONNECT_TIMEOUT_CAP = 5.0


def build_timeout(total: float) -> httpx.Timeout:
    """Total request budget with the connect phase capped at five seconds."""

    return httpx.Timeout(total, connect=min(CONNECT_TIMEOUT_CAP, total))


def request_json(
    url: str,
    payload: Mapping[str, Any],
    *,
    headers: Mapping[str, str] | None = None,
    params: Mapping[str, str] | None = None,
    timeout: float = 12.0,
    client: httpx.Client | None = None,
) -> Dict[str, Any] | None:
    """POST ``payload`` as JSON and return the decoded object body.

    Network errors, timeouts, non-2xx statuses and bodies that are not a JSON
    object all yield ``None``. Provider error bodies are never logged.
    """

    request_headers = {"Content-Type": "application/json", "Accept": "application/json"}
    if headers:
        request_headers.update(headers)

    owns_client = client is None
    http = client if client is not None else httpx.Client(timeout=build_timeout(timeout))
    try:
        response = http.post(
            url,
            json=dict(payload),
            headers=request_headers,
            params=params,
            timeout=build_timeout(timeout),
        )
    except httpx.HTTPError as exc:
        LOGGER.debug("AI request to %s failed: %s", _redact_url(url), exc.__class__.__name__)
        return None
    finally:
        if owns_client:
            http.close()

    if not response.is_success:
        LOGGER.debug("AI request to %s returned HTTP %s", _redact_url(url), response.status_code)
        return None
    try:
        data = response.json()
    except ValueError:
        LOGGER.debug("AI response from %s was not JSON", _redact_url(url))
        return None
    return data if isinstance(data, dict) else None


def _redact_url(url: str) -> str:
    return url.split("?", 1)[0]
