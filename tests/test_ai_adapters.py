"""Tests for the AI backend adapters using httpx mock transports."""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from error_explainer.ai import (
    AnthropicClient,
    GoogleClient,
    LocalClient,
    OpenAICompatibleClient,
    make_client,
)
from error_explainer.ai.base import SYSTEM_PROMPT, dig
from error_explainer.ai.http import CONNECT_TIMEOUT_CAP, build_timeout, request_json
from error_explainer.ai.openai_compat import sdk_base_url
from error_explainer.config import Config
from error_explainer.errors import ConfigurationError


class Recorder:
    def __init__(self, respond: Callable[[httpx.Request], httpx.Response]) -> None:
        self.respond = respond
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.respond(request)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))

    def body(self, index: int = 0) -> Any:
        return json.loads(self.requests[index].content)


def _json(payload: Any, status: int = 200) -> Callable[[httpx.Request], httpx.Response]:
    return lambda request: httpx.Response(status, json=payload)


# ---------------------------------------------------------------------------
# request_json
# ---------------------------------------------------------------------------


def test_request_json_returns_object_body() -> None:
    recorder = Recorder(_json({"ok": True}))

    data = request_json("https://ai.test/v1", {"a": 1}, client=recorder.client())

    assert data == {"ok": True}
    assert recorder.body() == {"a": 1}
    assert recorder.requests[0].headers["content-type"] == "application/json"


@pytest.mark.parametrize(
    "respond",
    [
        _json({"error": "nope"}, status=500),
        _json(["not", "an", "object"]),
        lambda request: httpx.Response(200, text="<html>"),
    ],
)
def test_request_json_returns_none_for_unusable_responses(
    respond: Callable[[httpx.Request], httpx.Response],
) -> None:
    recorder = Recorder(respond)

    assert request_json("https://ai.test/v1", {}, client=recorder.client()) is None


def test_request_json_swallows_transport_errors() -> None:
    def _fail(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    assert request_json("https://ai.test/v1", {}, client=Recorder(_fail).client()) is None


def test_build_timeout_caps_connect_phase() -> None:
    timeout = build_timeout(12)

    assert timeout.connect == CONNECT_TIMEOUT_CAP == 5
    assert timeout.read == 12
    assert timeout.write == 12
    assert build_timeout(3).connect == 3


def test_dig_walks_nested_structures() -> None:
    data = {"choices": [{"message": {"content": "hi"}}]}

    assert dig(data, "choices", 0, "message", "content") == "hi"
    assert dig(data, "choices", 3, "message") is None
    assert dig(data, "missing") is None


# ---------------------------------------------------------------------------
# Local
# ---------------------------------------------------------------------------


def test_local_client_posts_generate_request() -> None:
    recorder = Recorder(_json({"response": "  - Check the path\n"}))
    client = LocalClient(http_client=recorder.client())

    text = client.generate_explanation("why?", Config(backend="local", model="llama3"))

    assert text == "- Check the path"
    request = recorder.requests[0]
    assert str(request.url) == "http://localhost:11434/api/generate"
    assert recorder.body() == {"model": "llama3", "prompt": "why?", "stream": False}


def test_local_client_reads_chat_completion_shape() -> None:
    recorder = Recorder(_json({"choices": [{"message": {"content": "Use a default"}}]}))
    client = LocalClient(http_client=recorder.client())
    config = Config(backend="local", model="m", api_url="http://gpu-box:8080/")

    assert client.generate_explanation("p", config) == "Use a default"
    assert str(recorder.requests[0].url) == "http://gpu-box:8080/api/generate"


def test_local_client_requires_model() -> None:
    recorder = Recorder(_json({"response": "x"}))

    assert LocalClient(http_client=recorder.client()).generate_explanation("p", Config(backend="local")) is None
    assert recorder.requests == []


# ---------------------------------------------------------------------------
# Anthropic
# ---------------------------------------------------------------------------


def test_anthropic_client_sends_messages_request() -> None:
    recorder = Recorder(_json({"content": [{"type": "text", "text": "Close the file."}]}))
    client = AnthropicClient(http_client=recorder.client())
    config = Config(backend="anthropic", model="claude-test", api_key="sk-ant")

    assert client.generate_explanation("prompt", config) == "Close the file."
    request = recorder.requests[0]
    assert str(request.url) == "https://api.anthropic.com/v1/messages"
    assert request.headers["x-api-key"] == "sk-ant"
    assert request.headers["anthropic-version"] == "2023-06-01"
    body = recorder.body()
    assert body["system"] == SYSTEM_PROMPT
    assert body["max_tokens"] == 400
    assert body["messages"][0]["content"][0] == {"type": "text", "text": "prompt"}


def test_anthropic_client_scans_for_first_text_block() -> None:
    payload = {"content": [{"type": "tool_use", "id": "x"}, {"type": "text", "text": " later "}]}
    client = AnthropicClient(http_client=Recorder(_json(payload)).client())

    assert client.generate_explanation("p", Config(backend="anthropic", model="m", api_key="k")) == "later"


def test_anthropic_client_requires_key() -> None:
    recorder = Recorder(_json({}))
    config = Config(backend="anthropic", model="m", api_key="0")

    assert AnthropicClient(http_client=recorder.client()).generate_explanation("p", config) is None
    assert recorder.requests == []


# ---------------------------------------------------------------------------
# Google
# ---------------------------------------------------------------------------


def test_google_client_builds_model_url_with_key_param() -> None:
    payload = {"candidates": [{"content": {"parts": [{"text": "Install the module."}]}}]}
    recorder = Recorder(_json(payload))
    client = GoogleClient(http_client=recorder.client())
    config = Config(backend="google", model="gemini-1.5-flash", api_key="g-key")

    assert client.generate_explanation("prompt", config) == "Install the module."
    request = recorder.requests[0]
    assert request.url.path == "/v1/models/gemini-1.5-flash:generateContent"
    assert request.url.params["key"] == "g-key"
    body = recorder.body()
    assert body["contents"][0]["parts"][0]["text"] == "prompt"
    assert body["generationConfig"]["temperature"] == 0.2
    assert "systemInstruction" not in body


def test_google_client_falls_back_to_output_text() -> None:
    payload = {"candidates": [{"output_text": "fallback"}]}
    client = GoogleClient(http_client=Recorder(_json(payload)).client())

    assert client.generate_explanation("p", Config(backend="google", model="m", api_key="k")) == "fallback"


def test_google_client_returns_none_on_http_error() -> None:
    client = GoogleClient(http_client=Recorder(_json({"error": {}}, status=403)).client())

    assert client.generate_explanation("p", Config(backend="google", model="m", api_key="k")) is None


# ---------------------------------------------------------------------------
# OpenAI-compatible
# ---------------------------------------------------------------------------


def _completion(content: str) -> dict[str, Any]:
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 0,
        "model": "gpt-test",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }


def test_openai_client_uses_chat_completions() -> None:
    recorder = Recorder(_json(_completion(" 1. Cast the value ")))
    client = OpenAICompatibleClient(http_client=recorder.client())
    config = Config(backend="openai", model="gpt-test", api_key="sk-test")

    assert client.generate_explanation("prompt", config) == "1. Cast the value"
    request = recorder.requests[0]
    assert request.url.path == "/v1/chat/completions"
    assert request.headers["authorization"] == "Bearer sk-test"
    body = recorder.body()
    assert body["messages"][0] == {"role": "system", "content": SYSTEM_PROMPT}
    assert body["messages"][1] == {"role": "user", "content": "prompt"}


def test_openai_client_returns_none_on_error_status_without_retrying() -> None:
    recorder = Recorder(_json({"error": {"message": "bad key"}}, status=401))
    client = OpenAICompatibleClient(http_client=recorder.client())

    assert client.generate_explanation("p", Config(backend="api", model="m", api_key="k")) is None
    assert len(recorder.requests) == 1


@pytest.mark.parametrize(
    ("configured", "expected"),
    [
        (None, "https://api.openai.com/v1"),
        ("0", "https://api.openai.com/v1"),
        ("http://llm.local/v1/chat/completions", "http://llm.local/v1"),
        ("http://llm.local/v1/", "http://llm.local/v1"),
    ],
)
def test_sdk_base_url(configured: str | None, expected: str) -> None:
    assert sdk_base_url(configured) == expected


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("backend", [None, "", "0", "none", "NONE"])
def test_make_client_none_sentinels(backend: str | None) -> None:
    assert make_client(backend) is None


def test_make_client_selects_adapter() -> None:
    assert isinstance(make_client("gemini"), GoogleClient)
    assert isinstance(make_client("api"), OpenAICompatibleClient)
    assert isinstance(make_client(" Anthropic "), AnthropicClient)


def test_make_client_rejects_unknown_backend() -> None:
    with pytest.raises(ConfigurationError):
        make_client("mystery")


# ---------------------------------------------------------------------------
# Timeouts on the wire
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("make", "config", "payload", "total"),
    [
        (LocalClient, Config(backend="local", model="m"), {"response": "ok"}, 10),
        (AnthropicClient, Config(backend="anthropic", model="m", api_key="k"), {"content": [{"type": "text", "text": "ok"}]}, 12),
        (GoogleClient, Config(backend="google", model="m", api_key="k"), {"candidates": [{"output_text": "ok"}]}, 12),
        (OpenAICompatibleClient, Config(backend="openai", model="m", api_key="k"), _completion("ok"), 12),
    ],
)
def test_adapters_send_bounded_timeouts(
    make: Callable[..., Any], config: Config, payload: dict[str, Any], total: int
) -> None:
    recorder = Recorder(_json(payload))

    assert make(http_client=recorder.client()).generate_explanation("p", config) == "ok"
    timeout = recorder.requests[0].extensions["timeout"]
    assert timeout["connect"] == 5
    assert timeout["read"] == total
