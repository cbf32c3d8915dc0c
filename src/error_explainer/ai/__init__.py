"""Text-generation backends used to enrich explanations."""

from .anthropic import AnthropicClient
from .base import AIClient, is_absent
from .factory import BACKENDS, make_client
from .google import GoogleClient
from .local import LocalClient
from .openai_compat import OpenAICompatibleClient

__all__ = [
    "AIClient",
    "AnthropicClient",
    "BACKENDS",
    "GoogleClient",
    "LocalClient",
    "OpenAICompatibleClient",
    "is_absent",
    "make_client",
]
