"""Exception types raised for operator-visible configuration problems."""

from __future__ import annotations

__all__ = ["ConfigurationError", "TemplateNotFoundError"]


class ConfigurationError(ValueError):
    """Raised when configuration cannot produce a working pipeline."""


class TemplateNotFoundError(ConfigurationError, FileNotFoundError):
    """Raised when the resolved HTML template path does not exist."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Error explainer template not found: {path}")
        self.path = path
