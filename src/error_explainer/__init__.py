"""Explain uncaught Python errors in the terminal, as HTML, or as JSON."""

from __future__ import annotations

import logging

from .app import ErrorExplainer, default_context, get_config, register, unregister
from .config import Config, SanitizeSettings
from .errors import ConfigurationError, TemplateNotFoundError
from .explainer import Explainer
from .handler import FaultHandler
from .models import DispatchResult, Explanation, FaultEvent, FaultKind, StackFrame, StateSnapshot
from .sanitizer import SanitizerConfig, sanitize
from .severity import Severity, SuppressionPolicy, suppressed
from .wsgi import ExplainerMiddleware

__all__ = [
    "ConfigurationError",
    "Config",
    "DispatchResult",
    "ErrorExplainer",
    "Explainer",
    "ExplainerMiddleware",
    "Explanation",
    "FaultEvent",
    "FaultHandler",
    "FaultKind",
    "SanitizeSettings",
    "SanitizerConfig",
    "Severity",
    "StackFrame",
    "StateSnapshot",
    "SuppressionPolicy",
    "TemplateNotFoundError",
    "default_context",
    "get_config",
    "register",
    "sanitize",
    "suppressed",
    "unregister",
]

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
