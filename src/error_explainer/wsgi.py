"""WSGI middleware that answers unhandled application errors with an explanation."""

from __future__ import annotations

import logging
import sys
from typing import Any, Callable, Iterable

from .app import ErrorExplainer, default_context
from .render.context import ERROR_STATUS, HttpTarget

__all__ = ["ExplainerMiddleware"]

LOGGER = logging.getLogger(__name__)

_STATUS_LINES = {ERROR_STATUS: "500 Internal Server Error"}


class ExplainerMiddleware:
    """Wraps a WSGI app; exceptions escaping it are explained into a 500 response.

    Only exceptions raised before the body starts streaming are caught: once
    the wrapped app has returned its iterable, errors propagate to the server.
    """

    def __init__(self, app: Callable[..., Iterable[bytes]], explainer: ErrorExplainer | None = None) -> None:
        self.app = app
        self._explainer = explainer

    @property
    def explainer(self) -> ErrorExplainer:
        return self._explainer or default_context()

    def __call__(self, environ: dict[str, Any], start_response: Callable[..., Any]) -> Iterable[bytes]:
        try:
            return self.app(environ, start_response)
        except Exception as exc:
            handler = self.explainer.handler
            if handler is None:
                raise
            target = HttpTarget(environ)
            # A disabled handler with no previous hook re-raises ``exc`` here.
            handler.handle_exception(exc, target=target, previous=None)
            LOGGER.debug("Explained %s for %s", type(exc).__name__, environ.get("PATH_INFO", "/"))
            body = target.body.encode("utf-8")
            status = target.status or ERROR_STATUS
            headers = [
                ("Content-Type", target.content_type or "text/plain; charset=utf-8"),
                ("Content-Length", str(len(body))),
            ]
            start_response(_STATUS_LINES.get(status, f"{status} Error"), headers, sys.exc_info())
            return [body]
