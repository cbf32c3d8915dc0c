"""Registration facade: one :class:`ErrorExplainer` context owns the installed hooks."""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from .ai.base import AIClient
from .ai.factory import make_client
from .config import Config
from .explainer import Explainer
from .handler import FaultHandler
from .hooks import CapturedHooks, HookChain
from .render.context import ConsoleTarget, OutputTarget
from .render.factory import RendererFactory
from .severity import SuppressionPolicy
from .utils.logging import setup_logging

__all__ = ["ErrorExplainer", "default_context", "register", "unregister", "get_config"]

LOGGER = logging.getLogger(__name__)


class ErrorExplainer:
    """Registration state for one host process (or one test).

    ``register`` is idempotent and ``unregister`` is a no-op when nothing is
    installed. Separate instances do not share state, but only one of them
    should own the process hooks at a time.
    """

    def __init__(
        self,
        *,
        environ: Mapping[str, str] | None = None,
        ai_client: AIClient | None = None,
        target_factory: Callable[[], OutputTarget] = ConsoleTarget,
        suppression: SuppressionPolicy | None = None,
    ) -> None:
        self._environ = environ
        self._ai_client = ai_client
        self._target_factory = target_factory
        self._suppression = suppression
        self._chain = HookChain()
        self._handler: FaultHandler | None = None
        self._config: Config | None = None

    @property
    def registered(self) -> bool:
        return self._handler is not None

    @property
    def installed(self) -> bool:
        return self._chain.installed

    @property
    def handler(self) -> FaultHandler | None:
        return self._handler

    def get_config(self) -> Config | None:
        return self._config

    def register(self, options: Mapping[str, Any] | None = None, **overrides: Any) -> "ErrorExplainer":
        """Resolve configuration and install hooks unless disabled."""

        if self._handler is not None:
            return self

        merged: dict[str, Any] = dict(options or {})
        merged.update(overrides)
        config = Config.resolve(merged, environ=self._environ)
        if config.debug_logging:
            log_path = setup_logging()
            LOGGER.debug("Debug logging enabled at %s", log_path)

        # Surface an unknown backend now rather than inside a crash handler.
        ai_client = self._ai_client or make_client(config.backend)
        explainer = Explainer(ai_client)
        renderers = RendererFactory(environ=self._environ)

        if not config.enabled:
            self._handler = FaultHandler(
                config,
                explainer=explainer,
                renderers=renderers,
                target_factory=self._target_factory,
                suppression=self._suppression,
            )
            self._config = config
            LOGGER.debug("Error explainer disabled; no hooks installed")
            return self

        captured = CapturedHooks.current()
        handler = FaultHandler(
            config,
            previous_error_hook=captured.previous_error_hook(),
            previous_exception_hook=captured.previous_exception_hook(),
            explainer=explainer,
            renderers=renderers,
            target_factory=self._target_factory,
            suppression=self._suppression,
        )
        self._chain.install(handler, captured)
        self._handler = handler
        self._config = config
        LOGGER.debug("Error explainer registered (backend=%s, output=%s)", config.backend_id, config.output)
        return self

    def unregister(self) -> None:
        if self._handler is None:
            return
        try:
            self._chain.restore()
        except Exception:  # pragma: no cover - restore already swallows per hook
            LOGGER.debug("Hook restore failed", exc_info=True)
        self._handler = None
        self._config = None


_DEFAULT = ErrorExplainer()


def default_context() -> ErrorExplainer:
    return _DEFAULT


def register(options: Mapping[str, Any] | None = None, **overrides: Any) -> ErrorExplainer:
    """Register the process-wide explainer (idempotent)."""

    return _DEFAULT.register(options, **overrides)


def unregister() -> None:
    _DEFAULT.unregister()


def get_config() -> Config | None:
    return _DEFAULT.get_config()
