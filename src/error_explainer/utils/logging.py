"""Opt-in diagnostic logging for the error explainer itself.

Verbose mode writes the package's own debug records to a rotating log file so
that hook installation, AI calls and render failures can be inspected after the
fact. Only the ``error_explainer`` logger hierarchy is configured; the host
application's root logging setup is never modified.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from pathlib import Path

__all__ = ["setup_logging", "get_log_path", "LOG_DIR_ENV"]

LOG_DIR_ENV = "ERROR_EXPLAINER_LOG_DIR"
LOG_FILE_NAME = "error_explainer.log"
_PACKAGE_LOGGER = "error_explainer"
_FALLBACK_DIR = Path("~/.error_explainer/logs")
_RECORD_FORMAT = "%(asctime)s %(levelname)s [%(name)s:%(lineno)d] %(message)s"
_CHATTY_CLIENTS = ("httpx", "httpcore", "openai")


@dataclass(slots=True)
class _LoggingState:
    log_path: Path | None = None


_STATE = _LoggingState()


def setup_logging(
    level: int = logging.DEBUG,
    *,
    log_dir: Path | str | None = None,
    console: bool = False,
    max_bytes: int = 1_000_000,
    backup_count: int = 3,
    force: bool = False,
) -> Path:
    """Route package records to ``<log_dir>/error_explainer.log`` and return that path.

    A second call is a no-op returning the first path unless ``force`` is set.
    """

    if _STATE.log_path is not None and not force:
        return _STATE.log_path

    directory = _log_directory(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    log_path = directory / LOG_FILE_NAME

    formatter = logging.Formatter(_RECORD_FORMAT)
    new_handlers: list[logging.Handler] = [
        RotatingFileHandler(log_path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8")
    ]
    if console:
        new_handlers.append(logging.StreamHandler())
    for handler in new_handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)

    package_logger = logging.getLogger(_PACKAGE_LOGGER)
    _replace_handlers(package_logger, new_handlers)
    package_logger.setLevel(level)
    _quiet_http_clients(level)

    _STATE.log_path = log_path
    return log_path


def get_log_path() -> Path | None:
    """Return the active log file, or ``None`` before :func:`setup_logging` ran."""

    return _STATE.log_path


def _log_directory(explicit: Path | str | None) -> Path:
    if explicit:
        return Path(explicit).expanduser()
    from_env = os.environ.get(LOG_DIR_ENV, "").strip()
    return Path(from_env).expanduser() if from_env else _FALLBACK_DIR.expanduser()


def _replace_handlers(logger: logging.Logger, handlers: list[logging.Handler]) -> None:
    # The NullHandler installed by the package __init__ stays in place.
    stale = [h for h in logger.handlers if not isinstance(h, logging.NullHandler)]
    for handler in stale:
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        logger.addHandler(handler)


def _quiet_http_clients(level: int) -> None:
    floor = max(level, logging.WARNING)
    for name in _CHATTY_CLIENTS:
        logging.getLogger(name).setLevel(floor)
