"""Tests for the opt-in diagnostic logging setup."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path
from typing import Iterator

import pytest

from error_explainer.utils.logging import get_log_path, setup_logging


@pytest.fixture
def package_logger() -> Iterator[logging.Logger]:
    logger = logging.getLogger("error_explainer")
    saved_handlers = list(logger.handlers)
    saved_level = logger.level
    yield logger
    for handler in list(logger.handlers):
        if handler not in saved_handlers:
            logger.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        if handler not in logger.handlers:
            logger.addHandler(handler)
    logger.setLevel(saved_level)


def test_setup_logging_writes_to_rotating_file(tmp_path: Path, package_logger: logging.Logger) -> None:
    log_path = setup_logging(log_dir=tmp_path, force=True)

    logging.getLogger("error_explainer.handler").debug("hook installed")
    for handler in package_logger.handlers:
        handler.flush()

    assert log_path == tmp_path / "error_explainer.log"
    assert get_log_path() == log_path
    assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in package_logger.handlers)
    assert "hook installed" in log_path.read_text(encoding="utf-8")


def test_setup_logging_honours_environment_directory(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, package_logger: logging.Logger
) -> None:
    monkeypatch.setenv("ERROR_EXPLAINER_LOG_DIR", str(tmp_path / "logs"))

    log_path = setup_logging(force=True)

    assert log_path == tmp_path / "logs" / "error_explainer.log"


def test_setup_logging_leaves_root_logger_alone(tmp_path: Path, package_logger: logging.Logger) -> None:
    root_handlers = list(logging.getLogger().handlers)

    setup_logging(log_dir=tmp_path, force=True)

    assert logging.getLogger().handlers == root_handlers
    assert logging.getLogger("httpx").level == logging.WARNING


def test_repeated_setup_without_force_reuses_path(tmp_path: Path, package_logger: logging.Logger) -> None:
    first = setup_logging(log_dir=tmp_path / "a", force=True)

    second = setup_logging(log_dir=tmp_path / "b")

    assert second == first
