"""Shared fixtures for iam-policy-eval tests."""

from __future__ import annotations

import importlib
import logging
from pathlib import Path

import pytest

from iam_policy_eval.constants import LOGGER_NAME


@pytest.fixture(autouse=True)
def reset_app_logger():
    """Undo handlers installed by setup_system_logger so caplog sees records."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture(autouse=True)
def isolated_config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the default config location at a file that does not exist."""
    path = tmp_path / "user-config" / "config.json"
    # cli/__init__ rebinds "main" to the entry function, so fetch the module itself
    cli_main = importlib.import_module("iam_policy_eval.cli.main")
    monkeypatch.setattr(cli_main, "get_config_path", lambda: path)
    return path
