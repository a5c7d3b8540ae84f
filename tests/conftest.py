"""Shared pytest fixtures."""

import logging

import pytest

from constants import Constants


@pytest.fixture(autouse=True)
def restore_constants():
    """Undo any Constants mutation made by config or CLI override tests."""
    saved = {
        key: (list(value) if isinstance(value, list) else value)
        for key, value in vars(Constants).items()
        if not key.startswith("__")
    }
    yield
    for key, value in saved.items():
        setattr(Constants, key, value)


@pytest.fixture(autouse=True)
def drop_cli_log_handlers():
    """Remove root handlers installed by configure_logging during a test."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, "_gemindex_handler", False) or isinstance(handler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
