"""Shared fixtures for the delta sync tests."""

import logging

import pytest
import structlog


@pytest.fixture(autouse=True)
def reset_logging():
    """Undo any logging configuration a test installed."""
    yield
    for handler in logging.root.handlers[:]:
        logging.root.removeHandler(handler)
        handler.close()
    structlog.reset_defaults()
