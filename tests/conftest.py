"""Shared pytest configuration and fixtures for DocSentry tests.

Sets required environment variables before any docsentry module is imported,
so that ``docsentry.config.get_settings()`` succeeds in the test environment.
"""
from __future__ import annotations

import os
import tempfile

import pytest

# Set required env vars before any docsentry module is imported
os.environ.setdefault("LOCAL_DIR", tempfile.gettempdir())
os.environ.setdefault("SCAN_ON_STARTUP", "false")


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Give every test a fresh settings singleton."""
    from docsentry.config import get_settings

    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
