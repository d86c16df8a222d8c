"""Shared pytest fixtures."""

import pytest

from receipt_split.config import get_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    """Reload settings around each test so monkeypatched env vars take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
