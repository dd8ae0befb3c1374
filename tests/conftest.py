"""
Shared pytest configuration for the AceInBase tests.

This file is automatically discovered by pytest. Unit tests never reach
Gemini or MongoDB: providers are replaced with unittest.mock objects and
the progress collection with the in-memory fake from tests/fakes.py.
"""

import pytest


@pytest.fixture(autouse=True)
def gemini_api_key(monkeypatch):
    """
    Auto-fixture giving every test a dummy Gemini key.

    Tests that need the key to be missing patch it back to "".
    """
    from aceinbase.config import Config

    monkeypatch.setattr(Config, "GEMINI_API_KEY", "test-key")
    yield


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
