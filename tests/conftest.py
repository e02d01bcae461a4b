"""
Shared fixtures for the firesentinel tests.
"""

import pytest

from firesentinel.catalog import load_catalog
from firesentinel.config import default_config


class FakeClock:
    """Manually advanced clock for cache tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def catalog():
    """Bundled geography catalog."""
    return load_catalog()


@pytest.fixture
def config():
    """All-defaults configuration."""
    return default_config()


@pytest.fixture
def clock():
    return FakeClock()
