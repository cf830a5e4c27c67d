"""Pytest configuration and fixtures."""

import pytest

from sandbox_stream.domain.services.language_registry import LanguageRegistry
from sandbox_stream.infrastructure.config.settings import Settings
from tests.helpers import RecordingSink


@pytest.fixture
def settings() -> Settings:
    """Test settings, independent of the environment's .env file."""
    return Settings(_env_file=None, environment="development", prune_on_failure=True)


@pytest.fixture
def registry() -> LanguageRegistry:
    """Default language registry."""
    return LanguageRegistry()


@pytest.fixture
def sink() -> RecordingSink:
    """Message sink recording everything sent to the client."""
    return RecordingSink()


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: requires a running Docker daemon")
