"""Pytest configuration and shared fixtures."""
import os
import sys
from pathlib import Path

import pytest

# Add backend directory to Python path
backend_dir = Path(__file__).parent.parent
sys.path.insert(0, str(backend_dir))

# Configure Django settings for tests
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "hydropanel.settings")
os.environ.setdefault("CHANNEL_LAYER", "memory")
os.environ.setdefault("READING_HISTORY_ENABLED", "false")

import django
django.setup()

import logging  # noqa: E402

# Let caplog see app loggers (they do not propagate in LOGGING)
for _name in ("metering", "alerts", "accounts", "storage"):
    logging.getLogger(_name).propagate = True

from tests.mocks.notifications import register_mock_strategies  # noqa: E402
from tests.mocks.readers import register_mock_readers  # noqa: E402
from tests.mocks.storage import register_mock_storage  # noqa: E402


@pytest.fixture(autouse=True)
def register_mocks():
    """Register mock readers, strategies and storage before each test."""
    register_mock_readers()
    register_mock_strategies()
    register_mock_storage()
    yield


@pytest.fixture(autouse=True)
def isolated_runtime():
    """Make sure no runtime leaks between tests."""
    from hydropanel.runtime import reset_runtime

    reset_runtime()
    yield
    reset_runtime()


@pytest.fixture
def sample_storage_config():
    """Sample storage configuration for testing."""
    return {
        "url": "http://localhost:8086",
        "token": "test-token",
        "org": "test-org",
        "bucket": "test-bucket",
    }
