# tests/integration/conftest.py
"""
Fixtures for integration tests (mocked S3, real watchdog observer)
"""

from unittest.mock import Mock

import pytest


@pytest.fixture
def mock_s3_client():
    """Mock S3 client for integration tests"""
    mock = Mock()
    mock.put_object.return_value = {"ETag": '"mock"'}
    return mock


@pytest.fixture
def archive_dir(temp_dir):
    path = temp_dir / "archives"
    path.mkdir(exist_ok=True)
    return path
