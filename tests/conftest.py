# tests/conftest.py
"""
Common fixtures for all test types
Shared across unit and integration tests
"""

import sys
import tempfile
from pathlib import Path

import pytest

# Add project root to Python path so 'logga' can be imported
# without installing the package
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def log_file(temp_dir):
    """Create an empty log file to tail"""
    path = temp_dir / "access.log"
    path.write_bytes(b"")
    return path


@pytest.fixture
def config_file(temp_dir, log_file):
    """Create a valid config file pointing at temp paths"""
    archive_dir = temp_dir / "archives"
    archive_dir.mkdir()

    config_content = f"""
s3:
  bucket: test-bucket
  region: us-east-1

tail:
  path: {log_file}
  poll_interval_ms: 10
  buffer_size: 1024

watch:
  directory: {archive_dir}
  extension: zip
"""
    path = temp_dir / "config.yaml"
    path.write_text(config_content)
    return path
