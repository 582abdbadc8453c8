"""
Integration test fixtures.

Integration tests:
- Test component boundaries
- Use real I/O but to temp locations
- Should be deterministic
"""

import pytest
import tempfile
import shutil
from pathlib import Path

from config import Settings, ResolverSettings, PathSettings


@pytest.fixture
def temp_dir():
    """Temporary directory for test data."""
    d = tempfile.mkdtemp()
    yield Path(d)
    shutil.rmtree(d, ignore_errors=True)


@pytest.fixture
def data_dir(temp_dir):
    """Temporary JSON backend directory."""
    p = temp_dir / "data"
    p.mkdir()
    return p


@pytest.fixture
def json_settings(data_dir):
    """Settings pointing the JSON backend at the temp directory."""
    return Settings(
        resolver=ResolverSettings(),
        paths=PathSettings(),
        backend="json",
        data_dir=data_dir,
    )


@pytest.fixture
def flask_app(settings):
    """App over a fresh in-memory repository."""
    from app import create_app
    from repositories import MemoryRepository
    return create_app(settings, MemoryRepository())


@pytest.fixture
def services(flask_app):
    """The app's own core services, for seeding data."""
    from routes.services import EXTENSION_KEY
    return flask_app.extensions[EXTENSION_KEY]


@pytest.fixture
def client(flask_app):
    return flask_app.test_client()
