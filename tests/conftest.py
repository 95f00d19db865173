"""Pytest configuration and fixtures."""

import sys
from collections.abc import Iterator
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest
from fastapi.testclient import TestClient

from kitbash.app import create_app
from kitbash.config import Settings


@pytest.fixture
def scene_dir(tmp_path: Path) -> Path:
    """Create an empty scene directory."""
    path = tmp_path / "scene"
    path.mkdir()
    return path


@pytest.fixture
def settings(scene_dir: Path) -> Settings:
    """Create test settings."""
    return Settings(
        host="127.0.0.1",
        port=8080,
        debug=True,
        scene_dir=scene_dir,
    )


@pytest.fixture
def client(settings: Settings) -> Iterator[TestClient]:
    """Create test client with the pipeline running."""
    app = create_app(settings)
    with TestClient(app) as test_client:
        yield test_client
