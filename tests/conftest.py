"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Add tests to path for appmesh_mock imports
tests_path = Path(__file__).parent
sys.path.insert(0, str(tests_path))

from appmesh_mock import FakeClock, MockAppMeshClient  # noqa: E402

from appmesh_virtual_service.client import MeshClient  # noqa: E402
from appmesh_virtual_service.config import ClientConfig  # noqa: E402


@pytest.fixture
def fake_appmesh() -> MockAppMeshClient:
    """In-memory App Mesh API."""
    return MockAppMeshClient()


@pytest.fixture
def mesh_client(fake_appmesh: MockAppMeshClient) -> MeshClient:
    """MeshClient wired to the in-memory App Mesh API."""
    return MeshClient(ClientConfig(region="us-west-2"), client=fake_appmesh)


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock that only advances when the waiter sleeps."""
    return FakeClock()
