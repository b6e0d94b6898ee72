"""App Mesh API Mock for Testing.

This module provides an in-memory stand-in for the boto3 ``appmesh``
client that enables testing without AWS connectivity.

Key Features:
- In-memory virtual service state keyed by mesh, owner and name
- Scripted describe results for driving the deletion waiter
- Error injection using real botocore ClientError payloads
- Call recording for asserting on exactly what was sent

Usage:
    from appmesh_mock import MockAppMeshClient

    fake = MockAppMeshClient()
    client = MeshClient(client=fake)
    await find_or_create(client, parameters)

    assert fake.call_count("create_virtual_service") == 1
"""

from .client import MockAppMeshClient, RecordedCall, client_error, not_found_error
from .clock import FakeClock

__all__ = [
    "FakeClock",
    "MockAppMeshClient",
    "RecordedCall",
    "client_error",
    "not_found_error",
]
