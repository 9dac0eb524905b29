"""
Pytest fixtures shared by the HTTP and websocket tests.
"""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from main import create_app
from store import StatusStore


@pytest.fixture
def store() -> StatusStore:
    return StatusStore(ttl=60)


@pytest.fixture
def client(store: StatusStore):
    with TestClient(create_app(store=store)) as test_client:
        yield test_client
