"""Service test fixtures — FastAPI test client around a seeded in-memory store.

Invariants:
    - Every test gets a fresh app and a fresh store (seeded with "tj")

Design Decisions:
    - create_app(store) over dependency overrides: the store is a constructor
      argument of the users router, nothing global to patch
"""

import pytest
from httpx import ASGITransport, AsyncClient

from typed_pipeline.main import create_app
from typed_pipeline.services.user_store import InMemoryUserStore


@pytest.fixture
def store():
    return InMemoryUserStore(["tj"])


@pytest.fixture
async def client(store):
    app = create_app(store)
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c
