"""Fixtures for API unit tests: app bound to the seeded in-memory container, AsyncClient."""

import pytest
from httpx import ASGITransport, AsyncClient

from gitguard.main import create_app


@pytest.fixture
def app(container):
    return create_app(container)


@pytest.fixture
async def async_client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


def as_user(user_id: str) -> dict:
    return {"X-User-ID": user_id, "User-Agent": "gitguard-tests/1.0"}


@pytest.fixture
def owner_headers():
    return as_user("u-owner")


@pytest.fixture
def requester_headers():
    return as_user("u-requester")
