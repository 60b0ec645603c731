"""
Pytest configuration and shared fixtures.

Provides fresh services over an in-memory identity store, a FastAPI test
application wired to that same store, and a helper that builds bearer
headers for any user id. Every fixture is function-scoped, so each test
starts from empty storage.
"""

import pytest
from fastapi.testclient import TestClient

from placement_verify.core.auth import create_access_token
from placement_verify.core.config import Settings
from placement_verify.db.memory_store import InMemoryIdentityStore
from placement_verify.main import create_app
from placement_verify.services.organization_service import OrganizationsService
from placement_verify.services.profile_service import ProfileService


@pytest.fixture
def identity_store():
    """An empty in-memory identity store with seeding helpers."""
    return InMemoryIdentityStore()


@pytest.fixture
def profile_service(identity_store):  # pylint: disable=redefined-outer-name
    return ProfileService(identity_store)


@pytest.fixture
def organizations_service():
    return OrganizationsService()


@pytest.fixture
def app(identity_store):  # pylint: disable=redefined-outer-name
    """
    Create a FastAPI application for testing.

    The identity store is injected so tests can seed users, sessions and
    documents directly and observe what the endpoints write back.
    """
    settings = Settings(store_backend="memory", api_prefix="/v1", log_level="WARNING")
    return create_app(settings, identity_store=identity_store)


@pytest.fixture
def client(app):  # pylint: disable=redefined-outer-name
    """
    Provide a test client for making HTTP requests.

    Usage in tests::

        def test_health(client):
            response = client.get("/health")
            assert response.status_code == 200
    """
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def auth_headers():
    """Factory: ``auth_headers(user_id, roles=("admin",))`` -> request headers."""

    def _headers(user_id, roles=()):
        token = create_access_token({"sub": user_id, "roles": list(roles)})
        return {"Authorization": f"Bearer {token}"}

    return _headers
