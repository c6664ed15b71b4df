"""Unit tests for authentication dependencies."""

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from api.main import app
from packages.auth.models.domain.authenticated_user import AuthenticatedUser
from packages.auth.providers.factory import get_identity_provider
from packages.auth.providers.models import IdentityClaims
from packages.billing.models.domain.enums import BillingRole
from packages.directory.models.domain.enums import TenantRole
from packages.directory.providers.store.factory import get_directory_store
from tests.factories.directory_factory import DirectoryFactory


@pytest_asyncio.fixture
async def anonymous_client(memory_store, mock_identity):
    """Client with the real bearer-token dependency."""
    app.dependency_overrides[get_directory_store] = lambda: memory_store
    app.dependency_overrides[get_identity_provider] = lambda: mock_identity
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
            yield ac
    finally:
        app.dependency_overrides.clear()


@pytest.mark.asyncio
class TestBearerAuth:
    async def test_missing_header(self, anonymous_client):
        response = await anonymous_client.get("/api/v1/users/me")

        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_wrong_scheme(self, anonymous_client):
        response = await anonymous_client.get(
            "/api/v1/users/me", headers={"Authorization": "Basic abc"}
        )

        assert response.status_code == 401

    async def test_empty_token(self, anonymous_client):
        response = await anonymous_client.get(
            "/api/v1/users/me", headers={"Authorization": "Bearer   "}
        )

        assert response.status_code == 401

    async def test_valid_token(self, anonymous_client, memory_store, mock_identity):
        mock_identity.verify_token.return_value = IdentityClaims(uid="parent-1", email="p@example.com")
        await DirectoryFactory.create_tenant(memory_store, "parent-1", TenantRole.PARENT)

        response = await anonymous_client.get(
            "/api/v1/users/me", headers={"Authorization": "Bearer good-token"}
        )

        assert response.status_code == 200
        assert response.json()["uid"] == "parent-1"
        mock_identity.verify_token.assert_awaited_once_with("good-token")

    async def test_public_catalog_needs_no_token(self, anonymous_client):
        response = await anonymous_client.get("/api/v1/subscriptions/packages/employer")

        assert response.status_code == 200


@pytest.mark.asyncio
class TestSubscribedTenant:
    async def test_managed_tenant_covered_by_owner(self, client, memory_store, auth_state):
        await DirectoryFactory.create_tenant(
            memory_store, "district-1", TenantRole.DISTRICT_ADMIN, organization_id="d-org"
        )
        await DirectoryFactory.create_subscription(
            memory_store, "district-1", BillingRole.DISTRICT_ADMIN, "small"
        )
        await DirectoryFactory.create_tenant(
            memory_store,
            "sa-1",
            TenantRole.SCHOOL_ADMIN,
            billing_owner_id="district-1",
            creator_id="district-1",
            organization_id="school-a",
        )
        auth_state["user"] = AuthenticatedUser(uid="sa-1", email="sa-1@example.com")

        response = await client.post(
            "/api/v1/admin/create-staff",
            json={
                "email": "t@example.com",
                "password": "secret123",
                "firstName": "Tea",
                "lastName": "Cher",
            },
        )

        assert response.status_code == 201
        assert response.json()["billingOwnerId"] == "district-1"

    async def test_no_subscription(self, client, memory_store):
        await DirectoryFactory.create_tenant(memory_store, "parent-1", TenantRole.PARENT)

        response = await client.post(
            "/api/v1/parents/create-child",
            json={
                "email": "kid@example.com",
                "password": "secret123",
                "firstName": "Kid",
                "lastName": "Doe",
            },
        )

        assert response.status_code == 403
        assert response.json()["reason"] == "no_subscription"
