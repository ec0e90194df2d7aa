"""
Integration tests for organization and company endpoints (RBAC and multi-tenancy).
"""

from datetime import date
from uuid import uuid4

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from marketplace.models import AuditLog, Company, Organization, Profile

pytestmark = pytest.mark.integration


class TestOrganizationsEndpoint:
    """Test /api/v1/organizations endpoints."""

    @pytest.mark.asyncio
    async def test_list_organizations_without_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/organizations")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_list_only_own_organization(
        self, client: AsyncClient, seller_user: Profile, other_organization: Organization, auth_headers
    ):
        response = await client.get("/api/v1/organizations", headers=auth_headers(seller_user))

        assert response.status_code == 200
        data = response.json()
        assert len(data) == 1
        assert data[0]["id"] == str(seller_user.organization_id)

    @pytest.mark.asyncio
    async def test_admin_lists_every_organization(
        self, client: AsyncClient, admin_user: Profile, other_organization: Organization, auth_headers
    ):
        response = await client.get("/api/v1/organizations", headers=auth_headers(admin_user))

        assert len(response.json()) == 2

    @pytest.mark.asyncio
    async def test_get_organization_requires_membership(
        self, client: AsyncClient, seller_user: Profile, other_organization: Organization, auth_headers
    ):
        own = await client.get(f"/api/v1/organizations/{seller_user.organization_id}", headers=auth_headers(seller_user))
        other = await client.get(f"/api/v1/organizations/{other_organization.id}", headers=auth_headers(seller_user))

        assert own.status_code == 200
        assert other.status_code == 403

    @pytest.mark.asyncio
    async def test_update_requires_permission(
        self, client: AsyncClient, broker_user: Profile, seller_user: Profile, auth_headers
    ):
        org_id = broker_user.organization_id

        denied = await client.put(
            f"/api/v1/organizations/{org_id}", json={"description": "x"}, headers=auth_headers(seller_user)
        )
        allowed = await client.put(
            f"/api/v1/organizations/{org_id}", json={"description": "Konepaja"}, headers=auth_headers(broker_user)
        )

        assert denied.status_code == 403
        assert allowed.status_code == 200
        assert allowed.json()["description"] == "Konepaja"

    @pytest.mark.asyncio
    async def test_create_for_user_without_organization(
        self, client: AsyncClient, partner_user: Profile, seller_user: Profile, auth_headers
    ):
        created = await client.post(
            "/api/v1/organizations", json={"name": "Laskuri Advisory Oy"}, headers=auth_headers(partner_user)
        )
        again = await client.post(
            "/api/v1/organizations", json={"name": "Another Oy"}, headers=auth_headers(seller_user)
        )

        assert created.status_code == 201
        assert created.json()["slug"] == "laskuri-advisory-oy"
        assert again.status_code == 409

    @pytest.mark.asyncio
    async def test_create_slug_conflict(
        self, client: AsyncClient, partner_user: Profile, test_organization: Organization, auth_headers
    ):
        response = await client.post(
            "/api/v1/organizations",
            json={"name": "Test Seller", "slug": "test-seller"},
            headers=auth_headers(partner_user),
        )

        assert response.status_code == 409


class TestCompaniesEndpoint:
    """Test /api/v1/companies endpoints."""

    @pytest.mark.asyncio
    async def test_list_companies(self, client: AsyncClient, seller_user: Profile, test_company: Company, auth_headers):
        response = await client.get("/api/v1/companies", headers=auth_headers(seller_user))

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"] == {"total": 1, "limit": 50, "offset": 0, "has_more": False}
        company = data["companies"][0]
        assert company["name"] == "Nordic Components Oy"
        assert company["financials"][0]["fiscal_year"] == 2023

    @pytest.mark.asyncio
    async def test_list_is_tenant_scoped(
        self, client: AsyncClient, outsider_user: Profile, test_company: Company, auth_headers
    ):
        response = await client.get("/api/v1/companies", headers=auth_headers(outsider_user))

        assert response.json()["companies"] == []

    @pytest.mark.asyncio
    async def test_list_without_organization(self, client: AsyncClient, partner_user: Profile, auth_headers):
        response = await client.get("/api/v1/companies", headers=auth_headers(partner_user))

        assert response.status_code == 404
        assert response.json()["detail"] == "Organization not found"

    @pytest.mark.asyncio
    async def test_list_pagination(self, client: AsyncClient, seller_user: Profile, test_company: Company, auth_headers):
        for name in ("Second Oy", "Third Oy"):
            await client.post(
                "/api/v1/companies", json={"name": name, "industry": "IT"}, headers=auth_headers(seller_user)
            )

        response = await client.get("/api/v1/companies?limit=2&industry=IT", headers=auth_headers(seller_user))

        data = response.json()
        assert data["pagination"]["total"] == 2
        assert data["pagination"]["has_more"] is False
        assert {c["name"] for c in data["companies"]} == {"Second Oy", "Third Oy"}

        page = await client.get("/api/v1/companies?limit=1", headers=auth_headers(seller_user))
        assert page.json()["pagination"]["has_more"] is True

    @pytest.mark.asyncio
    async def test_create_company_with_financials(
        self, client: AsyncClient, seller_user: Profile, auth_headers, test_db
    ):
        response = await client.post(
            "/api/v1/companies",
            json={
                "name": "Konepaja Oy",
                "industry": "Manufacturing",
                "financials": {"revenue": 2000000, "net_profit": 150000},
            },
            headers=auth_headers(seller_user),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["country"] == "Finland"
        assert data["legal_structure"] == "family_owned"
        assert data["status"] == "active"
        assert data["financials"][0]["fiscal_year"] == date.today().year
        assert data["financials"][0]["net_income"] == 150000

        actions = (await test_db.execute(select(AuditLog.action))).scalars().all()
        assert "company.created" in actions

    @pytest.mark.asyncio
    async def test_create_requires_name_and_industry(self, client: AsyncClient, seller_user: Profile, auth_headers):
        response = await client.post("/api/v1/companies", json={"name": "Only Name Oy"}, headers=auth_headers(seller_user))

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_buyer_cannot_create(self, client: AsyncClient, buyer_user: Profile, auth_headers):
        response = await client.post(
            "/api/v1/companies", json={"name": "X Oy", "industry": "IT"}, headers=auth_headers(buyer_user)
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_get_company_access(
        self, client: AsyncClient, seller_user: Profile, outsider_user: Profile, admin_user: Profile,
        test_company: Company, auth_headers
    ):
        url = f"/api/v1/companies/{test_company.id}"

        assert (await client.get(url, headers=auth_headers(seller_user))).status_code == 200
        assert (await client.get(url, headers=auth_headers(outsider_user))).status_code == 403
        assert (await client.get(url, headers=auth_headers(admin_user))).status_code == 200
        missing = await client.get(f"/api/v1/companies/{uuid4()}", headers=auth_headers(seller_user))
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_update_company(self, client: AsyncClient, seller_user: Profile, test_company: Company, auth_headers):
        response = await client.put(
            f"/api/v1/companies/{test_company.id}",
            json={"employees": 50, "asking_price": 4200000},
            headers=auth_headers(seller_user),
        )

        assert response.status_code == 200
        assert response.json()["employees"] == 50
        assert response.json()["asking_price"] == 4200000

    @pytest.mark.asyncio
    async def test_delete_company(
        self, client: AsyncClient, seller_user: Profile, broker_user: Profile, test_company: Company, auth_headers
    ):
        url = f"/api/v1/companies/{test_company.id}"

        denied = await client.delete(url, headers=auth_headers(seller_user))
        assert denied.status_code == 403
        assert denied.json()["detail"] == "Only admins and brokers can delete companies"

        assert (await client.delete(url, headers=auth_headers(broker_user))).status_code == 204
        assert (await client.get(url, headers=auth_headers(broker_user))).status_code == 404
        assert test_company.status == "inactive"

    @pytest.mark.asyncio
    async def test_enrich_company(self, client: AsyncClient, seller_user: Profile, test_company: Company, auth_headers):
        response = await client.post(f"/api/v1/companies/{test_company.id}/enrich", headers=auth_headers(seller_user))

        assert response.status_code == 200
        metadata = response.json()["enrichment"]["metadata"]
        assert metadata["sources_used"] == ["database", "ytj"]
        assert 0 < metadata["confidence"] <= 100

        company = await client.get(f"/api/v1/companies/{test_company.id}", headers=auth_headers(seller_user))
        assert company.json()["enrichment_confidence"] == metadata["confidence"]
