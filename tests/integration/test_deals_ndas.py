"""
Integration tests for the deal pipeline and NDA endpoints.
"""

from datetime import datetime
from uuid import uuid4

import pytest
from httpx import AsyncClient

from marketplace.models import Company, Deal, Profile

pytestmark = pytest.mark.integration


class TestDealsEndpoint:
    """Test /api/v1/deals endpoints."""

    @pytest.mark.asyncio
    async def test_create_deal(self, client: AsyncClient, broker_user: Profile, buyer_user: Profile,
                               test_company: Company, auth_headers):
        response = await client.post(
            "/api/v1/deals",
            json={"company_id": str(test_company.id), "buyer_id": str(buyer_user.id), "estimated_value": 3900000},
            headers=auth_headers(broker_user),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["stage"] == "lead"
        assert data["status"] == "active"
        assert data["organization_id"] == str(test_company.organization_id)
        assert data["company"]["name"] == "Nordic Components Oy"
        assert [s["stage"] for s in data["stages"]] == ["lead"]
        assert data["activities"][0]["activity_type"] == "created"

    @pytest.mark.asyncio
    async def test_seller_cannot_create_deal(self, client: AsyncClient, seller_user: Profile,
                                             test_company: Company, auth_headers):
        response = await client.post(
            "/api/v1/deals", json={"company_id": str(test_company.id)}, headers=auth_headers(seller_user)
        )

        assert response.status_code == 403
        assert "deal:create" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_create_for_other_organization_company(self, client: AsyncClient, outsider_user: Profile,
                                                         test_company: Company, auth_headers):
        response = await client.post(
            "/api/v1/deals", json={"company_id": str(test_company.id)}, headers=auth_headers(outsider_user)
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_invalid_stage(self, client: AsyncClient, broker_user: Profile, test_company: Company, auth_headers):
        response = await client.post(
            "/api/v1/deals",
            json={"company_id": str(test_company.id), "stage": "dreaming"},
            headers=auth_headers(broker_user),
        )

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_list_deals(self, client: AsyncClient, seller_user: Profile, outsider_user: Profile,
                              test_deal: Deal, auth_headers):
        own = await client.get("/api/v1/deals?stage=lead", headers=auth_headers(seller_user))
        other = await client.get("/api/v1/deals", headers=auth_headers(outsider_user))

        assert [d["id"] for d in own.json()] == [str(test_deal.id)]
        assert other.json() == []

    @pytest.mark.asyncio
    async def test_stage_change_is_recorded(self, client: AsyncClient, broker_user: Profile,
                                            test_deal: Deal, auth_headers):
        response = await client.put(
            f"/api/v1/deals/{test_deal.id}",
            json={"stage": "nda_signed", "notes": "NDA returned"},
            headers=auth_headers(broker_user),
        )

        assert response.status_code == 200
        data = response.json()
        assert data["stage"] == "nda_signed"
        assert {s["stage"] for s in data["stages"]} == {"lead", "nda_signed"}
        assert any(a["activity_type"] == "stage_changed" for a in data["activities"])

    @pytest.mark.asyncio
    async def test_update_without_stage_change(self, client: AsyncClient, broker_user: Profile,
                                               test_deal: Deal, auth_headers):
        response = await client.put(
            f"/api/v1/deals/{test_deal.id}", json={"stage": "lead"}, headers=auth_headers(broker_user)
        )

        assert len(response.json()["stages"]) == 1

    @pytest.mark.asyncio
    async def test_cancel_deal(self, client: AsyncClient, broker_user: Profile, buyer_user: Profile,
                               test_deal: Deal, auth_headers):
        url = f"/api/v1/deals/{test_deal.id}"

        denied = await client.delete(url, headers=auth_headers(buyer_user))
        assert denied.status_code == 403
        assert denied.json()["detail"] == "Only admins and brokers can delete deals"

        assert (await client.delete(url, headers=auth_headers(broker_user))).status_code == 204
        detail = await client.get(url, headers=auth_headers(broker_user))
        assert detail.json()["status"] == "cancelled"

    @pytest.mark.asyncio
    async def test_get_missing_deal(self, client: AsyncClient, broker_user: Profile, auth_headers):
        response = await client.get(f"/api/v1/deals/{uuid4()}", headers=auth_headers(broker_user))

        assert response.status_code == 404


class TestNDAsEndpoint:
    """Test /api/v1/ndas endpoints."""

    async def _create(self, client, user, company, auth_headers, **extra):
        payload = {
            "company_id": str(company.id),
            "recipient_name": "Erik Berg",
            "recipient_email": "erik@berg.se",
            **extra,
        }
        return await client.post("/api/v1/ndas", json=payload, headers=auth_headers(user))

    @pytest.mark.asyncio
    async def test_create_nda(self, client: AsyncClient, broker_user: Profile, test_company: Company,
                              test_deal: Deal, auth_headers):
        response = await self._create(client, broker_user, test_company, auth_headers,
                                      deal_id=str(test_deal.id), term_years=2)

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "draft"
        assert "SALASSAPITOSOPIMUS" in data["content"]
        assert "Y-tunnus / Business ID: 1234567-8" in data["content"]
        assert "2 (two) years" in data["content"]

        lifetime = datetime.fromisoformat(data["expires_at"]) - datetime.fromisoformat(data["created_at"])
        assert lifetime.days in (729, 730)

    @pytest.mark.asyncio
    async def test_deal_of_other_company(self, client: AsyncClient, broker_user: Profile, test_company: Company,
                                         auth_headers):
        response = await self._create(client, broker_user, test_company, auth_headers, deal_id=str(uuid4()))

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_update_regenerates_content(self, client: AsyncClient, broker_user: Profile,
                                              test_company: Company, auth_headers):
        nda_id = (await self._create(client, broker_user, test_company, auth_headers)).json()["id"]

        response = await client.put(
            f"/api/v1/ndas/{nda_id}",
            json={"recipient_name": "Anna Berg", "content": "ignored"},
            headers=auth_headers(broker_user),
        )

        assert response.status_code == 200
        assert "Anna Berg" in response.json()["content"]
        assert response.json()["content"] != "ignored"

    @pytest.mark.asyncio
    async def test_update_content_only(self, client: AsyncClient, broker_user: Profile,
                                       test_company: Company, auth_headers):
        nda_id = (await self._create(client, broker_user, test_company, auth_headers)).json()["id"]

        response = await client.put(
            f"/api/v1/ndas/{nda_id}", json={"content": "# Custom NDA"}, headers=auth_headers(broker_user)
        )

        assert response.json()["content"] == "# Custom NDA"

    @pytest.mark.asyncio
    async def test_sign_flow(self, client: AsyncClient, broker_user: Profile, buyer_user: Profile,
                             test_company: Company, auth_headers):
        nda_id = (await self._create(client, broker_user, test_company, auth_headers)).json()["id"]

        broker_sign = await client.post(f"/api/v1/ndas/{nda_id}/sign", headers=auth_headers(broker_user))
        assert broker_sign.status_code == 403

        signed = await client.post(f"/api/v1/ndas/{nda_id}/sign", headers=auth_headers(buyer_user))
        assert signed.status_code == 200
        assert signed.json()["status"] == "signed"
        assert signed.json()["signed_by"] == str(buyer_user.id)

        again = await client.post(f"/api/v1/ndas/{nda_id}/sign", headers=auth_headers(buyer_user))
        assert again.status_code == 409

        update = await client.put(
            f"/api/v1/ndas/{nda_id}", json={"purpose": "Other"}, headers=auth_headers(broker_user)
        )
        assert update.status_code == 400
        assert (await client.delete(f"/api/v1/ndas/{nda_id}", headers=auth_headers(broker_user))).status_code == 400

    @pytest.mark.asyncio
    async def test_delete_draft(self, client: AsyncClient, broker_user: Profile, test_company: Company, auth_headers):
        nda_id = (await self._create(client, broker_user, test_company, auth_headers)).json()["id"]

        assert (await client.delete(f"/api/v1/ndas/{nda_id}", headers=auth_headers(broker_user))).status_code == 204
        assert (await client.get(f"/api/v1/ndas/{nda_id}", headers=auth_headers(broker_user))).status_code == 404

    @pytest.mark.asyncio
    async def test_list_filters(self, client: AsyncClient, broker_user: Profile, outsider_user: Profile,
                                test_company: Company, auth_headers):
        await self._create(client, broker_user, test_company, auth_headers)

        own = await client.get(f"/api/v1/ndas?company_id={test_company.id}", headers=auth_headers(broker_user))
        signed = await client.get("/api/v1/ndas?status=signed", headers=auth_headers(broker_user))
        other = await client.get("/api/v1/ndas", headers=auth_headers(outsider_user))

        assert len(own.json()) == 1
        assert signed.json() == []
        assert other.json() == []
