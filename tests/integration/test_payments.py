"""
Integration tests for payment endpoints.
"""

from uuid import uuid4

import pytest
from httpx import AsyncClient

from marketplace.models import Deal, Profile

pytestmark = pytest.mark.integration


class TestPaymentsEndpoint:
    """Test /api/v1/payments endpoints."""

    async def _create(self, client, admin, auth_headers, **extra):
        payload = {"amount": 12500, "type": "commission", "invoice_number": "TF-2026-001", **extra}
        return await client.post("/api/v1/payments", json=payload, headers=auth_headers(admin))

    @pytest.mark.asyncio
    async def test_admin_creates_payment(self, client: AsyncClient, admin_user: Profile, test_deal: Deal,
                                         auth_headers):
        response = await self._create(client, admin_user, auth_headers, deal_id=str(test_deal.id))

        assert response.status_code == 201
        data = response.json()
        assert data["type"] == "commission"
        assert data["currency"] == "EUR"
        assert data["status"] == "pending"
        assert data["paid_at"] is None
        assert data["organization_id"] == str(admin_user.organization_id)

    @pytest.mark.asyncio
    async def test_create_paid_stamps_paid_at(self, client: AsyncClient, admin_user: Profile, auth_headers):
        response = await self._create(client, admin_user, auth_headers, status="succeeded")

        assert response.json()["paid_at"] is not None

    @pytest.mark.asyncio
    async def test_broker_cannot_create(self, client: AsyncClient, broker_user: Profile, auth_headers):
        response = await client.post("/api/v1/payments", json={"amount": 10}, headers=auth_headers(broker_user))

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_create_for_missing_deal(self, client: AsyncClient, admin_user: Profile, auth_headers):
        response = await self._create(client, admin_user, auth_headers, deal_id=str(uuid4()))

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_amount(self, client: AsyncClient, admin_user: Profile, auth_headers):
        response = await self._create(client, admin_user, auth_headers, amount=0)

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_list_with_stats(self, client: AsyncClient, admin_user: Profile, seller_user: Profile,
                                   outsider_user: Profile, auth_headers):
        await self._create(client, admin_user, auth_headers, amount=1000)
        await self._create(client, admin_user, auth_headers, amount=250, status="paid")
        await self._create(client, admin_user, auth_headers, amount=99.5, status="overdue")

        response = await client.get("/api/v1/payments", headers=auth_headers(seller_user))

        assert response.status_code == 200
        data = response.json()
        assert len(data["payments"]) == 3
        assert data["stats"] == {"total": 1349.5, "paid": 250.0, "pending": 1000.0, "overdue": 99.5}

        filtered = await client.get("/api/v1/payments?status=paid", headers=auth_headers(seller_user))
        assert len(filtered.json()["payments"]) == 1

        other = await client.get("/api/v1/payments", headers=auth_headers(outsider_user))
        assert other.json()["payments"] == []

    @pytest.mark.asyncio
    async def test_status_transitions(self, client: AsyncClient, admin_user: Profile, broker_user: Profile,
                                      auth_headers):
        payment_id = (await self._create(client, admin_user, auth_headers)).json()["id"]
        url = f"/api/v1/payments/{payment_id}"

        paid = await client.put(url, json={"status": "paid"}, headers=auth_headers(broker_user))
        assert paid.status_code == 200
        assert paid.json()["paid_at"] is not None

        reverted = await client.put(url, json={"status": "pending"}, headers=auth_headers(broker_user))
        assert reverted.status_code == 400

        described = await client.put(url, json={"description": "Success fee"}, headers=auth_headers(broker_user))
        assert described.status_code == 200
        assert described.json()["status"] == "paid"

    @pytest.mark.asyncio
    async def test_cancelled_is_final(self, client: AsyncClient, admin_user: Profile, broker_user: Profile,
                                      auth_headers):
        payment_id = (await self._create(client, admin_user, auth_headers, status="cancelled")).json()["id"]

        response = await client.put(
            f"/api/v1/payments/{payment_id}", json={"status": "paid"}, headers=auth_headers(broker_user)
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_seller_cannot_process(self, client: AsyncClient, admin_user: Profile, seller_user: Profile,
                                         auth_headers):
        payment_id = (await self._create(client, admin_user, auth_headers)).json()["id"]

        response = await client.put(
            f"/api/v1/payments/{payment_id}", json={"status": "paid"}, headers=auth_headers(seller_user)
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_other_organization(self, client: AsyncClient, admin_user: Profile, outsider_user: Profile,
                                      auth_headers):
        payment_id = (await self._create(client, admin_user, auth_headers)).json()["id"]

        response = await client.get(f"/api/v1/payments/{payment_id}", headers=auth_headers(outsider_user))

        assert response.status_code == 403
