"""
Integration tests for the financial metrics endpoints.
"""

import pytest
from httpx import AsyncClient

from marketplace.models import Company, Profile

pytestmark = pytest.mark.integration


async def save(client, user, company, auth_headers, **fields):
    payload = {"company_id": str(company.id), "fiscal_period": "FY", **fields}
    return await client.post("/api/v1/financial/metrics", json=payload, headers=auth_headers(user))


class TestSaveMetrics:
    """Test POST /api/v1/financial/metrics."""

    @pytest.mark.asyncio
    async def test_create_then_update(self, client: AsyncClient, seller_user: Profile, test_company: Company,
                                      auth_headers):
        created = await save(client, seller_user, test_company, auth_headers, fiscal_year=2024, revenue_current=5000000)
        updated = await save(client, seller_user, test_company, auth_headers, fiscal_year=2024, ebitda=700000)

        assert created.json()["action"] == "created"
        assert updated.json()["action"] == "updated"
        assert updated.json()["data"]["id"] == created.json()["data"]["id"]
        assert updated.json()["data"]["revenue_current"] == 5000000
        assert updated.json()["data"]["ebitda"] == 700000

    @pytest.mark.asyncio
    async def test_lower_priority_source_does_not_overwrite(self, client: AsyncClient, seller_user: Profile,
                                                            test_company: Company, auth_headers):
        document = await save(client, seller_user, test_company, auth_headers, fiscal_year=2024,
                              data_source="document", revenue_current=5000000)
        enriched = await save(client, seller_user, test_company, auth_headers, fiscal_year=2024,
                              data_source="enriched_data", revenue_current=4100000)

        assert enriched.json()["action"] == "created_lower_priority"
        assert enriched.json()["data"]["id"] != document.json()["data"]["id"]

    @pytest.mark.asyncio
    async def test_higher_priority_source_overwrites(self, client: AsyncClient, seller_user: Profile,
                                                     test_company: Company, auth_headers):
        await save(client, seller_user, test_company, auth_headers, fiscal_year=2024,
                   data_source="public_financial_data", revenue_current=4000000)
        response = await save(client, seller_user, test_company, auth_headers, fiscal_year=2024,
                              data_source="document", revenue_current=5000000)

        assert response.json()["action"] == "updated"
        assert response.json()["data"]["data_source"] == "document"

    @pytest.mark.asyncio
    async def test_missing_period(self, client: AsyncClient, seller_user: Profile, test_company: Company,
                                  auth_headers):
        response = await client.post(
            "/api/v1/financial/metrics",
            json={"company_id": str(test_company.id), "fiscal_year": 2024},
            headers=auth_headers(seller_user),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_other_organization(self, client: AsyncClient, outsider_user: Profile, test_company: Company,
                                      auth_headers):
        response = await save(client, outsider_user, test_company, auth_headers, fiscal_year=2024)

        assert response.status_code == 403


class TestHistory:
    """Test GET /api/v1/financial/history."""

    @pytest.mark.asyncio
    async def test_history_with_trends(self, client: AsyncClient, seller_user: Profile, test_company: Company,
                                       auth_headers):
        for year, revenue in ((2021, 1000000), (2022, 1200000), (2023, 1500000), (2024, 1600000)):
            await save(client, seller_user, test_company, auth_headers, fiscal_year=year, revenue_current=revenue)

        response = await client.get(
            f"/api/v1/financial/history?company_id={test_company.id}&metrics=revenue_current",
            headers=auth_headers(seller_user),
        )

        assert response.status_code == 200
        data = response.json()
        assert [row["fiscal_year"] for row in data["data"]] == [2024, 2023, 2022]
        assert data["meta"]["limit"] == 3
        assert data["meta"]["year_range"] == {"from": 2022, "to": 2024}

        revenue = data["trends"]["revenue_current"]
        assert revenue["direction"] == "increasing"
        assert revenue["momentum"] == "decelerating"
        assert revenue["latest_value"] == 1600000
        assert revenue["average_annual_change"] == 200000

    @pytest.mark.asyncio
    async def test_year_range_lifts_default_limit(self, client: AsyncClient, seller_user: Profile,
                                                  test_company: Company, auth_headers):
        for year in (2020, 2021, 2022, 2023, 2024):
            await save(client, seller_user, test_company, auth_headers, fiscal_year=year, revenue_current=1)

        response = await client.get(
            f"/api/v1/financial/history?company_id={test_company.id}&start_year=2020&end_year=2023",
            headers=auth_headers(seller_user),
        )

        assert response.json()["meta"]["count"] == 4

    @pytest.mark.asyncio
    async def test_empty_history(self, client: AsyncClient, seller_user: Profile, test_company: Company,
                                 auth_headers):
        response = await client.get(
            f"/api/v1/financial/history?company_id={test_company.id}", headers=auth_headers(seller_user)
        )

        assert response.status_code == 200
        assert response.json()["data"] == []

    @pytest.mark.asyncio
    async def test_requires_company(self, client: AsyncClient, seller_user: Profile, auth_headers):
        response = await client.get("/api/v1/financial/history", headers=auth_headers(seller_user))

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_metric(self, client: AsyncClient, seller_user: Profile, test_company: Company,
                                  auth_headers):
        response = await client.get(
            f"/api/v1/financial/history?company_id={test_company.id}&metrics=happiness",
            headers=auth_headers(seller_user),
        )

        assert response.status_code == 400
