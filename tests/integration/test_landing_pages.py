"""
Integration tests for landing page management and the public page route.
"""

import pytest
from httpx import AsyncClient

from marketplace.models import Profile

pytestmark = pytest.mark.integration


class TestLandingPages:
    """Test /api/v1/landing-pages endpoints."""

    async def _create(self, client, admin, auth_headers, **extra):
        payload = {
            "title": "Myy yrityksesi",
            "slug": "myy-yritys",
            "content": {"hero": {"heading": "Myy yrityksesi turvallisesti"}},
            **extra,
        }
        return await client.post("/api/v1/landing-pages", json=payload, headers=auth_headers(admin))

    @pytest.mark.asyncio
    async def test_create_and_publish(self, client: AsyncClient, admin_user: Profile, auth_headers):
        created = await self._create(client, admin_user, auth_headers)
        assert created.status_code == 201
        assert created.json()["locale"] == "fi"
        assert created.json()["published_at"] is None

        hidden = await client.get("/api/v1/landing-pages/public/fi/myy-yritys")
        assert hidden.status_code == 404

        published = await client.put(
            "/api/v1/landing-pages",
            json={"id": created.json()["id"], "published": True},
            headers=auth_headers(admin_user),
        )
        assert published.json()["published_at"] is not None

        public = await client.get("/api/v1/landing-pages/public/fi/myy-yritys")
        assert public.status_code == 200
        assert public.json()["content"]["hero"]["heading"] == "Myy yrityksesi turvallisesti"

    @pytest.mark.asyncio
    async def test_slug_unique_per_locale(self, client: AsyncClient, admin_user: Profile, auth_headers):
        await self._create(client, admin_user, auth_headers)

        duplicate = await self._create(client, admin_user, auth_headers)
        swedish = await self._create(client, admin_user, auth_headers, locale="sv", title="Sälj ditt företag")

        assert duplicate.status_code == 409
        assert swedish.status_code == 201

    @pytest.mark.asyncio
    async def test_rename_into_taken_slug(self, client: AsyncClient, admin_user: Profile, auth_headers):
        await self._create(client, admin_user, auth_headers)
        other = await self._create(client, admin_user, auth_headers, slug="rahoitus")

        response = await client.put(
            "/api/v1/landing-pages",
            json={"id": other.json()["id"], "slug": "myy-yritys"},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_update_requires_id(self, client: AsyncClient, admin_user: Profile, auth_headers):
        response = await client.put("/api/v1/landing-pages", json={"title": "X"}, headers=auth_headers(admin_user))

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_slug(self, client: AsyncClient, admin_user: Profile, auth_headers):
        response = await self._create(client, admin_user, auth_headers, slug="Myy Yritys")

        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_list_and_delete(self, client: AsyncClient, admin_user: Profile, seller_user: Profile, auth_headers):
        await self._create(client, admin_user, auth_headers, slug="b-sivu")
        page = (await self._create(client, admin_user, auth_headers, slug="a-sivu")).json()

        listing = await client.get("/api/v1/landing-pages", headers=auth_headers(admin_user))
        assert [p["slug"] for p in listing.json()] == ["a-sivu", "b-sivu"]

        denied = await client.get("/api/v1/landing-pages", headers=auth_headers(seller_user))
        assert denied.status_code == 403

        deleted = await client.delete(f"/api/v1/landing-pages/{page['id']}", headers=auth_headers(admin_user))
        assert deleted.status_code == 204
