"""
Integration tests for survey templates, invitations and responses.
"""

from datetime import timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from marketplace.models import Profile, SurveyInvitation
from marketplace.models.base import utc_now

pytestmark = pytest.mark.integration

QUESTIONS = {
    "sections": [
        {
            "title": "Palvelu",
            "questions": [
                {"id": "nps", "type": "scale", "text": "Suosittelisitko meitä?", "scale": {"min": 0, "max": 10}},
                {"id": "goal", "type": "radio", "text": "Mikä on tavoitteesi?",
                 "options": [{"value": "sell", "label": "Myynti"}, {"value": "finance", "label": "Rahoitus"}]},
            ],
        }
    ]
}


@pytest.fixture
def create_template(client: AsyncClient, admin_user: Profile, auth_headers):
    async def _create(**extra) -> dict:
        payload = {"name": "Asiakaskysely", "questions": QUESTIONS, "is_active": True, **extra}
        response = await client.post("/api/v1/surveys/templates", json=payload, headers=auth_headers(admin_user))
        assert response.status_code == 201
        return response.json()

    return _create


class TestTemplates:
    """Test /api/v1/surveys/templates endpoints."""

    @pytest.mark.asyncio
    async def test_only_admin_creates(self, client: AsyncClient, seller_user: Profile, auth_headers):
        response = await client.post(
            "/api/v1/surveys/templates", json={"name": "X", "questions": QUESTIONS}, headers=auth_headers(seller_user)
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_non_admin_sees_active_only(self, client: AsyncClient, seller_user: Profile, create_template,
                                              auth_headers):
        active = await create_template()
        await create_template(name="Luonnos", is_active=False)

        response = await client.get("/api/v1/surveys/templates", headers=auth_headers(seller_user))

        assert [t["id"] for t in response.json()] == [active["id"]]

    @pytest.mark.asyncio
    async def test_single_default(self, client: AsyncClient, admin_user: Profile, create_template, auth_headers):
        first = await create_template(is_default=True)
        second = await create_template(name="Uusi", is_default=True)

        response = await client.get("/api/v1/surveys/templates", headers=auth_headers(admin_user))

        defaults = {t["id"]: t["is_default"] for t in response.json()}
        assert defaults == {first["id"]: False, second["id"]: True}

    @pytest.mark.asyncio
    async def test_delete_blocked_by_responses(self, client: AsyncClient, admin_user: Profile, create_template,
                                               auth_headers):
        template = await create_template()
        await client.post("/api/v1/surveys/responses", json={"template_id": template["id"], "answers": {"nps": 9}})

        response = await client.delete(f"/api/v1/surveys/templates/{template['id']}", headers=auth_headers(admin_user))

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_delete_unused(self, client: AsyncClient, admin_user: Profile, create_template, auth_headers):
        template = await create_template()

        response = await client.delete(f"/api/v1/surveys/templates/{template['id']}", headers=auth_headers(admin_user))

        assert response.status_code == 204


class TestInvitations:
    """Test /api/v1/surveys/invitations endpoints."""

    @pytest.mark.asyncio
    async def test_open_invitations_are_skipped(self, client: AsyncClient, admin_user: Profile, seller_user: Profile,
                                                create_template, auth_headers):
        template = await create_template()
        payload = {"template_id": template["id"], "user_ids": [str(seller_user.id)], "emails": ["Outside@Example.fi"]}

        first = await client.post("/api/v1/surveys/invitations", json=payload, headers=auth_headers(admin_user))
        second = await client.post(
            "/api/v1/surveys/invitations",
            json={**payload, "emails": ["outside@example.fi", "new@example.fi"]},
            headers=auth_headers(admin_user),
        )

        assert first.json()["created"] == 2
        assert second.json()["created"] == 1
        assert set(second.json()["skipped"]) == {"seller@test.fi", "outside@example.fi"}

        own = await client.get("/api/v1/surveys/invitations", headers=auth_headers(seller_user))
        assert [i["email"] for i in own.json()] == ["seller@test.fi"]

    @pytest.mark.asyncio
    async def test_requires_recipients(self, client: AsyncClient, admin_user: Profile, create_template, auth_headers):
        template = await create_template()

        response = await client.post(
            "/api/v1/surveys/invitations", json={"template_id": template["id"]}, headers=auth_headers(admin_user)
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_inactive_template(self, client: AsyncClient, admin_user: Profile, create_template, auth_headers):
        template = await create_template(is_active=False)

        response = await client.post(
            "/api/v1/surveys/invitations",
            json={"template_id": template["id"], "emails": ["a@example.fi"]},
            headers=auth_headers(admin_user),
        )

        assert response.status_code == 400


class TestTokenLinks:
    """Test answering through /api/v1/surveys/token/{token}."""

    async def _invite(self, client, admin, template, auth_headers) -> str:
        response = await client.post(
            "/api/v1/surveys/invitations",
            json={"template_id": template["id"], "emails": ["respondent@example.fi"]},
            headers=auth_headers(admin),
        )
        return response.json()["invitations"][0]["token"]

    @pytest.mark.asyncio
    async def test_open_and_answer(self, client: AsyncClient, admin_user: Profile, create_template, auth_headers):
        template = await create_template()
        token = await self._invite(client, admin_user, template, auth_headers)

        opened = await client.get(f"/api/v1/surveys/token/{token}")
        assert opened.status_code == 200
        assert opened.json()["invitation"]["invitation_status"] == "opened"
        assert opened.json()["existing_response"] is None

        partial = await client.post(
            f"/api/v1/surveys/token/{token}", json={"answers": {"nps": 8}, "completion_status": "in_progress"}
        )
        assert partial.json()["completion_status"] == "in_progress"

        done = await client.post(f"/api/v1/surveys/token/{token}", json={"answers": {"goal": "sell"}})
        assert done.json()["id"] == partial.json()["id"]
        assert done.json()["answers"] == {"nps": 8, "goal": "sell"}
        assert done.json()["completed_at"] is not None

        reopened = await client.get(f"/api/v1/surveys/token/{token}")
        assert reopened.json()["already_completed"] is True
        assert reopened.json()["invitation"]["invitation_status"] == "completed"

        reopen = await client.post(
            f"/api/v1/surveys/token/{token}", json={"completion_status": "in_progress"}
        )
        assert reopen.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_token(self, client: AsyncClient):
        response = await client.get("/api/v1/surveys/token/nope")

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_expired_token(self, client: AsyncClient, admin_user: Profile, create_template, auth_headers,
                                 test_db):
        template = await create_template()
        token = await self._invite(client, admin_user, template, auth_headers)
        invitation = (await test_db.execute(
            select(SurveyInvitation).where(SurveyInvitation.token == token)
        )).scalar_one()
        invitation.expires_at = utc_now() - timedelta(days=1)
        await test_db.commit()

        response = await client.get(f"/api/v1/surveys/token/{token}")

        assert response.status_code == 400


class TestResponses:
    """Test /api/v1/surveys/responses and analytics."""

    @pytest.mark.asyncio
    async def test_logged_in_response(self, client: AsyncClient, seller_user: Profile, buyer_user: Profile,
                                      create_template, auth_headers):
        template = await create_template()

        created = await client.post(
            "/api/v1/surveys/responses",
            json={"template_id": template["id"], "answers": {"nps": 10}, "completion_status": "started"},
            headers=auth_headers(seller_user),
        )
        assert created.status_code == 201
        assert created.json()["user_id"] == str(seller_user.id)
        response_id = created.json()["id"]

        other = await client.put(
            f"/api/v1/surveys/responses/{response_id}", json={"answers": {"nps": 1}}, headers=auth_headers(buyer_user)
        )
        assert other.status_code == 403

        updated = await client.put(
            f"/api/v1/surveys/responses/{response_id}",
            json={"answers": {"goal": "finance"}, "completion_status": "completed"},
            headers=auth_headers(seller_user),
        )
        assert updated.json()["answers"] == {"nps": 10, "goal": "finance"}
        assert updated.json()["completion_status"] == "completed"

        mine = await client.get("/api/v1/surveys/responses", headers=auth_headers(seller_user))
        theirs = await client.get("/api/v1/surveys/responses", headers=auth_headers(buyer_user))
        assert mine.json()["pagination"]["total"] == 1
        assert theirs.json()["responses"] == []

    @pytest.mark.asyncio
    async def test_inactive_template_rejects_answers(self, client: AsyncClient, create_template):
        template = await create_template(is_active=False)

        response = await client.post("/api/v1/surveys/responses", json={"template_id": template["id"]})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_bad_invitation_token(self, client: AsyncClient, create_template):
        template = await create_template()

        response = await client.post(
            "/api/v1/surveys/responses", json={"template_id": template["id"], "invitation_token": "wrong"}
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_analytics(self, client: AsyncClient, admin_user: Profile, create_template, auth_headers):
        template = await create_template()
        for answers, state in (
            ({"nps": 0, "goal": "sell"}, "completed"),
            ({"nps": 10, "goal": "sell"}, "completed"),
            ({"nps": 5}, "abandoned"),
        ):
            await client.post(
                "/api/v1/surveys/responses",
                json={"template_id": template["id"], "answers": answers, "completion_status": state},
            )

        response = await client.get(
            f"/api/v1/surveys/analytics?template_id={template['id']}", headers=auth_headers(admin_user)
        )

        report = response.json()
        assert report["summary"]["total_responses"] == 3
        assert report["summary"]["total_completed_responses"] == 2
        assert report["summary"]["completion_rate"] == 66.67
        nps, goal = report["question_analysis"]
        assert nps["scale_analysis"]["average"] == 5.0
        assert nps["scale_analysis"]["distribution"]["0"] == 1
        assert goal["value_distribution"]["distribution"] == {"sell": 2, "finance": 0}
