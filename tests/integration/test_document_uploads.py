"""
Integration tests for document uploads.
"""

from datetime import date
from uuid import uuid4

import pytest
from httpx import AsyncClient

from marketplace.models import Company, Profile
from marketplace.services.documents import LocalStorage

pytestmark = pytest.mark.integration


async def upload(client, user, company, auth_headers, filename="Tilinpäätös 2023.pdf", **form):
    data = {"company_id": str(company.id), **form}
    return await client.post(
        "/api/v1/documents/upload",
        data=data,
        files={"file": (filename, b"%PDF-1.4 test", "application/pdf")},
        headers=auth_headers(user),
    )


class TestDocumentUpload:
    """Test /api/v1/documents endpoints."""

    @pytest.mark.asyncio
    async def test_upload_is_classified_and_stored(self, client: AsyncClient, seller_user: Profile,
                                                   test_company: Company, storage: LocalStorage, auth_headers):
        response = await upload(client, seller_user, test_company, auth_headers, fiscal_year="2023")

        assert response.status_code == 201
        data = response.json()
        assert data["document_type"] == "financial_statements"
        assert data["is_manual_type"] is False
        assert data["processing_status"] == "pending"
        assert data["fiscal_year"] == 2023
        assert data["file_size"] == len(b"%PDF-1.4 test")
        assert data["file_path"].startswith(f"{test_company.id}/")
        assert data["file_path"].endswith(".pdf")
        assert storage.exists(data["file_path"])

    @pytest.mark.asyncio
    async def test_manual_type(self, client: AsyncClient, seller_user: Profile, test_company: Company, auth_headers):
        response = await upload(client, seller_user, test_company, auth_headers, document_type="collateral_document")

        assert response.json()["document_type"] == "collateral_document"
        assert response.json()["is_manual_type"] is True

    @pytest.mark.asyncio
    async def test_current_year_income_statement_is_interim(self, client: AsyncClient, seller_user: Profile,
                                                            test_company: Company, auth_headers):
        filename = f"tuloslaskelma_{date.today().year}.xlsx"

        response = await upload(client, seller_user, test_company, auth_headers, filename=filename)

        assert response.json()["document_type"] == "balance_income_interim"

    @pytest.mark.asyncio
    async def test_current_fiscal_year_balance_sheet_is_interim(self, client: AsyncClient, seller_user: Profile,
                                                                test_company: Company, auth_headers):
        response = await upload(
            client, seller_user, test_company, auth_headers, filename="tase.pdf", fiscal_year=str(date.today().year)
        )

        assert response.json()["document_type"] == "balance_income_interim"
        assert response.json()["fiscal_year"] == date.today().year

    @pytest.mark.asyncio
    async def test_missing_company_id(self, client: AsyncClient, seller_user: Profile, auth_headers):
        response = await client.post(
            "/api/v1/documents/upload",
            files={"file": ("a.pdf", b"x", "application/pdf")},
            headers=auth_headers(seller_user),
        )

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_other_organization(self, client: AsyncClient, outsider_user: Profile, test_company: Company,
                                      auth_headers):
        response = await upload(client, outsider_user, test_company, auth_headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_unknown_company(self, client: AsyncClient, seller_user: Profile, auth_headers):
        response = await client.post(
            "/api/v1/documents/upload",
            data={"company_id": str(uuid4())},
            files={"file": ("a.pdf", b"x", "application/pdf")},
            headers=auth_headers(seller_user),
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_list_and_delete(self, client: AsyncClient, seller_user: Profile, test_company: Company,
                                   storage: LocalStorage, auth_headers):
        document = (await upload(client, seller_user, test_company, auth_headers)).json()

        listing = await client.get(f"/api/v1/documents?company_id={test_company.id}", headers=auth_headers(seller_user))
        assert [d["id"] for d in listing.json()] == [document["id"]]

        deleted = await client.delete(f"/api/v1/documents/{document['id']}", headers=auth_headers(seller_user))
        assert deleted.status_code == 204
        assert not storage.exists(document["file_path"])

        again = await client.delete(f"/api/v1/documents/{document['id']}", headers=auth_headers(seller_user))
        assert again.status_code == 404
