"""
Pytest configuration and fixtures for marketplace tests.

Provides fixtures for:
- Database session (SQLite through aiosqlite)
- Test client with external services replaced
- Organizations, users for every role and auth headers
- Companies, deals and partners
"""

from typing import AsyncGenerator

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

# Import all models to ensure they're registered with Base.metadata before create_all()
import marketplace.models  # noqa: F401
from marketplace.database import get_db
from marketplace.main import app
from marketplace.models import Company, CompanyFinancials, Deal, DealStage, Organization, Partner, Profile, ReferralLink
from marketplace.models.base import Base
from marketplace.security import create_access_token, hash_password
from marketplace.services.ai import GeminiClient, get_ai_client
from marketplace.services.documents import LocalStorage, get_storage
from marketplace.services.ytj import YTJClient, get_ytj_client

TEST_PASSWORD = "password123"

YTJ_COMPANY = {
    "businessId": {"value": "1234567-8"},
    "names": [{"name": "Testiyhtiö Oy", "type": "1"}],
    "companyForms": [{"type": "16", "descriptions": [{"languageCode": "1", "description": "Osakeyhtiö"}]}],
    "registrationDate": "2005-03-01",
    "status": "2",
    "mainBusinessLine": {"type": "62010", "descriptions": [{"languageCode": "1", "description": "Ohjelmistot"}]},
    "website": {"url": "https://testiyhtio.fi"},
    "addresses": [{
        "type": 1,
        "street": "Mannerheimintie",
        "buildingNumber": "10",
        "postCode": "00100",
        "postOffices": [{"city": "HELSINKI", "languageCode": "1"}],
        "registrationDate": "2020-01-01",
    }],
}


def ytj_handler(request: httpx.Request) -> httpx.Response:
    """Fake registry: knows one company, everything else is empty."""
    params = request.url.params
    if params.get("businessId") == "1234567-8" or "testi" in (params.get("name") or "").lower():
        return httpx.Response(200, json={"totalResults": 1, "companies": [YTJ_COMPANY]})
    return httpx.Response(200, json={"totalResults": 0, "companies": []})


def gemini_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={
        "candidates": [{"content": {"parts": [{"text": "Generated marketing text."}]}}]
    })


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """Create test database engine."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test_db.sqlite'}", poolclass=NullPool, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture
async def test_db(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)

    async with async_session() as session:
        yield session


@pytest.fixture
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(str(tmp_path / "uploads"))


@pytest.fixture
def ytj_client() -> YTJClient:
    return YTJClient(base_url="https://ytj.test/companies", transport=httpx.MockTransport(ytj_handler))


@pytest.fixture
def ai_client() -> GeminiClient:
    return GeminiClient(
        api_key="test-key",
        model="gemini-test",
        base_url="https://gemini.test",
        transport=httpx.MockTransport(gemini_handler),
    )


@pytest_asyncio.fixture
async def client(
    test_db: AsyncSession, storage: LocalStorage, ytj_client: YTJClient, ai_client: GeminiClient
) -> AsyncGenerator[AsyncClient, None]:
    """Create test HTTP client with database and external service overrides."""

    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_ytj_client] = lambda: ytj_client
    app.dependency_overrides[get_ai_client] = lambda: ai_client

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def _create_org(db: AsyncSession, name: str, slug: str) -> Organization:
    org = Organization(name=name, slug=slug, contact_email=f"info@{slug}.fi", is_active=True)
    db.add(org)
    await db.commit()
    await db.refresh(org)
    return org


async def _create_user(db: AsyncSession, email: str, role: str, organization: Organization = None, is_active: bool = True, **kwargs) -> Profile:
    user = Profile(
        organization_id=organization.id if organization else None,
        email=email,
        full_name=email.split("@")[0].title(),
        hashed_password=hash_password(TEST_PASSWORD),
        role=role,
        is_active=is_active,
        is_verified=True,
        **kwargs,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


@pytest.fixture
def auth_headers():
    """Factory for the bearer header of a user."""

    def _headers(user: Profile) -> dict:
        token = create_access_token(
            user_id=user.id,
            organization_id=user.organization_id,
            email=user.email,
            role=user.role,
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest_asyncio.fixture
async def test_organization(test_db: AsyncSession) -> Organization:
    """Create test organization."""
    return await _create_org(test_db, "Test Seller Oy", "test-seller")


@pytest_asyncio.fixture
async def other_organization(test_db: AsyncSession) -> Organization:
    """Organization used to check tenant isolation."""
    return await _create_org(test_db, "Other Org Oy", "other-org")


@pytest_asyncio.fixture
async def admin_user(test_db: AsyncSession, test_organization: Organization) -> Profile:
    return await _create_user(test_db, "admin@test.fi", "admin", test_organization)


@pytest_asyncio.fixture
async def seller_user(test_db: AsyncSession, test_organization: Organization) -> Profile:
    return await _create_user(test_db, "seller@test.fi", "seller", test_organization)


@pytest_asyncio.fixture
async def broker_user(test_db: AsyncSession, test_organization: Organization) -> Profile:
    return await _create_user(test_db, "broker@test.fi", "broker", test_organization)


@pytest_asyncio.fixture
async def buyer_user(test_db: AsyncSession, test_organization: Organization) -> Profile:
    return await _create_user(test_db, "buyer@test.fi", "buyer", test_organization)


@pytest_asyncio.fixture
async def analyst_user(test_db: AsyncSession, test_organization: Organization) -> Profile:
    return await _create_user(test_db, "analyst@test.fi", "analyst", test_organization)


@pytest_asyncio.fixture
async def outsider_user(test_db: AsyncSession, other_organization: Organization) -> Profile:
    """Broker of another organization."""
    return await _create_user(test_db, "broker@other.fi", "broker", other_organization)


@pytest_asyncio.fixture
async def inactive_user(test_db: AsyncSession, test_organization: Organization) -> Profile:
    return await _create_user(test_db, "inactive@test.fi", "seller", test_organization, is_active=False)


@pytest_asyncio.fixture
async def test_company(test_db: AsyncSession, test_organization: Organization, seller_user: Profile) -> Company:
    company = Company(
        organization_id=test_organization.id,
        created_by=seller_user.id,
        name="Nordic Components Oy",
        business_id="1234567-8",
        industry="Manufacturing",
        city="Tampere",
        address="Hatanpään valtatie 24",
        employees=42,
    )
    test_db.add(company)
    await test_db.flush()
    test_db.add(CompanyFinancials(company_id=company.id, fiscal_year=2023, revenue=5000000, ebitda=750000))
    await test_db.commit()
    await test_db.refresh(company)
    return company


@pytest_asyncio.fixture
async def test_deal(test_db: AsyncSession, test_company: Company, broker_user: Profile) -> Deal:
    deal = Deal(
        organization_id=test_company.organization_id,
        company_id=test_company.id,
        created_by=broker_user.id,
        stage="lead",
        estimated_value=4000000,
    )
    test_db.add(deal)
    await test_db.flush()
    test_db.add(DealStage(deal_id=deal.id, stage="lead"))
    await test_db.commit()
    await test_db.refresh(deal)
    return deal


@pytest_asyncio.fixture
async def test_partner(test_db: AsyncSession) -> Partner:
    partner = Partner(
        name="Tilitoimisto Laskuri",
        email="partner@laskuri.fi",
        commission_percent=10.0,
        tier="premium",
        status="active",
    )
    test_db.add(partner)
    await test_db.commit()
    await test_db.refresh(partner)
    return partner


@pytest_asyncio.fixture
async def partner_user(test_db: AsyncSession, test_partner: Partner) -> Profile:
    return await _create_user(test_db, "partner@laskuri.fi", "partner", None, partner_id=test_partner.id)


@pytest_asyncio.fixture
async def referral_link(test_db: AsyncSession, test_partner: Partner) -> ReferralLink:
    link = ReferralLink(
        partner_id=test_partner.id,
        link_code="ABCD1234",
        source_page="/myynti",
        campaign_name="spring",
        is_active=True,
    )
    test_db.add(link)
    await test_db.commit()
    await test_db.refresh(link)
    return link
