"""
Seed data script for local development.

Creates a seller organization and a brokerage with users for every role,
a company with financial history, a deal with an NDA, a referral partner
with a tracking link, a default survey and a published landing page.
"""

import asyncio
from datetime import timedelta
from uuid import uuid4

from sqlalchemy import select

import marketplace.models  # noqa: F401  registers every table on Base.metadata
from marketplace.database import AsyncSessionLocal, init_db
from marketplace.models import (
    NDA,
    Company,
    CompanyFinancials,
    Deal,
    DealActivity,
    DealStage,
    FinancialMetric,
    LandingPage,
    Organization,
    Partner,
    Profile,
    ReferralLink,
    SurveyTemplate,
)
from marketplace.models.base import utc_now
from marketplace.security import generate_code, hash_password
from marketplace.services.nda_template import format_company_address, generate_nda_template

DEMO_PASSWORD = "password123"


async def seed_database():
    """Create seed data for development."""

    print("🌱 Seeding database with sample data...")

    async with AsyncSessionLocal() as db:
        # Check if data already exists
        result = await db.execute(select(Organization))
        if result.scalars().first():
            print("⚠️  Database already has data. Skipping seed.")
            return

        # Create Organizations
        print("\n📦 Creating organizations...")
        nordic = Organization(
            id=uuid4(),
            name="Nordic Components Oy",
            slug="nordic-components",
            org_type="seller",
            contact_email="ceo@nordiccomponents.fi",
            contact_name="Matti Virtanen"
        )
        brokerage = Organization(
            id=uuid4(),
            name="Helsinki M&A Partners",
            slug="helsinki-ma",
            org_type="broker",
            contact_email="info@helsinkima.fi",
            contact_name="Laura Nieminen"
        )
        db.add_all([nordic, brokerage])
        await db.commit()
        print(f"  ✅ Created {nordic.name}")
        print(f"  ✅ Created {brokerage.name}")

        # Create Partner
        print("\n🤝 Creating referral partner...")
        partner = Partner(
            id=uuid4(),
            name="Tilitoimisto Laskuri",
            email="partners@laskuri.fi",
            commission_percent=10.0,
            tier="premium",
            status="active",
            signup_code=generate_code(),
            signup_code_expires_at=utc_now() + timedelta(days=30)
        )
        db.add(partner)
        await db.commit()
        print(f"  ✅ Created {partner.name} (signup code {partner.signup_code})")

        # Create Users
        print("\n👤 Creating users...")
        users = [
            Profile(id=uuid4(), organization_id=nordic.id, email="admin@trustyfinance.fi",
                    full_name="Admin User", role="admin"),
            Profile(id=uuid4(), organization_id=nordic.id, email="seller@nordiccomponents.fi",
                    full_name="Matti Virtanen", role="seller"),
            Profile(id=uuid4(), organization_id=brokerage.id, email="broker@helsinkima.fi",
                    full_name="Laura Nieminen", role="broker"),
            Profile(id=uuid4(), organization_id=brokerage.id, email="buyer@example.com",
                    full_name="Erik Berg", role="buyer"),
            Profile(id=uuid4(), organization_id=None, partner_id=partner.id, email="partners@laskuri.fi",
                    full_name="Tilitoimisto Laskuri", role="partner"),
        ]
        for user in users:
            user.hashed_password = hash_password(DEMO_PASSWORD)
            user.is_verified = True
        db.add_all(users)
        await db.commit()
        for user in users:
            print(f"  ✅ Created {user.email} ({user.role})")
        admin, seller = users[0], users[1]

        # Create Company with financials
        print("\n🏭 Creating company...")
        company = Company(
            id=uuid4(),
            organization_id=nordic.id,
            created_by=seller.id,
            name=nordic.name,
            business_id="1234567-8",
            industry="Manufacturing",
            description="Precision metal components for the Nordic machinery industry.",
            company_form="Osakeyhtiö",
            city="Tampere",
            address="Hatanpään valtatie 24",
            employees=42,
            founded_year=1998,
            asking_price=4500000
        )
        db.add(company)
        await db.flush()

        current_year = utc_now().year
        for offset, (revenue, ebitda) in enumerate([(5200000, 780000), (4800000, 690000), (4500000, 610000)]):
            year = current_year - 1 - offset
            db.add(CompanyFinancials(
                company_id=company.id,
                fiscal_year=year,
                revenue=revenue,
                ebitda=ebitda,
                net_income=ebitda * 0.6
            ))
            db.add(FinancialMetric(
                company_id=company.id,
                created_by=seller.id,
                fiscal_year=year,
                fiscal_period="annual",
                data_source="document",
                revenue_current=revenue,
                ebitda=ebitda,
                net_profit=ebitda * 0.6,
                current_ratio=1.8
            ))
        await db.commit()
        print(f"  ✅ Created {company.name} with 3 years of financials")

        # Create Deal and NDA
        print("\n📈 Creating deal...")
        deal = Deal(
            id=uuid4(),
            organization_id=nordic.id,
            company_id=company.id,
            buyer_id=users[3].id,
            created_by=seller.id,
            stage="lead",
            estimated_value=4200000
        )
        db.add(deal)
        await db.flush()
        db.add(DealStage(deal_id=deal.id, stage="lead"))
        db.add(DealActivity(deal_id=deal.id, user_id=seller.id, activity_type="created", description="Deal created"))

        nda = NDA(
            organization_id=nordic.id,
            company_id=company.id,
            deal_id=deal.id,
            created_by=seller.id,
            recipient_name="Erik Berg",
            recipient_email="buyer@example.com",
            recipient_company="Berg Capital AB",
            term_years=3,
            expires_at=utc_now() + timedelta(days=365 * 3),
            content=generate_nda_template(
                company_name=company.name,
                company_business_id=company.business_id,
                company_address=format_company_address(company.address, company.city, company.country),
                recipient_name="Erik Berg",
                recipient_email="buyer@example.com",
                recipient_company="Berg Capital AB",
                purpose="M&A Due Diligence",
                term_years=3,
            )
        )
        db.add(nda)
        await db.commit()
        print("  ✅ Created deal in stage lead with a draft NDA")

        # Create Referral Link
        print("\n🔗 Creating referral link...")
        link = ReferralLink(
            partner_id=partner.id,
            link_code=generate_code(),
            source_page="/myynti",
            campaign_name="Spring newsletter",
            utm_source="newsletter",
            utm_medium="email"
        )
        db.add(link)
        await db.commit()
        print(f"  ✅ Created referral link {link.link_code}")

        # Create Survey and Landing Page
        print("\n📝 Creating survey and landing page...")
        db.add(SurveyTemplate(
            name="Yrittäjäkysely",
            description="Entrepreneur satisfaction survey",
            language="fi",
            is_active=True,
            is_default=True,
            created_by=admin.id,
            questions={
                "sections": [{
                    "title": "Kokemus",
                    "questions": [
                        {"id": "nps", "type": "scale", "text": "Kuinka todennäköisesti suosittelisit meitä?",
                         "scale": {"min": 0, "max": 10}},
                        {"id": "goal", "type": "radio", "text": "Mikä on tavoitteesi?",
                         "options": [{"value": "sell", "label": "Myynti"},
                                     {"value": "finance", "label": "Rahoitus"}]},
                        {"id": "feedback", "type": "text", "text": "Vapaa palaute"},
                    ]
                }]
            }
        ))
        db.add(LandingPage(
            title="Yrityksen myynti",
            slug="yrityksen-myynti",
            locale="fi",
            content={"hero": {"title": "Myy yrityksesi turvallisesti"}},
            meta_title="Yrityksen myynti | Trusty Finance",
            published=True,
            published_at=utc_now(),
            created_by=admin.id
        ))
        await db.commit()
        print("  ✅ Created default survey and published landing page")

    print("\n✅ Database seeded successfully!")
    print("\n🔑 Test Credentials:")
    for email in ("admin@trustyfinance.fi", "seller@nordiccomponents.fi", "broker@helsinkima.fi",
                  "buyer@example.com", "partners@laskuri.fi"):
        print(f"  - {email} / {DEMO_PASSWORD}")


async def main():
    """Main entry point."""
    # Initialize database schema
    print("🔧 Initializing database schema...")
    await init_db()
    print("✅ Database schema created")

    # Seed data
    await seed_database()


if __name__ == "__main__":
    asyncio.run(main())
