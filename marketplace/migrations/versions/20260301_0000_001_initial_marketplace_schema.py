"""Initial marketplace schema

Revision ID: 001
Revises:
Create Date: 2026-03-01 00:00:00.000000

Creates the initial PostgreSQL schema for the marketplace:
- Organizations, profiles and audit logs
- Companies, yearly financials and the financial metrics history
- Deals with stage history and activities, NDAs and payments
- Partners, referral links, clicks, conversions and commissions
- Surveys, landing pages, documents, AI content and materials jobs
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def uuid_pk() -> sa.Column:
    return sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True)


def money(name: str, **kwargs) -> sa.Column:
    return sa.Column(name, sa.Numeric(15, 2), **kwargs)


def upgrade() -> None:
    # Create organizations table
    op.create_table(
        "organizations",
        uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(100), nullable=False, unique=True),
        sa.Column("description", sa.String(2000), nullable=True),
        sa.Column("org_type", sa.String(50), nullable=False, server_default="seller"),
        sa.Column("country", sa.String(100), nullable=False, server_default="Finland"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("contact_name", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_organizations_name", "organizations", ["name"])
    op.create_index("ix_organizations_slug", "organizations", ["slug"])
    op.create_index("ix_organizations_is_active", "organizations", ["is_active"])

    # Partners come before profiles: partner users point at their partner record
    op.create_table(
        "partners",
        uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50), nullable=True),
        sa.Column("commission_percent", sa.Float(), nullable=False, server_default="0"),
        sa.Column("tier", sa.String(20), nullable=False, server_default="basic"),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        sa.Column("contact_info", sa.JSON(), nullable=True),
        sa.Column("settings", sa.JSON(), nullable=True),
        sa.Column("signup_code", sa.String(32), nullable=True, unique=True),
        sa.Column("signup_code_expires_at", sa.DateTime(), nullable=True),
        sa.Column("signup_code_used_at", sa.DateTime(), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_partners_name", "partners", ["name"])
    op.create_index("ix_partners_email", "partners", ["email"])
    op.create_index("ix_partners_tier", "partners", ["tier"])
    op.create_index("ix_partners_status", "partners", ["status"])
    op.create_index("ix_partners_signup_code", "partners", ["signup_code"])

    # Create profiles table
    op.create_table(
        "profiles",
        uuid_pk(),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("partner_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(255), nullable=True),
        sa.Column("full_name", sa.String(255), nullable=False),
        sa.Column("role", sa.String(30), nullable=False, server_default="seller"),
        sa.Column("locale", sa.String(5), nullable=False, server_default="fi"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("last_login_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["partner_id"], ["partners.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_profiles_email", "profiles", ["email"])
    op.create_index("ix_profiles_organization_id", "profiles", ["organization_id"])
    op.create_index("ix_profiles_partner_id", "profiles", ["partner_id"])
    op.create_index("ix_profiles_role", "profiles", ["role"])
    op.create_index("ix_profiles_is_active", "profiles", ["is_active"])

    # Create companies table
    op.create_table(
        "companies",
        uuid_pk(),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("business_id", sa.String(20), nullable=True),
        sa.Column("industry", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("company_form", sa.String(100), nullable=True),
        sa.Column("legal_structure", sa.String(50), nullable=False, server_default="family_owned"),
        sa.Column("country", sa.String(100), nullable=False, server_default="Finland"),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("address", sa.String(255), nullable=True),
        sa.Column("website", sa.String(255), nullable=True),
        sa.Column("employees", sa.Integer(), nullable=True),
        sa.Column("founded_year", sa.Integer(), nullable=True),
        sa.Column("products", sa.JSON(), nullable=True),
        money("asking_price", nullable=True),
        sa.Column("status", sa.String(30), nullable=False, server_default="active"),
        sa.Column("enrichment_data", sa.JSON(), nullable=True),
        sa.Column("enrichment_confidence", sa.Integer(), nullable=True),
        sa.Column("enrichment_completeness", sa.Integer(), nullable=True),
        sa.Column("enriched_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("deleted_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_companies_organization_id", "companies", ["organization_id"])
    op.create_index("ix_companies_created_by", "companies", ["created_by"])
    op.create_index("ix_companies_name", "companies", ["name"])
    op.create_index("ix_companies_business_id", "companies", ["business_id"])
    op.create_index("ix_companies_industry", "companies", ["industry"])
    op.create_index("ix_companies_status", "companies", ["status"])
    op.create_index("ix_companies_created_at", "companies", ["created_at"])

    # Create company_financials table
    op.create_table(
        "company_financials",
        uuid_pk(),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        money("revenue", nullable=True),
        money("ebitda", nullable=True),
        money("net_income", nullable=True),
        money("total_assets", nullable=True),
        money("total_liabilities", nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("company_id", "fiscal_year", name="uq_company_financials_year"),
    )
    op.create_index("ix_company_financials_company_id", "company_financials", ["company_id"])

    # Create financial_metrics table
    op.create_table(
        "financial_metrics",
        uuid_pk(),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("fiscal_year", sa.Integer(), nullable=False),
        sa.Column("fiscal_period", sa.String(20), nullable=False, server_default="annual"),
        sa.Column("data_source", sa.String(50), nullable=False, server_default="unknown"),
        money("revenue_current", nullable=True),
        sa.Column("revenue_growth_rate", sa.Float(), nullable=True),
        money("operational_cash_flow", nullable=True),
        money("ebitda", nullable=True),
        money("net_profit", nullable=True),
        money("total_assets", nullable=True),
        money("total_equity", nullable=True),
        money("total_liabilities", nullable=True),
        sa.Column("return_on_equity", sa.Float(), nullable=True),
        sa.Column("debt_to_equity_ratio", sa.Float(), nullable=True),
        sa.Column("quick_ratio", sa.Float(), nullable=True),
        sa.Column("current_ratio", sa.Float(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_financial_metrics_company_id", "financial_metrics", ["company_id"])
    op.create_index("ix_financial_metrics_fiscal_year", "financial_metrics", ["fiscal_year"])

    # Create deals table
    op.create_table(
        "deals",
        uuid_pk(),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("buyer_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("stage", sa.String(50), nullable=False, server_default="lead"),
        sa.Column("status", sa.String(30), nullable=False, server_default="active"),
        sa.Column("deal_type", sa.String(50), nullable=False, server_default="acquisition"),
        money("estimated_value", nullable=True),
        sa.Column("expected_close_date", sa.Date(), nullable=True),
        sa.Column("actual_close_date", sa.Date(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["buyer_id"], ["profiles.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_deals_organization_id", "deals", ["organization_id"])
    op.create_index("ix_deals_company_id", "deals", ["company_id"])
    op.create_index("ix_deals_buyer_id", "deals", ["buyer_id"])
    op.create_index("ix_deals_stage", "deals", ["stage"])
    op.create_index("ix_deals_status", "deals", ["status"])
    op.create_index("ix_deals_created_at", "deals", ["created_at"])

    op.create_table(
        "deal_stages",
        uuid_pk(),
        sa.Column("deal_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("stage", sa.String(50), nullable=False),
        sa.Column("entered_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["deal_id"], ["deals.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_deal_stages_deal_id", "deal_stages", ["deal_id"])

    op.create_table(
        "deal_activities",
        uuid_pk(),
        sa.Column("deal_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("activity_type", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["deal_id"], ["deals.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_deal_activities_deal_id", "deal_activities", ["deal_id"])

    # Create ndas table
    op.create_table(
        "ndas",
        uuid_pk(),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("deal_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("recipient_name", sa.String(255), nullable=False),
        sa.Column("recipient_email", sa.String(255), nullable=False),
        sa.Column("recipient_company", sa.String(255), nullable=True),
        sa.Column("recipient_address", sa.String(500), nullable=True),
        sa.Column("purpose", sa.String(255), nullable=False, server_default="M&A Due Diligence"),
        sa.Column("term_years", sa.Integer(), nullable=False, server_default="3"),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("signed_at", sa.DateTime(), nullable=True),
        sa.Column("signed_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["deal_id"], ["deals.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["signed_by"], ["profiles.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_ndas_organization_id", "ndas", ["organization_id"])
    op.create_index("ix_ndas_company_id", "ndas", ["company_id"])
    op.create_index("ix_ndas_deal_id", "ndas", ["deal_id"])
    op.create_index("ix_ndas_status", "ndas", ["status"])

    # Create payments table
    op.create_table(
        "payments",
        uuid_pk(),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("deal_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        money("amount", nullable=False),
        sa.Column("currency", sa.String(3), nullable=False, server_default="EUR"),
        sa.Column("type", sa.String(30), nullable=False, server_default="other"),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("invoice_number", sa.String(50), nullable=True),
        sa.Column("due_date", sa.Date(), nullable=True),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["deal_id"], ["deals.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_payments_organization_id", "payments", ["organization_id"])
    op.create_index("ix_payments_deal_id", "payments", ["deal_id"])
    op.create_index("ix_payments_status", "payments", ["status"])
    op.create_index("ix_payments_created_at", "payments", ["created_at"])

    # Create referral tracking tables
    op.create_table(
        "referral_links",
        uuid_pk(),
        sa.Column("partner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("link_code", sa.String(32), nullable=False, unique=True),
        sa.Column("source_page", sa.String(255), nullable=False),
        sa.Column("campaign_name", sa.String(255), nullable=True),
        sa.Column("utm_source", sa.String(100), nullable=True),
        sa.Column("utm_medium", sa.String(100), nullable=True),
        sa.Column("utm_campaign", sa.String(100), nullable=True),
        sa.Column("utm_content", sa.String(100), nullable=True),
        sa.Column("utm_term", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("expires_at", sa.DateTime(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("click_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("conversion_count", sa.Integer(), nullable=False, server_default="0"),
        money("total_revenue", nullable=False, server_default="0"),
        money("total_commission", nullable=False, server_default="0"),
        sa.Column("last_clicked_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["partner_id"], ["partners.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_referral_links_partner_id", "referral_links", ["partner_id"])
    op.create_index("ix_referral_links_link_code", "referral_links", ["link_code"])
    op.create_index("ix_referral_links_campaign_name", "referral_links", ["campaign_name"])
    op.create_index("ix_referral_links_is_active", "referral_links", ["is_active"])

    op.create_table(
        "referral_clicks",
        uuid_pk(),
        sa.Column("link_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("partner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("session_id", sa.String(255), nullable=False),
        sa.Column("fingerprint", sa.String(64), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("landing_page", sa.Text(), nullable=True),
        sa.Column("referrer_url", sa.Text(), nullable=True),
        sa.Column("device_type", sa.String(30), nullable=True),
        sa.Column("browser", sa.String(50), nullable=True),
        sa.Column("os", sa.String(50), nullable=True),
        sa.Column("screen_resolution", sa.String(20), nullable=True),
        sa.Column("country", sa.String(100), nullable=True),
        sa.Column("region", sa.String(100), nullable=True),
        sa.Column("city", sa.String(100), nullable=True),
        sa.Column("clicked_at", sa.DateTime(), nullable=False),
        sa.Column("attribution_expires_at", sa.DateTime(), nullable=False),
        sa.Column("converted", sa.Boolean(), nullable=False, server_default="false"),
        sa.ForeignKeyConstraint(["link_id"], ["referral_links.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["partner_id"], ["partners.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_referral_clicks_link_id", "referral_clicks", ["link_id"])
    op.create_index("ix_referral_clicks_partner_id", "referral_clicks", ["partner_id"])
    op.create_index("ix_referral_clicks_session_id", "referral_clicks", ["session_id"])
    op.create_index("ix_referral_clicks_fingerprint", "referral_clicks", ["fingerprint"])
    op.create_index("ix_referral_clicks_clicked_at", "referral_clicks", ["clicked_at"])
    op.create_index(
        "ix_referral_clicks_attribution_expires_at", "referral_clicks", ["attribution_expires_at"]
    )

    op.create_table(
        "conversions",
        uuid_pk(),
        sa.Column("session_id", sa.String(255), nullable=False),
        sa.Column("click_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("link_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("partner_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("conversion_type", sa.String(50), nullable=False),
        money("conversion_value", nullable=False, server_default="0"),
        money("commission_amount", nullable=False, server_default="0"),
        sa.Column("commission_eligible", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("first_touch", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("converted_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["click_id"], ["referral_clicks.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["link_id"], ["referral_links.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["partner_id"], ["partners.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_conversions_session_id", "conversions", ["session_id"])
    op.create_index("ix_conversions_conversion_type", "conversions", ["conversion_type"])
    op.create_index("ix_conversions_converted_at", "conversions", ["converted_at"])

    op.create_table(
        "partner_commissions",
        uuid_pk(),
        sa.Column("partner_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("conversion_id", postgresql.UUID(as_uuid=True), nullable=True),
        money("commission_amount", nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="calculated"),
        sa.Column("payment_reference", sa.String(255), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("generated_at", sa.DateTime(), nullable=False),
        sa.Column("paid_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["partner_id"], ["partners.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["conversion_id"], ["conversions.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_partner_commissions_partner_id", "partner_commissions", ["partner_id"])
    op.create_index("ix_partner_commissions_conversion_id", "partner_commissions", ["conversion_id"])
    op.create_index("ix_partner_commissions_status", "partner_commissions", ["status"])
    op.create_index("ix_partner_commissions_generated_at", "partner_commissions", ["generated_at"])

    # Create survey tables
    op.create_table(
        "survey_templates",
        uuid_pk(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("questions", sa.JSON(), nullable=False),
        sa.Column("settings", sa.JSON(), nullable=True),
        sa.Column("language", sa.String(5), nullable=False, server_default="fi"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_survey_templates_is_active", "survey_templates", ["is_active"])

    op.create_table(
        "survey_invitations",
        uuid_pk(),
        sa.Column("template_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("token", sa.String(64), nullable=False, unique=True),
        sa.Column("invitation_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("sent_at", sa.DateTime(), nullable=True),
        sa.Column("opened_at", sa.DateTime(), nullable=True),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["template_id"], ["survey_templates.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_survey_invitations_template_id", "survey_invitations", ["template_id"])
    op.create_index("ix_survey_invitations_user_id", "survey_invitations", ["user_id"])
    op.create_index("ix_survey_invitations_email", "survey_invitations", ["email"])
    op.create_index("ix_survey_invitations_token", "survey_invitations", ["token"])
    op.create_index(
        "ix_survey_invitations_invitation_status", "survey_invitations", ["invitation_status"]
    )

    op.create_table(
        "survey_responses",
        uuid_pk(),
        sa.Column("template_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("invitation_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("answers", sa.JSON(), nullable=False),
        sa.Column("completion_status", sa.String(20), nullable=False, server_default="started"),
        sa.Column("session_duration", sa.Integer(), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("referrer", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["template_id"], ["survey_templates.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["invitation_id"], ["survey_invitations.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_survey_responses_template_id", "survey_responses", ["template_id"])
    op.create_index(
        "ix_survey_responses_completion_status", "survey_responses", ["completion_status"]
    )
    op.create_index("ix_survey_responses_created_at", "survey_responses", ["created_at"])

    # Create landing_pages table
    op.create_table(
        "landing_pages",
        uuid_pk(),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(150), nullable=False),
        sa.Column("locale", sa.String(5), nullable=False, server_default="fi"),
        sa.Column("content", sa.JSON(), nullable=True),
        sa.Column("meta_title", sa.String(255), nullable=True),
        sa.Column("meta_description", sa.Text(), nullable=True),
        sa.Column("published", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("published_at", sa.DateTime(), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("slug", "locale", name="uq_landing_pages_slug_locale"),
    )
    op.create_index("ix_landing_pages_slug", "landing_pages", ["slug"])
    op.create_index("ix_landing_pages_locale", "landing_pages", ["locale"])
    op.create_index("ix_landing_pages_published", "landing_pages", ["published"])

    # Create documents table
    op.create_table(
        "documents",
        uuid_pk(),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("uploaded_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("document_type", sa.String(50), nullable=False),
        sa.Column("is_manual_type", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("fiscal_year", sa.Integer(), nullable=True),
        sa.Column("processing_status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["uploaded_by"], ["profiles.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_documents_company_id", "documents", ["company_id"])
    op.create_index("ix_documents_document_type", "documents", ["document_type"])

    # Create AI content and materials tables
    op.create_table(
        "ai_generated_content",
        uuid_pk(),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("content_type", sa.String(50), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("resource_type", sa.String(20), nullable=True),
        sa.Column("resource_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("model_used", sa.String(100), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_ai_generated_content_content_type", "ai_generated_content", ["content_type"])
    op.create_index("ix_ai_generated_content_resource_id", "ai_generated_content", ["resource_id"])

    op.create_table(
        "material_generation_jobs",
        uuid_pk(),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status", sa.String(40), nullable=False, server_default="initiated"),
        sa.Column("progress_percentage", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("generate_teaser", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("generate_im", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("generate_pitch_deck", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("questions_total", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("questions_answered", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(), nullable=False),
        sa.Column("completed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["profiles.id"], ondelete="SET NULL"),
    )
    op.create_index(
        "ix_material_generation_jobs_organization_id", "material_generation_jobs", ["organization_id"]
    )
    op.create_index("ix_material_generation_jobs_company_id", "material_generation_jobs", ["company_id"])
    op.create_index("ix_material_generation_jobs_status", "material_generation_jobs", ["status"])

    op.create_table(
        "company_assets",
        uuid_pk(),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("company_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("job_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("uploaded_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("asset_type", sa.String(50), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=True),
        sa.Column("file_size", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["company_id"], ["companies.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["job_id"], ["material_generation_jobs.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["uploaded_by"], ["profiles.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_company_assets_organization_id", "company_assets", ["organization_id"])
    op.create_index("ix_company_assets_company_id", "company_assets", ["company_id"])
    op.create_index("ix_company_assets_job_id", "company_assets", ["job_id"])

    # Create audit_logs table
    op.create_table(
        "audit_logs",
        uuid_pk(),
        sa.Column("organization_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("resource_type", sa.String(50), nullable=True),
        sa.Column("resource_id", sa.String(255), nullable=True),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="success"),
        sa.Column("context_data", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["organization_id"], ["organizations.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["profiles.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_audit_logs_organization_id", "audit_logs", ["organization_id"])
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_resource_type", "audit_logs", ["resource_type"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign keys)
    op.drop_table("audit_logs")
    op.drop_table("company_assets")
    op.drop_table("material_generation_jobs")
    op.drop_table("ai_generated_content")
    op.drop_table("documents")
    op.drop_table("landing_pages")
    op.drop_table("survey_responses")
    op.drop_table("survey_invitations")
    op.drop_table("survey_templates")
    op.drop_table("partner_commissions")
    op.drop_table("conversions")
    op.drop_table("referral_clicks")
    op.drop_table("referral_links")
    op.drop_table("payments")
    op.drop_table("ndas")
    op.drop_table("deal_activities")
    op.drop_table("deal_stages")
    op.drop_table("deals")
    op.drop_table("financial_metrics")
    op.drop_table("company_financials")
    op.drop_table("companies")
    op.drop_table("profiles")
    op.drop_table("partners")
    op.drop_table("organizations")
