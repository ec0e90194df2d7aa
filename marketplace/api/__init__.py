"""
Marketplace API routes.

Provides REST API endpoints for:
- Authentication and organizations
- Companies, business registry search and financial metrics
- Deals, NDAs and payments
- Partners, referral tracking and analytics
- Surveys, landing pages and documents
- AI content and materials generation
- Audit logs
"""

from marketplace.api.ai import router as ai_router
from marketplace.api.audit import router as audit_router
from marketplace.api.auth import router as auth_router
from marketplace.api.companies import router as companies_router
from marketplace.api.deals import router as deals_router
from marketplace.api.documents import router as documents_router
from marketplace.api.financial import router as financial_router
from marketplace.api.landing_pages import router as landing_pages_router
from marketplace.api.materials import router as materials_router
from marketplace.api.ndas import router as ndas_router
from marketplace.api.organizations import router as organizations_router
from marketplace.api.partners import router as partners_router
from marketplace.api.payments import router as payments_router
from marketplace.api.surveys import router as surveys_router
from marketplace.api.tracking import router as tracking_router
from marketplace.api.ytj import router as ytj_router

__all__ = [
    "auth_router",
    "organizations_router",
    "companies_router",
    "ytj_router",
    "financial_router",
    "deals_router",
    "ndas_router",
    "payments_router",
    "partners_router",
    "tracking_router",
    "surveys_router",
    "landing_pages_router",
    "documents_router",
    "ai_router",
    "materials_router",
    "audit_router",
]
