"""
Marketplace database models.

- Organizations (tenants) and user profiles
- Companies, financials and the financial metrics history
- Deals, NDAs and payments
- Partners, referral links, clicks, conversions and commissions
- Surveys, landing pages and uploaded documents
- AI generated content, materials jobs and audit logs
"""

from marketplace.models.organization import Organization
from marketplace.models.partner import Partner, PartnerCommission
from marketplace.models.user import Profile
from marketplace.models.company import Company, CompanyFinancials
from marketplace.models.deal import Deal, DealStage, DealActivity
from marketplace.models.nda import NDA
from marketplace.models.financial import FinancialMetric
from marketplace.models.referral import ReferralLink, ReferralClick, Conversion
from marketplace.models.survey import SurveyTemplate, SurveyInvitation, SurveyResponse
from marketplace.models.landing_page import LandingPage
from marketplace.models.materials import MaterialGenerationJob, MaterialQuestionnaireResponse
from marketplace.models.document import Document, CompanyAsset
from marketplace.models.payment import Payment
from marketplace.models.ai_content import AIGeneratedContent
from marketplace.models.audit import AuditLog

__all__ = [
    "Organization",
    "Profile",
    "Partner",
    "PartnerCommission",
    "Company",
    "CompanyFinancials",
    "Deal",
    "DealStage",
    "DealActivity",
    "NDA",
    "FinancialMetric",
    "ReferralLink",
    "ReferralClick",
    "Conversion",
    "SurveyTemplate",
    "SurveyInvitation",
    "SurveyResponse",
    "LandingPage",
    "MaterialGenerationJob",
    "MaterialQuestionnaireResponse",
    "Document",
    "CompanyAsset",
    "Payment",
    "AIGeneratedContent",
    "AuditLog",
]
