"""
Trusty Finance / BizExit marketplace API.

Multi-tenant backend for:
- Company profiles, deals, NDAs and payments (M&A marketplace)
- Financial metrics history and trend analysis
- Partner referral links, click tracking and conversion attribution
- Surveys, landing pages and document uploads
- AI-assisted content and sale-materials generation
"""

__version__ = "1.0.0"

from marketplace.config import MarketplaceConfig

__all__ = ["MarketplaceConfig"]
