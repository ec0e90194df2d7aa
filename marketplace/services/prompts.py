"""
Prompt templates for AI content generation.
"""

import json
from typing import Any, Optional

from marketplace.models import Company, Deal


def _money(value: Optional[float], currency: str = "EUR") -> str:
    if value is None:
        return "N/A"
    return f"{currency} {value:,.0f}"


def format_company_data(company: Company, assets: Optional[list] = None) -> str:
    location = f"{company.city}, {company.country}" if company.city else (company.country or "N/A")
    lines = [
        f"**Name:** {company.name}",
        f"**Industry:** {company.industry or 'N/A'}",
        f"**Location:** {location}",
        f"**Description:** {company.description or 'N/A'}",
        f"**Founded:** {company.founded_year or 'N/A'}",
        f"**Employees:** {company.employees or 'N/A'}",
        f"**Legal Structure:** {company.legal_structure or 'N/A'}",
        f"**Business ID:** {company.business_id or 'N/A'}",
        f"**Asking Price:** {_money(company.asking_price)}",
    ]

    financials = company.financials or []
    if financials:
        lines.append("")
        lines.append("**Financial History:**")
        for f in financials:
            lines.append(
                f"- Year {f.fiscal_year}: Revenue {_money(f.revenue)}, "
                f"EBITDA {_money(f.ebitda)}, Net Income {_money(f.net_income)}"
            )

    if assets:
        lines.append("")
        lines.append("**Key Documents/Assets:**")
        for asset in assets:
            lines.append(f"- {asset.asset_type}: {asset.name}")

    return "\n".join(lines)


def format_deal_data(deal: Deal) -> str:
    lines = [
        f"**Deal Type:** {deal.deal_type}",
        f"**Stage:** {deal.stage or 'N/A'}",
        f"**Status:** {deal.status or 'N/A'}",
        f"**Estimated Value:** {_money(deal.estimated_value)}",
        "",
        "**Company Information:**",
        format_company_data(deal.company) if deal.company else "N/A",
    ]
    return "\n".join(lines)


def _subject(resource: Any, assets: Optional[list] = None) -> tuple[str, str]:
    if isinstance(resource, Deal):
        return "deal", format_deal_data(resource)
    return "company", format_company_data(resource, assets)


def build_prompt(
    content_type: str,
    resource: Any,
    params: Optional[dict] = None,
    assets: Optional[list] = None,
) -> str:
    """
    Prompt for a resource-bound content type.

    Args:
        content_type: teaser, im, cim, pitch_deck, valuation, due_diligence,
            risk_assessment or recommendation
        resource: Company or Deal (with company and financials loaded)
        params: Extra parameters from the request
        assets: Company assets listed in company prompts
    """
    params = params or {}
    kind, data = _subject(resource, assets)

    if content_type == "teaser":
        return f"""Generate a compelling 1-page **Teaser** for the following company.

A teaser is a brief, anonymous marketing document designed to spark interest in a potential acquisition without revealing the company's identity.

**Company Information:**
{data}

**Requirements:**
- Keep it to 1 page (300-400 words)
- Do NOT reveal company name or specific identifying details
- Highlight key strengths and investment opportunity
- Include industry overview, business model, financial highlights, growth potential
- End with a call-to-action

Generate the teaser now:"""

    if content_type == "im":
        return f"""Generate a detailed **Information Memorandum (IM)** for the following company.

**Company Information:**
{data}

**Requirements:**
- 5-10 pages worth of content
- Include: Executive Summary, Company Overview, Products/Services, Market Analysis, Financial Performance, Management Team, Growth Opportunities, Investment Highlights
- Professional, detailed, factual tone with clear sections and headings

Generate the IM now:"""

    if content_type == "cim":
        return f"""Generate a comprehensive **Confidential Information Memorandum (CIM)** for the following company.

**Company Information:**
{data}

**Requirements:**
- 15-30 pages worth of content
- Include: Detailed financials (3-5 years), operational metrics, customer analysis, competitive landscape, SWOT analysis, risk factors, growth projections, management bios
- Investment-grade quality with a table of contents

Generate the CIM now:"""

    if content_type == "pitch_deck":
        return f"""Generate a comprehensive **Pitch Deck** presentation for the following company.

**Company Information:**
{data}

**Requirements:**
- 10-15 slide structure with clear headings
- Include: Cover, Problem/Solution, Market Opportunity, Business Model, Traction/Metrics, Competition, Team, Financials, Investment Ask, Contact
- Each slide should have a clear title and 3-5 bullet points

Generate the pitch deck slides now (format as Slide 1: [Title], content bullets, etc.):"""

    if content_type == "valuation":
        extra = ""
        if params.get("additional_context"):
            extra = f"**Additional Context:**\n{params['additional_context']}\n\n"
        return f"""Generate a detailed **Valuation Report** for the following company.

**Company Information:**
{data}

{extra}**Requirements:**
- Use multiple valuation methods: DCF, Comparable Companies, Precedent Transactions, Asset-Based
- For each method: explain methodology, show calculations, provide valuation range
- Provide weighted average valuation and final recommendation

Generate the valuation report now:"""

    if content_type == "due_diligence":
        return f"""Generate a **Due Diligence Question List** for the following {kind}.

**{kind.capitalize()} Information:**
{data}

**Requirements:**
- Comprehensive list of 30-50 questions
- Cover: Financial, Legal, Operational, Commercial, HR, IT, Environmental, Regulatory areas
- Prioritize by importance (Critical, High, Medium)
- Format as numbered list with categories

Generate the due diligence questions now:"""

    if content_type == "risk_assessment":
        return f"""Generate a detailed **Risk Assessment Report** for the following {kind}.

**{kind.capitalize()} Information:**
{data}

**Requirements:**
- Identify 10-15 key risks across categories: Financial, Market, Operational, Legal, Regulatory
- For each risk: likelihood (Low/Medium/High), impact (Low/Medium/High) and mitigation strategies
- Include overall risk score

Generate the risk assessment now:"""

    if content_type == "recommendation":
        return f"""Generate an **Investment Recommendation** for the following {kind}.

**{kind.capitalize()} Information:**
{data}

**Additional Context:**
{json.dumps(params, indent=2, default=str)}

**Requirements:**
- Clear recommendation: "Strong Buy", "Buy", "Hold", "Pass"
- Rationale for recommendation (3-5 key points)
- Key strengths and concerns, next steps

Generate the recommendation now:"""

    return "Generate relevant content based on the provided data."


def build_onboarding_prompt(content_type: str, context: Optional[dict] = None) -> str:
    """Prompt for organization_name / organization_description (no resource)."""
    context = context or {}
    industry = context.get("industry")

    if content_type == "organization_name":
        industry_line = f"- The name should reflect the {industry} industry\n" if industry else ""
        return f"""Generate a professional organization name based on the following information:

**User Information:**
- Name: {context.get('user_name') or 'N/A'}
- Email: {context.get('user_email') or 'N/A'}
- Role: {context.get('user_role') or 'N/A'}
- Industry: {industry or 'N/A'}

**Requirements:**
- Generate ONE professional company name
{industry_line}- Keep it short, professional, and memorable (max 50 characters)
- Do NOT include legal suffixes like Oy, Ab, Ltd
- Return ONLY the company name, nothing else

Generate the organization name now:"""

    if content_type == "organization_description":
        return f"""Generate a professional organization description based on the following information:

**Organization Information:**
- Name: {context.get('name') or 'N/A'}
- Industry: {industry or 'N/A'}
- Role: {context.get('user_role') or 'N/A'}

**Requirements:**
- Write a 2-3 sentence professional description
- Keep it concise, professional, and engaging
- Return ONLY the description, nothing else

Generate the organization description now:"""

    return "Generate relevant content based on the provided information."
