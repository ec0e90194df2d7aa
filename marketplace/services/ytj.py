"""Finnish business registry (YTJ open data API v3) client.

Searches companies by name or business id and normalizes the nested
registry records into flat dictionaries.
"""

import logging
import re
from typing import Any, Optional

import httpx

from marketplace.config.settings import get_settings

logger = logging.getLogger(__name__)

BUSINESS_ID_PATTERN = re.compile(r"^\d{7}-\d$")

# languageCode "1" is Finnish in the registry payloads
FINNISH = "1"
STREET_ADDRESS = 1
POSTAL_ADDRESS = 2


class YTJError(Exception):
    """Registry lookup failed; status_code is the HTTP status to report."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


def is_business_id(query: str) -> bool:
    return bool(BUSINESS_ID_PATTERN.match(query))


def _finnish_description(descriptions: Optional[list], fallback: str = "") -> str:
    for item in descriptions or []:
        if item.get("languageCode") == FINNISH:
            return item.get("description", "")
    return fallback


def _latest_address(company: dict, address_type: int) -> Optional[dict]:
    candidates = [a for a in company.get("addresses") or [] if a.get("type") == address_type]
    if not candidates:
        return None
    return max(candidates, key=lambda a: a.get("registrationDate") or "")


def _city(address: Optional[dict]) -> str:
    if not address:
        return ""
    offices = address.get("postOffices") or []
    for office in offices:
        if office.get("languageCode") == FINNISH:
            return office.get("city", "")
    return offices[0].get("city", "") if offices else ""


def _format_address(address: Optional[dict]) -> str:
    if not address:
        return ""
    parts = [
        address.get("street") or "",
        address.get("buildingNumber") or "",
        address.get("entrance") or "",
        address.get("apartmentNumber") or "",
    ]
    street = " ".join(p for p in parts if p)
    text = f"{street}, {address.get('postCode') or ''} {_city(address)}"
    return re.sub(r"\s+", " ", text).strip().strip(",").strip()


def _company_name(company: dict) -> str:
    names = company.get("names") or []
    for name in names:
        if name.get("type") == "1" and not name.get("endDate"):
            return name.get("name", "")
    return names[0].get("name", "") if names else ""


def _company_form(company: dict) -> str:
    for form in company.get("companyForms") or []:
        if not form.get("endDate"):
            return _finnish_description(form.get("descriptions"), form.get("type") or "")
    return ""


def _company_status(company: dict) -> str:
    if company.get("status") == "2" and not company.get("endDate"):
        return "Active"
    if company.get("endDate"):
        return "Ended"
    if any(s.get("type") == "KONK" for s in company.get("companySituations") or []):
        return "Liquidation"
    if company.get("tradeRegisterStatus") == "4":
        return "Ceased"
    return "Active" if company.get("tradeRegisterStatus") == "1" else "Inactive"


def normalize_company(company: dict) -> dict[str, Any]:
    """Flatten one registry record."""
    street = _latest_address(company, STREET_ADDRESS)
    business_line = company.get("mainBusinessLine") or {}
    return {
        "business_id": (company.get("businessId") or {}).get("value", ""),
        "name": _company_name(company),
        "company_form": _company_form(company),
        "registration_date": company.get("registrationDate") or "",
        "status": _company_status(company),
        "address": _format_address(street),
        "postal_address": _format_address(_latest_address(company, POSTAL_ADDRESS)),
        "city": _city(street),
        "post_code": (street or {}).get("postCode", ""),
        "industry": _finnish_description(business_line.get("descriptions"), business_line.get("type") or ""),
        "website": (company.get("website") or {}).get("url", ""),
    }


class YTJClient:
    """Async client for the YTJ companies endpoint."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        settings = get_settings()
        self.base_url = base_url or settings.ytj_base_url
        self.timeout = timeout or settings.ytj_timeout_seconds
        self._transport = transport

    async def _get(self, params: dict) -> dict:
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(
                    self.base_url,
                    params=params,
                    headers={"Accept": "application/json"},
                )
        except httpx.TimeoutException as e:
            raise YTJError("Business registry request timed out", status_code=504) from e
        except httpx.HTTPError as e:
            raise YTJError(f"Business registry request failed: {e}", status_code=502) from e

        if response.status_code != 200:
            logger.warning(f"YTJ returned HTTP {response.status_code}")
            if response.status_code == 429:
                raise YTJError("Too many registry requests, try again shortly", status_code=429)
            if response.status_code >= 500:
                raise YTJError("Business registry is unavailable", status_code=503)
            if response.status_code == 404:
                raise YTJError("No company found for the query", status_code=404)
            raise YTJError("Company search failed", status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise YTJError("Invalid response from business registry", status_code=502) from e

    async def search(self, query: str, limit: int = 5) -> list[dict[str, Any]]:
        """Search by business id (exact) or by name.

        Args:
            query: Company name or business id (1234567-8)
            limit: Maximum results for name searches

        Returns:
            Normalized company dictionaries

        Raises:
            YTJError: On upstream failure
        """
        if is_business_id(query):
            params = {"businessId": query}
        else:
            params = {"name": query, "maxResults": limit}

        data = await self._get(params)
        companies = data.get("companies") if isinstance(data, dict) else None
        if not isinstance(companies, list):
            return []
        return [normalize_company(c) for c in companies]

    async def get_company(self, business_id: str) -> Optional[dict[str, Any]]:
        """Look up a single company; None when the registry has no match."""
        try:
            results = await self.search(business_id, limit=1)
        except YTJError as e:
            if e.status_code == 404:
                return None
            raise
        return results[0] if results else None


def get_ytj_client() -> YTJClient:
    """FastAPI dependency returning the configured registry client."""
    return YTJClient()
