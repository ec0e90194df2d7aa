"""
Unit tests for company enrichment scoring.
"""

import httpx
import pytest

from marketplace.models import Company, FinancialMetric
from marketplace.services.enrichment import (
    calculate_completeness,
    calculate_confidence,
    enrich_company,
    load_yearly_financials,
)
from marketplace.services.ytj import YTJClient

pytestmark = pytest.mark.unit


class TestCalculateConfidence:

    def test_minimal_snapshot(self):
        assert calculate_confidence({}, 0) == 10

    @pytest.mark.parametrize("quality,expected", [
        ({"verified": True}, 25),
        ({"confidence": "HIGH"}, 20),
        ({"confidence": "MEDIUM"}, 15),
        ({"confidence": "LOW"}, 10),
    ])
    def test_data_quality(self, quality, expected):
        assert calculate_confidence({"data_quality": quality}, 0) == expected

    @pytest.mark.parametrize("years,expected", [(1, 20), (2, 25), (3, 35), (7, 35)])
    def test_years_of_financials(self, years, expected):
        assert calculate_confidence({}, years) == expected

    def test_content_signals(self):
        info = {
            "description": "x" * 101,
            "products": ["Gears"],
            "recent_news": ["Expansion"],
            "website": "https://example.fi",
            "employees": 0,
        }
        # 10 base + 15 + 10 + 10 + 5 + 10
        assert calculate_confidence(info, 0) == 60

    def test_short_description_ignored(self):
        assert calculate_confidence({"description": "x" * 100}, 0) == 10

    def test_capped_at_100(self):
        info = {
            "data_quality": {"verified": True},
            "description": "x" * 200,
            "products": ["Gears"],
            "recent_news": ["Expansion"],
            "website": "https://example.fi",
            "employees": 12,
        }
        assert calculate_confidence(info, 5) == 100


class TestCalculateCompleteness:

    def test_empty(self):
        assert calculate_completeness({}, 0) == 0

    def test_partial(self):
        info = {"name": "A Oy", "business_id": "1234567-8", "industry": "IT"}
        assert calculate_completeness(info, 2) == 40

    def test_employee_count_of_zero_counts(self):
        assert calculate_completeness({"employees": 0}, 0) == 10


class TestEnrichCompany:

    @pytest.mark.asyncio
    async def test_with_registry_data(self, test_db, test_company: Company, ytj_client: YTJClient):
        snapshot = await enrich_company(test_db, test_company, ytj_client)

        assert snapshot["metadata"]["sources_used"] == ["database", "ytj"]
        assert snapshot["metadata"]["confidence"] == 50
        assert snapshot["metadata"]["completeness"] == 80
        assert snapshot["basic_info"]["company_form"] == "Osakeyhtiö"
        assert snapshot["financial_data"]["years_found"] == 1

        # Registry fills gaps but never overwrites stored values
        assert test_company.company_form == "Osakeyhtiö"
        assert test_company.website == "https://testiyhtio.fi"
        assert test_company.address == "Hatanpään valtatie 24"
        assert test_company.enrichment_confidence == 50
        assert test_company.enriched_at is not None

    @pytest.mark.asyncio
    async def test_registry_failure_falls_back_to_local_data(self, test_db, test_company: Company):
        failing = YTJClient(transport=httpx.MockTransport(lambda request: httpx.Response(503)))

        snapshot = await enrich_company(test_db, test_company, failing)

        assert snapshot["metadata"]["sources_used"] == ["database"]
        assert snapshot["basic_info"]["data_quality"] == {"verified": False, "confidence": "MEDIUM"}
        assert snapshot["metadata"]["confidence"] == 35
        assert snapshot["metadata"]["completeness"] == 60


class TestLoadYearlyFinancials:

    @pytest.mark.asyncio
    async def test_metrics_override_company_financials(self, test_db, test_company: Company):
        test_db.add(FinancialMetric(
            company_id=test_company.id,
            fiscal_year=2023,
            data_source="document",
            revenue_current=5100000,
        ))
        test_db.add(FinancialMetric(
            company_id=test_company.id,
            fiscal_year=2024,
            data_source="enriched_data",
            revenue_current=5400000,
        ))
        await test_db.commit()

        yearly = await load_yearly_financials(test_db, test_company.id)

        assert [y["fiscal_year"] for y in yearly] == [2024, 2023]
        assert yearly[1]["revenue"] == 5100000
        assert yearly[1]["source"] == "document"
