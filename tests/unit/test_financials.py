"""
Unit tests for financial metric source priority.
"""

import pytest
from sqlalchemy import select

from marketplace.models import Company, FinancialMetric
from marketplace.services.financials import should_overwrite, source_priority, upsert_financial_metrics

pytestmark = pytest.mark.unit


class TestSourcePriority:

    def test_known_sources(self):
        assert source_priority("document") > source_priority("financial_data_yearly")
        assert source_priority("financial_data_yearly") > source_priority("enriched_data")
        assert source_priority("enriched_data") > source_priority("public_financial_data")

    def test_unknown_source(self):
        assert source_priority("spreadsheet") == 0
        assert source_priority(None) == 0

    @pytest.mark.parametrize("existing,new,expected", [
        ("enriched_data", "document", True),
        ("document", "enriched_data", False),
        ("document", "document", True),
        ("unknown", "public_financial_data", True),
        ("public_financial_data", "unknown", False),
    ])
    def test_should_overwrite(self, existing, new, expected):
        assert should_overwrite(existing, new) is expected


class TestUpsertFinancialMetrics:

    async def _rows(self, db, company_id):
        result = await db.execute(select(FinancialMetric).where(FinancialMetric.company_id == company_id))
        return list(result.scalars().all())

    @pytest.mark.asyncio
    async def test_create_then_update(self, test_db, test_company: Company):
        row, action = await upsert_financial_metrics(
            test_db, test_company.id, 2023, "annual", "enriched_data", {"revenue_current": 100, "bogus": 1}
        )
        await test_db.commit()
        assert action == "created"
        assert row.revenue_current == 100

        row, action = await upsert_financial_metrics(
            test_db, test_company.id, 2023, "annual", "document", {"revenue_current": 120}
        )
        await test_db.commit()

        assert action == "updated"
        assert row.data_source == "document"
        assert row.revenue_current == 120
        assert len(await self._rows(test_db, test_company.id)) == 1

    @pytest.mark.asyncio
    async def test_lower_priority_kept_beside(self, test_db, test_company: Company):
        await upsert_financial_metrics(test_db, test_company.id, 2023, "annual", "document", {"ebitda": 50})
        await test_db.commit()

        row, action = await upsert_financial_metrics(
            test_db, test_company.id, 2023, "annual", "public_financial_data", {"ebitda": 10}
        )
        await test_db.commit()

        assert action == "created_lower_priority"
        rows = await self._rows(test_db, test_company.id)
        assert len(rows) == 2
        document_row = next(r for r in rows if r.data_source == "document")
        assert document_row.ebitda == 50

    @pytest.mark.asyncio
    async def test_periods_are_separate(self, test_db, test_company: Company):
        await upsert_financial_metrics(test_db, test_company.id, 2023, "annual", "document", {"ebitda": 50})
        await test_db.commit()

        _, action = await upsert_financial_metrics(test_db, test_company.id, 2023, "Q1", "document", {"ebitda": 12})

        assert action == "created"
