"""
Unit tests for the bilingual NDA template.
"""

from datetime import date

import pytest

from marketplace.services.nda_template import format_company_address, generate_nda_template

pytestmark = pytest.mark.unit


class TestGenerateNdaTemplate:

    def test_parties_and_purpose(self):
        content = generate_nda_template(
            company_name="Nordic Components Oy",
            recipient_name="Erik Berg",
            recipient_email="erik@berg.se",
            purpose="Acquisition evaluation",
            company_business_id="1234567-8",
            recipient_company="Berg Capital AB",
        )

        assert content.startswith("# SALASSAPITOSOPIMUS")
        assert "NON-DISCLOSURE AGREEMENT" in content
        assert "Y-tunnus / Business ID: 1234567-8" in content
        assert "erik@berg.se" in content
        assert "Yritys / Company: Berg Capital AB" in content
        assert "**Acquisition evaluation**" in content

    def test_default_term_is_three_years(self):
        content = generate_nda_template("Seller Oy", "Buyer", "buyer@test.fi", term_years=None)

        assert "3 (kolmen) vuoden ajan" in content
        assert "3 (three) years" in content

    @pytest.mark.parametrize("years,fi,en", [(1, "yhden", "one"), (2, "kahden", "two"), (5, "kolmen", "three")])
    def test_term_words(self, years, fi, en):
        content = generate_nda_template("Seller Oy", "Buyer", "buyer@test.fi", term_years=years)

        assert f"{years} ({fi}) vuoden ajan" in content
        assert f"{years} ({en}) years" in content

    def test_effective_date_defaults_to_today(self):
        today = date.today()

        content = generate_nda_template("Seller Oy", "Buyer", "buyer@test.fi")

        assert f"**Päivämäärä / Date:** {today.day}.{today.month}.{today.year}" in content

    def test_explicit_effective_date(self):
        content = generate_nda_template("Seller Oy", "Buyer", "buyer@test.fi", effective_date="1.3.2026")

        assert "**Päivämäärä / Date:** 1.3.2026" in content

    def test_optional_lines_omitted(self):
        content = generate_nda_template("Seller Oy", "Buyer", "buyer@test.fi")

        assert "Y-tunnus" not in content
        assert "Yritys / Company" not in content


class TestFormatCompanyAddress:

    def test_all_parts(self):
        assert format_company_address("Hatanpään valtatie 24", "Tampere", "Finland") == (
            "Hatanpään valtatie 24, Tampere, Finland"
        )

    def test_missing_parts_skipped(self):
        assert format_company_address(None, "Tampere", "Finland") == "Tampere, Finland"
        assert format_company_address(None, None, None) == ""
