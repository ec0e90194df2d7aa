"""
Unit tests for document classification and local storage.
"""

from datetime import date

import pytest

from marketplace.services.documents import (
    LocalStorage,
    StorageError,
    file_extension,
    guess_document_type,
    random_storage_name,
    resolve_document_type,
    sanitize_filename,
)

pytestmark = pytest.mark.unit


class TestGuessDocumentType:

    @pytest.mark.parametrize("filename,expected", [
        ("Leasing tarjous Dustin.pdf", "leasing_document"),
        ("vakuusarvio.pdf", "collateral_document"),
        ("lasku_123.pdf", "leasing_document"),
        ("Välitilinpäätös 6kk.pdf", "balance_income_interim"),
        ("interim_q2.pdf", "balance_income_interim"),
        ("Tilinpäätös 2023.pdf", "financial_statements"),
        ("tuloslaskelma_2026.xlsx", "balance_income_interim"),
        ("tuloslaskelma_2022.xlsx", "financial_statements"),
        ("ennuste_2027.xlsx", "forecast"),
        ("liiketoimintasuunnitelma.docx", "business_plan"),
        ("scan0001.pdf", "financial_statements"),
    ])
    def test_rules(self, filename, expected):
        assert guess_document_type(filename, current_year=2026) == expected

    def test_case_insensitive(self):
        assert guess_document_type("FORECAST.PDF", current_year=2026) == "forecast"

    @pytest.mark.parametrize("filename,fiscal_year,expected", [
        ("tase.pdf", 2026, "balance_income_interim"),
        ("tuloslaskelma.xlsx", 2026, "balance_income_interim"),
        ("tase.pdf", 2025, "financial_statements"),
        ("tuloslaskelma_2026.xlsx", 2025, "financial_statements"),
        ("Tilinpäätös.pdf", 2026, "financial_statements"),
    ])
    def test_fiscal_year_decides_current_year(self, filename, fiscal_year, expected):
        assert guess_document_type(filename, fiscal_year, current_year=2026) == expected


class TestResolveDocumentType:

    def test_manual_type_wins(self):
        assert resolve_document_type("ennuste.xlsx", "other") == ("other", True)

    def test_non_manual_type_is_classified(self):
        assert resolve_document_type("ennuste.xlsx", "forecast") == ("forecast", False)
        assert resolve_document_type("ennuste.xlsx", None) == ("forecast", False)

    def test_fiscal_year_is_passed_to_classifier(self):
        this_year = date.today().year

        assert resolve_document_type("tase.pdf", None, this_year) == ("balance_income_interim", False)
        assert resolve_document_type("tase.pdf", None, this_year - 1) == ("financial_statements", False)


class TestFilenames:

    def test_sanitize(self):
        assert sanitize_filename("Tilinpäätös 2023.pdf") == "Tilinp__t_s_2023.pdf"
        assert sanitize_filename("../etc/passwd") == ".._etc_passwd"

    def test_extension(self):
        assert file_extension("report.PDF") == "pdf"
        assert file_extension("README") == "bin"

    def test_random_storage_name(self):
        first = random_storage_name("budget.xlsx")

        assert first.endswith(".xlsx")
        assert len(first) == len("0123456789abcdef.xlsx")
        assert first != random_storage_name("budget.xlsx")


class TestLocalStorage:

    def test_save_exists_delete(self, tmp_path):
        storage = LocalStorage(str(tmp_path))

        path = storage.save("company/abc.pdf", b"%PDF-1.4")

        assert path == "company/abc.pdf"
        assert (tmp_path / "company" / "abc.pdf").read_bytes() == b"%PDF-1.4"
        assert storage.exists("company/abc.pdf")
        assert storage.delete("company/abc.pdf") is True
        assert not storage.exists("company/abc.pdf")

    def test_delete_missing_file(self, tmp_path):
        assert LocalStorage(str(tmp_path)).delete("missing.pdf") is False

    def test_path_escape_rejected(self, tmp_path):
        storage = LocalStorage(str(tmp_path / "uploads"))

        with pytest.raises(StorageError):
            storage.save("../outside.txt", b"data")
