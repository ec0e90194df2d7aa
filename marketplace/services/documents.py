"""
Uploaded document handling: filename based type classification and file storage.
"""

import logging
import re
import secrets
from datetime import date
from pathlib import Path
from typing import Optional

from marketplace.config.settings import get_settings

logger = logging.getLogger(__name__)

DOCUMENT_TYPES = (
    "financial_statements",
    "balance_income_interim",
    "forecast",
    "business_plan",
    "leasing_document",
    "collateral_document",
    "other",
)

# Manual selections that bypass the classifier
MANUAL_TYPES = ("leasing_document", "collateral_document", "other")

LEASING_KEYWORDS = (
    "tarjous", "quotation", "quote", "offer", "price", "spec", "technical",
    "leasing", "vuokra", "rent", "auto", "car", "vehicle", "kone", "machinery",
    "equipment", "computer", "laptop", "office", "furniture", "desk", "chair",
    "printer", "monitor", "software", "license",
    "gigantti", "power", "verkkokauppa.com", "jimms", "proshop", "dustin",
)
COLLATERAL_KEYWORDS = (
    "vakuus", "collateral", "security", "guarantee", "pantti", "kiinteistö",
    "real estate", "property", "arvio", "valuation", "appraisal", "asset",
    "mortgage", "kiinnitys", "takaus", "surety", "pledge",
)
PURCHASE_KEYWORDS = (
    "kuitti", "receipt", "osto", "purchase", "hankinta", "acquisition",
    "tilaus", "order", "lasku", "invoice", "tosite", "voucher",
)
ANNUAL_REPORT_KEYWORDS = ("tilinpäätös", "tilinpaatos", "annual_report", "vuosikertomus")
INTERIM_KEYWORDS = ("välitilinpäätös", "valitilipatos", "interim", "väliraportti")
INCOME_BALANCE_KEYWORDS = (
    "tuloslaskelma", "tulos", "tase", "balance", "p&l", "profit", "loss",
    "assets", "liabilities",
)
FORECAST_KEYWORDS = ("ennuste", "forecast", "projection", "budget")
BUSINESS_PLAN_KEYWORDS = ("liiketoimintasuunnitelma", "business_plan", "business-plan", "businessplan")


class StorageError(Exception):
    """File could not be stored or removed."""


def _contains_any(text: str, keywords) -> bool:
    return any(keyword in text for keyword in keywords)


def guess_document_type(
    filename: str,
    fiscal_year: Optional[int] = None,
    current_year: Optional[int] = None
) -> str:
    """
    Classify a financial document by its filename and fiscal year.

    Rules are checked in order; the first match wins. Income or balance
    documents for the current fiscal year are interim statements, older ones
    are financial statements. Without a fiscal year, a current year in the
    filename counts instead.

    Args:
        filename: Original file name
        fiscal_year: Fiscal year the document covers, if known
        current_year: Year treated as "current" (defaults to this year)

    Returns:
        One of DOCUMENT_TYPES
    """
    name = filename.lower()
    current_year = current_year or date.today().year
    if fiscal_year is not None:
        is_current_year = fiscal_year == current_year
    else:
        is_current_year = str(current_year) in name

    if _contains_any(name, LEASING_KEYWORDS):
        return "leasing_document"
    if _contains_any(name, COLLATERAL_KEYWORDS):
        return "collateral_document"
    if _contains_any(name, PURCHASE_KEYWORDS):
        return "leasing_document"
    # Interim keywords contain the annual ones ("välitilinpäätös"), so check them first
    if _contains_any(name, INTERIM_KEYWORDS):
        return "balance_income_interim"
    if _contains_any(name, ANNUAL_REPORT_KEYWORDS):
        return "financial_statements"
    if is_current_year and _contains_any(name, INCOME_BALANCE_KEYWORDS):
        return "balance_income_interim"
    if _contains_any(name, INCOME_BALANCE_KEYWORDS):
        return "financial_statements"
    if _contains_any(name, FORECAST_KEYWORDS):
        return "forecast"
    if _contains_any(name, BUSINESS_PLAN_KEYWORDS):
        return "business_plan"
    return "financial_statements"


def resolve_document_type(
    filename: str,
    manual_type: Optional[str],
    fiscal_year: Optional[int] = None
) -> tuple[str, bool]:
    """Return (document_type, is_manual)."""
    if manual_type in MANUAL_TYPES:
        return manual_type, True
    return guess_document_type(filename, fiscal_year), False


def sanitize_filename(filename: str) -> str:
    return re.sub(r"[^a-zA-Z0-9.-]", "_", filename)


def file_extension(filename: str) -> str:
    suffix = Path(filename).suffix.lstrip(".").lower()
    return suffix or "bin"


def random_storage_name(filename: str) -> str:
    return f"{secrets.token_hex(8)}.{file_extension(filename)}"


class LocalStorage:
    """File storage rooted at a local directory."""

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or get_settings().upload_dir)

    def _resolve(self, relative_path: str) -> Path:
        path = (self.root / relative_path).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError(f"Invalid storage path: {relative_path}")
        return path

    def save(self, relative_path: str, data: bytes) -> str:
        """Write data and return the relative path."""
        path = self._resolve(relative_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StorageError(f"Failed to store {relative_path}: {e}") from e
        logger.info(f"Stored file {relative_path} ({len(data)} bytes)")
        return relative_path

    def delete(self, relative_path: str) -> bool:
        """Remove a stored file; False when it did not exist."""
        path = self._resolve(relative_path)
        if not path.exists():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise StorageError(f"Failed to delete {relative_path}: {e}") from e
        return True

    def exists(self, relative_path: str) -> bool:
        return self._resolve(relative_path).exists()


def get_storage() -> LocalStorage:
    """FastAPI dependency returning the configured storage."""
    return LocalStorage()
