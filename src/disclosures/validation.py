# src/disclosures/validation.py
import datetime

from disclosures.models import FilingIdentity

MINIMUM_DISCLOSURE_YEAR = 2008  # first year the Clerk publishes PTRs electronically


def validate_year(year: int) -> int:
    current = datetime.date.today().year
    if not MINIMUM_DISCLOSURE_YEAR <= year <= current:
        raise ValueError(f"Year must be between {MINIMUM_DISCLOSURE_YEAR} and {current}, got {year}")
    return year


def validate_years(years: list[int]) -> list[int]:
    if not years:
        raise ValueError("At least one year is required")
    return [validate_year(year) for year in years]


def validate_doc_id(doc_id: str) -> str:
    doc_id = doc_id.strip()
    if not doc_id:
        raise ValueError("Document ID cannot be blank")
    return doc_id


def validate_identity(doc_id: str, year: int) -> FilingIdentity:
    return FilingIdentity(doc_id=validate_doc_id(doc_id), year=validate_year(year))
