import datetime

import pytest

from disclosures.models import FilingIdentity
from disclosures.validation import (
    MINIMUM_DISCLOSURE_YEAR,
    validate_doc_id,
    validate_identity,
    validate_year,
    validate_years,
)


def test_year_bounds():
    this_year = datetime.date.today().year
    assert validate_year(MINIMUM_DISCLOSURE_YEAR) == 2008
    assert validate_year(this_year) == this_year
    with pytest.raises(ValueError):
        validate_year(2007)
    with pytest.raises(ValueError):
        validate_year(this_year + 1)


def test_years_must_be_non_empty_and_valid():
    assert validate_years([2024, 2025]) == [2024, 2025]
    with pytest.raises(ValueError):
        validate_years([])
    with pytest.raises(ValueError):
        validate_years([2024, 1999])


def test_doc_id():
    assert validate_doc_id(" 20032062 ") == "20032062"
    with pytest.raises(ValueError):
        validate_doc_id("   ")


def test_identity():
    assert validate_identity("20032062", 2025) == FilingIdentity(doc_id="20032062", year=2025)
