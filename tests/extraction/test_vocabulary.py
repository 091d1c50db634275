import datetime

import pytest

from disclosures.extraction import vocabulary
from disclosures.models import AmountRange, FilerStatus, FilingStatus, Ownership, TradeType


def test_every_bucket_round_trips_through_its_bounds():
    """Test that each closed bucket is found by its own minimum and maximum."""
    for bucket in AmountRange:
        if bucket.maximum is None:
            continue
        assert vocabulary.amount_range_for(bucket.minimum, bucket.maximum) is bucket


def test_bucket_bounds():
    assert AmountRange.A_1001_15000.minimum == 1001
    assert AmountRange.A_1001_15000.maximum == 15000
    assert AmountRange.J_OVER_50000000.minimum == 50_000_001
    assert AmountRange.J_OVER_50000000.maximum is None


@pytest.mark.parametrize("minimum, maximum", [(1000, 15000), (1001, 15001), (15001, 15000), (0, 0)])
def test_non_bucket_pairs(minimum, maximum):
    assert vocabulary.amount_range_for(minimum, maximum) is None


def test_top_bucket_accepts_any_maximum(caplog):
    """Test the open bucket ignores the maximum but logs an implausible one."""
    assert vocabulary.amount_range_for(50_000_001, 100_000_000) is AmountRange.J_OVER_50000000
    assert caplog.records == []

    assert vocabulary.amount_range_for(50_000_001, 1_000) is AmountRange.J_OVER_50000000
    assert "implausible maximum" in caplog.text


def test_parse_amount_text_tolerates_spacing():
    assert vocabulary.parse_amount_text("$15,001-$50,000") is AmountRange.B_15001_50000
    assert vocabulary.parse_amount_text("Amount: $15,001   -   $50,000 x") is AmountRange.B_15001_50000
    assert vocabulary.parse_amount_text("no money here") is None


def test_canonical_latin():
    assert vocabulary.canonical_latin("Р") == "P"
    assert vocabulary.canonical_latin("Apple Р\nР") == "Apple P\nP"


@pytest.mark.parametrize(
    "code, expected",
    [("P", TradeType.PURCHASE), ("Р", TradeType.PURCHASE), ("s", TradeType.SALE), ("E", TradeType.EXCHANGE), ("X", None)],
)
def test_trade_type_codes(code, expected):
    assert vocabulary.trade_type_for(code) == expected


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Member", FilerStatus.MEMBER),
        ("OFFICER", FilerStatus.OFFICER_OR_EMPLOYEE),
        ("employee", FilerStatus.OFFICER_OR_EMPLOYEE),
        (" Candidate ", FilerStatus.CANDIDATE),
        ("Senator", None),
    ],
)
def test_filer_statuses(text, expected):
    assert vocabulary.filer_status_for(text) == expected


def test_owner_codes():
    assert vocabulary.owner_for("SP") == Ownership.SPOUSE
    assert vocabulary.owner_for("dc") == Ownership.DEPENDENT_CHILD
    assert vocabulary.owner_for("JT") == Ownership.JOINT
    assert vocabulary.owner_for("XX") is None


def test_filing_status_defaults_to_new():
    assert vocabulary.filing_status_for("Amended") == FilingStatus.AMENDED
    assert vocabulary.filing_status_for("") == FilingStatus.NEW
    assert vocabulary.filing_status_for("garbled") == FilingStatus.NEW


def test_state_district():
    assert vocabulary.parse_state_district("AL04") == ("AL", 4)
    assert vocabulary.parse_state_district("State/District: NY12") == ("NY", 12)
    assert vocabulary.parse_state_district("Alabama") is None


def test_parse_us_date():
    assert vocabulary.parse_us_date("07/28/2025") == datetime.date(2025, 7, 28)
    with pytest.raises(ValueError):
        vocabulary.parse_us_date("2025-07-28")
