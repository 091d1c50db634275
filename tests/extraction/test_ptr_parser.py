import datetime
import json

import pytest

from disclosures.extraction.parser import ParserWindows, PtrTextParser
from disclosures.extraction.result import Error, Success, SuccessWithWarnings
from disclosures.models import (
    UNKNOWN_DOC_ID,
    AmountRange,
    FilerStatus,
    FilingStatus,
    IssueCategory,
    IssueSeverity,
    Ownership,
    TradeType,
)

SOURCE_URL = "https://clerk.example/public_disc/ptr-pdfs/2025/20026590.pdf"
COLUMN_HEADER = "ID Owner Asset Transaction Type Date Notification Date Amount Cap. Gains > $200?"


def ptr_text(*blocks: str, filing_id: str = "20026590") -> str:
    """Build OCR text for a one-filer PTR. Blocks are spaced apart by repeated column headers."""
    header = (
        f"Filing ID #{filing_id}\n"
        "FILER INFORMATION\n"
        "Name:\n"
        "Hon. Jane M. Doe\n"
        "Status:\n"
        "Member\n"
        "State/District: CA12\n"
        "TRANSACTIONS\n"
    )
    spacer = "\n".join([COLUMN_HEADER] * 3)
    return header + "\n".join(f"{spacer}\n{block}" for block in blocks) + "\n"


def block(
    asset_line: str,
    code: str = "ST",
    dates: str = "01/15/2025 01/20/2025",
    amount: str = "$1,001 - $15,000",
    status: str = "New",
    owner: str | None = None,
) -> str:
    lines = [owner] if owner else []
    lines += [asset_line, f"[{code}]", f"{dates} {amount}", f"FILING STATUS: {status}"]
    return "\n".join(lines)


@pytest.fixture
def parser():
    return PtrTextParser(ParserWindows())


def test_aderholt_filing_parses_end_to_end(parser, aderholt_text):
    """Test the reference filing yields one clean transaction."""
    outcome = parser.extract(aderholt_text, SOURCE_URL)

    assert isinstance(outcome, Success)
    report = outcome.data
    assert report.doc_id == "20032062"
    assert report.filer.filer_full_name == "Hon. Robert B. Aderholt"
    assert report.filer.filer_status == FilerStatus.MEMBER
    assert report.filer.state == "AL"
    assert report.filer.district == 4
    assert len(report.transactions) == 1

    txn = report.transactions[0]
    assert txn.owner is None
    assert txn.asset_name == "GSK plc American Depositary Shares (GSK)"
    assert txn.asset_type_code == "ST"
    assert txn.filing_status == FilingStatus.NEW
    assert txn.trade_type == TradeType.SALE
    assert txn.amount_range == AmountRange.A_1001_15000
    assert txn.trade_date == datetime.date(2025, 7, 28)
    assert txn.notification_date == datetime.date(2025, 8, 1)
    assert txn.source_url == SOURCE_URL


def test_missing_filing_id_is_single_document_structure_error(parser, aderholt_text):
    """Test that text without a Filing ID yields exactly one error and no report."""
    outcome = parser.extract(aderholt_text.replace("Filing ID #20032062\n", ""), SOURCE_URL)

    assert isinstance(outcome, Error)
    assert outcome.data_or_none() is None
    assert len(outcome.issues) == 1
    issue = outcome.issues[0]
    assert issue.category == IssueCategory.DOCUMENT_STRUCTURE
    assert issue.severity == IssueSeverity.ERROR
    assert issue.doc_id == UNKNOWN_DOC_ID


def test_missing_filer_information_block(parser):
    """Test a filing with no FILER INFORMATION section is rejected."""
    outcome = parser.extract("Filing ID #123\nTRANSACTIONS\n", SOURCE_URL)

    assert isinstance(outcome, Error)
    assert outcome.issues[0].category == IssueCategory.FILER_INFORMATION_PARSING
    assert outcome.issues[0].message == "Could not find FILER INFORMATION block"
    assert outcome.issues[0].doc_id == "123"


@pytest.mark.parametrize(
    "removed, message",
    [
        ("Hon. Robert B. Aderholt\n", "Could not extract filer name from FILER INFORMATION block"),
        ("Member\n", "Could not extract filer status from FILER INFORMATION block"),
        ("State/District: AL04\n", "Could not extract state/district from FILER INFORMATION block"),
    ],
)
def test_incomplete_filer_header(parser, aderholt_text, removed, message):
    """Test each missing header field is a fatal FILER_INFORMATION_PARSING error."""
    outcome = parser.extract(aderholt_text.replace(removed, ""), SOURCE_URL)

    assert isinstance(outcome, Error)
    assert len(outcome.issues) == 1
    assert outcome.issues[0].category == IssueCategory.FILER_INFORMATION_PARSING
    assert outcome.issues[0].message == message


def test_unknown_status_keyword_is_data_validation_error(parser, aderholt_text):
    """Test that a labelled but unrecognised status rejects the filing."""
    text = aderholt_text.replace("Status:\nMember\n", "Status: Senator\n")

    outcome = parser.extract(text, SOURCE_URL)

    assert isinstance(outcome, Error)
    assert outcome.issues[0].category == IssueCategory.DATA_VALIDATION
    assert outcome.issues[0].message == "Unknown filer status: Senator"


def test_header_error_drops_transaction_warnings(parser):
    """Test a fatal header issue is reported alone, without warnings from the transactions."""
    text = ptr_text(block("Apple Inc. - Common Stock (AAPL) P", amount="$2 - $3")).replace("State/District: CA12\n", "")

    outcome = parser.extract(text, SOURCE_URL)

    assert isinstance(outcome, Error)
    assert [i.severity for i in outcome.issues] == [IssueSeverity.ERROR]
    assert outcome.data_or_none() is None


@pytest.mark.parametrize("status, expected", [("Officer", FilerStatus.OFFICER_OR_EMPLOYEE), ("candidate", FilerStatus.CANDIDATE)])
def test_other_filer_statuses(parser, aderholt_text, status, expected):
    outcome = parser.extract(aderholt_text.replace("Member", status), SOURCE_URL)
    assert outcome.data.filer.filer_status == expected


def test_cyrillic_er_is_read_as_purchase(parser):
    """Test that OCR's Cyrillic Р parses exactly like a Latin P."""
    latin = parser.extract(ptr_text(block("Apple Inc. - Common Stock (AAPL) P")), SOURCE_URL)
    cyrillic = parser.extract(ptr_text(block("Apple Inc. - Common Stock (AAPL) Р")), SOURCE_URL)

    assert isinstance(cyrillic, Success)
    assert cyrillic.data.transactions[0].trade_type == TradeType.PURCHASE
    assert cyrillic.data.transactions[0].asset_name == "Apple Inc. - Common Stock (AAPL)"
    assert cyrillic.data == latin.data


def test_exchange_trade_type(parser):
    outcome = parser.extract(ptr_text(block("Vanguard Total Bond Market ETF (BND) E", code="EF")), SOURCE_URL)
    assert outcome.data.transactions[0].trade_type == TradeType.EXCHANGE
    assert outcome.data.transactions[0].asset_type_code == "EF"


def test_standalone_e_in_asset_name_does_not_override_purchase(parser):
    """Test a series letter in the name loses to the real P/S trade letter."""
    outcome = parser.extract(ptr_text(block("Federal Farm Credit Series E Notes P", code="GS")), SOURCE_URL)

    [transaction] = outcome.data.transactions
    assert transaction.trade_type == TradeType.PURCHASE
    assert transaction.asset_name == "Federal Farm Credit Series E Notes"


@pytest.mark.parametrize(
    "asset_line, expected",
    [
        ("iShares Core S&P 500 ETF (IVV) P", "iShares Core S&P 500 ETF (IVV)"),
        ("U.S. Treasury Notes due 01/15/2030 P", "U.S. Treasury Notes due 01/15/2030"),
        ("Apple Inc. (AAPL) P 01/15/2025 01/20/2025 $1,001 - $15,000", "Apple Inc. (AAPL)"),
    ],
)
def test_asset_name_cleanup_only_strips_the_tail(parser, asset_line, expected):
    outcome = parser.extract(ptr_text(block(asset_line)), SOURCE_URL)

    [transaction] = outcome.data.transactions
    assert transaction.asset_name == expected
    assert transaction.trade_type == TradeType.PURCHASE
    assert transaction.trade_date == datetime.date(2025, 1, 15)


@pytest.mark.parametrize(
    "amount, expected",
    [
        ("$1,001 - $15,000", AmountRange.A_1001_15000),
        ("$15,001 - $50,000", AmountRange.B_15001_50000),
        ("$50,001 - $100,000", AmountRange.C_50001_100000),
        ("$100,001 - $250,000", AmountRange.D_100001_250000),
        ("$250,001 - $500,000", AmountRange.E_250001_500000),
        ("$500,001 - $1,000,000", AmountRange.F_500001_1000000),
        ("$1,000,001 - $5,000,000", AmountRange.G_1000001_5000000),
        ("$5,000,001 - $25,000,000", AmountRange.H_5000001_25000000),
        ("$25,000,001 - $50,000,000", AmountRange.I_25000001_50000000),
        ("$50,000,001 - $75,000,000", AmountRange.J_OVER_50000000),
    ],
)
def test_amount_buckets(parser, amount, expected):
    """Test every reported range lands in its bucket."""
    outcome = parser.extract(ptr_text(block("Apple Inc. - Common Stock (AAPL) P", amount=amount)), SOURCE_URL)
    assert outcome.data.transactions[0].amount_range == expected


def test_amount_outside_buckets_drops_transaction(parser):
    """Test a range matching no bucket boundary is a transaction-level warning."""
    outcome = parser.extract(
        ptr_text(block("Apple Inc. - Common Stock (AAPL) P", amount="$1,000 - $15,000")), SOURCE_URL
    )

    assert isinstance(outcome, SuccessWithWarnings)
    assert outcome.data.transactions == []
    assert len(outcome.issues) == 1
    assert outcome.issues[0].severity == IssueSeverity.WARNING
    assert outcome.issues[0].category == IssueCategory.TRANSACTION_PARSING
    assert "Unknown amount range" in outcome.issues[0].details
    assert outcome.issues[0].location == "Transaction #1"


def test_partial_success_keeps_good_transactions(parser):
    """Test that with n anchors and k failures there are n-k transactions and k warnings."""
    text = ptr_text(
        block("Apple Inc. - Common Stock (AAPL) P"),
        block("Microsoft Corporation - Common Stock (MSFT) S", amount="$2 - $3"),
        block("NVIDIA Corporation - Common Stock (NVDA) P", amount="$15,001 - $50,000"),
        block("Tesla, Inc. - Common Stock (TSLA) S", amount="$9 - $10"),
    )

    outcome = parser.extract(text, SOURCE_URL)

    assert isinstance(outcome, SuccessWithWarnings)
    assert [t.asset_name for t in outcome.data.transactions] == [
        "Apple Inc. - Common Stock (AAPL)",
        "NVIDIA Corporation - Common Stock (NVDA)",
    ]
    assert outcome.data.transactions[1].amount_range == AmountRange.B_15001_50000
    assert [i.location for i in outcome.warnings()] == ["Transaction #2", "Transaction #4"]
    assert outcome.errors() == []


def test_spouse_owned_transaction(parser):
    outcome = parser.extract(ptr_text(block("Apple Inc. - Common Stock (AAPL) P", owner="SP")), SOURCE_URL)

    txn = outcome.data.transactions[0]
    assert txn.owner == Ownership.SPOUSE
    assert txn.asset_name == "Apple Inc. - Common Stock (AAPL)"


def test_amended_filing_status(parser):
    outcome = parser.extract(ptr_text(block("Apple Inc. - Common Stock (AAPL) P", status="Amended")), SOURCE_URL)
    assert outcome.data.transactions[0].filing_status == FilingStatus.AMENDED


def test_filing_without_anchors_is_clean_and_empty(parser):
    """Test a filing whose header parses but has no asset codes."""
    outcome = parser.extract(ptr_text(), SOURCE_URL)

    assert isinstance(outcome, Success)
    assert outcome.data.transactions == []


def test_invalid_calendar_date_drops_transaction(parser):
    outcome = parser.extract(
        ptr_text(block("Apple Inc. - Common Stock (AAPL) P", dates="13/45/2025 01/20/2025")), SOURCE_URL
    )

    assert isinstance(outcome, SuccessWithWarnings)
    assert "Invalid transaction date" in outcome.issues[0].details


def test_vision_json_is_unwrapped(parser, aderholt_text):
    """Test that a Cloud Vision response parses the same as its plain text."""
    content = json.dumps({"responses": [{"fullTextAnnotation": {"text": aderholt_text}}]})

    outcome = parser.parse_vision_json(content, SOURCE_URL)

    assert outcome == parser.extract(aderholt_text, SOURCE_URL)


def test_malformed_vision_json(parser):
    outcome = parser.parse_vision_json('{"responses": []}', SOURCE_URL)

    assert isinstance(outcome, Error)
    assert outcome.issues[0].category == IssueCategory.DOCUMENT_STRUCTURE
