# src/disclosures/extraction/parser.py
"""Heuristic parser for OCR text of House Periodic Transaction Reports.

The OCR output of a PTR looks roughly like::

    Filing ID #20032062
    FILER INFORMATION
    Name:
    Hon. Robert B. Aderholt
    Status:
    Member
    State/District: AL04
    TRANSACTIONS
    ID Owner Asset Transaction Type Date Notification Date Amount Cap. Gains > $200?
    GSK plc American Depositary Shares (GSK) S
    [ST]
    07/28/2025 08/01/2025 $1,001 - $15,000
    FILING STATUS: New

Every bracketed asset-type code (``[ST]``) anchors one transaction; the fields of
that transaction are recovered from the text around the anchor.
"""

import json
import logging
import re
from dataclasses import dataclass

from disclosures.config import settings
from disclosures.extraction import vocabulary
from disclosures.extraction.result import Error, ExtractionOutcome, Success, combine, outcome_from
from disclosures.models import (
    UNKNOWN_DOC_ID,
    FilerInfo,
    FilingReport,
    IssueCategory,
    ParseIssue,
    Transaction,
)

logger = logging.getLogger(__name__)

FILING_ID_PATTERN = re.compile(r"Filing ID #(\d+)")
FILER_INFO_MARKER = "FILER INFORMATION"
HEADER_LABELS = {FILER_INFO_MARKER, "Name:", "Status:"}
LABEL_PREFIXES = ("Name:", "Status:", "State/District:")
ANCHOR_PATTERN = re.compile(r"\[([A-Z0-9]{2})\]")
TRADE_TYPE_PATTERN = re.compile(r"(?:^|\s)([PS])(?:\s|$)", re.MULTILINE)
EXCHANGE_PATTERN = re.compile(r"(?:^|\s)(E)(?:\s|$)", re.MULTILINE)  # only when no P/S is present
DATE_PAIR_PATTERN = re.compile(r"(\d{2}/\d{2}/\d{4})\s+(\d{2}/\d{2}/\d{4})")
OWNER_PATTERN = re.compile(r"\b(SP|DC|JT)\b")
FILING_STATUS_PATTERN = re.compile(r"FILING STATUS:\s*(New|Amended)", re.IGNORECASE)

# Asset-name reconstruction
NOISE_SUBSTRINGS = (
    "TRANSACTIONS",
    "Date",
    "Amount",
    "Type",
    "Cap.",
    "Gains",
    "$200",
    "FILING STATUS",
    "SUBHOLDING",
)
NOISE_LINE_PATTERNS = (
    re.compile(r"[A-Z]{1,2}"),  # bare owner codes such as "SP"
    re.compile(r"\d{2}/\d{2}/\d{4}"),
    re.compile(r"\$[\d,]+\s*-\s*\$[\d,]+"),
)
TERMINAL_TOKENS = ("Inc", "Corp", "Company", ".")
STRAY_TRADE_LETTER = re.compile(r"\s+[PSE" + vocabulary.CYRILLIC_ER + r"]\s*$")
TRAILING_CODE = re.compile(r"\s+\[[A-Z]{2}]\s*$")
TRAILING_FIELDS = re.compile(
    r"\s+(?:\d{2}/\d{2}/\d{4}\s+\d{2}/\d{2}/\d{4}(?:\s+\$[\d,]+\s*-\s*\$[\d,]+)?|\$[\d,]+\s*-\s*\$[\d,]+)\s*$"
)  # date pair and/or amount range ending the name line


class TransactionParseError(ValueError):
    """A single anchor could not be turned into a transaction."""


@dataclass(frozen=True)
class ParserWindows:
    header_lines: int = 6
    asset_name_lines: int = 10
    owner_chars: int = 100
    context_before: int = 200
    context_after: int = 1000

    @classmethod
    def from_settings(cls) -> "ParserWindows":
        return cls(
            header_lines=settings.HEADER_WINDOW_LINES,
            asset_name_lines=settings.ASSET_NAME_LOOKBACK_LINES,
            owner_chars=settings.OWNER_LOOKBACK_CHARS,
            context_before=settings.CONTEXT_BEFORE_CHARS,
            context_after=settings.CONTEXT_AFTER_CHARS,
        )


class PtrTextParser:
    """Turns raw OCR text of one PTR into a FilingReport plus diagnostics."""

    name = "heuristic"

    def __init__(self, windows: ParserWindows | None = None):
        self.windows = windows or ParserWindows.from_settings()

    def extract(self, text: str, source_url: str) -> ExtractionOutcome[FilingReport]:
        match = FILING_ID_PATTERN.search(text)
        if match is None:
            return Error(
                [
                    ParseIssue.error(
                        UNKNOWN_DOC_ID,
                        IssueCategory.DOCUMENT_STRUCTURE,
                        "Could not extract document ID",
                        details="No Filing ID pattern found in OCR text",
                        location="Document header",
                    )
                ]
            )
        doc_id = match.group(1)

        filer = self._parse_filer_information(text, doc_id)
        if filer.is_error:
            return filer

        transactions = self._parse_transactions(text, source_url, doc_id)
        return combine(
            [filer, transactions],
            lambda parts: FilingReport(doc_id=doc_id, filer=parts[0], transactions=parts[1], source_url=source_url),
        ).on_warnings(lambda issues: logger.debug("Filing %s parsed with %d warnings", doc_id, len(issues)))

    def parse_vision_json(self, content: str, source_url: str) -> ExtractionOutcome[FilingReport]:
        """Parse a raw Cloud Vision response (``responses[0].fullTextAnnotation.text``)."""
        try:
            text = json.loads(content)["responses"][0]["fullTextAnnotation"]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            return Error(
                [
                    ParseIssue.error(
                        UNKNOWN_DOC_ID,
                        IssueCategory.DOCUMENT_STRUCTURE,
                        "Failed to parse JSON or extract OCR text",
                        details=str(e),
                    )
                ]
            )
        return self.extract(text, source_url)

    def _parse_filer_information(self, text: str, doc_id: str) -> ExtractionOutcome[FilerInfo]:
        def header_error(message: str, details: str, category=IssueCategory.FILER_INFORMATION_PARSING):
            return Error(
                [ParseIssue.error(doc_id, category, message, details=details, location="FILER INFORMATION block")]
            )

        start = text.find(FILER_INFO_MARKER)
        if start == -1:
            return header_error(
                "Could not find FILER INFORMATION block",
                "FILER INFORMATION section not found in OCR text",
            )

        name = status_text = state = district = None
        for line in text[start:].split("\n")[: self.windows.header_lines]:
            line = line.strip()
            if not line or line in HEADER_LABELS:
                continue
            label = next((prefix for prefix in LABEL_PREFIXES if line.startswith(prefix)), None)
            if label is not None:
                line = line[len(label) :].strip()
            if label == "Status:" and line:
                status_text = line  # labelled inline, so taken even if not a known keyword
                continue

            state_district = vocabulary.parse_state_district(line)
            if state_district is not None:
                state, district = state_district
                continue

            if line.lower() in vocabulary.FILER_STATUSES:
                status_text = line
                continue

            if line.startswith("Hon.") or (" " in line and len(line) > 5 and name is None):
                name = line

        if name is None:
            return header_error(
                "Could not extract filer name from FILER INFORMATION block",
                "No valid filer name pattern found in the block",
            )
        if status_text is None:
            return header_error(
                "Could not extract filer status from FILER INFORMATION block",
                "No valid status keyword found in the block",
            )
        if state is None or district is None:
            return header_error(
                "Could not extract state/district from FILER INFORMATION block",
                "No valid state/district pattern (e.g., AL04) found in the block",
            )

        status = vocabulary.filer_status_for(status_text)
        if status is None:
            return header_error(
                f"Unknown filer status: {status_text}",
                "Status must be one of: member, officer, employee, candidate",
                category=IssueCategory.DATA_VALIDATION,
            )
        return Success(FilerInfo(filer_full_name=name, filer_status=status, state=state, district=district))

    def _parse_transactions(self, text: str, source_url: str, doc_id: str) -> ExtractionOutcome[list[Transaction]]:
        transactions: list[Transaction] = []
        issues: list[ParseIssue] = []
        for index, anchor in enumerate(ANCHOR_PATTERN.finditer(text), start=1):
            try:
                transactions.append(self._parse_transaction(text, anchor, source_url))
            except TransactionParseError as e:
                issues.append(
                    ParseIssue.warning(
                        doc_id,
                        IssueCategory.TRANSACTION_PARSING,
                        f"Could not parse transaction for asset {anchor.group(0)}",
                        details=str(e),
                        location=f"Transaction #{index}",
                    )
                )
        return outcome_from(transactions, issues)

    def _parse_transaction(self, text: str, anchor: re.Match, source_url: str) -> Transaction:
        before = text[: anchor.start()]
        asset_name = self._asset_name(before, anchor.group(0))

        context = vocabulary.canonical_latin(
            text[max(0, anchor.start() - self.windows.context_before) : anchor.end() + self.windows.context_after]
        )

        owner_match = OWNER_PATTERN.search(before[-self.windows.owner_chars :])
        owner = vocabulary.owner_for(owner_match.group(1)) if owner_match else None

        trade_match = TRADE_TYPE_PATTERN.search(context) or EXCHANGE_PATTERN.search(context)
        if trade_match is None:
            raise TransactionParseError(f"Could not determine trade type for {asset_name}")
        trade_type = vocabulary.trade_type_for(trade_match.group(1))

        date_match = DATE_PAIR_PATTERN.search(context)
        if date_match is None:
            raise TransactionParseError(f"Could not extract transaction dates for {asset_name}")
        try:
            trade_date = vocabulary.parse_us_date(date_match.group(1))
            notification_date = vocabulary.parse_us_date(date_match.group(2))
        except ValueError as e:
            raise TransactionParseError(f"Invalid transaction date for {asset_name}: {e}") from e

        amount_match = vocabulary.AMOUNT_PATTERN.search(context)
        if amount_match is None:
            raise TransactionParseError(f"Could not extract amount range for {asset_name}")
        amount_range = vocabulary.parse_amount_text(amount_match.group(0))
        if amount_range is None:
            raise TransactionParseError(f"Unknown amount range: {amount_match.group(0)}")

        status_match = FILING_STATUS_PATTERN.search(context)
        filing_status = vocabulary.filing_status_for(status_match.group(1) if status_match else "new")

        return Transaction(
            owner=owner,
            asset_name=asset_name,
            asset_type_code=anchor.group(1),
            filing_status=filing_status,
            trade_type=trade_type,
            amount_range=amount_range,
            trade_date=trade_date,
            notification_date=notification_date,
            source_url=source_url,
        )

    def _asset_name(self, before: str, anchor_text: str) -> str:
        lines = before.split("\n")
        parts: list[str] = []
        for line in reversed(lines[-self.windows.asset_name_lines :]):
            line = line.strip()
            if _is_noise(line):
                if parts:
                    break
                continue
            parts.insert(0, line)
            if len(line) > 10 and any(token in line for token in TERMINAL_TOKENS):
                break

        if not parts:
            raise TransactionParseError(f"Could not extract asset name for {anchor_text}")

        name = TRAILING_FIELDS.sub("", " ".join(parts))
        name = STRAY_TRADE_LETTER.sub("", name).strip()
        name = TRAILING_CODE.sub("", name).strip()
        if not name:
            raise TransactionParseError(f"Could not extract asset name for {anchor_text}")
        return name


def _is_noise(line: str) -> bool:
    if not line:
        return True
    if any(token in line for token in NOISE_SUBSTRINGS):
        return True
    return any(pattern.fullmatch(line) for pattern in NOISE_LINE_PATTERNS)
