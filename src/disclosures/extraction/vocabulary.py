"""Code tables shared by the heuristic parser and the LLM extractor."""

import datetime
import logging
import re

from disclosures.models import AmountRange, FilerStatus, FilingStatus, Ownership, TradeType

logger = logging.getLogger(__name__)

CYRILLIC_ER = "Р"  # OCR renders the Latin P of the trade-type column as this

FILER_STATUSES: dict[str, FilerStatus] = {
    "member": FilerStatus.MEMBER,
    "officer": FilerStatus.OFFICER_OR_EMPLOYEE,
    "employee": FilerStatus.OFFICER_OR_EMPLOYEE,
    "candidate": FilerStatus.CANDIDATE,
}

OWNER_CODES: dict[str, Ownership] = {
    "SP": Ownership.SPOUSE,
    "DC": Ownership.DEPENDENT_CHILD,
    "JT": Ownership.JOINT,
}

TRADE_TYPE_CODES: dict[str, TradeType] = {
    "P": TradeType.PURCHASE,
    "S": TradeType.SALE,
    "E": TradeType.EXCHANGE,
}

FILING_STATUSES: dict[str, FilingStatus] = {
    "new": FilingStatus.NEW,
    "amended": FilingStatus.AMENDED,
}

_BUCKETS: dict[tuple[int, int], AmountRange] = {
    (bucket.minimum, bucket.maximum): bucket
    for bucket in AmountRange
    if bucket.maximum is not None
}
OPEN_BUCKET_MINIMUM = AmountRange.J_OVER_50000000.minimum

STATE_DISTRICT_PATTERN = re.compile(r"([A-Z]{2})(\d+)")
AMOUNT_PATTERN = re.compile(r"\$([\d,]+)\s*-\s*\$([\d,]+)")
DATE_FORMAT = "%m/%d/%Y"


def canonical_latin(text: str) -> str:
    """Replace the Cyrillic look-alike with the Latin letter OCR meant."""
    return text.replace(CYRILLIC_ER, "P")


def amount_range_for(minimum: int, maximum: int) -> AmountRange | None:
    """Map a reported dollar range onto its bucket, or None when it matches no boundary."""
    if minimum >= OPEN_BUCKET_MINIMUM:
        if maximum <= minimum:
            logger.warning(
                "Top amount bucket reported with implausible maximum $%s - $%s", f"{minimum:,}", f"{maximum:,}"
            )
        return AmountRange.J_OVER_50000000
    return _BUCKETS.get((minimum, maximum))


def parse_amount_text(text: str) -> AmountRange | None:
    """Find the first ``$N - $N`` range in ``text`` and bucket it."""
    match = AMOUNT_PATTERN.search(text)
    if not match:
        return None
    minimum = int(match.group(1).replace(",", ""))
    maximum = int(match.group(2).replace(",", ""))
    return amount_range_for(minimum, maximum)


def parse_state_district(text: str) -> tuple[str, int] | None:
    match = STATE_DISTRICT_PATTERN.search(text)
    if not match:
        return None
    return match.group(1), int(match.group(2))


def filer_status_for(text: str) -> FilerStatus | None:
    return FILER_STATUSES.get(text.strip().lower())


def trade_type_for(code: str) -> TradeType | None:
    return TRADE_TYPE_CODES.get(canonical_latin(code.strip().upper()))


def owner_for(code: str) -> Ownership | None:
    return OWNER_CODES.get(code.strip().upper())


def filing_status_for(text: str) -> FilingStatus:
    return FILING_STATUSES.get(text.strip().lower(), FilingStatus.NEW)


def parse_us_date(text: str) -> datetime.date:
    """Parse ``MM/DD/YYYY``; raises ValueError on anything else."""
    return datetime.datetime.strptime(text.strip(), DATE_FORMAT).date()
