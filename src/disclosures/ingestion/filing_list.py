# src/disclosures/ingestion/filing_list.py
"""The Clerk's yearly filing index.

Each year is published as ``{year}FD.zip`` containing a tab-separated
``{year}FD.txt``::

    Prefix	Last	First	Suffix	FilingType	StateDst	Year	FilingDate	DocID
    Hon.	Aderholt	Robert B.		P	AL04	2025	9/10/2025	20032062
    	Ager	Jamie		X	NC11	2025	9/3/2025	30025402

Rows with FilingType ``P`` are Periodic Transaction Reports.
"""

import datetime
import io
import logging
import zipfile

from sqlalchemy import select
from sqlalchemy.orm import Session

from disclosures.db.models import FilingListRow
from disclosures.ingestion.cache import FILING_LIST, FingerprintCache
from disclosures.ingestion.fetchers import HouseDisclosureClient
from disclosures.ingestion.storage import BlobStore, filing_list_uri
from disclosures.models import FilingIdentity, FilingListEntry

logger = logging.getLogger(__name__)

EXPECTED_HEADER = "Prefix\tLast\tFirst\tSuffix\tFilingType\tStateDst\tYear\tFilingDate\tDocID"
PTR_FILING_TYPE = "P"


class FilingListFormatError(ValueError):
    pass


def parse_filing_list_row(line: str) -> FilingListEntry:
    fields = line.rstrip("\r\n").split("\t")
    if len(fields) != 9:
        raise FilingListFormatError(f"Expected 9 fields, got {len(fields)}")
    prefix, last, first, suffix, filing_type, state_district, year, filing_date, doc_id = fields
    month, day, yyyy = (int(part) for part in filing_date.split("/"))
    return FilingListEntry(
        doc_id=doc_id.strip(),
        prefix=prefix,
        last=last,
        first=first,
        suffix=suffix,
        filing_type=filing_type,
        state_district=state_district,
        year=int(year),
        filing_date=datetime.date(yyyy, month, day),
        raw_row=line.rstrip("\r\n"),
    )


def read_filing_list(archive: bytes, year: int) -> tuple[list[FilingListEntry], list[str]]:
    """Parse the TSV inside a yearly archive. Returns (entries, rejected lines)."""
    expected_name = f"{year}FD.txt"
    with zipfile.ZipFile(io.BytesIO(archive)) as zf:
        if expected_name not in zf.namelist():
            raise FilingListFormatError(f"Could not find {expected_name} in ZIP archive")
        text = zf.read(expected_name).decode("utf-8-sig", errors="replace")

    lines = [line for line in text.splitlines() if line.strip()]
    if not lines or lines[0].strip() != EXPECTED_HEADER:
        header = lines[0] if lines else ""
        raise FilingListFormatError(f'Invalid header: expected "{EXPECTED_HEADER}", got {header!r}')

    entries: list[FilingListEntry] = []
    rejected: list[str] = []
    for line in lines[1:]:
        try:
            entries.append(parse_filing_list_row(line))
        except ValueError as e:
            logger.warning("Failed to parse row %r: %s", line, e)
            rejected.append(line)
    return entries, rejected


class FilingListService:
    def __init__(self, db: Session, client: HouseDisclosureClient, blob_store: BlobStore):
        self.db = db
        self.client = client
        self.blob_store = blob_store
        self.cache = FingerprintCache(db, kind=FILING_LIST)

    def refresh(self, year: int, force: bool = False) -> int:
        """Download the year's archive if it changed and store new rows. Returns rows inserted."""
        identity = FilingIdentity(doc_id=f"{year}FD", year=year)
        fingerprint = None if force else self.client.probe_filing_list_fingerprint(year)
        record = self.cache.get(identity)
        if self.cache.should_fetch(identity, fingerprint, force):
            response = self.client.fetch_filing_list(year, filing_list_uri(year))
            record = self.cache.record_fetch(identity, response.fingerprint, response.location)
        elif record.parsed_at is not None:
            logger.info("Filing list for %s unchanged, skipping", year)
            return 0

        entries, rejected = read_filing_list(self.blob_store.get(record.storage_location), year)
        known = set(self.db.scalars(select(FilingListRow.doc_id)))
        inserted = 0
        for entry in entries:
            if entry.doc_id in known:
                continue
            self.db.add(FilingListRow(**entry.model_dump()))
            known.add(entry.doc_id)
            inserted += 1
        record.parsed_at = datetime.datetime.now(datetime.timezone.utc)
        self.db.commit()
        logger.info(
            "Filing list %s: %d rows, %d new, %d rejected", year, len(entries), inserted, len(rejected)
        )
        return inserted

    def get_row(self, doc_id: str) -> FilingListRow | None:
        return self.db.scalars(select(FilingListRow).where(FilingListRow.doc_id == doc_id)).first()

    def ptr_identities(self, year: int) -> list[FilingIdentity]:
        rows = self.db.scalars(
            select(FilingListRow)
            .where(FilingListRow.year == year, FilingListRow.filing_type == PTR_FILING_TYPE)
            .order_by(FilingListRow.id)
        )
        return [FilingIdentity(doc_id=row.doc_id, year=row.year) for row in rows]
