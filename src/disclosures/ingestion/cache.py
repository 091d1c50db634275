# src/disclosures/ingestion/cache.py
"""Per-document fingerprint (ETag) bookkeeping.

Not safe for concurrent use on the same identity: ``should_fetch`` followed by
``record_fetch`` is a check-then-act sequence. Running the pipeline in parallel
needs a per-doc_id lock around it.
"""

import datetime
import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from disclosures.db.models import FetchRecord
from disclosures.models import FilingIdentity

logger = logging.getLogger(__name__)

PTR = "ptr"
FILING_LIST = "filing_list"


class FingerprintCache:
    def __init__(self, db: Session, kind: str = PTR):
        self.db = db
        self.kind = kind

    def get(self, identity: FilingIdentity) -> FetchRecord | None:
        return self.db.scalars(
            select(FetchRecord).where(FetchRecord.kind == self.kind, FetchRecord.doc_id == identity.doc_id)
        ).first()

    def should_fetch(self, identity: FilingIdentity, current_fingerprint: str | None, force: bool = False) -> bool:
        """True when nothing is stored or the stored fingerprint differs from ``current_fingerprint``.

        Two missing fingerprints compare equal, so a server that never sends an
        ETag is fetched once and then treated as unchanged.
        """
        if force:
            return True
        record = self.get(identity)
        if record is None:
            return True
        if record.fingerprint != current_fingerprint:
            logger.info(
                "%s %s changed (%s -> %s)", self.kind, identity.doc_id, record.fingerprint, current_fingerprint
            )
            return True
        return False

    def record_fetch(self, identity: FilingIdentity, new_fingerprint: str | None, location: str) -> FetchRecord:
        """Upsert the fetch record for ``identity``; the previous fingerprint is overwritten."""
        record = self.get(identity)
        if record is None:
            record = FetchRecord(kind=self.kind, doc_id=identity.doc_id, year=identity.year)
            self.db.add(record)
        record.fingerprint = new_fingerprint
        record.storage_location = location
        record.fetched_at = datetime.datetime.now(datetime.timezone.utc)
        record.parsed_at = None
        self.db.flush()
        return record

    def forget(self, identity: FilingIdentity) -> bool:
        record = self.get(identity)
        if record is None:
            return False
        self.db.delete(record)
        self.db.flush()
        return True
