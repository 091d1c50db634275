# src/disclosures/ingestion/pipeline.py
"""Fetch -> OCR -> extract -> persist, one PTR at a time.

Each stage is cached: the PDF is re-downloaded only when its ETag changes, OCR
is re-run only for a new download, and extraction only when there is new text
or no stored report. ``force`` bypasses all three caches.
"""

import datetime
import enum
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Protocol

from sqlalchemy import select
from sqlalchemy.orm import Session

from disclosures.db.models import FetchRecord, OcrResult
from disclosures.db.repositories import IssueLog, ReportStore
from disclosures.db.session import atomic
from disclosures.extraction.result import Error, ExtractionOutcome, Success, SuccessWithWarnings
from disclosures.ingestion.cache import FingerprintCache
from disclosures.ingestion.fetchers import FetchError, HouseDisclosureClient
from disclosures.ingestion.filing_list import FilingListService
from disclosures.ingestion.ocr import TextExtractor
from disclosures.ingestion.storage import BlobStore, ptr_pdf_uri, ptr_text_uri
from disclosures.models import FilingIdentity, FilingReport, IssueCategory, IssueSeverity, ParseIssue

logger = logging.getLogger(__name__)


class ReportExtractor(Protocol):
    name: str

    def extract(self, text: str, source_url: str) -> ExtractionOutcome[FilingReport]: ...


class DocumentStatus(str, enum.Enum):
    PARSED = "parsed"  # report written (possibly with warnings)
    REJECTED = "rejected"  # extraction returned Error; issues only
    UNCHANGED = "unchanged"  # nothing new to extract, stored report kept
    SKIPPED = "skipped"  # document not retrievable
    FAILED = "failed"  # fetch or OCR failure


@dataclass
class DocumentResult:
    identity: FilingIdentity
    status: DocumentStatus
    downloaded: bool = False
    ocr_ran: bool = False
    outcome: ExtractionOutcome[FilingReport] | None = None
    transactions: int = 0
    issues: list[ParseIssue] = field(default_factory=list)


@dataclass
class RunStats:
    attempted: int = 0
    downloaded: int = 0
    ocr_completed: int = 0
    parsed: int = 0
    transactions_extracted: int = 0
    warnings: int = 0
    rejected: int = 0
    skipped: int = 0
    failed: int = 0
    failures: dict[str, str] = field(default_factory=dict)  # doc_id -> reason

    def record(self, result: DocumentResult) -> None:
        self.downloaded += result.downloaded
        self.ocr_completed += result.ocr_ran
        self.transactions_extracted += result.transactions
        self.warnings += sum(1 for i in result.issues if i.severity is IssueSeverity.WARNING)
        match result.status:
            case DocumentStatus.PARSED:
                self.parsed += 1
            case DocumentStatus.REJECTED:
                self.rejected += 1
            case DocumentStatus.SKIPPED:
                self.skipped += 1
            case DocumentStatus.FAILED:
                self.record_failure(result.identity.doc_id, _first_message(result.issues))

    def record_failure(self, doc_id: str, reason: str) -> None:
        self.failed += 1
        self.failures[doc_id] = reason

    def format(self) -> str:
        lines = [
            f"Documents attempted:      {self.attempted}",
            f"PDFs downloaded:          {self.downloaded}",
            f"OCR results completed:    {self.ocr_completed}",
            f"Filings parsed:           {self.parsed}",
            f"Transactions extracted:   {self.transactions_extracted}",
            f"Warnings:                 {self.warnings}",
            f"Rejected (parse errors):  {self.rejected}",
            f"Skipped (not available):  {self.skipped}",
            f"Failed:                   {self.failed}",
        ]
        if self.parsed:
            lines.append(f"Avg transactions/filing:  {self.transactions_extracted / self.parsed:.1f}")
        lines.extend(f"  {doc_id}: {reason}" for doc_id, reason in self.failures.items())
        return "\n".join(lines)


def _first_message(issues: list[ParseIssue]) -> str:
    return issues[0].message if issues else "unknown failure"


class PtrPipeline:
    def __init__(
        self,
        db: Session,
        client: HouseDisclosureClient,
        text_extractor: TextExtractor,
        extractor: ReportExtractor,
        blob_store: BlobStore,
        filing_list: FilingListService | None = None,
        issue_log: IssueLog | None = None,
        report_store: ReportStore | None = None,
    ):
        self.db = db
        self.client = client
        self.text_extractor = text_extractor
        self.extractor = extractor
        self.blob_store = blob_store
        self.filing_list = filing_list
        self.issue_log = issue_log or IssueLog()
        self.report_store = report_store or ReportStore()
        self.cache = FingerprintCache(db)

    # Batch driver

    def process_year(self, year: int, force: bool = False) -> RunStats:
        if self.filing_list is None:
            raise RuntimeError("process_year needs a FilingListService")
        self.filing_list.refresh(year, force=force)
        identities = self.filing_list.ptr_identities(year)
        logger.info("Processing %d PTRs for %s", len(identities), year)
        return self.process_batch(identities, force=force)

    def process_batch(self, identities: Iterable[FilingIdentity], force: bool = False) -> RunStats:
        stats = RunStats()
        for identity in identities:
            stats.attempted += 1
            try:
                result = self.process_filing(identity, force=force)
            except Exception as e:
                self.db.rollback()
                logger.exception("Unexpected failure processing %s", identity.doc_id)
                stats.record_failure(identity.doc_id, f"{type(e).__name__}: {e}")
                continue
            stats.record(result)
        logger.info(
            "Batch finished: %d attempted, %d parsed, %d failed", stats.attempted, stats.parsed, stats.failed
        )
        return stats

    # Per-document flow

    def process_filing(self, identity: FilingIdentity, force: bool = False) -> DocumentResult:
        try:
            fetch_record, downloaded = self.download(identity, force=force)
        except FetchError as e:
            logger.warning("Fetch failed for %s: %s", identity.doc_id, e)
            return self._abort(identity, DocumentStatus.FAILED, "Document could not be fetched", str(e))
        if fetch_record is None:
            return self._abort(
                identity,
                DocumentStatus.SKIPPED,
                "Document not available at the PTR URL",
                self.client.ptr_url(identity),
            )

        try:
            ocr_result, ocr_ran = self.run_ocr(identity, fetch_record, force=force or downloaded)
        except Exception as e:
            logger.exception("OCR failed for %s", identity.doc_id)
            result = self._abort(identity, DocumentStatus.FAILED, "OCR failed", f"{type(e).__name__}: {e}")
            result.downloaded = downloaded
            return result

        result = self.parse(identity, ocr_result, force=force or ocr_ran)
        result.downloaded = downloaded
        result.ocr_ran = ocr_ran
        return result

    def download(self, identity: FilingIdentity, force: bool = False) -> tuple[FetchRecord | None, bool]:
        """Returns (fetch record, whether a GET happened). A None record means not retrievable."""
        fingerprint = None if force else self.client.probe_ptr_fingerprint(identity)
        existing = self.cache.get(identity)
        if not self.cache.should_fetch(identity, fingerprint, force):
            logger.debug("PTR %s unchanged (ETag %s)", identity.doc_id, fingerprint)
            return existing, False

        response = self.client.fetch_ptr(identity, ptr_pdf_uri(identity.year, identity.doc_id))
        if response is None:
            return None, False
        record = self.cache.record_fetch(identity, response.fingerprint, response.location)
        self.db.commit()
        logger.info("Downloaded PTR %s", identity.doc_id)
        return record, True

    def run_ocr(self, identity: FilingIdentity, fetch_record: FetchRecord, force: bool = False) -> tuple[OcrResult, bool]:
        existing = self.ocr_result_for(identity.doc_id)
        if existing is not None and not force and existing.source_fingerprint == fetch_record.fingerprint:
            return existing, False

        text = self.text_extractor.extract_text(fetch_record.storage_location)
        location = self.blob_store.put(ptr_text_uri(identity.year, identity.doc_id), text.encode("utf-8"))
        ocr_result = existing or OcrResult(doc_id=identity.doc_id)
        ocr_result.fetch_record_id = fetch_record.id
        ocr_result.source_fingerprint = fetch_record.fingerprint
        ocr_result.storage_location = location
        ocr_result.created_at = datetime.datetime.now(datetime.timezone.utc)
        self.db.add(ocr_result)
        self.db.commit()
        logger.info("OCR complete for %s (%d chars)", identity.doc_id, len(text))
        return ocr_result, True

    def parse(self, identity: FilingIdentity, ocr_result: OcrResult, force: bool = False) -> DocumentResult:
        stored = self.report_store.find_by_doc_id(identity.doc_id, self.db)
        if stored is not None and not force:
            return DocumentResult(identity, DocumentStatus.UNCHANGED)

        text = self.blob_store.get(ocr_result.storage_location).decode("utf-8")
        if not text.strip():
            return self._abort(
                identity,
                DocumentStatus.REJECTED,
                "OCR produced no text",
                ocr_result.storage_location,
                category=IssueCategory.OCR_QUALITY,
            )

        outcome = (
            self.extractor.extract(text, self.client.ptr_url(identity))
            .on_warnings(lambda issues: logger.warning("%s extracted with %d warnings", identity.doc_id, len(issues)))
            .on_error(lambda issues: logger.warning("%s rejected with %d errors", identity.doc_id, len(issues)))
        )
        return self.persist(identity, outcome)

    def persist(self, identity: FilingIdentity, outcome: ExtractionOutcome[FilingReport]) -> DocumentResult:
        """Write the outcome: report + issues on success, issues only on Error."""
        issues = [_attribute(issue, identity.doc_id) for issue in outcome.all_issues()]
        with atomic(self.db):
            match outcome:
                case Success(data=report) | SuccessWithWarnings(data=report):
                    if report.doc_id != identity.doc_id:
                        issues.append(
                            ParseIssue.warning(
                                identity.doc_id,
                                IssueCategory.DATA_VALIDATION,
                                f"Filing ID in document ({report.doc_id}) does not match {identity.doc_id}",
                                location="Document header",
                            )
                        )
                        report = report.model_copy(update={"doc_id": identity.doc_id})
                    self.report_store.replace(report, self.extractor.name, self.db)
                    self.issue_log.append(issues, self.db)
                    fetch_record = self.cache.get(identity)
                    if fetch_record is not None:
                        fetch_record.parsed_at = datetime.datetime.now(datetime.timezone.utc)
                    status, count = DocumentStatus.PARSED, len(report.transactions)
                case Error():
                    self.issue_log.append(issues, self.db)
                    status, count = DocumentStatus.REJECTED, 0
        logger.info(
            "%s %s: %d transactions, %d issues", identity.doc_id, status.value, count, len(issues)
        )
        return DocumentResult(identity, status, outcome=outcome, transactions=count, issues=issues)

    # Single-stage helpers

    def identity_for(self, doc_id: str, year: int | None = None) -> FilingIdentity:
        """Resolve a doc_id to its identity, using the filing list when no year is given."""
        if year is not None:
            return FilingIdentity(doc_id=doc_id, year=year)
        row = self.filing_list.get_row(doc_id) if self.filing_list is not None else None
        if row is None:
            raise LookupError(f"No filing list row for doc_id {doc_id}; pass the year explicitly")
        return FilingIdentity(doc_id=row.doc_id, year=row.year)

    def clear_cache(self, identity: FilingIdentity) -> None:
        """Forget the download and OCR records so the next run starts from scratch."""
        with atomic(self.db):
            ocr_result = self.ocr_result_for(identity.doc_id)
            if ocr_result is not None:
                self.db.delete(ocr_result)
            self.cache.forget(identity)
            self.db.flush()

    def ocr_result_for(self, doc_id: str) -> OcrResult | None:
        return self.db.scalars(select(OcrResult).where(OcrResult.doc_id == doc_id)).first()

    def _abort(
        self,
        identity: FilingIdentity,
        status: DocumentStatus,
        message: str,
        details: str | None = None,
        category: IssueCategory = IssueCategory.DOCUMENT_STRUCTURE,
    ) -> DocumentResult:
        issue = ParseIssue.error(identity.doc_id, category, message, details=details)
        self.db.rollback()
        with atomic(self.db):
            self.issue_log.append([issue], self.db)
        return DocumentResult(identity, status, issues=[issue])


def _attribute(issue: ParseIssue, doc_id: str) -> ParseIssue:
    if issue.doc_id == doc_id:
        return issue
    return issue.model_copy(update={"doc_id": doc_id})
