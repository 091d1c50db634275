import logging
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from disclosures.db.models import FilingReportRecord, ParseIssueRecord, TransactionRecord
from disclosures.models import FilingReport, ParseIssue

logger = logging.getLogger(__name__)


class IssueLog:
    """Append-only store of ParseIssues. Rows are never updated or deleted."""

    def append(self, issues: Iterable[ParseIssue], db: Session) -> int:
        rows = [
            ParseIssueRecord(
                doc_id=issue.doc_id,
                severity=issue.severity,
                category=issue.category,
                message=issue.message,
                details=issue.details,
                location=issue.location,
                created_at=issue.created_at,
            )
            for issue in issues
        ]
        db.add_all(rows)
        return len(rows)

    def find_by_doc_id(self, doc_id: str, db: Session) -> list[ParseIssueRecord]:
        return list(
            db.scalars(
                select(ParseIssueRecord)
                .where(ParseIssueRecord.doc_id == doc_id)
                .order_by(ParseIssueRecord.id)
            )
        )


class ReportStore:
    """Stores one FilingReport (with its transactions) per doc_id."""

    def replace(self, report: FilingReport, extractor: str, db: Session) -> FilingReportRecord:
        """Delete any earlier report for the doc_id and insert ``report`` in its place.

        Runs inside the caller's transaction; the caller commits.
        """
        existing = self.find_by_doc_id(report.doc_id, db)
        if existing is not None:
            logger.debug("Replacing report %s (%d transactions)", report.doc_id, len(existing.transactions))
            db.delete(existing)
            db.flush()

        record = FilingReportRecord(
            doc_id=report.doc_id,
            filer_full_name=report.filer.filer_full_name,
            filer_status=report.filer.filer_status,
            state=report.filer.state,
            district=report.filer.district,
            source_url=report.source_url,
            extractor=extractor,
            transactions=[
                TransactionRecord(
                    doc_id=report.doc_id,
                    position=position,
                    owner=t.owner,
                    asset_name=t.asset_name,
                    asset_type_code=t.asset_type_code,
                    filing_status=t.filing_status,
                    trade_type=t.trade_type,
                    amount_range=t.amount_range,
                    trade_date=t.trade_date,
                    notification_date=t.notification_date,
                    source_url=t.source_url,
                )
                for position, t in enumerate(report.transactions)
            ],
        )
        db.add(record)
        db.flush()
        return record

    def find_by_doc_id(self, doc_id: str, db: Session) -> FilingReportRecord | None:
        return db.scalars(select(FilingReportRecord).where(FilingReportRecord.doc_id == doc_id)).first()

    def count_transactions(self, doc_id: str, db: Session) -> int:
        return db.scalar(
            select(func.count()).select_from(TransactionRecord).where(TransactionRecord.doc_id == doc_id)
        )
