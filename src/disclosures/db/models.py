import datetime

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.sql import func

from disclosures.config import settings
from disclosures.models import (
    AmountRange,
    FilerStatus,
    FilingStatus,
    IssueCategory,
    IssueSeverity,
    Ownership,
    TradeType,
)

Base = declarative_base()


class FetchRecord(Base):  # Last fetched version of a remote document
    __tablename__ = "fetch_records"
    __table_args__ = (UniqueConstraint("kind", "doc_id"),)
    id: Column[int] = Column(Integer, primary_key=True, index=True)
    kind: Column[str] = Column(String(32), nullable=False, default="ptr")  # "ptr" or "filing_list"
    doc_id: Column[str] = Column(String(64), nullable=False, index=True)
    year: Column[int] = Column(Integer, nullable=False)
    fingerprint: Column[str | None] = Column(String(255))  # HTTP ETag
    storage_location: Column[str] = Column(String(1024), nullable=False)
    fetched_at: Column[datetime.datetime] = Column(
        DateTime(timezone=True), server_default=func.now()
    )
    parsed_at: Column[datetime.datetime | None] = Column(DateTime(timezone=True))

    ocr_result = relationship("OcrResult", back_populates="fetch_record", uselist=False)


class OcrResult(Base):
    __tablename__ = "ocr_results"
    id: Column[int] = Column(Integer, primary_key=True, index=True)
    doc_id: Column[str] = Column(String(64), unique=True, index=True, nullable=False)
    fetch_record_id: Column[int] = Column(Integer, ForeignKey("fetch_records.id"), nullable=False)
    source_fingerprint: Column[str | None] = Column(String(255))  # fingerprint of the fetch it was built from
    storage_location: Column[str] = Column(String(1024), nullable=False)
    created_at: Column[datetime.datetime] = Column(
        DateTime(timezone=True), server_default=func.now()
    )

    fetch_record = relationship("FetchRecord", back_populates="ocr_result")


class FilingListRow(Base):
    __tablename__ = "filing_list_rows"
    id: Column[int] = Column(Integer, primary_key=True, index=True)
    doc_id: Column[str] = Column(String(64), unique=True, index=True, nullable=False)
    prefix: Column[str] = Column(String(32), default="")
    last: Column[str] = Column(String(255), nullable=False)
    first: Column[str] = Column(String(255), nullable=False)
    suffix: Column[str] = Column(String(32), default="")
    filing_type: Column[str] = Column(String(8), nullable=False, index=True)
    state_district: Column[str] = Column(String(8))
    year: Column[int] = Column(Integer, nullable=False, index=True)
    filing_date: Column[datetime.date] = Column(Date, nullable=False)
    raw_row: Column[str] = Column(Text, nullable=False)
    created_at: Column[datetime.datetime] = Column(
        DateTime(timezone=True), server_default=func.now()
    )


class FilingReportRecord(Base):
    __tablename__ = "filing_reports"
    id: Column[int] = Column(Integer, primary_key=True, index=True)
    doc_id: Column[str] = Column(String(64), unique=True, index=True, nullable=False)
    filer_full_name: Column[str] = Column(String(255), nullable=False)
    filer_status: Column[FilerStatus] = Column(Enum(FilerStatus, native_enum=False), nullable=False)
    state: Column[str] = Column(String(2), nullable=False)
    district: Column[int] = Column(Integer, nullable=False)
    source_url: Column[str] = Column(String(1024), nullable=False)
    extractor: Column[str] = Column(String(32), nullable=False)  # "heuristic" or "llm"
    created_at: Column[datetime.datetime] = Column(
        DateTime(timezone=True), server_default=func.now()
    )

    transactions = relationship(
        "TransactionRecord",
        back_populates="report",
        cascade="all, delete-orphan",
        order_by="TransactionRecord.position",
    )


class TransactionRecord(Base):
    __tablename__ = "report_transactions"
    id: Column[int] = Column(Integer, primary_key=True, index=True)
    report_id: Column[int] = Column(
        Integer, ForeignKey("filing_reports.id", ondelete="CASCADE"), nullable=False
    )
    doc_id: Column[str] = Column(String(64), index=True, nullable=False)
    position: Column[int] = Column(Integer, nullable=False)  # order within the report
    owner: Column[Ownership | None] = Column(Enum(Ownership, native_enum=False))
    asset_name: Column[str] = Column(Text, nullable=False)
    asset_type_code: Column[str] = Column(String(2), nullable=False)
    filing_status: Column[FilingStatus] = Column(Enum(FilingStatus, native_enum=False), nullable=False)
    trade_type: Column[TradeType] = Column(Enum(TradeType, native_enum=False), nullable=False)
    amount_range: Column[AmountRange] = Column(Enum(AmountRange, native_enum=False), nullable=False)
    trade_date: Column[datetime.date] = Column(Date, nullable=False)
    notification_date: Column[datetime.date | None] = Column(Date)
    source_url: Column[str] = Column(String(1024), nullable=False)

    report = relationship("FilingReportRecord", back_populates="transactions")


class ParseIssueRecord(Base):  # Append-only audit trail, never deleted on reprocessing
    __tablename__ = "parse_issues"
    id: Column[int] = Column(Integer, primary_key=True, index=True)
    doc_id: Column[str] = Column(String(64), index=True, nullable=False)
    severity: Column[IssueSeverity] = Column(Enum(IssueSeverity, native_enum=False), nullable=False)
    category: Column[IssueCategory] = Column(Enum(IssueCategory, native_enum=False), nullable=False)
    message: Column[str] = Column(Text, nullable=False)
    details: Column[str | None] = Column(Text)
    location: Column[str | None] = Column(String(255))
    created_at: Column[datetime.datetime] = Column(DateTime(timezone=True), nullable=False)


engine = create_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_db_and_tables(bind=None):
    Base.metadata.create_all(bind=bind or engine)
