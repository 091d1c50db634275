# src/disclosures/models.py
import datetime
import enum

from pydantic import BaseModel, ConfigDict, Field

UNKNOWN_DOC_ID = "UNKNOWN"


class FilerStatus(str, enum.Enum):
    MEMBER = "MEMBER"
    OFFICER_OR_EMPLOYEE = "OFFICER_OR_EMPLOYEE"
    CANDIDATE = "CANDIDATE"


class Ownership(str, enum.Enum):
    SPOUSE = "SPOUSE"  # SP
    DEPENDENT_CHILD = "DEPENDENT_CHILD"  # DC
    JOINT = "JOINT"  # JT


class FilingStatus(str, enum.Enum):
    NEW = "NEW"
    AMENDED = "AMENDED"


class TradeType(str, enum.Enum):
    PURCHASE = "PURCHASE"
    SALE = "SALE"
    EXCHANGE = "EXCHANGE"


class AmountRange(str, enum.Enum):
    """The value buckets a filer must report instead of an exact amount."""

    A_1001_15000 = "1,001-15,000"
    B_15001_50000 = "15,001-50,000"
    C_50001_100000 = "50,001-100,000"
    D_100001_250000 = "100,001-250,000"
    E_250001_500000 = "250,001-500,000"
    F_500001_1000000 = "500,001-1,000,000"
    G_1000001_5000000 = "1,000,001-5,000,000"
    H_5000001_25000000 = "5,000,001-25,000,000"
    I_25000001_50000000 = "25,000,001-50,000,000"
    J_OVER_50000000 = "50,000,001+"

    @property
    def minimum(self) -> int:
        return int(self.value.split("-")[0].rstrip("+").replace(",", ""))

    @property
    def maximum(self) -> int | None:
        if self is AmountRange.J_OVER_50000000:
            return None
        return int(self.value.split("-")[1].replace(",", ""))


class IssueSeverity(str, enum.Enum):
    WARNING = "WARNING"
    ERROR = "ERROR"


class IssueCategory(str, enum.Enum):
    DOCUMENT_STRUCTURE = "DOCUMENT_STRUCTURE"
    FILER_INFORMATION_PARSING = "FILER_INFORMATION_PARSING"
    TRANSACTION_PARSING = "TRANSACTION_PARSING"
    DATA_VALIDATION = "DATA_VALIDATION"
    OCR_QUALITY = "OCR_QUALITY"


class FilingIdentity(BaseModel):
    model_config = ConfigDict(frozen=True)

    doc_id: str  # assigned by the Clerk, unique across years
    year: int


class ParseIssue(BaseModel):
    model_config = ConfigDict(frozen=True)

    doc_id: str
    severity: IssueSeverity
    category: IssueCategory
    message: str
    details: str | None = None
    location: str | None = None  # e.g. "Transaction #3", "FILER INFORMATION block"
    created_at: datetime.datetime = Field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    @classmethod
    def error(cls, doc_id: str, category: IssueCategory, message: str, **kwargs) -> "ParseIssue":
        return cls(doc_id=doc_id, severity=IssueSeverity.ERROR, category=category, message=message, **kwargs)

    @classmethod
    def warning(cls, doc_id: str, category: IssueCategory, message: str, **kwargs) -> "ParseIssue":
        return cls(doc_id=doc_id, severity=IssueSeverity.WARNING, category=category, message=message, **kwargs)


class FilerInfo(BaseModel):
    filer_full_name: str
    filer_status: FilerStatus
    state: str
    district: int


class Transaction(BaseModel):
    owner: Ownership | None = None  # None: the filer holds the asset directly
    asset_name: str
    asset_type_code: str
    filing_status: FilingStatus = FilingStatus.NEW
    trade_type: TradeType
    amount_range: AmountRange
    trade_date: datetime.date
    notification_date: datetime.date | None = None
    source_url: str


class FilingReport(BaseModel):
    doc_id: str
    filer: FilerInfo
    transactions: list[Transaction] = Field(default_factory=list)
    source_url: str


class FilingListEntry(BaseModel):
    """One row of the Clerk's yearly filing index (e.g. 2025FD.txt)."""

    doc_id: str
    prefix: str
    last: str
    first: str
    suffix: str
    filing_type: str  # "P" for periodic transaction reports
    state_district: str
    year: int
    filing_date: datetime.date
    raw_row: str
