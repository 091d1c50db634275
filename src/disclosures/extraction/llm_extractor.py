import logging
import re

import ollama
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from disclosures.config import settings
from disclosures.extraction import vocabulary
from disclosures.extraction.prompt import REFLECTION_PROMPT, build_extraction_prompt
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

ASSET_CODE_PATTERN = re.compile(r"\s*\[([A-Z0-9]{2})\]\s*$")


class LlmExtractionError(RuntimeError):
    """Raised when the model returns no content at all."""


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LlmFiler(_CamelModel):
    name: str
    status: str
    state_district: str


class LlmTransaction(_CamelModel):
    id: str = ""
    owner: str = ""
    asset: str
    transaction_type: str
    date: str
    notification_date: str = ""
    amount: str
    filing_status: str = ""
    certainty: int = 0


class LlmFilingOutput(_CamelModel):
    filing_id: str
    filer: LlmFiler
    transactions: list[LlmTransaction] = []


class LlmPtrExtractor:
    """Alternate extractor: asks a local Ollama model to transcribe the OCR text.

    Produces the same FilingReport / ParseIssue shape as ``PtrTextParser`` so the
    two are interchangeable inside the pipeline.
    """

    name = "llm"

    def __init__(self, model: str = settings.OLLAMA_MODEL, client: ollama.Client | None = None):
        self.model = model
        self.client = client or ollama.Client()

    def extract(self, text: str, source_url: str) -> ExtractionOutcome[FilingReport]:
        raw = self._chat(text)
        try:
            output = LlmFilingOutput.model_validate_json(raw)
        except ValidationError as e:
            logger.warning("LLM output did not match schema: %s", e)
            return Error(
                [
                    ParseIssue.error(
                        UNKNOWN_DOC_ID,
                        IssueCategory.DOCUMENT_STRUCTURE,
                        "LLM returned output that does not match the filing schema",
                        details=str(e),
                    )
                ]
            )
        return self.to_outcome(output, source_url)

    def _chat(self, text: str) -> str:
        response = self.client.chat(
            model=self.model,
            messages=[
                {"role": "user", "content": build_extraction_prompt(text)},
                {"role": "user", "content": REFLECTION_PROMPT},
            ],
            format=LlmFilingOutput.model_json_schema(),
        )
        content = response.message.content
        if not content:
            raise LlmExtractionError("Model returned empty content")
        logger.debug("%s", content)
        return content

    def to_outcome(self, output: LlmFilingOutput, source_url: str) -> ExtractionOutcome[FilingReport]:
        doc_id = output.filing_id.strip().lstrip("#")
        if not doc_id.isdigit():
            return Error(
                [
                    ParseIssue.error(
                        UNKNOWN_DOC_ID,
                        IssueCategory.DOCUMENT_STRUCTURE,
                        "Could not extract document ID",
                        details=f"LLM returned filing id {output.filing_id!r}",
                        location="Document header",
                    )
                ]
            )

        filer = self._filer(output.filer, doc_id)
        if isinstance(filer, ParseIssue):
            return Error([filer])

        transactions: list[Transaction] = []
        issues: list[ParseIssue] = []
        for index, item in enumerate(output.transactions, start=1):
            try:
                transactions.append(self._transaction(item, source_url))
            except ValueError as e:
                issues.append(
                    ParseIssue.warning(
                        doc_id,
                        IssueCategory.TRANSACTION_PARSING,
                        f"Could not parse transaction for asset {item.asset!r}",
                        details=str(e),
                        location=f"Transaction #{index}",
                    )
                )
        return combine(
            [Success(filer), outcome_from(transactions, issues)],
            lambda parts: FilingReport(doc_id=doc_id, filer=parts[0], transactions=parts[1], source_url=source_url),
        )

    @staticmethod
    def _filer(filer: LlmFiler, doc_id: str) -> FilerInfo | ParseIssue:
        location = "FILER INFORMATION block"
        if not filer.name.strip():
            return ParseIssue.error(
                doc_id, IssueCategory.FILER_INFORMATION_PARSING, "LLM returned no filer name", location=location
            )
        state_district = vocabulary.parse_state_district(filer.state_district.upper())
        if state_district is None:
            return ParseIssue.error(
                doc_id,
                IssueCategory.FILER_INFORMATION_PARSING,
                f"Invalid state/district: {filer.state_district!r}",
                location=location,
            )
        status = vocabulary.filer_status_for(filer.status)
        if status is None:
            return ParseIssue.error(
                doc_id,
                IssueCategory.DATA_VALIDATION,
                f"Unknown filer status: {filer.status}",
                details="Status must be one of: member, officer, employee, candidate",
                location=location,
            )
        state, district = state_district
        return FilerInfo(filer_full_name=filer.name.strip(), filer_status=status, state=state, district=district)

    @staticmethod
    def _transaction(item: LlmTransaction, source_url: str) -> Transaction:
        code_match = ASSET_CODE_PATTERN.search(item.asset)
        if code_match is None:
            raise ValueError(f"No asset type code in {item.asset!r}")
        trade_type = vocabulary.trade_type_for(item.transaction_type)
        if trade_type is None:
            raise ValueError(f"Unknown transaction type {item.transaction_type!r}")
        amount_range = vocabulary.parse_amount_text(item.amount)
        if amount_range is None:
            raise ValueError(f"Unknown amount range: {item.amount!r}")
        owner = None
        if item.owner.strip():
            owner = vocabulary.owner_for(item.owner)
            if owner is None:
                raise ValueError(f"Unknown owner code {item.owner!r}")
        notification_date = (
            vocabulary.parse_us_date(item.notification_date) if item.notification_date.strip() else None
        )
        return Transaction(
            owner=owner,
            asset_name=item.asset[: code_match.start()].strip(),
            asset_type_code=code_match.group(1),
            filing_status=vocabulary.filing_status_for(item.filing_status),
            trade_type=trade_type,
            amount_range=amount_range,
            trade_date=vocabulary.parse_us_date(item.date),
            notification_date=notification_date,
            source_url=source_url,
        )
