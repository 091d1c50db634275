"""Command line interface for the House disclosure pipeline."""

import logging
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from disclosures.config import settings
from disclosures.db.models import create_db_and_tables
from disclosures.db.session import get_session_context
from disclosures.extraction.llm_extractor import LlmPtrExtractor
from disclosures.extraction.parser import PtrTextParser
from disclosures.ingestion.fetchers import FetchError, HouseDisclosureClient
from disclosures.ingestion.filing_list import FilingListService
from disclosures.ingestion.ocr import PdfTextExtractor
from disclosures.ingestion.pipeline import DocumentResult, PtrPipeline, RunStats
from disclosures.ingestion.storage import LocalBlobStore
from disclosures.models import FilingIdentity
from disclosures.validation import validate_doc_id, validate_identity, validate_years

app = typer.Typer(help="Fetch, OCR and parse House Periodic Transaction Reports")
console = Console()

EXTRACTORS = ("heuristic", "llm")


def _setup_logging(verbose: bool) -> None:
    """Configure basic logging."""
    level = logging.DEBUG if verbose else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _build_pipeline(db, extractor: str = "heuristic") -> PtrPipeline:
    if extractor not in EXTRACTORS:
        raise typer.BadParameter(f"Unknown extractor {extractor!r}; choose from {', '.join(EXTRACTORS)}")
    blob_store = LocalBlobStore()
    client = HouseDisclosureClient(blob_store)
    return PtrPipeline(
        db=db,
        client=client,
        text_extractor=PdfTextExtractor(blob_store),
        extractor=PtrTextParser() if extractor == "heuristic" else LlmPtrExtractor(),
        blob_store=blob_store,
        filing_list=FilingListService(db, client, blob_store),
    )


def _identity(pipeline: PtrPipeline, doc_id: str, year: Optional[int]) -> FilingIdentity:
    try:
        if year is not None:
            return validate_identity(doc_id, year)
        return pipeline.identity_for(validate_doc_id(doc_id))
    except (ValueError, LookupError) as e:
        raise typer.BadParameter(str(e)) from e


def _print_stats(title: str, stats: RunStats) -> None:
    table = Table("Metric", "Count", title=title)
    table.add_row("Attempted", str(stats.attempted))
    table.add_row("Downloaded", str(stats.downloaded))
    table.add_row("OCR completed", str(stats.ocr_completed))
    table.add_row("Parsed", str(stats.parsed))
    table.add_row("Transactions", str(stats.transactions_extracted))
    table.add_row("Warnings", str(stats.warnings))
    table.add_row("Rejected", str(stats.rejected))
    table.add_row("Skipped", str(stats.skipped))
    table.add_row("Failed", str(stats.failed))
    console.print(table)
    for doc_id, reason in stats.failures.items():
        console.print(f"[red]{doc_id}[/red]: {reason}")


def _print_result(result: DocumentResult) -> None:
    colour = {"parsed": "green", "unchanged": "blue"}.get(result.status.value, "red")
    console.print(
        f"[{colour}]{result.identity.doc_id}: {result.status.value}[/{colour}] "
        f"({result.transactions} transactions, {len(result.issues)} issues)"
    )
    for issue in result.issues:
        console.print(f"  [dim]{issue.severity.value} {issue.category.value}[/dim] {issue.message}")


@app.command()
def init_db():
    """Initialize the database and create tables."""
    try:
        create_db_and_tables()
        console.print("[green]Database initialized successfully.[/green]")
    except Exception as e:
        console.print(f"[bold red]Error initializing database:[/bold red] {e}")
        raise typer.Exit(code=1)


@app.command()
def process_year(
    years: list[int] = typer.Argument(..., help="Filing years to process, e.g. 2024 2025."),
    force: bool = typer.Option(False, "--force", help="Ignore all caches."),
    extractor: str = typer.Option("heuristic", "--extractor", help="heuristic or llm"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
):
    """Refresh the filing list and process every PTR filed in the given years."""
    _setup_logging(verbose)
    try:
        validate_years(years)
    except ValueError as e:
        raise typer.BadParameter(str(e)) from e

    with get_session_context() as db:
        pipeline = _build_pipeline(db, extractor)
        for year in years:
            console.print(f"Processing PTRs for {year}...")
            try:
                stats = pipeline.process_year(year, force=force)
            except FetchError as e:
                console.print(f"[bold red]Could not load the {year} filing list:[/bold red] {e}")
                raise typer.Exit(code=1)
            _print_stats(f"PTRs {year}", stats)


@app.command()
def process_filing(
    doc_id: str = typer.Argument(..., help="Clerk document ID."),
    year: Optional[int] = typer.Option(None, "--year", help="Filing year; looked up in the filing list if omitted."),
    force: bool = typer.Option(False, "--force", help="Ignore all caches."),
    extractor: str = typer.Option("heuristic", "--extractor", help="heuristic or llm"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
):
    """Run one PTR through fetch, OCR and extraction."""
    _setup_logging(verbose)
    with get_session_context() as db:
        pipeline = _build_pipeline(db, extractor)
        identity = _identity(pipeline, doc_id, year)
        _print_result(pipeline.process_filing(identity, force=force))


@app.command()
def download(
    doc_id: str = typer.Argument(..., help="Clerk document ID."),
    year: Optional[int] = typer.Option(None, "--year"),
    force: bool = typer.Option(False, "--force", help="Download even if the ETag is unchanged."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Download a PTR PDF into the blob store."""
    _setup_logging(verbose)
    with get_session_context() as db:
        pipeline = _build_pipeline(db)
        identity = _identity(pipeline, doc_id, year)
        try:
            record, fetched = pipeline.download(identity, force=force)
        except FetchError as e:
            console.print(f"[bold red]Download failed:[/bold red] {e}")
            raise typer.Exit(code=1)
        if record is None:
            console.print(f"[yellow]{identity.doc_id} is not available at {pipeline.client.ptr_url(identity)}[/yellow]")
            raise typer.Exit(code=1)
        state = "downloaded" if fetched else "unchanged"
        console.print(f"[green]{identity.doc_id} {state}[/green] -> {record.storage_location}")


@app.command()
def ocr(
    doc_id: str = typer.Argument(..., help="Clerk document ID."),
    year: Optional[int] = typer.Option(None, "--year"),
    force: bool = typer.Option(False, "--force", help="Re-run OCR even if text exists."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Extract the text of an already downloaded PTR."""
    _setup_logging(verbose)
    with get_session_context() as db:
        pipeline = _build_pipeline(db)
        identity = _identity(pipeline, doc_id, year)
        record = pipeline.cache.get(identity)
        if record is None:
            console.print(f"[yellow]{identity.doc_id} has not been downloaded; run `download` first.[/yellow]")
            raise typer.Exit(code=1)
        ocr_result, ran = pipeline.run_ocr(identity, record, force=force)
        state = "OCR complete" if ran else "OCR up to date"
        console.print(f"[green]{identity.doc_id} {state}[/green] -> {ocr_result.storage_location}")


@app.command()
def parse(
    doc_id: str = typer.Argument(..., help="Clerk document ID."),
    year: Optional[int] = typer.Option(None, "--year"),
    extractor: str = typer.Option("heuristic", "--extractor", help="heuristic or llm"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
):
    """Re-extract transactions from stored OCR text, replacing any stored report."""
    _setup_logging(verbose)
    with get_session_context() as db:
        pipeline = _build_pipeline(db, extractor)
        identity = _identity(pipeline, doc_id, year)
        ocr_result = pipeline.ocr_result_for(identity.doc_id)
        if ocr_result is None:
            console.print(f"[yellow]No OCR text for {identity.doc_id}; run `ocr` first.[/yellow]")
            raise typer.Exit(code=1)
        _print_result(pipeline.parse(identity, ocr_result, force=True))


@app.command()
def clear_cache(
    doc_id: str = typer.Argument(..., help="Clerk document ID."),
    year: Optional[int] = typer.Option(None, "--year"),
):
    """Forget the download and OCR records of a PTR so the next run starts over."""
    with get_session_context() as db:
        pipeline = _build_pipeline(db)
        identity = _identity(pipeline, doc_id, year)
        pipeline.clear_cache(identity)
        console.print(f"Cache cleared for {identity.doc_id}")


if __name__ == "__main__":
    app()
