"""
End-to-end run: spreadsheet -> mapping, PDFs -> identifiers, reconcile -> result (+ report).
The whole run is bounded by settings.processing_timeout; past it the caller gets
ProcessingTimeoutError instead of a result.
"""
from __future__ import annotations

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .batch import process_batch
from .config import Settings, get_settings
from .errors import NoDocumentsError, ProcessingTimeoutError, SpreadsheetError
from .external_tools import build_external_tool
from .extract import IdentifierExtractor
from .models import Document, ExtractionRecord, ReconciliationResult, SpreadsheetMapping
from .patterns import IdentifierPattern
from .reconcile import reconcile
from .report import render_xlsx_report
from .sources import documents_from_path, read_bundle
from .spreadsheet import load_spreadsheet

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconciliationRun:
    """Everything a caller may want from one run."""
    mapping: SpreadsheetMapping
    records: tuple[ExtractionRecord, ...]
    result: ReconciliationResult
    report_xlsx: Optional[bytes] = None
    elapsed: float = 0.0


def build_extractor(settings: Optional[Settings] = None) -> IdentifierExtractor:
    settings = settings or get_settings()
    return IdentifierExtractor(
        pattern=IdentifierPattern.from_settings(settings),
        external_tool=build_external_tool(
            settings.external_tool,
            timeout=settings.external_tool_timeout,
            binary=settings.pdftotext_binary,
        ),
    )


def reconcile_documents(
    mapping: SpreadsheetMapping,
    documents: list[Document],
    extractor: Optional[IdentifierExtractor] = None,
    max_workers: int = 1,
) -> tuple[tuple[ExtractionRecord, ...], ReconciliationResult]:
    """Extract + reconcile without deadline or preconditions."""
    batch = process_batch(documents, extractor=extractor, max_workers=max_workers)
    return batch.records, reconcile(mapping, batch.index)


def _run_with_deadline(fn, timeout: float):
    """Run fn in a worker thread; give up waiting after timeout seconds."""
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="reconcile-run")
    future = executor.submit(fn)
    try:
        return future.result(timeout=timeout)
    except FuturesTimeoutError:
        future.cancel()
        logger.error("Run abandoned after %gs", timeout)
        raise ProcessingTimeoutError(timeout)
    finally:
        # a stuck run keeps its thread until it finishes; we just stop waiting for it
        executor.shutdown(wait=False, cancel_futures=True)


def run_reconciliation(
    spreadsheet_name: str,
    spreadsheet_data: bytes,
    documents: list[Document],
    settings: Optional[Settings] = None,
    extractor: Optional[IdentifierExtractor] = None,
    render_report: bool = True,
) -> ReconciliationRun:
    """
    Load the spreadsheet, extract identifiers from documents, reconcile, and optionally
    render the XLSX report, all within settings.processing_timeout.
    Raises NoDocumentsError, SpreadsheetError or ProcessingTimeoutError.
    """
    settings = settings or get_settings()
    if not documents:
        raise NoDocumentsError("No PDF files supplied")
    extractor = extractor or build_extractor(settings)

    def _run() -> ReconciliationRun:
        start = time.monotonic()
        mapping = load_spreadsheet(spreadsheet_data, spreadsheet_name, settings)
        records, result = reconcile_documents(
            mapping, documents, extractor=extractor, max_workers=settings.max_workers
        )
        report = render_xlsx_report(result) if render_report else None
        return ReconciliationRun(
            mapping=mapping,
            records=records,
            result=result,
            report_xlsx=report,
            elapsed=time.monotonic() - start,
        )

    logger.info("Starting run: %s + %d PDF file(s)", spreadsheet_name, len(documents))
    run = _run_with_deadline(_run, settings.processing_timeout)
    logger.info("Run finished in %.2fs", run.elapsed)
    return run


def run_bundle(
    bundle_data: bytes,
    settings: Optional[Settings] = None,
    extractor: Optional[IdentifierExtractor] = None,
    render_report: bool = True,
) -> ReconciliationRun:
    """Same as run_reconciliation, with spreadsheet and PDFs taken from one ZIP."""
    settings = settings or get_settings()
    bundle = read_bundle(bundle_data, settings)
    return run_reconciliation(
        bundle.spreadsheet_name,
        bundle.spreadsheet_data,
        bundle.documents,
        settings=settings,
        extractor=extractor,
        render_report=render_report,
    )


def run_on_folder(
    spreadsheet_path: str | Path,
    pdf_path: str | Path,
    settings: Optional[Settings] = None,
    extractor: Optional[IdentifierExtractor] = None,
    render_report: bool = True,
) -> ReconciliationRun:
    """Spreadsheet file + a PDF file or folder of PDFs on disk."""
    settings = settings or get_settings()
    spreadsheet_path = Path(spreadsheet_path)
    try:
        spreadsheet_data = spreadsheet_path.read_bytes()
    except OSError as e:
        raise SpreadsheetError(f"Could not open spreadsheet '{spreadsheet_path}': {e}") from e
    documents = documents_from_path(pdf_path)
    return run_reconciliation(
        spreadsheet_path.name,
        spreadsheet_data,
        documents,
        settings=settings,
        extractor=extractor,
        render_report=render_report,
    )
