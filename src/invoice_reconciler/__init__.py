"""
Invoice reconciliation: PDF invoices -> identifiers -> cross-check against a bookkeeping spreadsheet export.
"""

from .batch import process_batch
from .extract import IdentifierExtractor, extract_identifiers
from .models import (
    BatchIndex,
    Document,
    ExtractionRecord,
    Issue,
    IssueKind,
    ReconciliationResult,
    SpreadsheetMapping,
)
from .pipeline import ReconciliationRun, run_bundle, run_on_folder, run_reconciliation
from .reconcile import reconcile

__all__ = [
    "process_batch",
    "IdentifierExtractor",
    "extract_identifiers",
    "BatchIndex",
    "Document",
    "ExtractionRecord",
    "Issue",
    "IssueKind",
    "ReconciliationResult",
    "SpreadsheetMapping",
    "ReconciliationRun",
    "run_bundle",
    "run_on_folder",
    "run_reconciliation",
    "reconcile",
]
