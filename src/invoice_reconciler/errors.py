"""
Run-level failures. Anything raised from here aborts the run without a result;
per-document problems never surface as exceptions.
"""
from __future__ import annotations


class ReconciliationError(Exception):
    """Base class for failures that prevent a reconciliation result."""


class SpreadsheetError(ReconciliationError):
    """Spreadsheet export could not be read or has no usable columns."""


class NoDocumentsError(ReconciliationError):
    """No PDF documents were supplied."""


class BundleError(ReconciliationError):
    """ZIP bundle is unreadable or incomplete."""


class UploadTooLargeError(ReconciliationError):
    """An uploaded file exceeds its size limit."""

    def __init__(self, name: str, size: int, limit: int):
        self.name = name
        self.size = size
        self.limit = limit
        super().__init__(
            f"File '{name}' is too large ({size / 1024 / 1024:.2f}MB). "
            f"Maximum is {limit / 1024 / 1024:.0f}MB."
        )


class ProcessingTimeoutError(ReconciliationError):
    """Whole run exceeded its wall-clock budget."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(
            f"Processing exceeded the time limit ({timeout:g}s). Try again with fewer files."
        )


class ExternalToolUnavailable(Exception):
    """External text extraction could not produce output (missing, failed or timed out)."""
