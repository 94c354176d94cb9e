"""
Spreadsheet export loader (.xlsx via openpyxl, legacy .xls via xlrd, .csv via csv).
First sheet, first row is the header; columns are found through header aliases.
"""
from __future__ import annotations

import csv
import io
import logging
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

import xlrd
from openpyxl import load_workbook

from .config import Settings, get_settings
from .errors import SpreadsheetError
from .models import SpreadsheetMapping

logger = logging.getLogger(__name__)

SPREADSHEET_SUFFIXES = (".xlsx", ".xls", ".csv")


def _cell_to_str(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _find_column(header: Sequence[str], aliases: Sequence[str]) -> Optional[int]:
    """Index of the first alias present in header; exact match wins over case-insensitive."""
    for alias in aliases:
        if alias in header:
            return header.index(alias)
    lowered = [h.lower() for h in header]
    for alias in aliases:
        if alias.lower() in lowered:
            return lowered.index(alias.lower())
    return None


def rows_to_mapping(rows: Iterable[Sequence[Any]], settings: Optional[Settings] = None) -> SpreadsheetMapping:
    """Header row + data rows -> mapping. Rows missing either value are skipped."""
    settings = settings or get_settings()
    it = iter(rows)
    try:
        header = [_cell_to_str(c) for c in next(it)]
    except StopIteration:
        raise SpreadsheetError("Spreadsheet is empty") from None

    key_col = _find_column(header, settings.source_key_columns)
    target_col = _find_column(header, settings.target_columns)
    if key_col is None or target_col is None:
        raise SpreadsheetError(
            "Spreadsheet has no source key / identifier columns "
            f"(expected one of {settings.source_key_columns} and {settings.target_columns}, "
            f"found {[h for h in header if h]})"
        )

    pairs: list[tuple[str, str]] = []
    skipped = 0
    for row in it:
        key = _cell_to_str(row[key_col]) if key_col < len(row) else ""
        target = _cell_to_str(row[target_col]) if target_col < len(row) else ""
        if key and target:
            pairs.append((key, target))
        elif key or target:
            skipped += 1
    if skipped:
        logger.info("Skipped %d incomplete spreadsheet row(s)", skipped)

    mapping = SpreadsheetMapping.from_rows(pairs)
    logger.info(
        "Spreadsheet loaded: %d row(s), %d unique source key(s), %d unique identifier(s)",
        len(mapping.rows),
        len(mapping.mapping),
        len(mapping.declared_targets),
    )
    return mapping


def _read_xlsx_rows(data: bytes) -> list[tuple]:
    wb = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        return list(ws.iter_rows(values_only=True))
    finally:
        wb.close()


def _read_xls_rows(data: bytes) -> list[list]:
    book = xlrd.open_workbook(file_contents=data, on_demand=True)
    try:
        sheet = book.sheet_by_index(0)
        return [sheet.row_values(i) for i in range(sheet.nrows)]
    finally:
        book.release_resources()


_READERS = {
    ".xlsx": _read_xlsx_rows,
    ".xls": _read_xls_rows,
}


def _read_csv_rows(data: bytes) -> list[list[str]]:
    for encoding in ("utf-8-sig", "cp1250"):
        try:
            text = data.decode(encoding)
            break
        except UnicodeDecodeError:
            continue
    else:
        raise SpreadsheetError("CSV file is not valid UTF-8 or CP1250 text")
    try:
        dialect = csv.Sniffer().sniff(text[:4096], delimiters=",;\t")
    except csv.Error:
        dialect = csv.excel
    return list(csv.reader(io.StringIO(text), dialect))


def load_spreadsheet(data: bytes, filename: str, settings: Optional[Settings] = None) -> SpreadsheetMapping:
    """Parse an uploaded export. Raises SpreadsheetError on anything unreadable."""
    suffix = Path(filename).suffix.lower()
    if suffix not in SPREADSHEET_SUFFIXES:
        raise SpreadsheetError(f"Unsupported spreadsheet format '{suffix or filename}' (use .xlsx, .xls or .csv)")
    try:
        rows = _READERS.get(suffix, _read_csv_rows)(data)
    except SpreadsheetError:
        raise
    except Exception as e:
        raise SpreadsheetError(f"Could not read spreadsheet '{filename}': {e}") from e
    return rows_to_mapping(rows, settings)

