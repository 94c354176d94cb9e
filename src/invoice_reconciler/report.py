"""
Downloadable reports for a ReconciliationResult: XLSX workbook (openpyxl) and sectioned CSV.
"""
from __future__ import annotations

import csv
import io
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter

from .models import ReconciliationResult

SHEET_CORRECT = "Correct pairs"
SHEET_ERRORS = "Errors"
SHEET_WARNINGS = "Warnings"
SHEET_SUMMARY = "Summary"


def _dash(value) -> object:
    return "-" if value is None or value == "" else value


def _summary_rows(result: ReconciliationResult) -> list[tuple[str, int]]:
    s = result.summary
    return [
        ("Total source keys", s.total_source_keys),
        ("Unique identifiers in PDFs", s.total_identifiers_in_documents),
        ("Correct pairs", s.matched_pairs),
        ("Missing PDFs", s.missing_count),
        ("Orphan PDFs", s.orphan_count),
        ("Errors", s.error_count),
        ("Warnings", s.warning_count),
    ]


def _table_sections(result: ReconciliationResult) -> list[tuple[str, list[str], list[list]]]:
    return [
        (
            SHEET_CORRECT,
            ["Source key", "Identifier", "Status"],
            [[p.source_key, p.identifier, "OK"] for p in result.correct_pairs],
        ),
        (
            SHEET_ERRORS,
            ["Error type", "Message", "Source key", "Identifier"],
            [[e.kind.value, e.message, _dash(e.source_key), _dash(e.identifier)] for e in result.errors],
        ),
        (
            SHEET_WARNINGS,
            ["Warning type", "Message", "Source key", "Identifier", "Count"],
            [
                [w.kind.value, w.message, _dash(w.source_key), _dash(w.identifier), _dash(w.count)]
                for w in result.warnings
            ],
        ),
    ]


def build_workbook(result: ReconciliationResult) -> Workbook:
    wb = Workbook()
    wb.remove(wb.active)
    bold = Font(bold=True)

    sections = _table_sections(result)
    sections.append((SHEET_SUMMARY, ["Metric", "Value"], [list(r) for r in _summary_rows(result)]))
    for title, header, rows in sections:
        ws = wb.create_sheet(title)
        ws.append(header)
        for cell in ws[1]:
            cell.font = bold
        for row in rows:
            ws.append(row)
        for col_idx, name in enumerate(header, start=1):
            width = max([len(str(name))] + [len(str(r[col_idx - 1])) for r in rows])
            ws.column_dimensions[get_column_letter(col_idx)].width = min(width + 2, 80)
    return wb


def render_xlsx_report(result: ReconciliationResult) -> bytes:
    buf = io.BytesIO()
    build_workbook(result).save(buf)
    return buf.getvalue()


def write_xlsx_report(result: ReconciliationResult, output_path: str | Path) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(render_xlsx_report(result))
    return output_path


def render_csv_report(result: ReconciliationResult) -> str:
    """Summary first, then one titled section per list, blank line between sections."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(["INVOICE RECONCILIATION REPORT"])
    writer.writerow([])
    writer.writerow(["SUMMARY"])
    writer.writerow(["Metric", "Value"])
    writer.writerows(_summary_rows(result))
    for title, header, rows in _table_sections(result):
        writer.writerow([])
        writer.writerow([title.upper()])
        writer.writerow(header)
        writer.writerows(rows)
    return buf.getvalue()


def write_csv_report(result: ReconciliationResult, output_path: str | Path) -> Path:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_csv_report(result), encoding="utf-8")
    return output_path
