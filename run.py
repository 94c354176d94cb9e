#!/usr/bin/env python3
"""
Invoice reconciliation - CLI entry point.

Usage:
  python run.py --spreadsheet export.xlsx --pdfs ./invoices
  python run.py --bundle upload.zip --report ./output/report.xlsx
  python run.py --spreadsheet export.csv --pdfs ./invoices --csv ./output/report.csv -j 4
  python run.py --spreadsheet export.xlsx --pdfs ./invoices --external-tool none

Prints a summary plus the first entries of each list; the full lists go to the report files.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

from invoice_reconciler.config import get_settings
from invoice_reconciler.errors import ReconciliationError
from invoice_reconciler.logger import configure_logging
from invoice_reconciler.pipeline import run_bundle, run_on_folder
from invoice_reconciler.report import write_csv_report


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Reconcile invoice numbers in PDF files against a bookkeeping spreadsheet export."
    )
    parser.add_argument("--spreadsheet", "-s", type=str, help="Spreadsheet export (.xlsx or .csv)")
    parser.add_argument("--pdfs", "-p", type=str, help="PDF file or folder containing PDF invoices")
    parser.add_argument("--bundle", "-b", type=str, help="ZIP with the spreadsheet and PDFs (instead of -s/-p)")
    parser.add_argument(
        "--report",
        "-o",
        type=str,
        default="./output/report.xlsx",
        help="XLSX report path (default: ./output/report.xlsx)",
    )
    parser.add_argument("--csv", type=str, default=None, help="Also write a CSV report to this path")
    parser.add_argument(
        "--parallel",
        "-j",
        type=int,
        default=None,
        metavar="N",
        help="Extract N PDFs in parallel (default: MAX_WORKERS or 1)",
    )
    parser.add_argument(
        "--external-tool",
        choices=["pdftotext", "ocr", "none"],
        default=None,
        help="Fallback extractor when a PDF has no text layer (default: EXTERNAL_TOOL or pdftotext)",
    )
    parser.add_argument("--timeout", type=float, default=None, help="Whole-run time limit in seconds")
    parser.add_argument("--preview", type=int, default=None, help="Entries to print per list")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    if not args.bundle and not (args.spreadsheet and args.pdfs):
        parser.error("either --bundle or both --spreadsheet and --pdfs are required")

    overrides = {}
    if args.parallel is not None:
        overrides["max_workers"] = max(1, args.parallel)
    if args.external_tool is not None:
        overrides["external_tool"] = args.external_tool
    if args.timeout is not None:
        overrides["processing_timeout"] = args.timeout
    if args.preview is not None:
        overrides["preview_limit"] = args.preview
    settings = get_settings().model_copy(update=overrides)

    configure_logging("DEBUG" if args.verbose else settings.log_level, settings.log_file)

    try:
        if args.bundle:
            run = run_bundle(Path(args.bundle).read_bytes(), settings=settings)
        else:
            run = run_on_folder(args.spreadsheet, args.pdfs, settings=settings)
    except (ReconciliationError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    report_path = Path(args.report)
    report_path.parent.mkdir(parents=True, exist_ok=True)
    report_path.write_bytes(run.report_xlsx or b"")

    result = run.result
    preview = result.preview(settings.preview_limit)
    s = preview.summary
    print(f"Processed {len(run.records)} PDF file(s) in {run.elapsed:.1f}s. Report: {report_path.absolute()}")
    print(f"  Source keys:          {s.total_source_keys}")
    print(f"  Identifiers in PDFs:  {s.total_identifiers_in_documents}")
    print(f"  Correct pairs:        {s.matched_pairs}")
    print(f"  Errors:               {s.error_count} ({s.missing_count} missing, {s.orphan_count} orphan)")
    print(f"  Warnings:             {s.warning_count}")
    for title, count, items in (
        ("Errors", preview.errors_count, preview.errors_preview),
        ("Warnings", preview.warnings_count, preview.warnings_preview),
    ):
        if items:
            print(f"{title} (showing {len(items)} of {count}):")
            for issue in items:
                print(f"  - [{issue.kind.value}] {issue.message}")

    if args.csv:
        csv_path = write_csv_report(result, args.csv)
        print(f"CSV report: {csv_path.absolute()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
