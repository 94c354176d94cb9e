from __future__ import annotations

import shutil

import streamlit as st

from invoice_reconciler.config import get_settings
from invoice_reconciler.errors import ReconciliationError, UploadTooLargeError
from invoice_reconciler.logger import configure_logging
from invoice_reconciler.models import ReconciliationResult
from invoice_reconciler.pipeline import run_bundle, run_reconciliation
from invoice_reconciler.report import render_csv_report
from invoice_reconciler.sources import documents_from_uploads

settings = get_settings()
configure_logging(settings.log_level, settings.log_file)


def _issue_rows(issues) -> list[dict]:
    return [
        {
            "type": i.kind.value,
            "message": i.message,
            "source key": i.source_key or "-",
            "identifier": i.identifier or "-",
            "count": i.count,
        }
        for i in issues
    ]


def _check_spreadsheet_size(up) -> None:
    if up.size > settings.max_spreadsheet_bytes:
        raise UploadTooLargeError(up.name, up.size, settings.max_spreadsheet_bytes)


st.set_page_config(
    page_title="Invoice Reconciliation",
    page_icon="🧾",
    layout="wide",
)

st.title("Invoice Reconciliation")
st.caption("Upload the bookkeeping export and invoice PDFs → match invoice numbers → download the report.")

with st.sidebar:
    st.header("Settings")
    num_workers = st.slider(
        "Parallel workers",
        min_value=1,
        max_value=8,
        value=max(1, min(8, settings.max_workers)),
        help="Number of PDFs extracted in parallel",
    )
    tool_options = ["pdftotext", "ocr", "none"]
    external_tool = st.selectbox(
        "Fallback for PDFs without a text layer",
        tool_options,
        index=tool_options.index(settings.external_tool) if settings.external_tool in tool_options else 0,
    )
    preview_limit = st.number_input("Preview entries per list", min_value=1, max_value=500, value=settings.preview_limit)

    st.divider()
    st.subheader("External tools")
    if shutil.which(settings.pdftotext_binary):
        st.success("pdftotext found.")
    else:
        st.warning("`pdftotext` not found on PATH. PDFs without a text layer fall back to a raw byte scan.")
    st.caption(f"Identifier pattern `{settings.text_pattern}` ({settings.pattern_version})")

run_settings = settings.model_copy(
    update={"max_workers": num_workers, "external_tool": external_tool, "preview_limit": int(preview_limit)}
)

st.divider()

mode = st.radio("Input", ["Separate files", "ZIP bundle"], horizontal=True)
if mode == "ZIP bundle":
    bundle_up = st.file_uploader("ZIP with one XLSX/XLS/CSV export and the PDF invoices", type=["zip"])
    ready = bundle_up is not None
else:
    sheet_up = st.file_uploader("Spreadsheet export", type=["xlsx", "xls", "csv"])
    pdf_ups = st.file_uploader("Invoice PDFs", type=["pdf"], accept_multiple_files=True)
    ready = sheet_up is not None and bool(pdf_ups)

col_a, col_b, _ = st.columns([1, 1, 2])
with col_a:
    run_btn = st.button("Reconcile", type="primary", disabled=not ready)
with col_b:
    clear_btn = st.button("Clear results")

if clear_btn:
    st.session_state.pop("recon_result", None)
    st.session_state.pop("recon_report", None)
    st.rerun()

if run_btn and ready:
    with st.spinner(f"Processing with {num_workers} worker(s)…"):
        try:
            if mode == "ZIP bundle":
                run = run_bundle(bundle_up.getvalue(), settings=run_settings)
            else:
                _check_spreadsheet_size(sheet_up)
                documents = documents_from_uploads(
                    ((up.name, up.getvalue()) for up in pdf_ups), settings=run_settings
                )
                run = run_reconciliation(sheet_up.name, sheet_up.getvalue(), documents, settings=run_settings)
        except ReconciliationError as e:
            st.error(str(e))
            st.stop()
    st.session_state["recon_result"] = run.result.model_dump(mode="json")
    st.session_state["recon_report"] = run.report_xlsx

raw = st.session_state.get("recon_result")
if not raw:
    st.info("Upload files and click **Reconcile** to see results.")
    st.stop()

result = ReconciliationResult.model_validate(raw)
preview = result.preview(int(preview_limit))
s = preview.summary

c1, c2, c3, c4, c5 = st.columns(5)
c1.metric("Source keys", s.total_source_keys)
c2.metric("Identifiers in PDFs", s.total_identifiers_in_documents)
c3.metric("Correct pairs", s.matched_pairs)
c4.metric("Errors", s.error_count)
c5.metric("Warnings", s.warning_count)

d1, d2 = st.columns(2)
with d1:
    st.download_button(
        "Download report (XLSX)",
        data=st.session_state.get("recon_report") or b"",
        file_name="report.xlsx",
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    )
with d2:
    st.download_button(
        "Download report (CSV)",
        data=render_csv_report(result).encode("utf-8"),
        file_name="report.csv",
        mime="text/csv",
    )

tab_pairs, tab_errors, tab_warnings = st.tabs(
    [
        f"Correct pairs ({preview.correct_pairs_count})",
        f"Errors ({preview.errors_count})",
        f"Warnings ({preview.warnings_count})",
    ]
)
with tab_pairs:
    st.dataframe(
        [{"source key": p.source_key, "identifier": p.identifier} for p in preview.correct_pairs_preview],
        use_container_width=True,
        hide_index=True,
    )
with tab_errors:
    st.dataframe(_issue_rows(preview.errors_preview), use_container_width=True, hide_index=True)
with tab_warnings:
    st.dataframe(_issue_rows(preview.warnings_preview), use_container_width=True, hide_index=True)

if max(preview.correct_pairs_count, preview.errors_count, preview.warnings_count) > int(preview_limit):
    st.caption(f"Showing the first {int(preview_limit)} entries per list. The report contains everything.")
