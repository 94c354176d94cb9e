"""Tests for the spreadsheet export loader."""

from unittest.mock import Mock

import pytest

from conftest import make_xlsx
from invoice_reconciler import spreadsheet
from invoice_reconciler.errors import SpreadsheetError
from invoice_reconciler.spreadsheet import load_spreadsheet, rows_to_mapping


def test_xlsx_rows_in_sheet_order(settings):
    data = make_xlsx(
        [
            ("ST/2", "FV/2/PL/2501"),
            ("ST/1", "FV/1/PL/2501"),
            (None, "FV/9/PL/2501"),
            ("ST/3", None),
            ("  ST/4 ", " FV/4/PL/2501  "),
        ]
    )

    mapping = load_spreadsheet(data, "export.xlsx", settings)

    assert mapping.source_keys == ("ST/2", "ST/1", "ST/4")
    assert mapping.mapping["ST/4"] == "FV/4/PL/2501"
    assert mapping.declared_targets == ("FV/2/PL/2501", "FV/1/PL/2501", "FV/4/PL/2501")


def test_xlsx_header_aliases_and_extra_columns(settings):
    data = make_xlsx(
        [("x", 100, "FV/1/PL/2501"), ("y", 101.0, "FV/2/PL/2501")],
        header=("Kontrahent", "Numer Pelny", "Numer Dokumentu"),
    )

    mapping = load_spreadsheet(data, "export.XLSX", settings)

    assert mapping.mapping == {"100": "FV/1/PL/2501", "101": "FV/2/PL/2501"}


def test_csv_with_semicolons(settings):
    data = "NumerPelny;NumerDokumentu\nST/1;FV/1/PL/2501\nST/2;FV/2/PL/2501\n".encode("utf-8-sig")

    mapping = load_spreadsheet(data, "export.csv", settings)

    assert mapping.source_keys == ("ST/1", "ST/2")


def test_csv_in_cp1250(settings):
    data = "Numer.Pelny,NumerDokumentu,Kontrahent\nST/1,FV/1/PL/2501,Łódź\n".encode("cp1250")

    mapping = load_spreadsheet(data, "export.csv", settings)

    assert mapping.mapping == {"ST/1": "FV/1/PL/2501"}


def test_case_insensitive_header_match(settings):
    mapping = rows_to_mapping([("numer.pelny", "NUMER"), ("ST/1", "FV/1/PL/2501")], settings)

    assert mapping.mapping == {"ST/1": "FV/1/PL/2501"}


def test_missing_columns(settings):
    with pytest.raises(SpreadsheetError, match="no source key"):
        load_spreadsheet(make_xlsx([("a", "b")], header=("Foo", "Bar")), "export.xlsx", settings)


def test_empty_sheet(settings):
    with pytest.raises(SpreadsheetError, match="empty"):
        rows_to_mapping([], settings)


def test_corrupt_xlsx(settings):
    with pytest.raises(SpreadsheetError, match="Could not read"):
        load_spreadsheet(b"not a zip at all", "export.xlsx", settings)


def _fake_xls_book(rows: list[list]) -> Mock:
    sheet = Mock(nrows=len(rows))
    sheet.row_values.side_effect = lambda i: rows[i]
    book = Mock()
    book.sheet_by_index.return_value = sheet
    return book


def test_legacy_xls_is_read_through_xlrd(settings, monkeypatch):
    book = _fake_xls_book(
        [["Numer.Pelny", "NumerDokumentu"], [1001.0, "FV/1/PL/2501"], ["ST/2", ""], ["ST/3", "FV/3/PL/2501"]]
    )
    open_workbook = Mock(return_value=book)
    monkeypatch.setattr(spreadsheet.xlrd, "open_workbook", open_workbook)

    mapping = load_spreadsheet(b"\xd0\xcf\x11\xe0", "Export.XLS", settings)

    assert mapping.mapping == {"1001": "FV/1/PL/2501", "ST/3": "FV/3/PL/2501"}
    open_workbook.assert_called_once_with(file_contents=b"\xd0\xcf\x11\xe0", on_demand=True)
    book.release_resources.assert_called_once()


def test_corrupt_xls(settings):
    with pytest.raises(SpreadsheetError, match="Could not read"):
        load_spreadsheet(b"not an ole2 file", "export.xls", settings)


def test_unsupported_format(settings):
    with pytest.raises(SpreadsheetError, match="Unsupported"):
        load_spreadsheet(b"", "export.ods", settings)
