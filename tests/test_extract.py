"""Tests for the tiered identifier extractor."""

import logging
from unittest.mock import Mock

import pytest

from conftest import fake_pdf, text_pdf
from invoice_reconciler.errors import ExternalToolUnavailable
from invoice_reconciler.external_tools import ExternalTextTool
from invoice_reconciler.extract import IdentifierExtractor, extract_identifiers
from invoice_reconciler.models import ExtractionMethod
from invoice_reconciler.patterns import IdentifierPattern


@pytest.fixture
def tool() -> Mock:
    mock = Mock(spec=ExternalTextTool)
    mock.name = "mock-tool"
    mock.extract_text = Mock(return_value="")
    return mock


def _instrumented(text_layer, tool, raw="") -> tuple[IdentifierExtractor, Mock, Mock]:
    text_decoder = Mock(side_effect=text_layer) if isinstance(text_layer, Exception) else Mock(return_value=text_layer)
    raw_decoder = Mock(return_value=raw)
    extractor = IdentifierExtractor(external_tool=tool, text_decoder=text_decoder, raw_decoder=raw_decoder)
    return extractor, text_decoder, raw_decoder


class TestFallbackOrder:
    def test_text_layer_hit_skips_later_tiers(self, tool):
        extractor, text_decoder, raw_decoder = _instrumented("Invoice FV/1/PL/2501 total", tool)

        record = extractor.extract_record("a.pdf", b"%PDF")

        assert record.identifiers == ("FV/1/PL/2501",)
        assert record.method == ExtractionMethod.TEXT_LAYER
        assert text_decoder.call_count == 1
        tool.extract_text.assert_not_called()
        raw_decoder.assert_not_called()

    def test_text_without_identifiers_still_stops_the_chain(self, tool):
        extractor, _, raw_decoder = _instrumented("Credit note, no invoice numbers here", tool)

        assert extractor.extract(b"%PDF") == set()
        tool.extract_text.assert_not_called()
        raw_decoder.assert_not_called()

    def test_empty_text_layer_uses_external_tool(self, tool):
        tool.extract_text.return_value = "FV/7/PL/2501\nFV/8/PL/2501"
        extractor, _, raw_decoder = _instrumented("   \n", tool)

        record = extractor.extract_record("scan.pdf", b"%PDF")

        assert set(record.identifiers) == {"FV/7/PL/2501", "FV/8/PL/2501"}
        assert record.method == ExtractionMethod.EXTERNAL_TOOL
        tool.extract_text.assert_called_once_with(b"%PDF")
        raw_decoder.assert_not_called()

    def test_unavailable_tool_falls_through_to_raw_scan(self, tool):
        tool.extract_text.side_effect = ExternalToolUnavailable("'pdftotext' not found")
        extractor, _, raw_decoder = _instrumented("", tool, raw="xx FV/3/PL/2501 yy")

        record = extractor.extract_record("enc.pdf", b"%PDF")

        assert record.identifiers == ("FV/3/PL/2501",)
        assert record.method == ExtractionMethod.RAW_SCAN
        assert raw_decoder.call_count == 1

    def test_text_layer_exception_is_a_soft_failure(self, tool):
        extractor, _, _ = _instrumented(ValueError("broken xref"), tool, raw="FV/4/PL/2501")

        assert extractor.extract(b"%PDF") == {"FV/4/PL/2501"}
        tool.extract_text.assert_called_once()

    def test_no_tool_configured_goes_straight_to_raw_scan(self):
        extractor, _, raw_decoder = _instrumented("", None, raw="FV/5/PL/2501")

        assert extractor.extract(b"%PDF") == {"FV/5/PL/2501"}
        raw_decoder.assert_called_once()


class TestSoftFailures:
    def test_nothing_found_returns_empty_record_and_warns(self, tool, caplog):
        extractor, _, _ = _instrumented("", tool, raw="no identifiers")

        with caplog.at_level(logging.WARNING, logger="invoice_reconciler"):
            record = extractor.extract_record("empty.pdf", b"")

        assert record.identifiers == ()
        assert record.method == ExtractionMethod.NONE
        assert record.error is None
        assert "empty.pdf" in caplog.text

    def test_unexpected_error_never_escapes(self):
        extractor = IdentifierExtractor(
            text_decoder=Mock(return_value=""),
            raw_decoder=Mock(side_effect=RuntimeError("decoder crashed")),
        )

        record = extractor.extract_record("huge.pdf", b"%PDF")

        assert record.identifiers == ()
        assert "decoder crashed" in record.error


class TestRealDecoders:
    def test_text_layer_read_by_pdfplumber(self, tool):
        data = text_pdf("Faktura VAT", "Numer: FV/7/PL/2501")

        record = IdentifierExtractor(external_tool=tool).extract_record("invoice.pdf", data)

        assert record.identifiers == ("FV/7/PL/2501",)
        assert record.method == ExtractionMethod.TEXT_LAYER
        assert record.error is None
        tool.extract_text.assert_not_called()

    def test_unparseable_pdf_recovers_identifiers_from_raw_bytes(self):
        data = fake_pdf("FV/12/PL/2501", "FV/13/PL/2501", "FV/12/PL/2501")

        record = IdentifierExtractor().extract_record("broken.pdf", data)

        assert record.identifiers == ("FV/12/PL/2501", "FV/13/PL/2501")
        assert record.method == ExtractionMethod.RAW_SCAN

    def test_module_level_helper(self):
        assert extract_identifiers(fake_pdf("FV/1/PL/2024")) == {"FV/1/PL/2024"}

    def test_custom_pattern(self):
        pattern = IdentifierPattern(text_regex=r"INV-\d{4}", raw_regex=r"INV-\d{4}", version="inv-1")
        extractor = IdentifierExtractor(pattern=pattern)

        assert extractor.extract(b"garbage INV-0042 FV/1/PL/2501") == {"INV-0042"}
