"""
Invoice identifier extraction from PDF bytes with a tiered fallback:

1. text layer via pdfplumber
2. external tool (pdftotext / OCR), optional, with its own timeout
3. raw byte scan: bytes decoded one char per byte, pattern applied directly

A tier runs only if the previous one produced no usable text. Extraction never raises;
an unreadable document yields an empty record and a warning in the log.

The raw scan trades precision for recall: identifiers inside compressed streams are missed,
and coincidental byte runs can match. Nothing corroborates those matches.
"""
from __future__ import annotations

import io
import logging
import re
from typing import Callable, Optional

import pdfplumber

from .errors import ExternalToolUnavailable
from .external_tools import ExternalTextTool
from .models import ExtractionMethod, ExtractionRecord
from .patterns import IdentifierPattern, find_identifiers

logger = logging.getLogger(__name__)


def _has_usable_text(text: str | None) -> bool:
    return bool(text and text.strip())


def _extract_with_pdfplumber(data: bytes) -> str:
    """Text of all pages, joined by blank lines."""
    text_parts: list[str] = []
    with pdfplumber.open(io.BytesIO(data)) as pdf:
        for page in pdf.pages:
            t = page.extract_text()
            if t:
                text_parts.append(t)
    return "\n\n".join(text_parts)


def _decode_raw(data: bytes) -> str:
    """Lossy single-byte decode; keeps ASCII runs embedded in binary streams intact."""
    return data.decode("latin-1")


class IdentifierExtractor:
    """Pulls identifiers out of one document. Stateless apart from its configuration."""

    def __init__(
        self,
        pattern: Optional[IdentifierPattern] = None,
        external_tool: Optional[ExternalTextTool] = None,
        text_decoder: Callable[[bytes], str] = _extract_with_pdfplumber,
        raw_decoder: Callable[[bytes], str] = _decode_raw,
    ):
        self.pattern = pattern or IdentifierPattern()
        self.external_tool = external_tool
        self.text_decoder = text_decoder
        self.raw_decoder = raw_decoder

    def extract(self, data: bytes) -> set[str]:
        return set(self.extract_record("<bytes>", data).identifiers)

    def extract_record(self, name: str, data: bytes) -> ExtractionRecord:
        try:
            method, text, regex = self._first_usable_text(name, data)
            identifiers = find_identifiers(text, regex)
        except Exception as e:
            logger.warning("Extraction failed for %s: %s", name, e)
            return ExtractionRecord(document_name=name, error=str(e))

        if not identifiers:
            logger.warning("No invoice identifiers found in %s", name)
            if method == ExtractionMethod.RAW_SCAN:
                method = ExtractionMethod.NONE
        else:
            logger.debug("%s: %d identifier(s) via %s", name, len(identifiers), method.value)
        return ExtractionRecord(document_name=name, identifiers=tuple(identifiers), method=method)

    def _first_usable_text(self, name: str, data: bytes) -> tuple[ExtractionMethod, str, re.Pattern]:
        try:
            text = self.text_decoder(data)
        except Exception as e:
            logger.warning("Text layer unreadable for %s: %s", name, e)
            text = ""
        if _has_usable_text(text):
            return ExtractionMethod.TEXT_LAYER, text, self.pattern.text

        if self.external_tool is not None:
            logger.debug("%s: empty text layer, trying %s", name, self.external_tool.name)
            try:
                text = self.external_tool.extract_text(data)
            except ExternalToolUnavailable as e:
                logger.info("%s unavailable for %s: %s", self.external_tool.name, name, e)
                text = ""
            if _has_usable_text(text):
                return ExtractionMethod.EXTERNAL_TOOL, text, self.pattern.text

        logger.debug("%s: falling back to raw byte scan", name)
        return ExtractionMethod.RAW_SCAN, self.raw_decoder(data), self.pattern.raw


def extract_identifiers(data: bytes, extractor: Optional[IdentifierExtractor] = None) -> set[str]:
    """Identifiers in a PDF given as bytes. Uses the text layer and raw scan only by default."""
    return (extractor or IdentifierExtractor()).extract(data)
