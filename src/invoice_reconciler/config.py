"""
Runtime settings. Read from the environment (and a local .env) once, then shared.
"""
from __future__ import annotations

import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

MB = 1024 * 1024


def _split_aliases(raw: str) -> list[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


class Settings(BaseModel):
    """Settings for a reconciliation run."""

    # Identifier pattern (text layer vs raw byte stream)
    text_pattern: str = Field(default_factory=lambda: os.getenv("INVOICE_TEXT_PATTERN", r"FV/\d+/PL/\d{4}"))
    raw_pattern: str = Field(default_factory=lambda: os.getenv("INVOICE_RAW_PATTERN", r"FV/\d{1,4}/PL/\d{4}"))
    pattern_version: str = Field(default_factory=lambda: os.getenv("INVOICE_PATTERN_VERSION", "fv-pl-1"))

    # External extraction tier: 'pdftotext', 'ocr' or 'none'
    external_tool: str = Field(default_factory=lambda: os.getenv("EXTERNAL_TOOL", "pdftotext").lower())
    pdftotext_binary: str = Field(default_factory=lambda: os.getenv("PDFTOTEXT_BINARY", "pdftotext"))
    external_tool_timeout: float = Field(default_factory=lambda: float(os.getenv("EXTERNAL_TOOL_TIMEOUT", "10")))

    # Whole-run deadline and extraction parallelism
    processing_timeout: float = Field(default_factory=lambda: float(os.getenv("PROCESSING_TIMEOUT", "50")))
    max_workers: int = Field(default_factory=lambda: int(os.getenv("MAX_WORKERS", "1")))

    # Upload limits (bytes)
    max_spreadsheet_bytes: int = Field(default_factory=lambda: int(os.getenv("MAX_SPREADSHEET_MB", "10")) * MB)
    max_pdf_bytes: int = Field(default_factory=lambda: int(os.getenv("MAX_PDF_MB", "15")) * MB)
    max_bundle_bytes: int = Field(default_factory=lambda: int(os.getenv("MAX_BUNDLE_MB", "20")) * MB)

    preview_limit: int = Field(default_factory=lambda: int(os.getenv("PREVIEW_LIMIT", "10")))

    # Spreadsheet header aliases, tried in order
    source_key_columns: list[str] = Field(
        default_factory=lambda: _split_aliases(
            os.getenv("SOURCE_KEY_COLUMNS", "Numer.Pelny,Numer Pelny,NumerPelny")
        )
    )
    target_columns: list[str] = Field(
        default_factory=lambda: _split_aliases(
            os.getenv("TARGET_COLUMNS", "NumerDokumentu,Numer Dokumentu,numer")
        )
    )

    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO").upper())
    log_file: Optional[str] = Field(default_factory=lambda: os.getenv("LOG_FILE") or None)


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return shared settings, built from the environment on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
