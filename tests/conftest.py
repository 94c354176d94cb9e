"""Pytest configuration and shared fixtures."""

import io
import zipfile
from typing import Callable, Optional

import pytest
from openpyxl import Workbook

from invoice_reconciler.config import Settings
from invoice_reconciler.extract import IdentifierExtractor


def fake_pdf(*identifiers: str) -> bytes:
    """Bytes that no PDF parser accepts but that carry identifiers as plain ASCII."""
    body = b"".join(b"BT (" + i.encode("ascii") + b") Tj ET\n" for i in identifiers)
    return b"%PDF-1.4\n%\xe2\xe3\xcf\xd3\nstream\n\x00\x9f\x8a" + body + b"endstream\n%%EOF"


def text_pdf(*lines: str) -> bytes:
    """Minimal one-page PDF with a real text layer (Helvetica, uncompressed content stream)."""
    content = b"BT /F1 12 Tf 72 720 Td 14 TL\n"
    content += b"".join(b"(" + line.encode("ascii") + b") Tj T*\n" for line in lines)
    content += b"ET"
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Resources << /Font << /F1 4 0 R >> >> /Contents 5 0 R >>",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
        b"<< /Length " + str(len(content)).encode() + b" >>\nstream\n" + content + b"\nendstream",
    ]
    out = b"%PDF-1.4\n"
    offsets = []
    for num, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{num} 0 obj\n".encode() + body + b"\nendobj\n"
    xref = len(out)
    out += f"xref\n0 {len(objects) + 1}\n".encode() + b"0000000000 65535 f \n"
    out += b"".join(f"{off:010d} 00000 n \n".encode() for off in offsets)
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref}\n%%EOF\n".encode()
    return out


def make_xlsx(rows: list[tuple], header: tuple = ("Numer.Pelny", "NumerDokumentu")) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.append(list(header))
    for row in rows:
        ws.append(list(row))
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def make_zip(files: dict[str, bytes]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for name, data in files.items():
            zf.writestr(name, data)
    return buf.getvalue()


@pytest.fixture
def settings() -> Settings:
    """Settings with no external tool and a short deadline."""
    return Settings(
        external_tool="none",
        processing_timeout=10.0,
        max_workers=1,
        preview_limit=10,
        source_key_columns=["Numer.Pelny", "Numer Pelny", "NumerPelny"],
        target_columns=["NumerDokumentu", "Numer Dokumentu", "numer"],
        max_spreadsheet_bytes=10 * 1024 * 1024,
        max_pdf_bytes=15 * 1024 * 1024,
        max_bundle_bytes=20 * 1024 * 1024,
    )


@pytest.fixture
def text_extractor() -> Callable[[dict[bytes, str]], IdentifierExtractor]:
    """Extractor whose text layer returns canned text per document body."""

    def _build(texts: dict[bytes, str], external_tool: Optional[object] = None) -> IdentifierExtractor:
        return IdentifierExtractor(
            external_tool=external_tool,
            text_decoder=lambda data: texts.get(data, ""),
        )

    return _build
