"""
Ways documents arrive: a PDF file or folder on disk, in-memory uploads, or a ZIP bundle
holding the spreadsheet export next to the PDFs. Size limits are enforced here.
"""
from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterable, Optional

from .config import Settings, get_settings
from .errors import BundleError, NoDocumentsError, UploadTooLargeError
from .models import Document
from .spreadsheet import SPREADSHEET_SUFFIXES

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Bundle:
    """Contents of a ZIP upload."""
    spreadsheet_name: str
    spreadsheet_data: bytes
    documents: list[Document]


def _is_pdf(name: str) -> bool:
    return name.lower().endswith(".pdf")


def _check_size(name: str, size: int, limit: int) -> None:
    if size > limit:
        raise UploadTooLargeError(name, size, limit)


def documents_from_path(path: str | Path) -> list[Document]:
    """A single .pdf file, or every .pdf directly inside a folder (sorted by name)."""
    path = Path(path)
    if path.is_file() and _is_pdf(path.name):
        return [Document(name=path.name, data=path.read_bytes())]
    if not path.is_dir():
        raise NoDocumentsError(f"Path must be a folder or a PDF file: {path}")
    pdfs = sorted(p for p in path.iterdir() if p.is_file() and _is_pdf(p.name))
    logger.info("Found %d PDF file(s) in %s", len(pdfs), path)
    return [Document(name=p.name, data=p.read_bytes()) for p in pdfs]


def documents_from_uploads(
    uploads: Iterable[tuple[str, bytes]], settings: Optional[Settings] = None
) -> list[Document]:
    """(name, bytes) pairs -> documents, rejecting oversized files."""
    settings = settings or get_settings()
    docs = []
    for name, data in uploads:
        _check_size(name, len(data), settings.max_pdf_bytes)
        docs.append(Document(name=name, data=data))
    return docs


def read_bundle(data: bytes, settings: Optional[Settings] = None) -> Bundle:
    """
    Split a ZIP upload into its spreadsheet and PDFs.
    Directory prefixes inside the archive are dropped from document names.
    """
    settings = settings or get_settings()
    _check_size("bundle.zip", len(data), settings.max_bundle_bytes)
    try:
        zf = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise BundleError(f"Bundle is not a valid ZIP archive: {e}") from e

    with zf:
        names = [info.filename for info in zf.infolist() if not info.is_dir()]
        sheet_name = next((n for n in names if n.lower().endswith(SPREADSHEET_SUFFIXES)), None)
        if sheet_name is None:
            raise BundleError("Bundle does not contain an XLSX/XLS/CSV spreadsheet")
        pdf_names = [n for n in names if _is_pdf(n)]
        if not pdf_names:
            raise NoDocumentsError("Bundle does not contain any PDF files")

        _check_size(sheet_name, zf.getinfo(sheet_name).file_size, settings.max_spreadsheet_bytes)
        for n in pdf_names:
            _check_size(n, zf.getinfo(n).file_size, settings.max_pdf_bytes)

        try:
            sheet_data = zf.read(sheet_name)
            documents = [Document(name=PurePosixPath(n).name, data=zf.read(n)) for n in pdf_names]
        except (zipfile.BadZipFile, OSError) as e:
            raise BundleError(f"Could not read bundle entry: {e}") from e

    logger.info("Bundle: spreadsheet %s, %d PDF file(s)", sheet_name, len(documents))
    return Bundle(
        spreadsheet_name=PurePosixPath(sheet_name).name,
        spreadsheet_data=sheet_data,
        documents=documents,
    )
