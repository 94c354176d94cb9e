"""
Out-of-process text extraction used as the second extraction tier.

Each tool either returns text or raises ExternalToolUnavailable (missing binary, non-zero exit,
timeout). The extractor only sees that single outcome, so tools can be swapped or disabled
per deployment through the EXTERNAL_TOOL setting.
"""
from __future__ import annotations

import logging
import subprocess
import tempfile
import time
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from .errors import ExternalToolUnavailable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class ExternalTextTool(ABC):
    """Capability: turn PDF bytes into text within `timeout` seconds."""

    name = "external"

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self.timeout = timeout

    @abstractmethod
    def extract_text(self, data: bytes) -> str:
        """Return extracted text or raise ExternalToolUnavailable."""


class PdftotextTool(ExternalTextTool):
    """poppler's pdftotext, run on a temporary copy of the document."""

    name = "pdftotext"

    def __init__(self, binary: str = "pdftotext", timeout: float = DEFAULT_TIMEOUT):
        super().__init__(timeout)
        self.binary = binary

    def extract_text(self, data: bytes) -> str:
        with tempfile.TemporaryDirectory() as td:
            pdf_path = Path(td) / "document.pdf"
            pdf_path.write_bytes(data)
            try:
                proc = subprocess.run(
                    [self.binary, "-q", "-layout", str(pdf_path), "-"],
                    capture_output=True,
                    timeout=self.timeout,
                )
            except FileNotFoundError as e:
                raise ExternalToolUnavailable(f"'{self.binary}' not found") from e
            except subprocess.TimeoutExpired as e:
                raise ExternalToolUnavailable(f"'{self.binary}' timed out after {self.timeout:g}s") from e
            except OSError as e:
                raise ExternalToolUnavailable(f"failed to execute '{self.binary}': {e}") from e

        if proc.returncode != 0:
            err = (proc.stderr or b"").decode("utf-8", errors="replace").strip()
            raise ExternalToolUnavailable(
                f"'{self.binary}' exited with {proc.returncode}" + (f": {err[:200]}" if err else "")
            )
        return proc.stdout.decode("utf-8", errors="replace")


class OcrTool(ExternalTextTool):
    """pdf2image + pytesseract. Both call poppler/tesseract binaries out of process."""

    name = "ocr"

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, dpi: int = 200):
        super().__init__(timeout)
        self.dpi = dpi

    def extract_text(self, data: bytes) -> str:
        try:
            from pdf2image import convert_from_bytes
            import pytesseract
        except ImportError as e:
            raise ExternalToolUnavailable(f"OCR libraries not installed: {e}") from e

        deadline = time.monotonic() + self.timeout
        try:
            images = convert_from_bytes(data, dpi=self.dpi, timeout=self.timeout)
            texts = []
            for img in images:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise ExternalToolUnavailable(f"OCR timed out after {self.timeout:g}s")
                texts.append(pytesseract.image_to_string(img, timeout=remaining))
        except ExternalToolUnavailable:
            raise
        except Exception as e:
            # poppler/tesseract missing, unreadable PDF, or tesseract timeout (RuntimeError)
            raise ExternalToolUnavailable(f"OCR failed: {e}") from e
        return "\n\n".join(t.strip() for t in texts if t and t.strip())


def build_external_tool(kind: str, timeout: float = DEFAULT_TIMEOUT, binary: str = "pdftotext") -> Optional[ExternalTextTool]:
    """Tool for an EXTERNAL_TOOL setting value; None disables the tier."""
    kind = (kind or "none").strip().lower()
    if kind == "pdftotext":
        return PdftotextTool(binary=binary, timeout=timeout)
    if kind == "ocr":
        return OcrTool(timeout=timeout)
    if kind in ("none", "off", ""):
        return None
    logger.warning("Unknown EXTERNAL_TOOL %r, external extraction disabled", kind)
    return None
