"""Plain-text extraction from uploaded client documents.

PDFs go through **pdfplumber** page by page; text and CSV uploads are
decoded directly. Images carry no extractable text here and classify on
their filename alone.
"""

import io
import logging

import pdfplumber

logger = logging.getLogger(__name__)

__all__ = ["extract_pdf_text", "extract_text"]

TEXT_CONTENT_TYPES = {"text/plain", "text/csv"}


def extract_pdf_text(pdf_bytes: bytes) -> str:
    """Full text of a PDF, one block per page."""
    pages: list[str] = []
    with pdfplumber.open(io.BytesIO(pdf_bytes)) as pdf:
        for page in pdf.pages:
            text = page.extract_text()
            if text:
                pages.append(text)
    return "\n".join(pages)


def extract_text(contents: bytes, content_type: str | None) -> str:
    """Best-effort text for classification; empty string when nothing is readable."""
    if content_type == "application/pdf":
        try:
            return extract_pdf_text(contents)
        except Exception as exc:
            logger.warning("pdfplumber text extraction failed: %s", exc)
            return ""
    if content_type in TEXT_CONTENT_TYPES:
        return contents.decode("utf-8", errors="replace")
    return ""
