"""Utilities to load plain text from uploaded contract files."""

from __future__ import annotations

import io
import logging
from pathlib import Path

from docx import Document
from pypdf import PdfReader

logger = logging.getLogger(__name__)

_TEXT_EXTENSIONS = {".txt", ".md", ".markdown"}
SUPPORTED_EXTENSIONS = sorted(_TEXT_EXTENSIONS | {".pdf", ".docx"})


def load_text_from_bytes(data: bytes, filename: str) -> str:
    """Extract text content from raw file bytes.

    Args:
        data: Raw file content.
        filename: Original file name used for extension detection.

    Returns:
        Extracted text stripped of leading/trailing whitespace.

    Raises:
        ValueError: If the file type is unsupported or text cannot be extracted.
    """

    if not data:
        raise ValueError("The uploaded file is empty.")

    suffix = Path(filename or "uploaded").suffix.lower()

    if suffix in _TEXT_EXTENSIONS:
        return _decode_text_file(data)

    if suffix == ".pdf":
        return _extract_pdf_text(data)

    if suffix == ".docx":
        return _extract_docx_text(data)

    raise ValueError(f"Unsupported file type: {suffix or 'unknown'}")


def _decode_text_file(data: bytes) -> str:
    text = data.decode("utf-8", errors="ignore").strip()
    if not text:
        raise ValueError("No text could be read from the text file.")
    return text


def _extract_pdf_text(data: bytes) -> str:
    reader = PdfReader(io.BytesIO(data))
    extracted_parts = []
    for page in reader.pages:
        page_text = page.extract_text() or ""
        if page_text:
            extracted_parts.append(page_text.strip())
    combined = "\n\n".join(part for part in extracted_parts if part)
    combined = combined.strip()
    if not combined:
        raise ValueError("No text could be extracted from the PDF.")
    return combined


def _extract_docx_text(data: bytes) -> str:
    try:
        document = Document(io.BytesIO(data))
    except Exception as exc:  # python-docx raises zipfile/KeyError variants
        logger.exception("Failed to open DOCX upload")
        raise ValueError("The Word document could not be opened.") from exc

    parts = [paragraph.text.strip() for paragraph in document.paragraphs]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
            if cells:
                parts.append(" | ".join(cells))

    combined = "\n".join(part for part in parts if part).strip()
    if not combined:
        raise ValueError("No text could be extracted from the Word document.")
    return combined
