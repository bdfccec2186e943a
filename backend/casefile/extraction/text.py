"""Plain-text extraction from uploaded documents.

Supports PDF files (via *pypdf*), Word ``.docx`` files (read straight from
the ``word/document.xml`` part of the zip container) and plain-text-like
formats.
"""

from __future__ import annotations

import html
import io
import logging
import re
import zipfile
from pathlib import Path

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from casefile.errors import DocumentReadError, UnsupportedFileTypeError

logger = logging.getLogger(__name__)

# Supported file extensions grouped by processing strategy.
_PDF_EXTENSIONS: set[str] = {".pdf"}
_DOCX_EXTENSIONS: set[str] = {".docx"}
_TEXT_EXTENSIONS: set[str] = {".txt", ".md", ".csv"}

ACCEPTED_EXTENSIONS: tuple[str, ...] = ("pdf", "docx", "txt", "csv", "md")
UNSUPPORTED_MESSAGE = "Unsupported file type. Accepted: PDF, DOCX, TXT, CSV, MD"


def get_file_extension(filename: str) -> str:
    """Return the lower-cased extension of *filename*, with its dot."""
    return Path(filename).suffix.lower()


def is_accepted_file(filename: str) -> bool:
    return get_file_extension(filename).lstrip(".") in ACCEPTED_EXTENSIONS


def _extract_pdf_text(data: bytes, filename: str) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        pages: list[str] = []
        for i, page in enumerate(reader.pages):
            text = page.extract_text()
            if text:
                pages.append(f"--- Page {i + 1} ---\n{text}")
    except (PyPdfError, ValueError, KeyError, TypeError) as exc:
        raise DocumentReadError(f"Could not read PDF '{filename}': {exc}") from exc
    if not pages:
        raise DocumentReadError(f"No extractable text found in PDF '{filename}'.")
    return "\n\n".join(pages)


def _extract_docx_text(data: bytes, filename: str) -> str:
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            xml = archive.read("word/document.xml").decode("utf-8", errors="ignore")
    except (zipfile.BadZipFile, KeyError) as exc:
        raise DocumentReadError(f"Could not read DOCX '{filename}': {exc}") from exc
    xml = re.sub(r"</w:p>", "\n", xml)
    text = html.unescape(re.sub(r"<[^>]+>", "", xml))
    return re.sub(r"\n{3,}", "\n\n", text).strip()


def _read_text(data: bytes, filename: str) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise DocumentReadError(
            f"Unsupported encoding in '{filename}': expected UTF-8 text."
        ) from exc


def extract_text(filename: str, data: bytes) -> str:
    """Turn the raw bytes of an uploaded document into plain text.

    Raises:
        UnsupportedFileTypeError: the extension is not one of
            :data:`ACCEPTED_EXTENSIONS`.
        DocumentReadError: the file is corrupt, empty or not UTF-8 text.
    """
    ext = get_file_extension(filename)

    if ext in _PDF_EXTENSIONS:
        text = _extract_pdf_text(data, filename)
    elif ext in _DOCX_EXTENSIONS:
        text = _extract_docx_text(data, filename)
    elif ext in _TEXT_EXTENSIONS:
        text = _read_text(data, filename)
    else:
        raise UnsupportedFileTypeError(UNSUPPORTED_MESSAGE)

    if not text.strip():
        raise DocumentReadError(f"'{filename}' contains no text.")
    logger.debug("Extracted %d characters from %s", len(text), filename)
    return text
