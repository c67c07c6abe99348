"""Load statement text from PDFs (via pdfplumber) or plain-text extracts."""

from __future__ import annotations

import logging
from pathlib import Path

import pdfplumber

from fin_ingest.shared.exceptions import ExtractionError

_log = logging.getLogger(__name__)


def extract_pdf_text(path: str | Path) -> str:
    """Return the page text of a PDF, pages separated by newlines."""
    pdf_path = Path(path)
    chunks: list[str] = []
    try:
        with pdfplumber.open(pdf_path) as pdf:
            for page in pdf.pages:
                chunks.append(page.extract_text() or "")
    except Exception as exc:  # pdfplumber surfaces several parser exception types
        raise ExtractionError(f"Failed to read PDF {pdf_path}: {exc}") from exc
    _log.debug("Extracted %d page(s) of text from %s", len(chunks), pdf_path)
    return "\n".join(chunks)


def load_statement_text(path: str | Path) -> str:
    """Read statement text from ``path``; ``.pdf`` files go through pdfplumber."""
    source = Path(path)
    if not source.exists():
        raise ExtractionError(f"Statement file does not exist: {source}")
    if source.suffix.lower() == ".pdf":
        return extract_pdf_text(source)
    try:
        return source.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ExtractionError(f"{source} is not UTF-8 text; extract it first or pass the PDF") from exc
