"""
PDF Text Extraction for Budget Documents.

Reads the embedded text layer of a budget PDF page by page and concatenates
it into the single document string consumed by the segmenter.

Uses PyMuPDF (fitz).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Optional, Union

import fitz  # PyMuPDF

from .exceptions import PDFCorruptedError, PDFNotFoundError

logger = logging.getLogger(__name__)


def extract_pdf_text(
    pdf_path: Union[str, Path],
    progress_callback: Optional[Callable[[str], None]] = None,
) -> str:
    """
    Extract the text of every page, joined with newlines.

    Args:
        pdf_path: Path to the PDF file
        progress_callback: Optional callback(message)

    Returns:
        Page-concatenated text, trimmed

    Raises:
        PDFNotFoundError: If file doesn't exist
        PDFCorruptedError: If file can't be opened
    """
    path = Path(pdf_path)

    if not path.exists():
        raise PDFNotFoundError(str(path))

    try:
        doc = fitz.open(path)
    except RuntimeError as e:
        raise PDFCorruptedError(str(path), e) from e

    with doc:
        total_pages = len(doc)
        logger.info(f"Extracting text from {path.name}: {total_pages} pages")
        if progress_callback:
            progress_callback(f"Extracting text from {total_pages} pages...")

        pages: list[str] = []
        for page_number, page in enumerate(doc, start=1):
            if progress_callback:
                progress_callback(f"Processing page {page_number} of {total_pages}...")
            pages.append(page.get_text("text"))

    text = "\n".join(pages).strip()
    if not text:
        logger.warning(f"No text layer found in {path.name}")
    return text
