"""
Utility Functions Module

Common helper functions used across the bulk outreach application.
"""

import io
import logging
from typing import List, Optional, Sequence, TypeVar
from zipfile import BadZipFile

from docx import Document
from docx.opc.exceptions import PackageNotFoundError
from pypdf import PdfReader
from pypdf.errors import PyPdfError

logger = logging.getLogger(__name__)

T = TypeVar("T")

ATTACHMENT_EXTRACT_MAX_CHARS = 5000
ATTACHMENT_EXTRACT_MIN_CHARS = 50
PLAIN_TEXT_EXTENSIONS = (".txt", ".md", ".csv")


def create_batches(items: Sequence[T], batch_size: int) -> List[List[T]]:
    """
    Split a sequence into consecutive batches of specified size

    Args:
        items: Items to split into batches
        batch_size: Number of items per batch

    Returns:
        List of batches, the last one possibly shorter
    """
    if batch_size <= 0:
        raise ValueError(f"batch_size must be positive, got {batch_size}")
    return [list(items[i:i + batch_size]) for i in range(0, len(items), batch_size)]


def calculate_file_size_mb(content: str) -> float:
    """
    Calculate file size in MB from string content

    Args:
        content: String content to measure

    Returns:
        File size in megabytes
    """
    size_bytes = len(content.encode('utf-8'))
    return round(size_bytes / (1024 * 1024), 2)


def truncate(text: Optional[str], max_chars: int) -> str:
    return (text or "")[:max_chars]


def _clip_extract(text: str) -> str:
    text = text.strip()
    return text[:ATTACHMENT_EXTRACT_MAX_CHARS] if len(text) > ATTACHMENT_EXTRACT_MIN_CHARS else ""


def _extract_pdf_text(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError, KeyError) as e:
        logger.warning(f"Could not read PDF attachment: {e}")
        return ""
    return _clip_extract("\n\n".join(page.strip() for page in pages if page.strip()))


def _extract_docx_text(data: bytes) -> str:
    try:
        document = Document(io.BytesIO(data))
    except (PackageNotFoundError, BadZipFile, ValueError, KeyError) as e:
        logger.warning(f"Could not read Word attachment: {e}")
        return ""
    paragraphs = [paragraph.text.strip() for paragraph in document.paragraphs]
    return _clip_extract("\n".join(text for text in paragraphs if text))


def extract_attachment_text(filename: Optional[str], data: bytes) -> str:
    """
    Best-effort text extraction from an uploaded attachment

    Plain text formats are decoded directly. PDF pages are read with pypdf and
    Word documents with python-docx; either returns an empty string when the
    file cannot be parsed or holds too little text.

    Args:
        filename: Original upload filename, used for the extension
        data: Raw file bytes

    Returns:
        Extracted text, possibly empty
    """
    name = (filename or "").lower()
    if name.endswith(PLAIN_TEXT_EXTENSIONS):
        return data.decode("utf-8", errors="replace")
    if name.endswith(".pdf"):
        return _extract_pdf_text(data)
    if name.endswith((".doc", ".docx")):
        return _extract_docx_text(data)
    return data.decode("utf-8", errors="replace")
