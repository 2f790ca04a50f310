"""PDF text extraction for chat attachments using pypdf."""

import io
import logging

from pydantic import BaseModel, Field
from pypdf import PdfReader
from pypdf.errors import PdfReadError

logger = logging.getLogger(__name__)

# Constants
MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
PDF_MAGIC_BYTES = b"%PDF"


class PDFContent(BaseModel):
    """Text extracted from a PDF attachment.

    Attributes:
        text: Page texts joined by blank lines.
        pages: Total number of pages in the document.
        skipped_pages: Pages whose text could not be extracted.
    """

    text: str
    pages: int = Field(ge=0)
    skipped_pages: list[int] = Field(default_factory=list)


class PDFParseError(Exception):
    """Raised when a PDF attachment cannot be read."""

    pass


def _validate_pdf_bytes(file_content: bytes) -> None:
    """Reject empty, oversized or non-PDF content before handing it to pypdf.

    Raises:
        PDFParseError: If validation fails.
    """
    if not file_content:
        raise PDFParseError("Empty file provided")

    if len(file_content) > MAX_FILE_SIZE:
        size_mb = len(file_content) / (1024 * 1024)
        raise PDFParseError(f"File size ({size_mb:.1f}MB) exceeds maximum allowed (10MB)")

    if not file_content.lstrip()[:10].startswith(PDF_MAGIC_BYTES):
        raise PDFParseError("Invalid PDF: file does not start with PDF header")


def parse_pdf(file_content: bytes) -> PDFContent:
    """Extract the text of every page of a PDF.

    Args:
        file_content: Raw bytes of the PDF file.

    Returns:
        PDFContent with extracted text and page count.

    Raises:
        PDFParseError: If the file is invalid, too large, empty, or corrupt.
    """
    _validate_pdf_bytes(file_content)

    try:
        reader = PdfReader(io.BytesIO(file_content))
        pages = len(reader.pages)
    except PdfReadError as e:
        raise PDFParseError(f"Corrupt or invalid PDF: {e}") from e
    except Exception as e:
        raise PDFParseError(f"Failed to read PDF: {e}") from e

    if pages == 0:
        raise PDFParseError("PDF contains no pages")

    text_parts: list[str] = []
    skipped: list[int] = []
    for i, page in enumerate(reader.pages):
        try:
            page_text = page.extract_text()
        except Exception as e:
            logger.warning(f"Failed to extract text from page {i + 1}: {e}")
            skipped.append(i + 1)
            continue
        if page_text:
            text_parts.append(page_text)

    text = "\n\n".join(text_parts)
    if not text.strip():
        logger.warning("PDF contains no extractable text (may be scanned/image-based)")

    return PDFContent(text=text, pages=pages, skipped_pages=skipped)
