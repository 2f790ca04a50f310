"""Attachment reading: turn an uploaded file into bounded prompt text."""

import logging

from ragrelay.models.schemas import Attachment
from ragrelay.parsing.pdf_parser import PDF_MAGIC_BYTES, parse_pdf
from ragrelay.parsing.text import MAX_ATTACHMENT_CHARS, clamp_text

logger = logging.getLogger(__name__)


def is_pdf(content: bytes) -> bool:
    return content.lstrip()[:10].startswith(PDF_MAGIC_BYTES)


def read_attachment(name: str, content: bytes) -> Attachment:
    """Read an uploaded file to text.

    PDFs are extracted page by page; anything else is decoded as UTF-8 with
    undecodable bytes replaced.

    Args:
        name: Original file name.
        content: Raw file bytes.

    Returns:
        Attachment whose text is capped at 8000 characters.

    Raises:
        PDFParseError: If the file looks like a PDF but cannot be parsed.
    """
    if is_pdf(content):
        text = parse_pdf(content).text
    else:
        text = content.decode("utf-8", errors="replace")

    attachment = Attachment(name=name, text=clamp_text(text, MAX_ATTACHMENT_CHARS))
    if len(text) > MAX_ATTACHMENT_CHARS:
        logger.info(f"Attachment {name} truncated from {len(text)} characters")
    return attachment
