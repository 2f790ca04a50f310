"""Attachment parsing: files read to bounded text for chat prompts.

Responsibilities:
    - PDF text extraction with pypdf
    - UTF-8 decoding for everything else
    - Shared truncation helper for attachments and retrieval context
"""

from ragrelay.parsing.attachments import read_attachment
from ragrelay.parsing.pdf_parser import PDFContent, PDFParseError, parse_pdf
from ragrelay.parsing.text import (
    MAX_ATTACHMENT_CHARS,
    MAX_CONTEXT_CHARS,
    TRUNCATION_MARKER,
    clamp_text,
)

__all__ = [
    "MAX_ATTACHMENT_CHARS",
    "MAX_CONTEXT_CHARS",
    "TRUNCATION_MARKER",
    "PDFContent",
    "PDFParseError",
    "clamp_text",
    "parse_pdf",
    "read_attachment",
]
