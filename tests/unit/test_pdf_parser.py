"""Unit tests for PDF parser module."""

import io

import pytest
import pytest_check as check
from pypdf import PdfWriter

from ragrelay.parsing.pdf_parser import MAX_FILE_SIZE, PDFParseError, parse_pdf


def blank_pdf(pages: int = 1) -> bytes:
    """Build an in-memory PDF of blank pages."""
    writer = PdfWriter()
    for _ in range(pages):
        writer.add_blank_page(width=612, height=792)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class TestParsePdfValid:
    """Tests for successful PDF parsing."""

    def test_blank_pages_parse_with_page_count(self) -> None:
        """PDF with empty pages parses without error."""
        result = parse_pdf(blank_pdf(3))

        check.equal(result.pages, 3)
        check.equal(result.text.strip(), "")
        check.equal(result.skipped_pages, [])


class TestParsePdfRejection:
    """Tests for PDF validation and rejection."""

    def test_rejects_empty_bytes(self) -> None:
        """Empty bytes raises PDFParseError."""
        with pytest.raises(PDFParseError, match="Empty file"):
            parse_pdf(b"")

    def test_rejects_non_pdf_file(self) -> None:
        """Non-PDF file raises PDFParseError."""
        with pytest.raises(PDFParseError, match="Invalid PDF"):
            parse_pdf(b"This is not a PDF file at all.")

    def test_rejects_oversized_file(self) -> None:
        """File over 10MB raises PDFParseError."""
        oversized = b"%PDF-1.4" + b"\x00" * (MAX_FILE_SIZE + 1)

        with pytest.raises(PDFParseError, match="exceeds maximum"):
            parse_pdf(oversized)

    def test_rejects_truncated_pdf(self) -> None:
        """Truncated PDF raises PDFParseError."""
        with pytest.raises(PDFParseError, match="Corrupt|Failed|no pages"):
            parse_pdf(b"%PDF-1.4\n1 0 obj\n<<")
