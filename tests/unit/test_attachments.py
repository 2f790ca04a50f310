"""Unit tests for reading attachments to text."""

import pytest
import pytest_check as check

from ragrelay.parsing import attachments
from ragrelay.parsing.attachments import is_pdf, read_attachment
from ragrelay.parsing.pdf_parser import PDFContent, PDFParseError
from ragrelay.parsing.text import TRUNCATION_MARKER, clamp_text


class TestClampText:
    """Tests for the shared truncation helper."""

    def test_exact_limit_is_untouched(self) -> None:
        assert clamp_text("a" * 10, 10) == "a" * 10

    def test_over_limit_gets_marker(self) -> None:
        assert clamp_text("a" * 11, 10) == "a" * 10 + TRUNCATION_MARKER

    def test_none_becomes_empty(self) -> None:
        assert clamp_text(None, 10) == ""


class TestReadAttachment:
    """Tests for turning uploaded bytes into an Attachment."""

    def test_text_file_is_decoded(self) -> None:
        attachment = read_attachment("notes.md", "# Notes\nGrüße".encode())

        check.equal(attachment.name, "notes.md")
        check.equal(attachment.text, "# Notes\nGrüße")

    def test_undecodable_bytes_are_replaced(self) -> None:
        attachment = read_attachment("blob.bin", b"ok \xff\xfe end")

        check.is_true(attachment.text.startswith("ok "))
        check.is_in("�", attachment.text)

    def test_long_text_is_clamped(self) -> None:
        """9000 characters keep the first 8000 followed by the marker."""
        text = "".join(chr(ord("a") + i % 26) for i in range(9000))

        attachment = read_attachment("long.txt", text.encode())

        check.equal(attachment.text, text[:8000] + TRUNCATION_MARKER)

    def test_pdf_is_routed_to_parser(self, monkeypatch: pytest.MonkeyPatch) -> None:
        seen: list[bytes] = []

        def fake_parse(content: bytes) -> PDFContent:
            seen.append(content)
            return PDFContent(text="page one", pages=1)

        monkeypatch.setattr(attachments, "parse_pdf", fake_parse)

        attachment = read_attachment("doc.pdf", b"%PDF-1.7 ...")

        check.equal(attachment.text, "page one")
        check.equal(seen, [b"%PDF-1.7 ..."])

    def test_corrupt_pdf_raises(self) -> None:
        with pytest.raises(PDFParseError):
            read_attachment("bad.pdf", b"%PDF-1.4\n1 0 obj\n<<")

    def test_pdf_detection(self) -> None:
        check.is_true(is_pdf(b"%PDF-1.4"))
        check.is_true(is_pdf(b"\r\n%PDF-1.4"))
        check.is_false(is_pdf(b"plain text"))
