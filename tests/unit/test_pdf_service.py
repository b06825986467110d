"""
Unit tests for PDFService (real pypdfium2, generated fixture PDF)
"""

import pytest

from docshelf.services.pdf_service import PDFError, PDFService, has_extractable_text


@pytest.fixture
def pdf():
    return PDFService()


@pytest.mark.unit
class TestPDFService:

    def test_page_count(self, pdf, real_pdf_bytes):
        assert pdf.page_count(real_pdf_bytes) == 1

    def test_blank_page_has_no_text(self, pdf, real_pdf_bytes):
        assert pdf.extract_text(real_pdf_bytes) == ""

    def test_thumbnail_is_png(self, pdf, real_pdf_bytes):
        png = pdf.render_thumbnail(real_pdf_bytes, width=100)

        assert png.startswith(b"\x89PNG")

    def test_garbage_raises_pdf_error(self, pdf):
        with pytest.raises(PDFError):
            pdf.page_count(b"%PDF-1.4 but not really a pdf")

    def test_magic_bytes_check(self, pdf, real_pdf_bytes):
        assert pdf.looks_like_pdf(real_pdf_bytes) is True
        assert pdf.looks_like_pdf(b"GIF89a") is False


@pytest.mark.unit
class TestHasExtractableText:

    @pytest.mark.parametrize("text, expected", [
        (None, False),
        ("", False),
        ("   \n\t  ", False),
        ("x" * 50, False),
        ("x" * 51, True),
        (" ".join("x" * 60), True),
    ])
    def test_threshold_counts_non_whitespace(self, text, expected):
        assert has_extractable_text(text, 50) is expected
