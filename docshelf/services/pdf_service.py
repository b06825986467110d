"""
PDF Service
Page counting, text extraction and thumbnail rendering with pypdfium2
"""

from io import BytesIO
from typing import Optional
import logging

import pypdfium2 as pdfium

logger = logging.getLogger(__name__)

PDF_MAGIC = b"%PDF"


class PDFError(Exception):
    """Content could not be read as a PDF"""
    pass


def has_extractable_text(text: Optional[str], min_length: int = 50) -> bool:
    """True if the text layer carries more than `min_length` non-whitespace characters"""
    if not text:
        return False
    return len("".join(text.split())) > min_length


class PDFService:
    """Stateless wrapper around pypdfium2"""

    @staticmethod
    def looks_like_pdf(content: bytes) -> bool:
        return content[:1024].lstrip().startswith(PDF_MAGIC)

    @staticmethod
    def _open(content: bytes) -> "pdfium.PdfDocument":
        try:
            return pdfium.PdfDocument(content)
        except pdfium.PdfiumError as e:
            raise PDFError(f"Unreadable PDF: {e}") from e

    def page_count(self, content: bytes) -> int:
        """Number of pages; raises PDFError for anything pdfium cannot open"""
        pdf = self._open(content)
        try:
            return len(pdf)
        finally:
            pdf.close()

    def extract_text(self, content: bytes) -> str:
        """
        Native text layer of every page

        Returns:
            Page texts joined by blank lines (empty string for scanned PDFs)
        """
        pdf = self._open(content)
        try:
            text_parts = []
            for page in pdf:
                textpage = page.get_textpage()
                try:
                    text = textpage.get_text_bounded()
                finally:
                    textpage.close()
                    page.close()
                if text and text.strip():
                    text_parts.append(text.strip())
            return "\n\n".join(text_parts)
        except pdfium.PdfiumError as e:
            raise PDFError(f"Text extraction failed: {e}") from e
        finally:
            pdf.close()

    def render_thumbnail(self, content: bytes, width: int = 300) -> bytes:
        """First page rendered as a PNG `width` pixels wide"""
        pdf = self._open(content)
        try:
            if len(pdf) == 0:
                raise PDFError("PDF has no pages")
            page = pdf[0]
            try:
                page_width = page.get_width() or width
                bitmap = page.render(scale=width / page_width)
                image = bitmap.to_pil()
            finally:
                page.close()

            buffer = BytesIO()
            image.convert("RGB").save(buffer, format="PNG")
            return buffer.getvalue()
        except pdfium.PdfiumError as e:
            raise PDFError(f"Thumbnail rendering failed: {e}") from e
        finally:
            pdf.close()
