"""
Document Enrichment Service

Background steps run after upload:
    1. Text extraction - native text layer via pypdfium2, plus a first-page thumbnail
    2. OCR recovery - LLM cleanup of a weak text layer when extraction found too little

Both steps are idempotent: a document already in a terminal state for the
step is left untouched, so redelivered tasks are harmless.
"""

from sqlalchemy.orm import Session
from typing import Callable, Optional
from uuid import UUID
import logging

from docshelf.config import settings
from docshelf.models.document import Document, OCRStatus, TextExtractionStatus
from docshelf.services.llm_service import LLMService
from docshelf.services.pdf_service import PDFService, has_extractable_text
from docshelf.storage.base import StorageBackend
from docshelf.core.exceptions import LLMServiceError

logger = logging.getLogger(__name__)

TERMINAL_EXTRACTION = (TextExtractionStatus.COMPLETED, TextExtractionStatus.FAILED)
TERMINAL_OCR = (OCRStatus.COMPLETED, OCRStatus.FAILED, OCRStatus.NOT_NEEDED)

OCR_SYSTEM_PROMPT = (
    "You repair text recovered from scanned PDF pages. Fix broken words, "
    "spacing and line wraps, keep the original wording and order, and return "
    "only the cleaned text."
)


class DocumentEnrichmentService:
    """
    Runs enrichment steps against one database session

    Args:
        db: Session
        storage: Storage backend holding the PDFs
        pdf_service: PDF reader
        llm_service: LLM client for OCR recovery
        dispatch_ocr: Callable taking a document id that queues the OCR step
    """

    def __init__(
        self,
        db: Session,
        storage: StorageBackend,
        pdf_service: Optional[PDFService] = None,
        llm_service: Optional[LLMService] = None,
        dispatch_ocr: Optional[Callable[[UUID], None]] = None
    ):
        self.db = db
        self.storage = storage
        self.pdf_service = pdf_service or PDFService()
        self.llm_service = llm_service
        self.dispatch_ocr = dispatch_ocr

    def _load(self, document_id) -> Optional[Document]:
        document_id = document_id if isinstance(document_id, UUID) else UUID(str(document_id))
        return self.db.query(Document).filter(Document.id == document_id).first()

    def extract_text(self, document_id) -> str:
        """
        Extract the native text layer and render a thumbnail

        Returns:
            Resulting text_extraction_status, or "skipped"
        """
        document = self._load(document_id)
        if not document:
            logger.error(f"Document {document_id} not found")
            return "skipped"
        if document.is_deleted or document.text_extraction_status in TERMINAL_EXTRACTION:
            logger.info(f"Document {document_id} already extracted ({document.text_extraction_status}), skipping")
            return "skipped"

        document.text_extraction_status = TextExtractionStatus.PROCESSING
        self.db.commit()

        try:
            content = self.storage.read(document.storage_path, document.user_id)
            text = self.pdf_service.extract_text(content)
        except Exception as e:
            logger.error(f"Text extraction failed for {document_id}: {e}")
            document.text_extraction_status = TextExtractionStatus.FAILED
            document.has_text = False
            document.ocr_status = OCRStatus.FAILED
            document.ocr_error = f"Could not read PDF: {e}"
            self.db.commit()
            return document.text_extraction_status

        document.extracted_text = text
        document.has_text = has_extractable_text(text, settings.MIN_TEXT_LENGTH)
        document.text_extraction_status = TextExtractionStatus.COMPLETED
        document.ocr_status = OCRStatus.NOT_NEEDED if document.has_text else OCRStatus.PENDING
        self.db.commit()
        logger.info(f"Extracted {len(text)} chars from {document_id} (has_text={document.has_text})")

        self._make_thumbnail(document, content)

        if document.ocr_status == OCRStatus.PENDING and self.dispatch_ocr is not None:
            try:
                self.dispatch_ocr(document.id)
            except Exception as e:
                logger.warning(f"Could not queue OCR for {document_id}: {e}")

        return document.text_extraction_status

    def _make_thumbnail(self, document: Document, content: bytes):
        if document.thumbnail_path:
            return
        try:
            png = self.pdf_service.render_thumbnail(content, settings.THUMBNAIL_WIDTH)
            filename = document.filename.rsplit(".", 1)[0] + ".png"
            document.thumbnail_path = self.storage.save(
                png, document.user_id, filename, content_type="image/png", folder="thumbnails"
            )
            self.db.commit()
        except Exception as e:
            logger.warning(f"Thumbnail generation failed for {document.id}: {e}")
            self.db.rollback()

    async def run_ocr(self, document_id) -> str:
        """
        Recover readable text through the LLM

        Returns:
            Resulting ocr_status, or "skipped"
        """
        document = self._load(document_id)
        if not document:
            logger.error(f"Document {document_id} not found")
            return "skipped"
        if document.is_deleted or document.ocr_status in TERMINAL_OCR:
            logger.info(f"Document {document_id} OCR already {document.ocr_status}, skipping")
            return "skipped"

        document.ocr_status = OCRStatus.PROCESSING
        document.ocr_error = None
        self.db.commit()

        raw_text = (document.extracted_text or "").strip()
        if not raw_text:
            document.ocr_status = OCRStatus.FAILED
            document.ocr_error = "No recoverable text found in document"
            self.db.commit()
            return document.ocr_status

        llm = self.llm_service or LLMService()
        try:
            cleaned = await llm.complete(
                [
                    {"role": "system", "content": OCR_SYSTEM_PROMPT},
                    {"role": "user", "content": raw_text},
                ],
                temperature=settings.OCR_TEMPERATURE,
                max_tokens=settings.OCR_MAX_TOKENS,
            )
        except LLMServiceError as e:
            logger.error(f"OCR failed for {document_id}: {e.message}")
            document.ocr_status = OCRStatus.FAILED
            document.ocr_error = e.message
            self.db.commit()
            return document.ocr_status

        document.ocr_text = cleaned
        document.ocr_status = OCRStatus.COMPLETED
        # Recovered text becomes the document's text when the native layer was too thin
        if not document.has_text and cleaned.strip():
            document.extracted_text = cleaned
            document.has_text = True
        self.db.commit()
        logger.info(f"OCR completed for {document_id}: {len(cleaned)} chars (has_text={document.has_text})")
        return document.ocr_status
