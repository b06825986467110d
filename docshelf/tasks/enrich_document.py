"""
Document Enrichment Tasks
Celery wrappers around DocumentEnrichmentService: text extraction and OCR
"""

import asyncio
import logging
from uuid import UUID
from celery import Task

from docshelf.worker import celery_app
from docshelf.database import SessionLocal
from docshelf.services.enrichment import DocumentEnrichmentService
from docshelf.services.llm_service import LLMService
from docshelf.services.pdf_service import PDFService
from docshelf.storage.factory import get_storage_backend

logger = logging.getLogger(__name__)


class EnrichmentTask(Task):
    """Base task holding per-worker collaborators"""

    def __init__(self):
        super().__init__()
        self._storage = None
        self._pdf_service = None
        self._llm_service = None

    @property
    def storage(self):
        if self._storage is None:
            self._storage = get_storage_backend()
        return self._storage

    @property
    def pdf_service(self):
        if self._pdf_service is None:
            self._pdf_service = PDFService()
        return self._pdf_service

    @property
    def llm_service(self):
        if self._llm_service is None:
            self._llm_service = LLMService()
        return self._llm_service

    def enrichment_service(self, db) -> DocumentEnrichmentService:
        return DocumentEnrichmentService(
            db,
            storage=self.storage,
            pdf_service=self.pdf_service,
            llm_service=self.llm_service,
            dispatch_ocr=dispatch_ocr,
        )


@celery_app.task(
    bind=True,
    base=EnrichmentTask,
    name="enrich_document",
    acks_late=True,
    max_retries=3,
    default_retry_delay=60
)
def enrich_document_task(self, document_id: str):
    """
    Extract text and render a thumbnail for an uploaded document

    Args:
        document_id: UUID of the document
    """
    db = SessionLocal()
    try:
        status = self.enrichment_service(db).extract_text(document_id)
        return {"document_id": document_id, "text_extraction_status": status}
    finally:
        db.close()


@celery_app.task(
    bind=True,
    base=EnrichmentTask,
    name="ocr_document",
    acks_late=True,
    max_retries=3,
    default_retry_delay=60
)
def ocr_document_task(self, document_id: str):
    """
    Recover text for a document whose text layer is too thin

    Args:
        document_id: UUID of the document
    """
    db = SessionLocal()
    try:
        status = asyncio.run(self.enrichment_service(db).run_ocr(document_id))
        return {"document_id": document_id, "ocr_status": status}
    finally:
        db.close()


def dispatch_enrichment(document_id: UUID):
    """Queue text extraction for a document"""
    enrich_document_task.delay(str(document_id))


def dispatch_ocr(document_id: UUID):
    """Queue OCR recovery for a document"""
    ocr_document_task.delay(str(document_id))
