"""
Retry Pending Documents Task
Periodic Celery task that re-queues documents whose enrichment never finished
"""

import logging
from datetime import timedelta
from sqlalchemy import and_, or_
from sqlalchemy.orm import Session

from docshelf.worker import celery_app
from docshelf.config import settings
from docshelf.database import SessionLocal
from docshelf.models.document import Document, OCRStatus, TextExtractionStatus
from docshelf.tasks.enrich_document import dispatch_enrichment, dispatch_ocr
from docshelf.utils.retry import retry_on_database_error
from docshelf.utils.timeutils import utcnow

logger = logging.getLogger(__name__)


def find_stuck_documents(db: Session, now=None):
    """
    Live documents whose extraction or OCR step stalled

    Returns:
        (needs_extraction, needs_ocr) lists of documents
    """
    now = now or utcnow()
    pending_before = now - timedelta(minutes=settings.ENRICHMENT_PENDING_TIMEOUT_MINUTES)
    processing_before = now - timedelta(minutes=settings.ENRICHMENT_PROCESSING_TIMEOUT_MINUTES)

    def stalled(status_column, pending, processing):
        return or_(
            and_(status_column == pending, Document.updated_at < pending_before),
            and_(status_column == processing, Document.updated_at < processing_before),
        )

    needs_extraction = db.query(Document).filter(
        Document.is_deleted.is_(False),
        stalled(Document.text_extraction_status, TextExtractionStatus.PENDING, TextExtractionStatus.PROCESSING)
    ).all()

    needs_ocr = db.query(Document).filter(
        Document.is_deleted.is_(False),
        Document.text_extraction_status == TextExtractionStatus.COMPLETED,
        stalled(Document.ocr_status, OCRStatus.PENDING, OCRStatus.PROCESSING)
    ).all()

    return needs_extraction, needs_ocr


@celery_app.task(name="retry_pending_documents")
@retry_on_database_error()
def retry_pending_documents_task():
    """
    Re-dispatch documents stuck in pending/processing

    Runs every 10 minutes from beat. Upload dispatch failures and worker
    crashes both leave documents in these states; the enrichment tasks skip
    anything already finished, so re-dispatching is safe.
    """
    db: Session = SessionLocal()

    try:
        needs_extraction, needs_ocr = find_stuck_documents(db)

        if not needs_extraction and not needs_ocr:
            logger.info("[Retry Task] No stuck documents found")
            return {"status": "success", "retried_count": 0}

        retried = 0
        for document in needs_extraction:
            try:
                dispatch_enrichment(document.id)
                retried += 1
            except Exception as e:
                logger.error(f"[Retry Task] Failed to re-queue extraction for {document.id}: {e}")

        for document in needs_ocr:
            try:
                dispatch_ocr(document.id)
                retried += 1
            except Exception as e:
                logger.error(f"[Retry Task] Failed to re-queue OCR for {document.id}: {e}")

        logger.info(
            f"[Retry Task] Re-queued {retried} of "
            f"{len(needs_extraction) + len(needs_ocr)} stuck documents"
        )
        return {
            "status": "success",
            "retried_count": retried,
            "total_found": len(needs_extraction) + len(needs_ocr)
        }

    finally:
        db.close()
