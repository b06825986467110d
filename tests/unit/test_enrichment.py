"""
Unit tests for background enrichment: text extraction, OCR and the retry sweep
"""

import pytest
from datetime import timedelta
from unittest.mock import AsyncMock, Mock, patch

from conftest import PDF_BYTES, StubPDFService
from docshelf.core.exceptions import LLMServiceError
from docshelf.models import OCRStatus, TextExtractionStatus
from docshelf.services.enrichment import DocumentEnrichmentService
from docshelf.tasks.retry_pending_documents import find_stuck_documents, retry_pending_documents_task
from docshelf.utils.timeutils import utcnow

LONG_TEXT = "This PDF has a real text layer with plenty of words to count as extractable content."


@pytest.fixture
def stored_document(make_document, storage):
    document = make_document("paper.pdf")
    storage.files[document.storage_path] = PDF_BYTES
    return document


def make_service(db_session, storage, text="", invalid=False, llm=None, dispatch_ocr=None):
    return DocumentEnrichmentService(
        db_session,
        storage,
        pdf_service=StubPDFService(text=text, invalid=invalid),
        llm_service=llm,
        dispatch_ocr=dispatch_ocr,
    )


@pytest.mark.unit
class TestTextExtraction:

    def test_text_layer_marks_ocr_not_needed(self, db_session, storage, stored_document):
        dispatch_ocr = Mock()
        service = make_service(db_session, storage, text=LONG_TEXT, dispatch_ocr=dispatch_ocr)

        status = service.extract_text(stored_document.id)

        db_session.refresh(stored_document)
        assert status == TextExtractionStatus.COMPLETED
        assert stored_document.has_text is True
        assert stored_document.extracted_text == LONG_TEXT
        assert stored_document.ocr_status == OCRStatus.NOT_NEEDED
        assert stored_document.thumbnail_path.endswith(".png")
        assert "/thumbnails/" in stored_document.thumbnail_path
        dispatch_ocr.assert_not_called()

    def test_thin_text_layer_queues_ocr(self, db_session, storage, stored_document):
        dispatch_ocr = Mock()
        service = make_service(db_session, storage, text="  a few words  ", dispatch_ocr=dispatch_ocr)

        service.extract_text(stored_document.id)

        db_session.refresh(stored_document)
        assert stored_document.has_text is False
        assert stored_document.ocr_status == OCRStatus.PENDING
        dispatch_ocr.assert_called_once_with(stored_document.id)

    def test_unreadable_pdf_is_terminal_failure(self, db_session, storage, stored_document):
        service = make_service(db_session, storage, invalid=True)

        status = service.extract_text(stored_document.id)

        db_session.refresh(stored_document)
        assert status == TextExtractionStatus.FAILED
        assert stored_document.text_extraction_status == TextExtractionStatus.FAILED
        assert stored_document.is_deleted is False

    def test_missing_file_is_terminal_failure(self, db_session, storage, make_document):
        document = make_document("lost.pdf")
        service = make_service(db_session, storage, text=LONG_TEXT)

        assert service.extract_text(document.id) == TextExtractionStatus.FAILED

    def test_completed_document_is_skipped(self, db_session, storage, stored_document):
        stored_document.text_extraction_status = TextExtractionStatus.COMPLETED
        stored_document.extracted_text = "original"
        db_session.commit()
        service = make_service(db_session, storage, text=LONG_TEXT)

        assert service.extract_text(stored_document.id) == "skipped"
        db_session.refresh(stored_document)
        assert stored_document.extracted_text == "original"

    def test_thumbnail_failure_keeps_extraction_result(self, db_session, storage, stored_document):
        pdf = StubPDFService(text=LONG_TEXT)
        pdf.render_thumbnail = Mock(side_effect=RuntimeError("render failed"))
        service = DocumentEnrichmentService(db_session, storage, pdf_service=pdf)

        service.extract_text(stored_document.id)

        db_session.refresh(stored_document)
        assert stored_document.text_extraction_status == TextExtractionStatus.COMPLETED
        assert stored_document.thumbnail_path is None


@pytest.mark.unit
class TestOCR:

    def _prepare(self, db_session, document, text="sc4nned t ext"):
        document.text_extraction_status = TextExtractionStatus.COMPLETED
        document.extracted_text = text
        document.ocr_status = OCRStatus.PENDING
        db_session.commit()

    @pytest.mark.asyncio
    async def test_ocr_stores_cleaned_text(self, db_session, storage, stored_document):
        self._prepare(db_session, stored_document)
        llm = Mock()
        llm.complete = AsyncMock(return_value="scanned text")
        service = make_service(db_session, storage, llm=llm)

        status = await service.run_ocr(stored_document.id)

        db_session.refresh(stored_document)
        assert status == OCRStatus.COMPLETED
        assert stored_document.ocr_text == "scanned text"
        assert stored_document.context_text == "scanned text"

    @pytest.mark.asyncio
    async def test_recovered_text_fills_missing_text_layer(self, db_session, storage, stored_document):
        self._prepare(db_session, stored_document)
        llm = Mock()
        llm.complete = AsyncMock(return_value="scanned text")
        service = make_service(db_session, storage, llm=llm)

        await service.run_ocr(stored_document.id)

        db_session.refresh(stored_document)
        assert stored_document.has_text is True
        assert stored_document.extracted_text == "scanned text"

    @pytest.mark.asyncio
    async def test_native_text_layer_is_kept_after_ocr(self, db_session, storage, stored_document):
        self._prepare(db_session, stored_document, text=LONG_TEXT)
        stored_document.has_text = True
        db_session.commit()
        llm = Mock()
        llm.complete = AsyncMock(return_value="cleaned copy")
        service = make_service(db_session, storage, llm=llm)

        await service.run_ocr(stored_document.id)

        db_session.refresh(stored_document)
        assert stored_document.extracted_text == LONG_TEXT
        assert stored_document.ocr_text == "cleaned copy"

    @pytest.mark.asyncio
    async def test_llm_failure_is_recorded(self, db_session, storage, stored_document):
        self._prepare(db_session, stored_document)
        llm = Mock()
        llm.complete = AsyncMock(side_effect=LLMServiceError("AI service is temporarily unavailable"))
        service = make_service(db_session, storage, llm=llm)

        status = await service.run_ocr(stored_document.id)

        db_session.refresh(stored_document)
        assert status == OCRStatus.FAILED
        assert stored_document.ocr_error == "AI service is temporarily unavailable"

    @pytest.mark.asyncio
    async def test_nothing_to_recover_fails_without_llm_call(self, db_session, storage, stored_document):
        self._prepare(db_session, stored_document, text="")
        llm = Mock()
        llm.complete = AsyncMock()
        service = make_service(db_session, storage, llm=llm)

        assert await service.run_ocr(stored_document.id) == OCRStatus.FAILED
        llm.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_terminal_ocr_is_skipped(self, db_session, storage, stored_document):
        stored_document.ocr_status = OCRStatus.NOT_NEEDED
        db_session.commit()
        service = make_service(db_session, storage, llm=Mock())

        assert await service.run_ocr(stored_document.id) == "skipped"


@pytest.mark.unit
class TestRetrySweep:

    def _age(self, db_session, document, minutes):
        document.updated_at = utcnow() - timedelta(minutes=minutes)
        db_session.commit()

    def test_finds_stalled_extraction_and_ocr(self, db_session, make_document):
        stale_pending = make_document("stale.pdf")
        fresh_pending = make_document("fresh.pdf")
        stale_ocr = make_document("ocr.pdf")
        stale_ocr.text_extraction_status = TextExtractionStatus.COMPLETED
        stale_ocr.ocr_status = OCRStatus.PROCESSING
        finished = make_document("done.pdf")
        finished.text_extraction_status = TextExtractionStatus.COMPLETED
        finished.ocr_status = OCRStatus.NOT_NEEDED
        trashed = make_document("trashed.pdf", deleted=True)

        for doc in (stale_pending, finished, trashed):
            self._age(db_session, doc, 20)
        self._age(db_session, stale_ocr, 45)
        self._age(db_session, fresh_pending, 1)

        needs_extraction, needs_ocr = find_stuck_documents(db_session)

        assert [d.id for d in needs_extraction] == [stale_pending.id]
        assert [d.id for d in needs_ocr] == [stale_ocr.id]

    def test_task_redispatches_stuck_documents(self, db_engine, db_session, make_document):
        from sqlalchemy.orm import sessionmaker

        stale = make_document("stale.pdf")
        self._age(db_session, stale, 20)

        with patch("docshelf.tasks.retry_pending_documents.SessionLocal", sessionmaker(bind=db_engine)), \
                patch("docshelf.tasks.retry_pending_documents.dispatch_enrichment") as dispatch:
            result = retry_pending_documents_task.run()

        assert result["retried_count"] == 1
        dispatch.assert_called_once_with(stale.id)
