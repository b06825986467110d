"""
Document Lifecycle Service

Write side of the document library: upload, open tracking, edits,
soft deletion, bulk operations, on-demand re-enrichment and library
statistics.

Storage writes on the upload path are primary (failure aborts the upload);
storage deletes after a soft delete are best effort (logged, never raised).
"""

from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import func
from datetime import timedelta
from typing import Callable, Iterable, List, Optional, Tuple
from uuid import UUID
import logging
import re
import secrets
import time

from docshelf.config import settings
from docshelf.models.collection import Collection
from docshelf.models.document import Document, DocumentTag, OCRStatus, TextExtractionStatus
from docshelf.schemas.document import DocumentBulkUpdate, DocumentUpdate, normalize_tags
from docshelf.services.pdf_service import PDFError, PDFService
from docshelf.storage.base import StorageBackend
from docshelf.core.exceptions import ConflictError, NotFoundError, StorageError, ValidationError
from docshelf.utils.formatting import format_file_size
from docshelf.utils.timeutils import as_utc, utcnow

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPES = ("application/pdf", "application/x-pdf")
RECENT_UPLOAD_DAYS = 30
TOP_TAG_LIMIT = 10


def generate_unique_filename(original_name: str) -> str:
    """Stored filename: millisecond timestamp plus random suffix; the extension keeps only [a-z0-9]"""
    extension = "pdf"
    if "." in original_name:
        extension = re.sub(r"[^a-z0-9]", "", original_name.rsplit(".", 1)[1].lower())[:10] or "pdf"
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}.{extension}"


def apply_tags(document: Document, tags: Iterable[str]) -> bool:
    """
    Replace a document's tags with `tags`, touching only rows that change

    Returns:
        True if the tag set changed
    """
    wanted = normalize_tags(list(tags))
    current = {row.name: row for row in document.tag_rows}

    removed = [row for name, row in current.items() if name not in wanted]
    added = [name for name in wanted if name not in current]

    for row in removed:
        document.tag_rows.remove(row)
    for name in added:
        document.tag_rows.append(DocumentTag(name=name))

    return bool(removed or added)


class DocumentLifecycleService:
    """
    Document writes for one database session

    Args:
        db: Session
        storage: Storage backend owned by the application
        pdf_service: PDF reader (page counts on upload)
        dispatch_enrichment: Callable taking a document id that queues the
            enrichment task; failures are logged and left to the retry sweep
        dispatch_ocr: Callable taking a document id that queues OCR recovery
    """

    def __init__(
        self,
        db: Session,
        storage: StorageBackend,
        pdf_service: Optional[PDFService] = None,
        dispatch_enrichment: Optional[Callable[[UUID], None]] = None,
        dispatch_ocr: Optional[Callable[[UUID], None]] = None
    ):
        self.db = db
        self.storage = storage
        self.pdf_service = pdf_service or PDFService()
        self.dispatch_enrichment = dispatch_enrichment
        self.dispatch_ocr = dispatch_ocr

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _owned(self, user_id: UUID):
        return self.db.query(Document).filter(Document.user_id == user_id)

    def _live(self, user_id: UUID):
        return self._owned(user_id).filter(Document.is_deleted.is_(False))

    def _require_collection(self, user_id: UUID, collection_id: Optional[UUID]):
        if collection_id is None:
            return None
        collection = self.db.query(Collection).filter(
            Collection.id == collection_id,
            Collection.user_id == user_id
        ).first()
        if not collection:
            raise NotFoundError("Collection not found", details={"collection_id": str(collection_id)})
        return collection

    def get(self, user_id: UUID, document_id: UUID, record_open: bool = False) -> Document:
        """
        Live document of the owner

        Args:
            record_open: Count this lookup as the user opening the document

        Raises:
            NotFoundError: missing, soft-deleted or not owned
        """
        document = self._live(user_id).filter(Document.id == document_id).first()
        if not document:
            raise NotFoundError("Document not found", details={"document_id": str(document_id)})

        if record_open:
            self.record_open(document)
        return document

    def get_including_deleted(self, user_id: UUID, document_id: UUID) -> Document:
        """Owner lookup that also returns soft-deleted records (audit)"""
        document = self._owned(user_id).filter(Document.id == document_id).first()
        if not document:
            raise NotFoundError("Document not found", details={"document_id": str(document_id)})
        return document

    def record_open(self, document: Document) -> Document:
        document.open_count = (document.open_count or 0) + 1
        document.last_opened_at = utcnow()
        self.db.commit()
        self.db.refresh(document)
        return document

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create(
        self,
        user_id: UUID,
        content: bytes,
        original_name: str,
        content_type: Optional[str] = None,
        collection_id: Optional[UUID] = None,
        tags: Optional[List[str]] = None
    ) -> Document:
        """
        Store an uploaded PDF and create its record

        Raises:
            ValidationError: empty, oversized or non-PDF upload
            NotFoundError: collection_id not owned
            StorageError: object storage rejected the file (no record created)
        """
        if not content:
            raise ValidationError("No file uploaded")
        if len(content) > settings.MAX_UPLOAD_SIZE:
            raise ValidationError(
                f"File too large. Maximum size is {format_file_size(settings.MAX_UPLOAD_SIZE)}",
                details={"file_size": len(content)},
            )

        original_name = (original_name or "document.pdf").strip()
        is_pdf_type = (content_type or "").lower() in PDF_CONTENT_TYPES or original_name.lower().endswith(".pdf")
        if not is_pdf_type or not self.pdf_service.looks_like_pdf(content):
            raise ValidationError("Only PDF files are allowed")

        try:
            page_count = self.pdf_service.page_count(content)
        except PDFError as e:
            logger.warning(f"Rejected upload {original_name}: {e}")
            raise ValidationError("Invalid PDF file")

        self._require_collection(user_id, collection_id)
        tag_names = normalize_tags(tags)

        filename = generate_unique_filename(original_name)
        try:
            storage_path = self.storage.save(content, user_id, filename, content_type="application/pdf")
        except Exception as e:
            logger.error(f"Storage upload failed for {filename}: {e}")
            raise StorageError("Failed to upload file to storage") from e

        document = Document(
            user_id=user_id,
            collection_id=collection_id,
            filename=filename,
            original_name=original_name,
            storage_path=storage_path,
            file_size=len(content),
            mime_type="application/pdf",
            page_count=page_count,
            has_text=False,
            text_extraction_status=TextExtractionStatus.PENDING,
            ocr_status=OCRStatus.PENDING,
            is_deleted=False,
            open_count=0,
        )
        for name in tag_names:
            document.tag_rows.append(DocumentTag(name=name))

        try:
            self.db.add(document)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            self._remove_stored_object(storage_path, user_id)
            raise
        self.db.refresh(document)

        logger.info(f"Uploaded document {document.id} ({page_count} pages, {len(content)} bytes)")
        self._queue(self.dispatch_enrichment, document.id, "enrichment")
        return document

    def _queue(self, dispatcher: Optional[Callable[[UUID], None]], document_id: UUID, step: str) -> bool:
        """Hand a document to a background step; False if nothing was queued"""
        if dispatcher is None:
            return False
        try:
            dispatcher(document_id)
        except Exception as e:
            logger.warning(f"Could not queue {step} for {document_id}, retry sweep will pick it up: {e}")
            return False
        return True

    # ------------------------------------------------------------------
    # On-demand enrichment
    # ------------------------------------------------------------------

    @staticmethod
    def _still_running(document: Document, now=None) -> bool:
        """A step in `processing` is owned by a worker until the processing timeout passes"""
        if document.updated_at is None:
            return False
        started = as_utc(document.updated_at)
        return started > (now or utcnow()) - timedelta(minutes=settings.ENRICHMENT_PROCESSING_TIMEOUT_MINUTES)

    def request_extraction(self, user_id: UUID, document_id: UUID) -> Tuple[Document, bool]:
        """
        Re-run text extraction for a document that failed, stalled or found no text

        Returns:
            (document, queued); queued is False when the text layer is already extracted

        Raises:
            NotFoundError: missing, soft-deleted or not owned
            ConflictError: extraction is running on a worker right now
        """
        document = self.get(user_id, document_id)

        if document.text_extraction_status == TextExtractionStatus.COMPLETED and document.has_text:
            return document, False
        if document.text_extraction_status == TextExtractionStatus.PROCESSING and self._still_running(document):
            raise ConflictError("Text extraction is already in progress", details={"document_id": str(document.id)})

        document.text_extraction_status = TextExtractionStatus.PENDING
        document.ocr_status = OCRStatus.PENDING
        document.ocr_error = None
        self.db.commit()
        self.db.refresh(document)

        logger.info(f"Text extraction requested for {document.id}")
        return document, self._queue(self.dispatch_enrichment, document.id, "enrichment")

    def request_ocr(self, user_id: UUID, document_id: UUID) -> Tuple[Document, bool]:
        """
        Re-run OCR recovery over the extracted text layer

        Returns:
            (document, queued)

        Raises:
            NotFoundError: missing, soft-deleted or not owned
            ConflictError: extraction has not completed, or OCR is running right now
        """
        document = self.get(user_id, document_id)

        if document.text_extraction_status != TextExtractionStatus.COMPLETED:
            raise ConflictError(
                "Text extraction must complete before OCR",
                details={"text_extraction_status": document.text_extraction_status},
            )
        if document.ocr_status == OCRStatus.PROCESSING and self._still_running(document):
            raise ConflictError("OCR is already in progress", details={"document_id": str(document.id)})

        document.ocr_status = OCRStatus.PENDING
        document.ocr_error = None
        self.db.commit()
        self.db.refresh(document)

        logger.info(f"OCR requested for {document.id}")
        return document, self._queue(self.dispatch_ocr, document.id, "OCR")

    # ------------------------------------------------------------------
    # Update
    # ------------------------------------------------------------------

    def update(self, user_id: UUID, document_id: UUID, data: DocumentUpdate) -> Document:
        """Apply the fields present in `data` to a live document"""
        document = self.get(user_id, document_id)
        changes = data.model_dump(exclude_unset=True)

        if "original_name" in changes:
            if not changes["original_name"] or not changes["original_name"].strip():
                raise ValidationError("Document name cannot be empty")
            document.original_name = changes["original_name"].strip()

        if "collection_id" in changes:
            self._require_collection(user_id, changes["collection_id"])
            document.collection_id = changes["collection_id"]

        if "tags" in changes:
            apply_tags(document, changes["tags"] or [])

        self.db.commit()
        self.db.refresh(document)
        return document

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def _remove_stored_object(self, storage_path: Optional[str], user_id: UUID):
        if not storage_path:
            return
        try:
            self.storage.delete(storage_path, user_id)
        except Exception as e:
            logger.warning(f"Failed to delete {storage_path} from storage: {e}")

    def _remove_stored_files(self, document: Document):
        self._remove_stored_object(document.storage_path, document.user_id)
        self._remove_stored_object(document.thumbnail_path, document.user_id)

    def soft_delete(self, user_id: UUID, document_id: UUID) -> Document:
        """Mark a live document deleted, then drop its stored files"""
        document = self.get(user_id, document_id)
        document.is_deleted = True
        self.db.commit()

        self._remove_stored_files(document)
        logger.info(f"Soft-deleted document {document.id}")
        return document

    def bulk_delete(self, user_id: UUID, document_ids: List[UUID]) -> int:
        """
        Soft-delete every listed live document of the owner

        Returns:
            Number of documents deleted

        Raises:
            NotFoundError: none of the ids matched
        """
        documents = self._live(user_id).filter(Document.id.in_(document_ids)).all()
        if not documents:
            raise NotFoundError("No documents found")

        for document in documents:
            document.is_deleted = True
        self.db.commit()

        for document in documents:
            self._remove_stored_files(document)

        logger.info(f"Bulk soft-deleted {len(documents)} documents for user {user_id}")
        return len(documents)

    # ------------------------------------------------------------------
    # Bulk update / move
    # ------------------------------------------------------------------

    def bulk_update(self, user_id: UUID, document_ids: List[UUID], updates: DocumentBulkUpdate) -> int:
        """
        Apply tags and/or collection_id to each listed document

        Each record is committed on its own; a failing record is logged and
        skipped.

        Returns:
            Number of documents that changed
        """
        fields = updates.model_dump(exclude_unset=True)
        if not fields:
            raise ValidationError("No valid update fields provided")

        if "collection_id" in fields:
            self._require_collection(user_id, fields["collection_id"])

        documents = self._live(user_id).filter(Document.id.in_(document_ids)).all()
        modified = 0
        for document in documents:
            changed = False
            if "tags" in fields:
                changed = apply_tags(document, fields["tags"] or []) or changed
            if "collection_id" in fields and document.collection_id != fields["collection_id"]:
                document.collection_id = fields["collection_id"]
                changed = True
            if not changed:
                continue
            try:
                self.db.commit()
                modified += 1
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Bulk update failed for document {document.id}: {e}")

        return modified

    def bulk_move(self, user_id: UUID, document_ids: List[UUID], collection_id: Optional[UUID]) -> int:
        """Move listed documents into a collection (None = uncategorized)"""
        self._require_collection(user_id, collection_id)

        documents = self._live(user_id).filter(Document.id.in_(document_ids)).all()
        modified = 0
        for document in documents:
            if document.collection_id == collection_id:
                continue
            document.collection_id = collection_id
            try:
                self.db.commit()
                modified += 1
            except SQLAlchemyError as e:
                self.db.rollback()
                logger.error(f"Bulk move failed for document {document.id}: {e}")

        return modified

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def statistics(self, user_id: UUID) -> dict:
        """Aggregates over the owner's live documents"""
        live_filter = (Document.user_id == user_id, Document.is_deleted.is_(False))

        count, total_size, total_pages, avg_pages, avg_size = self.db.query(
            func.count(Document.id),
            func.coalesce(func.sum(Document.file_size), 0),
            func.coalesce(func.sum(Document.page_count), 0),
            func.avg(Document.page_count),
            func.avg(Document.file_size),
        ).filter(*live_filter).one()

        recent_uploads = self.db.query(func.count(Document.id)).filter(
            *live_filter,
            Document.created_at >= utcnow() - timedelta(days=RECENT_UPLOAD_DAYS)
        ).scalar() or 0

        collection_rows = self.db.query(
            Document.collection_id,
            Collection.name,
            func.count(Document.id),
            func.coalesce(func.sum(Document.file_size), 0),
        ).outerjoin(
            Collection, Collection.id == Document.collection_id
        ).filter(*live_filter).group_by(
            Document.collection_id, Collection.name
        ).order_by(func.count(Document.id).desc()).all()

        tag_count = func.count(DocumentTag.id)
        tag_rows = self.db.query(DocumentTag.name, tag_count).join(
            Document, Document.id == DocumentTag.document_id
        ).filter(*live_filter).group_by(
            DocumentTag.name
        ).order_by(tag_count.desc(), DocumentTag.name.asc()).limit(TOP_TAG_LIMIT).all()

        avg_size_bytes = int(round(avg_size or 0))
        return {
            "total_documents": count or 0,
            "total_size_bytes": int(total_size or 0),
            "total_size": format_file_size(int(total_size or 0)),
            "total_pages": int(total_pages or 0),
            "avg_page_count": int(round(avg_pages or 0)),
            "avg_file_size_bytes": avg_size_bytes,
            "avg_file_size": format_file_size(avg_size_bytes),
            "recent_uploads": recent_uploads,
            "collection_stats": [
                {"collection_id": cid, "name": name, "count": n, "total_size": int(size or 0)}
                for cid, name, n, size in collection_rows
            ],
            "top_tags": [{"tag": name, "count": n} for name, n in tag_rows],
        }
