"""
Document Model - Uploaded PDFs and their metadata
"""

from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text,
    UniqueConstraint, Uuid,
)
from sqlalchemy.ext.associationproxy import association_proxy
from sqlalchemy.orm import relationship
import uuid

from docshelf.database import Base
from docshelf.utils.timeutils import utcnow


class TextExtractionStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class OCRStatus:
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    NOT_NEEDED = "not_needed"


class Document(Base):
    """
    Document model - an uploaded PDF

    Attributes:
        id: Unique document identifier (UUID)
        user_id: Owner
        filename: Stored filename (generated, unique within the owner's folder)
        original_name: Display name supplied at upload (editable)
        storage_path: Owner-scoped key in the storage backend
        file_size: Size in bytes
        mime_type: Content type (application/pdf)
        page_count: Number of pages (read at upload)
        thumbnail_path: Storage key of the first-page thumbnail (enrichment)
        collection_id: Containing collection, NULL = uncategorized

        extracted_text / has_text / text_extraction_status: native text layer
        ocr_text / ocr_status / ocr_error: LLM-assisted recovery of text

        is_deleted: Soft-delete flag (record kept for audit)
        open_count / last_opened_at: Reading activity
        created_at / updated_at: Timestamps

    Relationships:
        collection: Containing collection (many-to-one)
        tag_rows: One DocumentTag per distinct tag
    """

    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_user_created", "user_id", "created_at"),
        Index("ix_documents_user_deleted", "user_id", "is_deleted"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    collection_id = Column(Uuid, ForeignKey("collections.id", ondelete="SET NULL"), nullable=True, index=True)

    # File metadata
    filename = Column(String(255), nullable=False)
    original_name = Column(String(512), nullable=False)
    storage_path = Column(String(1024), nullable=False)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String(100), nullable=False, default="application/pdf")
    page_count = Column(Integer, nullable=False, default=0)
    thumbnail_path = Column(String(1024))

    # Text pipeline
    extracted_text = Column(Text)
    has_text = Column(Boolean, nullable=False, default=False)
    text_extraction_status = Column(String(20), nullable=False, default=TextExtractionStatus.PENDING, index=True)
    ocr_text = Column(Text)
    ocr_status = Column(String(20), nullable=False, default=OCRStatus.PENDING)
    ocr_error = Column(Text)

    # Lifecycle
    is_deleted = Column(Boolean, nullable=False, default=False)
    open_count = Column(Integer, nullable=False, default=0)
    last_opened_at = Column(DateTime(timezone=True))

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    collection = relationship("Collection", back_populates="documents")
    tag_rows = relationship(
        "DocumentTag",
        back_populates="document",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    tags = association_proxy("tag_rows", "name", creator=lambda name: DocumentTag(name=name))

    @property
    def tag_list(self):
        return sorted(self.tags)

    @property
    def context_text(self) -> str:
        """Best available text for LLM context"""
        if self.has_text and self.extracted_text:
            return self.extracted_text
        return self.ocr_text or self.extracted_text or ""

    def __repr__(self):
        return f"<Document(id={self.id}, original_name={self.original_name}, deleted={self.is_deleted})>"


class DocumentTag(Base):
    """
    A single tag attached to a document

    Tags are unordered and distinct per document; stored as rows so the
    tag filter and the top-tags aggregate are plain SQL.
    """

    __tablename__ = "document_tags"
    __table_args__ = (
        UniqueConstraint("document_id", "name", name="uq_document_tag"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False, index=True)

    document = relationship("Document", back_populates="tag_rows")
