"""
Note Model - Page annotations
"""

from sqlalchemy import Column, String, Text, Integer, Boolean, ForeignKey, DateTime, Index, Uuid
import uuid

from docshelf.database import Base
from docshelf.utils.timeutils import utcnow

NOTE_COLORS = ("#fbbf24", "#60a5fa", "#34d399", "#f87171", "#a78bfa", "#fb923c")
DEFAULT_NOTE_COLOR = NOTE_COLORS[0]


class Note(Base):
    """Note attached to one page of a document"""

    __tablename__ = "notes"
    __table_args__ = (
        Index("ix_notes_user_document", "user_id", "document_id", "is_deleted"),
        Index("ix_notes_document_page", "document_id", "page_number"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)

    page_number = Column(Integer, nullable=False)
    content = Column(Text, nullable=False)
    color = Column(String(7), nullable=False, default=DEFAULT_NOTE_COLOR)
    is_deleted = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Note(id={self.id}, document_id={self.document_id}, page={self.page_number})>"
