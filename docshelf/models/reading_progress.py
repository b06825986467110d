"""
ReadingProgress Model - Where a user left off in a document
"""

from sqlalchemy import Column, String, Integer, Float, ForeignKey, DateTime, UniqueConstraint, Uuid
import uuid

from docshelf.database import Base
from docshelf.utils.timeutils import utcnow


class ReadingProgress(Base):
    """One row per (user, document) pair"""

    __tablename__ = "reading_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "document_id", name="uq_reading_progress_user_document"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)

    current_page = Column(Integer, nullable=False, default=1)
    total_pages = Column(Integer, nullable=False)
    progress = Column(Integer, nullable=False, default=0)  # percentage 0-100
    zoom = Column(Float, nullable=False, default=1.0)
    view_mode = Column(String(20), nullable=False, default="continuous")
    last_read_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
