"""
Collection Model - Hierarchical grouping of documents
"""

from sqlalchemy import Column, String, Integer, ForeignKey, DateTime, Index, Uuid
from sqlalchemy.orm import relationship
import uuid

from docshelf.database import Base
from docshelf.utils.timeutils import utcnow

DEFAULT_COLLECTION_COLOR = "#4f46e5"
DEFAULT_COLLECTION_ICON = "\U0001F4C1"


class Collection(Base):
    """
    Collection model - a node in the user's folder tree

    Attributes:
        id: Unique collection identifier (UUID)
        user_id: Owner
        name: Display name (max 100 chars)
        description: Optional description (max 500 chars)
        color: Hex color used by the sidebar
        icon: Short icon token (emoji)
        parent_id: Parent collection, NULL for roots
        order: Position among siblings
        created_at / updated_at: Timestamps

    Invariants:
        - parent_id, when set, references a collection of the same owner
        - the parent graph of one owner is acyclic (checked on write)

    Deletion:
        - never cascades to documents; documents must be reassigned first
        - parent_id uses RESTRICT so a parent cannot vanish under its children
    """

    __tablename__ = "collections"
    __table_args__ = (
        Index("ix_collections_user_order", "user_id", "order"),
        Index("ix_collections_user_parent", "user_id", "parent_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    name = Column(String(100), nullable=False)
    description = Column(String(500))
    color = Column(String(7), nullable=False, default=DEFAULT_COLLECTION_COLOR)
    icon = Column(String(16), nullable=False, default=DEFAULT_COLLECTION_ICON)
    parent_id = Column(Uuid, ForeignKey("collections.id", ondelete="RESTRICT"), nullable=True)
    order = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    # Relationships
    user = relationship("User", back_populates="collections")
    documents = relationship("Document", back_populates="collection")

    def __repr__(self):
        return f"<Collection(id={self.id}, name={self.name}, parent_id={self.parent_id})>"
