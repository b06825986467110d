"""
Conversation Models - Per-document chat history
"""

from sqlalchemy import Column, String, Text, ForeignKey, DateTime, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
import uuid

from docshelf.database import Base
from docshelf.utils.timeutils import utcnow


class Conversation(Base):
    """
    Conversation with the LLM about one document

    Attributes:
        context: Cached document text used as LLM context
        messages: Ordered user/assistant messages
    """

    __tablename__ = "conversations"
    __table_args__ = (
        UniqueConstraint("user_id", "document_id", name="uq_conversation_user_document"),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    document_id = Column(Uuid, ForeignKey("documents.id", ondelete="CASCADE"), nullable=False)
    context = Column(Text)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    messages = relationship(
        "ConversationMessage",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="ConversationMessage.created_at",
    )


class ConversationMessage(Base):
    """Single message in a conversation (role: user or assistant)"""

    __tablename__ = "conversation_messages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    conversation_id = Column(Uuid, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String(20), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)

    conversation = relationship("Conversation", back_populates="messages")
