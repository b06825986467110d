"""
SQLAlchemy Database Models

All models use UUID primary keys and timezone-aware timestamps.

Models:
    - User: Authentication and ownership
    - APIKey: API authentication tokens
    - Collection: Hierarchical folders (self-referencing parent_id)
    - Document / DocumentTag: Uploaded PDFs and their tags
    - Note: Page annotations
    - ReadingProgress: Per-user reading position
    - Conversation / ConversationMessage: Document chat history

Relationships:
    User 1:N APIKey
    User 1:N Collection
    Collection 1:N Collection (children)
    Collection 1:N Document (collection_id nullable)
    Document 1:N DocumentTag
"""

from docshelf.models.user import User
from docshelf.models.api_key import APIKey
from docshelf.models.collection import Collection
from docshelf.models.document import Document, DocumentTag, TextExtractionStatus, OCRStatus
from docshelf.models.note import Note
from docshelf.models.reading_progress import ReadingProgress
from docshelf.models.conversation import Conversation, ConversationMessage

__all__ = [
    "User",
    "APIKey",
    "Collection",
    "Document",
    "DocumentTag",
    "TextExtractionStatus",
    "OCRStatus",
    "Note",
    "ReadingProgress",
    "Conversation",
    "ConversationMessage",
]
