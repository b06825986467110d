"""
API Routes and Endpoints

Routers:
    - auth: Registration, profile
    - collections: Collection tree CRUD
    - documents: Upload, listing, bulk operations
    - notes: Page annotations
    - reading_progress: Reading position
    - chat: Document chat
"""

from docshelf.api import auth, collections, documents, notes, reading_progress, chat

__all__ = ["auth", "collections", "documents", "notes", "reading_progress", "chat"]
