"""
FastAPI dependencies
Authentication, collaborators owned by the app, and per-request services
"""

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session
from typing import Callable

from docshelf.database import get_db
from docshelf.models.user import User
from docshelf.models.api_key import APIKey
from docshelf.core.security import hash_api_key, is_expired, parse_bearer
from docshelf.core.exceptions import http_401_unauthorized
from docshelf.services.collection_service import CollectionService
from docshelf.services.document_query import DocumentQueryService
from docshelf.services.document_lifecycle import DocumentLifecycleService
from docshelf.services.chat_service import ChatService
from docshelf.services.llm_service import LLMService
from docshelf.services.pdf_service import PDFService
from docshelf.storage.base import StorageBackend
from docshelf.utils.timeutils import utcnow


async def get_current_user(
    authorization: str = Header(..., description="Bearer token"),
    db: Session = Depends(get_db)
) -> User:
    """
    Get current authenticated user from API key

    Args:
        authorization: Authorization header (format: "Bearer ds_...")
        db: Database session

    Returns:
        User: Authenticated user

    Raises:
        HTTPException: 401 if authentication fails
    """
    api_key = parse_bearer(authorization)
    if api_key is None:
        raise http_401_unauthorized("Invalid authorization header format")

    api_key_obj = db.query(APIKey).filter(APIKey.key_hash == hash_api_key(api_key)).first()
    if not api_key_obj:
        raise http_401_unauthorized("Invalid API key")

    now = utcnow()
    if is_expired(api_key_obj.expires_at, now):
        raise http_401_unauthorized("API key expired")

    api_key_obj.last_used_at = now
    db.commit()

    user = db.query(User).filter(User.id == api_key_obj.user_id).first()
    if not user:
        raise http_401_unauthorized("User not found")
    if not user.is_active:
        raise http_401_unauthorized("User account is inactive")

    return user


# ==============================================================================
# Application-owned collaborators
# ==============================================================================
# Created in the startup routine and kept on app.state


def get_storage(request: Request) -> StorageBackend:
    return request.app.state.storage


def get_pdf_service(request: Request) -> PDFService:
    return request.app.state.pdf_service


def get_llm_service(request: Request) -> LLMService:
    return request.app.state.llm_service


def get_enrichment_dispatcher() -> Callable:
    """Queues text extraction for a document"""
    from docshelf.tasks.enrich_document import dispatch_enrichment
    return dispatch_enrichment


def get_ocr_dispatcher() -> Callable:
    """Queues OCR recovery for a document"""
    from docshelf.tasks.enrich_document import dispatch_ocr
    return dispatch_ocr


# ==============================================================================
# Per-request services
# ==============================================================================


def get_collection_service(db: Session = Depends(get_db)) -> CollectionService:
    return CollectionService(db)


def get_document_query_service(
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage)
) -> DocumentQueryService:
    return DocumentQueryService(db, storage)


def get_document_lifecycle_service(
    db: Session = Depends(get_db),
    storage: StorageBackend = Depends(get_storage),
    pdf_service: PDFService = Depends(get_pdf_service),
    dispatch: Callable = Depends(get_enrichment_dispatcher),
    dispatch_ocr: Callable = Depends(get_ocr_dispatcher)
) -> DocumentLifecycleService:
    return DocumentLifecycleService(
        db, storage, pdf_service=pdf_service, dispatch_enrichment=dispatch, dispatch_ocr=dispatch_ocr
    )


def get_chat_service(
    db: Session = Depends(get_db),
    llm_service: LLMService = Depends(get_llm_service)
) -> ChatService:
    return ChatService(db, llm_service)
