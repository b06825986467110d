"""
Reading progress API endpoints
Last page, zoom and view mode per document
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from uuid import UUID

from docshelf.database import get_db
from docshelf.api.deps import get_current_user
from docshelf.models.user import User
from docshelf.models.document import Document
from docshelf.models.reading_progress import ReadingProgress
from docshelf.schemas.reading_progress import (
    ReadingProgressResponse,
    ReadingProgressUpdate,
    RecentReadingItem,
    RecentReadingResponse,
)
from docshelf.core.exceptions import NotFoundError, ValidationError
from docshelf.utils.timeutils import utcnow

router = APIRouter(prefix="/reading-progress", tags=["reading-progress"])


def compute_progress(current_page: int, total_pages: int) -> int:
    """Percent read, rounded and clamped to 0..100"""
    if not total_pages:
        return 0
    return max(0, min(100, round(current_page / total_pages * 100)))


def _get_document(db: Session, user_id: UUID, document_id: UUID) -> Document:
    document = db.query(Document).filter(
        Document.id == document_id,
        Document.user_id == user_id,
        Document.is_deleted.is_(False)
    ).first()
    if not document:
        raise NotFoundError("Document not found", details={"document_id": str(document_id)})
    return document


@router.get("/recent", response_model=RecentReadingResponse)
async def recent_reading(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Most recently read documents with their progress"""
    rows = db.query(ReadingProgress, Document.original_name).join(
        Document, Document.id == ReadingProgress.document_id
    ).filter(
        ReadingProgress.user_id == current_user.id,
        Document.is_deleted.is_(False)
    ).order_by(ReadingProgress.last_read_at.desc()).limit(limit).all()

    return RecentReadingResponse(items=[
        RecentReadingItem(
            **ReadingProgressResponse.model_validate(progress).model_dump(),
            document_name=name
        )
        for progress, name in rows
    ])


@router.get("/{document_id}", response_model=ReadingProgressResponse)
async def get_reading_progress(
    document_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Saved position, or the defaults when the document was never read"""
    document = _get_document(db, current_user.id, document_id)

    progress = db.query(ReadingProgress).filter(
        ReadingProgress.user_id == current_user.id,
        ReadingProgress.document_id == document.id
    ).first()

    if progress is None:
        return ReadingProgressResponse(
            document_id=document.id,
            current_page=1,
            total_pages=document.page_count or 1,
            progress=0,
            zoom=1.0,
            view_mode="continuous",
            last_read_at=None
        )
    return progress


@router.put("/{document_id}", response_model=ReadingProgressResponse)
async def update_reading_progress(
    document_id: UUID,
    update: ReadingProgressUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Create or update the saved position"""
    document = _get_document(db, current_user.id, document_id)

    total_pages = update.total_pages or document.page_count or update.current_page
    if update.current_page > total_pages:
        raise ValidationError(f"current_page cannot exceed {total_pages}")

    progress = db.query(ReadingProgress).filter(
        ReadingProgress.user_id == current_user.id,
        ReadingProgress.document_id == document.id
    ).first()
    if progress is None:
        progress = ReadingProgress(user_id=current_user.id, document_id=document.id)
        db.add(progress)

    now = utcnow()
    progress.current_page = update.current_page
    progress.total_pages = total_pages
    progress.progress = compute_progress(update.current_page, total_pages)
    if update.zoom is not None:
        progress.zoom = update.zoom
    elif progress.zoom is None:
        progress.zoom = 1.0
    if update.view_mode is not None:
        progress.view_mode = update.view_mode
    elif progress.view_mode is None:
        progress.view_mode = "continuous"
    progress.last_read_at = now
    document.last_opened_at = now

    db.commit()
    db.refresh(progress)
    return progress
