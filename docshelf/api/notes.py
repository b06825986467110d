"""
Note API endpoints
Page annotations on a document
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from docshelf.database import get_db
from docshelf.api.deps import get_current_user
from docshelf.models.user import User
from docshelf.models.document import Document
from docshelf.models.note import Note
from docshelf.schemas.note import NoteCreate, NoteListResponse, NoteResponse, NoteUpdate
from docshelf.core.exceptions import NotFoundError, ValidationError

router = APIRouter(prefix="/documents/{document_id}/notes", tags=["notes"])


def _get_document(db: Session, user_id: UUID, document_id: UUID) -> Document:
    document = db.query(Document).filter(
        Document.id == document_id,
        Document.user_id == user_id,
        Document.is_deleted.is_(False)
    ).first()
    if not document:
        raise NotFoundError("Document not found", details={"document_id": str(document_id)})
    return document


def _get_note(db: Session, user_id: UUID, document_id: UUID, note_id: UUID) -> Note:
    note = db.query(Note).filter(
        Note.id == note_id,
        Note.document_id == document_id,
        Note.user_id == user_id,
        Note.is_deleted.is_(False)
    ).first()
    if not note:
        raise NotFoundError("Note not found", details={"note_id": str(note_id)})
    return note


@router.post("", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
async def create_note(
    document_id: UUID,
    note: NoteCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """
    Add a note to a page

    A document with a page count of 0 accepts no notes.

    Raises:
        400 if page_number is beyond the document's last page
        404 if the document is missing
    """
    document = _get_document(db, current_user.id, document_id)
    if note.page_number > document.page_count:
        raise ValidationError(
            f"Page number must be between 1 and {document.page_count}",
            details={"page_count": document.page_count}
        )

    db_note = Note(
        user_id=current_user.id,
        document_id=document.id,
        page_number=note.page_number,
        content=note.content,
        color=note.color,
    )
    db.add(db_note)
    db.commit()
    db.refresh(db_note)
    return db_note


@router.get("", response_model=NoteListResponse)
async def list_notes(
    document_id: UUID,
    page_number: Optional[int] = Query(None, ge=1, description="Only notes on this page"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List notes ordered by page, newest first within a page"""
    _get_document(db, current_user.id, document_id)

    query = db.query(Note).filter(
        Note.document_id == document_id,
        Note.user_id == current_user.id,
        Note.is_deleted.is_(False)
    )
    if page_number is not None:
        query = query.filter(Note.page_number == page_number)

    notes = query.order_by(Note.page_number.asc(), Note.created_at.desc()).all()
    return NoteListResponse(notes=notes, total=len(notes))


@router.put("/{note_id}", response_model=NoteResponse)
async def update_note(
    document_id: UUID,
    note_id: UUID,
    update: NoteUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Change a note's content and/or color"""
    note = _get_note(db, current_user.id, document_id, note_id)

    if update.content is not None:
        note.content = update.content
    if update.color is not None:
        note.color = update.color

    db.commit()
    db.refresh(note)
    return note


@router.delete("/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_note(
    document_id: UUID,
    note_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Soft-delete a note"""
    note = _get_note(db, current_user.id, document_id, note_id)
    note.is_deleted = True
    db.commit()
    return None
