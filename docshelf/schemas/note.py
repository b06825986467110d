"""
Pydantic Schemas for Note endpoints
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime
from uuid import UUID

from docshelf.models.note import NOTE_COLORS, DEFAULT_NOTE_COLOR


def _check_color(value):
    if value is not None and value.lower() not in NOTE_COLORS:
        raise ValueError(f"color must be one of {', '.join(NOTE_COLORS)}")
    return value.lower() if value else value


def _check_content(value):
    if value is not None and not value.strip():
        raise ValueError("content cannot be empty")
    return value.strip() if value else value


class NoteCreate(BaseModel):
    page_number: int = Field(..., ge=1)
    content: str = Field(..., min_length=1, max_length=10000)
    color: str = DEFAULT_NOTE_COLOR

    _color = field_validator("color")(_check_color)
    _content = field_validator("content")(_check_content)


class NoteUpdate(BaseModel):
    content: Optional[str] = Field(None, min_length=1, max_length=10000)
    color: Optional[str] = None

    _color = field_validator("color")(_check_color)
    _content = field_validator("content")(_check_content)


class NoteResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    document_id: UUID
    page_number: int
    content: str
    color: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class NoteListResponse(BaseModel):
    notes: List[NoteResponse]
    total: int
