"""
Pydantic Schemas for Document endpoints
Request/Response validation, query parameters and bulk operations
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import List, Optional
from datetime import date, datetime, time, timezone
from enum import Enum
from uuid import UUID

from docshelf.utils.formatting import format_file_size, megabytes_to_bytes

UNCATEGORIZED_SENTINELS = ("null", "uncategorized")
MAX_TAG_LENGTH = 50


def normalize_tags(tags) -> List[str]:
    """Trim, drop blanks and de-duplicate while keeping first-seen order"""
    if tags is None:
        return []
    if isinstance(tags, str):
        tags = tags.split(",")
    seen = []
    for tag in tags:
        tag = str(tag).strip()
        if tag and tag not in seen:
            if len(tag) > MAX_TAG_LENGTH:
                raise ValueError(f"Tag '{tag[:20]}...' exceeds {MAX_TAG_LENGTH} characters")
            seen.append(tag)
    return seen


class DocumentSort(str, Enum):
    """Allowed sort keys; a leading '-' means descending"""
    CREATED_DESC = "-created_at"
    CREATED_ASC = "created_at"
    NAME_ASC = "name"
    NAME_DESC = "-name"
    SIZE_ASC = "size"
    SIZE_DESC = "-size"
    PAGES_ASC = "pages"
    PAGES_DESC = "-pages"
    LAST_OPENED_DESC = "-last_opened"
    UPDATED_DESC = "-updated_at"


def _parse_bound(value, end_of_day: bool):
    """ISO date or datetime -> aware UTC datetime; a bare date spans the whole day"""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime.combine(value, time.max if end_of_day else time.min)
    else:
        text = str(value).strip()
        if not text:
            return None
        try:
            if len(text) == 10:
                parsed = datetime.combine(date.fromisoformat(text), time.max if end_of_day else time.min)
            else:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            raise ValueError(f"Invalid date: {text}")
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class DocumentFilterParams(BaseModel):
    """
    Query parameters for listing documents

    Sizes are megabytes at the API boundary; `min_size_bytes` and
    `max_size_bytes` give the values used in predicates.
    """
    model_config = ConfigDict(extra="ignore")

    search: Optional[str] = Field(None, description="Substring of the display or stored name")
    collection_id: Optional[str] = Field(None, description="Collection id, or 'null' for uncategorized")
    tags: Optional[str] = Field(None, description="Comma-separated tags, any match")
    date_from: Optional[str] = Field(None, description="ISO date or datetime, inclusive")
    date_to: Optional[str] = Field(None, description="ISO date or datetime, inclusive")
    min_size: Optional[float] = Field(None, ge=0, description="Minimum size in MB")
    max_size: Optional[float] = Field(None, ge=0, description="Maximum size in MB")
    min_pages: Optional[int] = Field(None, ge=0)
    max_pages: Optional[int] = Field(None, ge=0)
    sort: DocumentSort = DocumentSort.CREATED_DESC
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1, le=100)

    @field_validator("search", "collection_id", "tags", "date_from", "date_to", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value.strip() if isinstance(value, str) else value

    @field_validator("collection_id")
    @classmethod
    def check_collection_id(cls, value):
        if value is None or value.lower() in UNCATEGORIZED_SENTINELS:
            return value
        try:
            UUID(value)
        except ValueError:
            raise ValueError("collection_id must be a UUID or 'null'")
        return value

    @model_validator(mode="after")
    def check_ranges(self):
        if self.min_size is not None and self.max_size is not None and self.min_size > self.max_size:
            raise ValueError("min_size cannot be greater than max_size")
        if self.min_pages is not None and self.max_pages is not None and self.min_pages > self.max_pages:
            raise ValueError("min_pages cannot be greater than max_pages")
        created_after, created_before = self.created_after, self.created_before
        if created_after and created_before and created_after > created_before:
            raise ValueError("date_from cannot be after date_to")
        return self

    @property
    def uncategorized_only(self) -> bool:
        return self.collection_id is not None and self.collection_id.lower() in UNCATEGORIZED_SENTINELS

    @property
    def collection_uuid(self) -> Optional[UUID]:
        if self.collection_id is None or self.uncategorized_only:
            return None
        return UUID(self.collection_id)

    @property
    def tag_list(self) -> List[str]:
        return normalize_tags(self.tags)

    @property
    def created_after(self) -> Optional[datetime]:
        return _parse_bound(self.date_from, end_of_day=False)

    @property
    def created_before(self) -> Optional[datetime]:
        return _parse_bound(self.date_to, end_of_day=True)

    @property
    def min_size_bytes(self) -> Optional[int]:
        return None if self.min_size is None else megabytes_to_bytes(self.min_size)

    @property
    def max_size_bytes(self) -> Optional[int]:
        return None if self.max_size is None else megabytes_to_bytes(self.max_size)


class DocumentUpdate(BaseModel):
    """
    Single-document update; only fields present are applied.
    An explicit `collection_id: null` uncategorizes the document.
    """
    original_name: Optional[str] = Field(None, min_length=1, max_length=512)
    tags: Optional[List[str]] = None
    collection_id: Optional[UUID] = None

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, value):
        return None if value is None else normalize_tags(value)


class DocumentBulkUpdate(BaseModel):
    """The only fields a bulk update may touch"""
    model_config = ConfigDict(extra="forbid")

    tags: Optional[List[str]] = None
    collection_id: Optional[UUID] = None

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, value):
        return None if value is None else normalize_tags(value)


class DocumentIdsRequest(BaseModel):
    document_ids: List[UUID] = Field(..., min_length=1, max_length=500)


class DocumentBulkUpdateRequest(DocumentIdsRequest):
    updates: DocumentBulkUpdate


class DocumentBulkMoveRequest(DocumentIdsRequest):
    collection_id: Optional[UUID] = Field(None, description="Target collection, null for uncategorized")


class BulkOperationResponse(BaseModel):
    requested: int
    modified_count: int


class DocumentResponse(BaseModel):
    """Schema for document responses"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    filename: str
    original_name: str
    file_size: int
    file_size_formatted: str
    mime_type: str
    page_count: int
    collection_id: Optional[UUID] = None
    tags: List[str] = Field(default_factory=list)
    has_text: bool
    text_extraction_status: str
    ocr_status: str
    ocr_error: Optional[str] = None
    open_count: int
    last_opened_at: Optional[datetime] = None
    is_deleted: bool = False
    signed_url: Optional[str] = None
    thumbnail_url: Optional[str] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document, signed_url: Optional[str] = None, thumbnail_url: Optional[str] = None):
        return cls(
            id=document.id,
            user_id=document.user_id,
            filename=document.filename,
            original_name=document.original_name,
            file_size=document.file_size,
            file_size_formatted=format_file_size(document.file_size),
            mime_type=document.mime_type,
            page_count=document.page_count,
            collection_id=document.collection_id,
            tags=document.tag_list,
            has_text=document.has_text,
            text_extraction_status=document.text_extraction_status,
            ocr_status=document.ocr_status,
            ocr_error=document.ocr_error,
            open_count=document.open_count,
            last_opened_at=document.last_opened_at,
            is_deleted=document.is_deleted,
            signed_url=signed_url,
            thumbnail_url=thumbnail_url,
            created_at=document.created_at,
            updated_at=document.updated_at,
        )


class DocumentListResponse(BaseModel):
    """One page of filtered documents"""
    documents: List[DocumentResponse]
    total_documents: int
    total_pages: int
    current_page: int
    limit: int


class DocumentTextResponse(BaseModel):
    id: UUID
    has_text: bool
    text_extraction_status: str
    ocr_status: str
    text: str


class CollectionStat(BaseModel):
    collection_id: Optional[UUID] = None
    name: Optional[str] = None
    count: int
    total_size: int


class TagStat(BaseModel):
    tag: str
    count: int


class DocumentStatsResponse(BaseModel):
    total_documents: int
    total_size_bytes: int
    total_size: str
    total_pages: int
    avg_page_count: int
    avg_file_size_bytes: int
    avg_file_size: str
    recent_uploads: int
    collection_stats: List[CollectionStat]
    top_tags: List[TagStat]


class TextMatch(BaseModel):
    """One hit inside a document's text with surrounding context"""
    text: str
    position: int = Field(..., description="Character offset of the match")


class DocumentTextSearchResponse(BaseModel):
    id: UUID
    query: str
    matches: List[TextMatch]
    count: int


class EnrichmentRequestResponse(BaseModel):
    """Outcome of asking for text extraction or OCR to run again"""
    id: UUID
    queued: bool
    message: str
    has_text: bool
    text_extraction_status: str
    ocr_status: str
    ocr_error: Optional[str] = None
