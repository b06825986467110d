"""
Pydantic Schemas for Collection endpoints
Request/Response validation
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import List, Optional
from datetime import datetime
from uuid import UUID

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


def _strip(value):
    return value.strip() if isinstance(value, str) else value


class CollectionCreate(BaseModel):
    """Schema for creating a new collection"""
    name: str = Field(..., min_length=1, max_length=100, description="Collection name")
    description: Optional[str] = Field(None, max_length=500)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN, description="Hex color, e.g. #4f46e5")
    icon: Optional[str] = Field(None, max_length=16, description="Short icon token (emoji)")
    parent_id: Optional[UUID] = Field(None, description="Parent collection, omit for a root collection")

    _strip_text = field_validator("name", "description", mode="before")(_strip)


class CollectionUpdate(BaseModel):
    """
    Schema for updating a collection (all fields optional)

    Only fields present in the request body are applied; an explicit
    `parent_id: null` moves the collection to the root.
    """
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    color: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    icon: Optional[str] = Field(None, max_length=16)
    parent_id: Optional[UUID] = None
    order: Optional[int] = Field(None, ge=0)

    _strip_text = field_validator("name", "description", mode="before")(_strip)


class CollectionResponse(BaseModel):
    """Schema for collection responses"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    name: str
    description: Optional[str] = None
    color: str
    icon: str
    parent_id: Optional[UUID] = None
    order: int
    document_count: int = Field(default=0, description="Non-deleted documents directly in this collection")
    created_at: datetime
    updated_at: Optional[datetime] = None


class BreadcrumbItem(BaseModel):
    id: UUID
    name: str


class CollectionDetailResponse(CollectionResponse):
    """Single collection with its breadcrumb"""
    path: List[BreadcrumbItem] = Field(default_factory=list, description="Root-to-collection breadcrumb")
    path_label: str = Field("", description="Breadcrumb joined with ' / '")


class CollectionTreeNode(CollectionResponse):
    """Collection with nested children"""
    children: List["CollectionTreeNode"] = Field(default_factory=list)


class CollectionListResponse(BaseModel):
    """Flat list ordered by (order, created_at) plus the nested tree"""
    collections: List[CollectionResponse]
    tree: Optional[List[CollectionTreeNode]] = None


class CollectionOrderItem(BaseModel):
    id: UUID
    order: int = Field(..., ge=0)


class CollectionReorderRequest(BaseModel):
    collections: List[CollectionOrderItem]


class CollectionReorderResponse(BaseModel):
    modified_count: int


class CollectionDeleteResponse(BaseModel):
    id: UUID
    moved_documents: int = 0
