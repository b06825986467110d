"""
Pydantic Schemas for reading progress endpoints
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Literal, Optional
from datetime import datetime
from uuid import UUID

ViewMode = Literal["single", "continuous"]


class ReadingProgressUpdate(BaseModel):
    current_page: int = Field(..., ge=1)
    total_pages: Optional[int] = Field(None, ge=1, description="Defaults to the document's page count")
    zoom: Optional[float] = Field(None, gt=0, le=10)
    view_mode: Optional[ViewMode] = None


class ReadingProgressResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    document_id: UUID
    current_page: int
    total_pages: int
    progress: int = Field(..., ge=0, le=100, description="Percent read")
    zoom: float
    view_mode: str
    last_read_at: Optional[datetime] = None


class RecentReadingItem(ReadingProgressResponse):
    document_name: str


class RecentReadingResponse(BaseModel):
    items: List[RecentReadingItem]
