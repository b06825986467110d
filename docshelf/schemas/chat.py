"""
Pydantic Schemas for document chat endpoints
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime
from uuid import UUID


class ChatRequest(BaseModel):
    """Schema for a chat message about a document"""
    message: str = Field(..., min_length=1, max_length=4000, description="User question")
    page_number: Optional[int] = Field(None, ge=1, description="Page the user is viewing")


class ChatMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    role: str
    content: str
    created_at: datetime


class ChatResponse(BaseModel):
    """Assistant reply plus the updated history"""
    document_id: UUID
    reply: str
    messages: List[ChatMessageResponse]


class ChatHistoryResponse(BaseModel):
    document_id: UUID
    messages: List[ChatMessageResponse] = Field(default_factory=list)
