"""
Chat API endpoints
Ask the LLM about a document; history is kept per document
"""

from fastapi import APIRouter, Depends, Request
from uuid import UUID

from docshelf.api.deps import get_current_user, get_chat_service
from docshelf.models.user import User
from docshelf.schemas.chat import ChatHistoryResponse, ChatMessageResponse, ChatRequest, ChatResponse
from docshelf.services.chat_service import ChatService
from docshelf.middleware.rate_limiter import chat_rate_limit

router = APIRouter(prefix="/chat", tags=["chat"])


@router.post("/{document_id}", response_model=ChatResponse)
@chat_rate_limit()
async def send_message(
    request: Request,
    document_id: UUID,
    chat: ChatRequest,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service)
):
    """
    Send a message about a document

    Raises:
        404 if the document is missing
        503 if the AI service is unavailable (the message is not saved)
    """
    conversation = await service.send_message(current_user.id, document_id, chat.message, chat.page_number)
    messages = [ChatMessageResponse.model_validate(m) for m in conversation.messages]
    return ChatResponse(document_id=document_id, reply=messages[-1].content, messages=messages)


@router.get("/{document_id}", response_model=ChatHistoryResponse)
async def get_history(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service)
):
    """Conversation history (empty if none yet)"""
    conversation = service.get_conversation(current_user.id, document_id)
    messages = conversation.messages if conversation else []
    return ChatHistoryResponse(
        document_id=document_id,
        messages=[ChatMessageResponse.model_validate(m) for m in messages]
    )


@router.delete("/{document_id}", response_model=ChatHistoryResponse)
async def clear_history(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    service: ChatService = Depends(get_chat_service)
):
    """Delete all messages of the conversation"""
    service.clear_history(current_user.id, document_id)
    return ChatHistoryResponse(document_id=document_id, messages=[])
