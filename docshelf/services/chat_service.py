"""
Chat Service
One conversation per (user, document); the document's text is the LLM context
"""

from sqlalchemy.orm import Session
from datetime import timedelta
from typing import Dict, List, Optional
from uuid import UUID
import logging

from docshelf.config import settings
from docshelf.models.conversation import Conversation, ConversationMessage
from docshelf.models.document import Document
from docshelf.services.llm_service import LLMService
from docshelf.core.exceptions import NotFoundError
from docshelf.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

NO_CONTEXT = "No text content available."


def build_system_prompt(document_name: str, context: str, page_number: Optional[int] = None) -> str:
    """System message: assistant role, truncated document text and the reader's page"""
    excerpt = (context or "")[:settings.CHAT_CONTEXT_CHARS] or NO_CONTEXT
    prompt = (
        f'You are a helpful assistant answering questions about the document "{document_name}". '
        "Base your answers on the document content below. If the answer is not in the "
        "document, say so.\n\n"
        f"Document content:\n{excerpt}"
    )
    if page_number:
        prompt += f"\n\nThe user is currently viewing page {page_number}."
    return prompt


class ChatService:
    """Document chat backed by the LLM collaborator"""

    def __init__(self, db: Session, llm_service: Optional[LLMService] = None):
        self.db = db
        self.llm_service = llm_service or LLMService()

    def _document(self, user_id: UUID, document_id: UUID) -> Document:
        document = self.db.query(Document).filter(
            Document.id == document_id,
            Document.user_id == user_id,
            Document.is_deleted.is_(False)
        ).first()
        if not document:
            raise NotFoundError("Document not found", details={"document_id": str(document_id)})
        return document

    def get_conversation(self, user_id: UUID, document_id: UUID) -> Optional[Conversation]:
        self._document(user_id, document_id)
        return self.db.query(Conversation).filter(
            Conversation.user_id == user_id,
            Conversation.document_id == document_id
        ).first()

    def _get_or_create(self, user_id: UUID, document: Document) -> Conversation:
        conversation = self.db.query(Conversation).filter(
            Conversation.user_id == user_id,
            Conversation.document_id == document.id
        ).first()
        if conversation is None:
            conversation = Conversation(user_id=user_id, document_id=document.id, context=document.context_text)
            self.db.add(conversation)
            self.db.commit()
            self.db.refresh(conversation)
        elif not conversation.context and document.context_text:
            # Enrichment may have finished after the conversation started
            conversation.context = document.context_text
            self.db.commit()
        return conversation

    async def send_message(
        self,
        user_id: UUID,
        document_id: UUID,
        message: str,
        page_number: Optional[int] = None
    ) -> Conversation:
        """
        Ask the LLM about a document and persist the exchange

        The user message and the reply are stored together only after the
        LLM answers, so a failed call leaves the history unchanged.

        Raises:
            NotFoundError: document missing or not owned
            LLMServiceError: LLM unavailable
        """
        document = self._document(user_id, document_id)
        conversation = self._get_or_create(user_id, document)

        history: List[Dict[str, str]] = [
            {"role": m.role, "content": m.content} for m in conversation.messages
        ]
        history.append({"role": "user", "content": message})
        recent = history[-settings.CHAT_HISTORY_MESSAGES:]

        messages = [{
            "role": "system",
            "content": build_system_prompt(document.original_name, conversation.context, page_number),
        }] + recent

        reply = await self.llm_service.complete(
            messages,
            temperature=settings.CHAT_TEMPERATURE,
            max_tokens=settings.CHAT_MAX_TOKENS,
        )

        asked_at = utcnow()
        conversation.messages.append(ConversationMessage(role="user", content=message, created_at=asked_at))
        conversation.messages.append(
            ConversationMessage(role="assistant", content=reply, created_at=asked_at + timedelta(microseconds=1))
        )
        conversation.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(conversation)

        logger.info(f"Chat reply for document {document_id}: {len(reply)} chars")
        return conversation

    def clear_history(self, user_id: UUID, document_id: UUID) -> int:
        """Delete all messages of the conversation; returns how many were removed"""
        conversation = self.get_conversation(user_id, document_id)
        if conversation is None:
            return 0
        removed = len(conversation.messages)
        conversation.messages.clear()
        self.db.commit()
        return removed
