"""
Document Query Service

Translates DocumentFilterParams into an owner-scoped SQL query and returns
a page of documents decorated with formatted sizes and signed URLs.
"""

from sqlalchemy.orm import Session
from sqlalchemy import func, or_
from dataclasses import dataclass
from typing import List, Optional
from uuid import UUID
import logging
import math
import re

from docshelf.config import settings
from docshelf.models.document import Document, DocumentTag
from docshelf.schemas.document import DocumentFilterParams, DocumentResponse, DocumentSort, TextMatch
from docshelf.core.exceptions import NotFoundError
from docshelf.storage.base import StorageBackend

logger = logging.getLogger(__name__)

LIKE_ESCAPE = "\\"


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input matches literally"""
    return (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )


def find_text_matches(text: str, term: str, context: int = 50, limit: int = 100) -> List[TextMatch]:
    """
    Case-insensitive literal matches of `term` in `text`

    Each match carries up to `context` characters on either side; at most
    `limit` matches are returned, in order of position.
    """
    if not text or not term:
        return []
    matches = []
    for match in re.finditer(re.escape(term), text, flags=re.IGNORECASE):
        start = max(0, match.start() - context)
        end = min(len(text), match.end() + context)
        matches.append(TextMatch(text=text[start:end], position=match.start()))
        if len(matches) >= limit:
            break
    return matches


SORT_COLUMNS = {
    DocumentSort.CREATED_DESC: lambda: [Document.created_at.desc()],
    DocumentSort.CREATED_ASC: lambda: [Document.created_at.asc()],
    DocumentSort.NAME_ASC: lambda: [func.lower(Document.original_name).asc()],
    DocumentSort.NAME_DESC: lambda: [func.lower(Document.original_name).desc()],
    DocumentSort.SIZE_ASC: lambda: [Document.file_size.asc()],
    DocumentSort.SIZE_DESC: lambda: [Document.file_size.desc()],
    DocumentSort.PAGES_ASC: lambda: [Document.page_count.asc()],
    DocumentSort.PAGES_DESC: lambda: [Document.page_count.desc()],
    DocumentSort.LAST_OPENED_DESC: lambda: [Document.last_opened_at.desc().nulls_last()],
    DocumentSort.UPDATED_DESC: lambda: [Document.updated_at.desc()],
}


@dataclass
class DocumentPage:
    documents: List[DocumentResponse]
    total_documents: int
    total_pages: int
    current_page: int
    limit: int


class DocumentQueryService:
    """Read side of the document library"""

    def __init__(self, db: Session, storage: Optional[StorageBackend] = None, url_expiry: int = None):
        self.db = db
        self.storage = storage
        self.url_expiry = url_expiry or settings.SIGNED_URL_EXPIRY

    def base_query(self, user_id: UUID):
        """Live documents of one owner"""
        return self.db.query(Document).filter(
            Document.user_id == user_id,
            Document.is_deleted.is_(False)
        )

    @staticmethod
    def build_conditions(params: DocumentFilterParams) -> list:
        """
        Predicates for the given parameters, ANDed by the caller

        Unset parameters contribute nothing, so adding a parameter can only
        narrow the result.
        """
        conditions = []

        if params.search:
            pattern = f"%{escape_like(params.search)}%"
            conditions.append(or_(
                Document.original_name.ilike(pattern, escape=LIKE_ESCAPE),
                Document.filename.ilike(pattern, escape=LIKE_ESCAPE),
            ))

        if params.uncategorized_only:
            conditions.append(Document.collection_id.is_(None))
        elif params.collection_uuid is not None:
            conditions.append(Document.collection_id == params.collection_uuid)

        tags = params.tag_list
        if tags:
            conditions.append(Document.tag_rows.any(DocumentTag.name.in_(tags)))

        if params.created_after is not None:
            conditions.append(Document.created_at >= params.created_after)
        if params.created_before is not None:
            conditions.append(Document.created_at <= params.created_before)

        if params.min_size_bytes is not None:
            conditions.append(Document.file_size >= params.min_size_bytes)
        if params.max_size_bytes is not None:
            conditions.append(Document.file_size <= params.max_size_bytes)

        if params.min_pages is not None:
            conditions.append(Document.page_count >= params.min_pages)
        if params.max_pages is not None:
            conditions.append(Document.page_count <= params.max_pages)

        return conditions

    @staticmethod
    def order_by(sort: DocumentSort) -> list:
        """Primary sort plus created_at DESC and id tiebreakers for a total order"""
        return SORT_COLUMNS[sort]() + [Document.created_at.desc(), Document.id.asc()]

    def signed_url(self, document: Document) -> Optional[str]:
        """Fresh URL for the stored PDF, or None if storage cannot produce one"""
        if self.storage is None:
            return None
        try:
            return self.storage.get_url(document.storage_path, document.user_id, expires_in=self.url_expiry)
        except Exception as e:
            logger.warning(f"Could not sign URL for document {document.id}: {e}")
            return None

    def thumbnail_url(self, document: Document) -> Optional[str]:
        if self.storage is None or not document.thumbnail_path:
            return None
        try:
            return self.storage.get_url(document.thumbnail_path, document.user_id, expires_in=self.url_expiry)
        except Exception as e:
            logger.warning(f"Could not sign thumbnail URL for document {document.id}: {e}")
            return None

    def decorate(self, document: Document) -> DocumentResponse:
        return DocumentResponse.from_document(
            document,
            signed_url=self.signed_url(document),
            thumbnail_url=self.thumbnail_url(document),
        )

    def list_documents(self, user_id: UUID, params: DocumentFilterParams) -> DocumentPage:
        """
        Filtered, sorted, paginated documents of one owner

        Args:
            user_id: Owner
            params: Validated filter parameters

        Returns:
            DocumentPage with decorated documents and pagination totals
        """
        query = self.base_query(user_id).filter(*self.build_conditions(params))

        total = query.order_by(None).count()
        documents = (
            query.order_by(*self.order_by(params.sort))
            .offset((params.page - 1) * params.limit)
            .limit(params.limit)
            .all()
        )

        return DocumentPage(
            documents=[self.decorate(d) for d in documents],
            total_documents=total,
            total_pages=math.ceil(total / params.limit) if total else 0,
            current_page=params.page,
            limit=params.limit,
        )

    def search(self, user_id: UUID, q: str, limit: int = 10) -> List[DocumentResponse]:
        """Quick name search, newest first"""
        params = DocumentFilterParams(search=q, limit=limit)
        documents = (
            self.base_query(user_id)
            .filter(*self.build_conditions(params))
            .order_by(*self.order_by(DocumentSort.CREATED_DESC))
            .limit(limit)
            .all()
        )
        return [self.decorate(d) for d in documents]

    def recent(self, user_id: UUID, limit: int = 10) -> List[DocumentResponse]:
        """Documents opened at least once, most recently opened first"""
        documents = (
            self.base_query(user_id)
            .filter(Document.last_opened_at.isnot(None))
            .order_by(Document.last_opened_at.desc(), Document.id.asc())
            .limit(limit)
            .all()
        )
        return [self.decorate(d) for d in documents]

    def search_text(self, user_id: UUID, document_id: UUID, q: str) -> List[TextMatch]:
        """
        Matches of `q` inside one live document's best available text

        Raises:
            NotFoundError: missing, soft-deleted or not owned
        """
        document = self.base_query(user_id).filter(Document.id == document_id).first()
        if not document:
            raise NotFoundError("Document not found", details={"document_id": str(document_id)})

        return find_text_matches(
            document.context_text,
            q,
            context=settings.TEXT_SEARCH_CONTEXT_CHARS,
            limit=settings.TEXT_SEARCH_MAX_MATCHES,
        )
