"""
Document API endpoints
Upload, filtered listing, search, statistics, bulk operations, text
extraction requests and CRUD
"""

from fastapi import APIRouter, Depends, File, Form, Query, Request, Response, UploadFile, status
from typing import Annotated, List, Optional
from uuid import UUID
import logging

from docshelf.api.deps import (
    get_current_user,
    get_document_lifecycle_service,
    get_document_query_service,
)
from docshelf.models.user import User
from docshelf.models.document import TextExtractionStatus
from docshelf.schemas.document import (
    BulkOperationResponse,
    DocumentBulkMoveRequest,
    DocumentBulkUpdateRequest,
    DocumentFilterParams,
    DocumentIdsRequest,
    DocumentListResponse,
    DocumentResponse,
    DocumentStatsResponse,
    DocumentTextResponse,
    DocumentTextSearchResponse,
    DocumentUpdate,
    EnrichmentRequestResponse,
    UNCATEGORIZED_SENTINELS,
)
from docshelf.services.document_lifecycle import DocumentLifecycleService
from docshelf.services.document_query import DocumentQueryService
from docshelf.middleware.rate_limiter import upload_rate_limit
from docshelf.core.exceptions import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/documents", tags=["documents"])


def _parse_collection_form(value: Optional[str]) -> Optional[UUID]:
    if value is None or not value.strip() or value.strip().lower() in UNCATEGORIZED_SENTINELS:
        return None
    try:
        return UUID(value.strip())
    except ValueError:
        raise ValidationError("collection_id must be a UUID")


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
@upload_rate_limit()
async def upload_document(
    request: Request,
    file: UploadFile = File(..., description="PDF file to upload"),
    collection_id: Optional[str] = Form(None, description="Collection ID (omit for uncategorized)"),
    tags: Optional[str] = Form(None, description="Comma-separated tags"),
    current_user: User = Depends(get_current_user),
    lifecycle: DocumentLifecycleService = Depends(get_document_lifecycle_service),
    query: DocumentQueryService = Depends(get_document_query_service)
):
    """
    Upload a PDF

    The file is stored, its page count read, and text extraction queued in
    the background. `text_extraction_status` starts as `pending`.
    """
    content = await file.read()
    document = lifecycle.create(
        current_user.id,
        content,
        original_name=file.filename,
        content_type=file.content_type,
        collection_id=_parse_collection_form(collection_id),
        tags=tags.split(",") if tags else None,
    )
    return query.decorate(document)


@router.get("", response_model=DocumentListResponse)
async def list_documents(
    params: Annotated[DocumentFilterParams, Query()],
    current_user: User = Depends(get_current_user),
    query: DocumentQueryService = Depends(get_document_query_service)
):
    """
    List documents with filters, sorting and pagination

    Sizes are in megabytes. `collection_id=null` returns uncategorized
    documents only; `tags` matches documents carrying any of the listed tags.
    """
    page = query.list_documents(current_user.id, params)
    return DocumentListResponse(
        documents=page.documents,
        total_documents=page.total_documents,
        total_pages=page.total_pages,
        current_page=page.current_page,
        limit=page.limit
    )


@router.get("/search", response_model=List[DocumentResponse])
async def search_documents(
    q: str = Query(..., min_length=1, max_length=200, description="Name substring"),
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    query: DocumentQueryService = Depends(get_document_query_service)
):
    """Quick search by document name"""
    return query.search(current_user.id, q, limit)


@router.get("/stats", response_model=DocumentStatsResponse)
async def document_statistics(
    current_user: User = Depends(get_current_user),
    lifecycle: DocumentLifecycleService = Depends(get_document_lifecycle_service)
):
    """Library totals, per-collection breakdown and top tags"""
    return DocumentStatsResponse(**lifecycle.statistics(current_user.id))


@router.get("/recent", response_model=List[DocumentResponse])
async def recent_documents(
    limit: int = Query(10, ge=1, le=50),
    current_user: User = Depends(get_current_user),
    query: DocumentQueryService = Depends(get_document_query_service)
):
    """Most recently opened documents"""
    return query.recent(current_user.id, limit)


@router.post("/bulk-delete", response_model=BulkOperationResponse)
async def bulk_delete_documents(
    request: DocumentIdsRequest,
    current_user: User = Depends(get_current_user),
    lifecycle: DocumentLifecycleService = Depends(get_document_lifecycle_service)
):
    """Soft-delete several documents"""
    deleted = lifecycle.bulk_delete(current_user.id, request.document_ids)
    return BulkOperationResponse(requested=len(request.document_ids), modified_count=deleted)


@router.post("/bulk-update", response_model=BulkOperationResponse)
async def bulk_update_documents(
    request: DocumentBulkUpdateRequest,
    current_user: User = Depends(get_current_user),
    lifecycle: DocumentLifecycleService = Depends(get_document_lifecycle_service)
):
    """
    Set tags and/or collection on several documents

    Only `tags` and `collection_id` are accepted in `updates`.
    """
    modified = lifecycle.bulk_update(current_user.id, request.document_ids, request.updates)
    return BulkOperationResponse(requested=len(request.document_ids), modified_count=modified)


@router.post("/bulk-move", response_model=BulkOperationResponse)
async def bulk_move_documents(
    request: DocumentBulkMoveRequest,
    current_user: User = Depends(get_current_user),
    lifecycle: DocumentLifecycleService = Depends(get_document_lifecycle_service)
):
    """Move several documents into a collection (null = uncategorized)"""
    modified = lifecycle.bulk_move(current_user.id, request.document_ids, request.collection_id)
    return BulkOperationResponse(requested=len(request.document_ids), modified_count=modified)


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    lifecycle: DocumentLifecycleService = Depends(get_document_lifecycle_service),
    query: DocumentQueryService = Depends(get_document_query_service)
):
    """Open a document: returns a fresh signed URL and counts the open"""
    document = lifecycle.get(current_user.id, document_id, record_open=True)
    return query.decorate(document)


@router.get("/{document_id}/text", response_model=DocumentTextResponse)
async def get_document_text(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    lifecycle: DocumentLifecycleService = Depends(get_document_lifecycle_service)
):
    """Best available text (native layer or recovered)"""
    document = lifecycle.get(current_user.id, document_id)
    return DocumentTextResponse(
        id=document.id,
        has_text=document.has_text,
        text_extraction_status=document.text_extraction_status,
        ocr_status=document.ocr_status,
        text=document.context_text
    )


def _enrichment_response(document, queued: bool, message: str) -> EnrichmentRequestResponse:
    return EnrichmentRequestResponse(
        id=document.id,
        queued=queued,
        message=message,
        has_text=document.has_text,
        text_extraction_status=document.text_extraction_status,
        ocr_status=document.ocr_status,
        ocr_error=document.ocr_error,
    )


@router.get("/{document_id}/search", response_model=DocumentTextSearchResponse)
async def search_document_text(
    document_id: UUID,
    q: str = Query(..., min_length=1, max_length=200, description="Text to find (case-insensitive, literal)"),
    current_user: User = Depends(get_current_user),
    query: DocumentQueryService = Depends(get_document_query_service)
):
    """Find a phrase inside one document's text, with surrounding snippets"""
    matches = query.search_text(current_user.id, document_id, q)
    return DocumentTextSearchResponse(id=document_id, query=q, matches=matches, count=len(matches))


@router.post(
    "/{document_id}/extract",
    response_model=EnrichmentRequestResponse,
    status_code=status.HTTP_202_ACCEPTED
)
async def extract_document_text(
    document_id: UUID,
    response: Response,
    current_user: User = Depends(get_current_user),
    lifecycle: DocumentLifecycleService = Depends(get_document_lifecycle_service)
):
    """
    Run text extraction again

    Resets the extraction and OCR state and queues the enrichment task.
    A document whose text layer is already extracted is returned as is
    with 200.

    Raises:
        404 if the document is missing
        409 if extraction is currently running
    """
    document, queued = lifecycle.request_extraction(current_user.id, document_id)
    if document.text_extraction_status == TextExtractionStatus.COMPLETED:
        response.status_code = status.HTTP_200_OK
        return _enrichment_response(document, False, "Text already extracted")
    message = "Text extraction queued" if queued else "Text extraction reset; the retry sweep will queue it"
    return _enrichment_response(document, queued, message)


@router.post(
    "/{document_id}/ocr",
    response_model=EnrichmentRequestResponse,
    status_code=status.HTTP_202_ACCEPTED
)
async def ocr_document(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    lifecycle: DocumentLifecycleService = Depends(get_document_lifecycle_service)
):
    """
    Run OCR recovery again over the extracted text

    Raises:
        404 if the document is missing
        409 if extraction has not completed or OCR is currently running
    """
    document, queued = lifecycle.request_ocr(current_user.id, document_id)
    message = "OCR queued" if queued else "OCR reset; the retry sweep will queue it"
    return _enrichment_response(document, queued, message)


@router.put("/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: UUID,
    update: DocumentUpdate,
    current_user: User = Depends(get_current_user),
    lifecycle: DocumentLifecycleService = Depends(get_document_lifecycle_service),
    query: DocumentQueryService = Depends(get_document_query_service)
):
    """Rename, retag or move a document"""
    document = lifecycle.update(current_user.id, document_id, update)
    return query.decorate(document)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: UUID,
    current_user: User = Depends(get_current_user),
    lifecycle: DocumentLifecycleService = Depends(get_document_lifecycle_service)
):
    """Soft-delete a document and remove its stored file"""
    lifecycle.soft_delete(current_user.id, document_id)
    return None
