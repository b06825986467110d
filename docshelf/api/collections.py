"""
Collection API endpoints
Hierarchical folders: CRUD, tree listing, breadcrumbs, reordering
"""

from fastapi import APIRouter, Depends, Query, status
from typing import Optional
from uuid import UUID

from docshelf.api.deps import get_current_user, get_collection_service
from docshelf.models.user import User
from docshelf.schemas.collection import (
    BreadcrumbItem,
    CollectionCreate,
    CollectionDeleteResponse,
    CollectionDetailResponse,
    CollectionListResponse,
    CollectionReorderRequest,
    CollectionReorderResponse,
    CollectionResponse,
    CollectionTreeNode,
    CollectionUpdate,
)
from docshelf.services.collection_service import CollectionService
from docshelf.services.collection_tree import CollectionNode

router = APIRouter(prefix="/collections", tags=["collections"])


def _to_response(collection, document_count: int = 0) -> CollectionResponse:
    return CollectionResponse(
        id=collection.id,
        user_id=collection.user_id,
        name=collection.name,
        description=collection.description,
        color=collection.color,
        icon=collection.icon,
        parent_id=collection.parent_id,
        order=collection.order,
        document_count=document_count,
        created_at=collection.created_at,
        updated_at=collection.updated_at,
    )


def _to_tree_node(node: CollectionNode) -> CollectionTreeNode:
    base = _to_response(node.record, node.document_count or 0)
    return CollectionTreeNode(
        **base.model_dump(),
        children=[_to_tree_node(child) for child in node.children]
    )


@router.post("", response_model=CollectionResponse, status_code=status.HTTP_201_CREATED)
async def create_collection(
    collection: CollectionCreate,
    current_user: User = Depends(get_current_user),
    service: CollectionService = Depends(get_collection_service)
):
    """
    Create a new collection

    New collections go to the end of their sibling list. `parent_id`, when
    given, must be one of your collections.
    """
    created = service.create(current_user.id, collection)
    return _to_response(created)


@router.get("", response_model=CollectionListResponse)
async def list_collections(
    include_tree: bool = Query(True, description="Also return the nested tree"),
    current_user: User = Depends(get_current_user),
    service: CollectionService = Depends(get_collection_service)
):
    """
    List all collections ordered by (order, created_at)

    Each collection carries the number of live documents directly inside it.
    """
    flat, tree = service.list(current_user.id)
    return CollectionListResponse(
        collections=[_to_response(node.record, node.document_count or 0) for node in flat],
        tree=[_to_tree_node(root) for root in tree] if include_tree else None
    )


@router.put("/reorder", response_model=CollectionReorderResponse)
async def reorder_collections(
    request: CollectionReorderRequest,
    current_user: User = Depends(get_current_user),
    service: CollectionService = Depends(get_collection_service)
):
    """Set sibling positions in bulk; unknown ids are ignored"""
    modified = service.reorder(current_user.id, request.collections)
    return CollectionReorderResponse(modified_count=modified)


@router.get("/{collection_id}", response_model=CollectionDetailResponse)
async def get_collection(
    collection_id: UUID,
    current_user: User = Depends(get_current_user),
    service: CollectionService = Depends(get_collection_service)
):
    """Get a collection with its document count and breadcrumb path"""
    collection, document_count, path = service.get(current_user.id, collection_id)
    base = _to_response(collection, document_count)
    return CollectionDetailResponse(
        **base.model_dump(),
        path=[BreadcrumbItem(id=c.id, name=c.name) for c in path],
        path_label=" / ".join(c.name for c in path)
    )


@router.put("/{collection_id}", response_model=CollectionResponse)
async def update_collection(
    collection_id: UUID,
    update: CollectionUpdate,
    current_user: User = Depends(get_current_user),
    service: CollectionService = Depends(get_collection_service)
):
    """
    Update a collection (partial)

    Raises:
        400 if the collection would become its own parent
        404 if the new parent is not one of your collections
        409 if the new parent is inside this collection's subtree
    """
    updated = service.update(current_user.id, collection_id, update)
    collection, document_count, _ = service.get(current_user.id, updated.id)
    return _to_response(collection, document_count)


@router.delete("/{collection_id}", response_model=CollectionDeleteResponse)
async def delete_collection(
    collection_id: UUID,
    move_documents: Optional[str] = Query(
        None,
        description="'root' to uncategorize documents, or a collection id to move them into"
    ),
    current_user: User = Depends(get_current_user),
    service: CollectionService = Depends(get_collection_service)
):
    """
    Delete a collection

    Collections with sub-collections cannot be deleted. Collections holding
    documents need `move_documents`.
    """
    moved = service.delete(current_user.id, collection_id, move_documents)
    return CollectionDeleteResponse(id=collection_id, moved_documents=moved)
