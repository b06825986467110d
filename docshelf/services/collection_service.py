"""
Collection Service - owner-scoped CRUD over the collection hierarchy

Every query is filtered by the owner id resolved from the API key, so a
collection belonging to someone else behaves exactly like a missing one.
"""

from sqlalchemy.orm import Session
from sqlalchemy import func
from typing import Dict, List, Optional, Union
from uuid import UUID
import logging

from docshelf.models.collection import Collection, DEFAULT_COLLECTION_COLOR, DEFAULT_COLLECTION_ICON
from docshelf.models.document import Document
from docshelf.schemas.collection import CollectionCreate, CollectionUpdate, CollectionOrderItem
from docshelf.services.collection_tree import (
    CollectionNode,
    build_collection_tree,
    breadcrumb_path,
    would_create_cycle,
)
from docshelf.core.exceptions import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MOVE_TO_ROOT = "root"


class CollectionService:
    """Collection store operations for one database session"""

    def __init__(self, db: Session):
        self.db = db

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def _owned(self, user_id: UUID):
        return self.db.query(Collection).filter(Collection.user_id == user_id)

    def get_owned(self, user_id: UUID, collection_id: UUID) -> Collection:
        """Fetch a collection of the owner or raise NotFoundError"""
        collection = self._owned(user_id).filter(Collection.id == collection_id).first()
        if not collection:
            raise NotFoundError("Collection not found", details={"collection_id": str(collection_id)})
        return collection

    def _parent_map(self, user_id: UUID) -> Dict[UUID, Optional[UUID]]:
        rows = self.db.query(Collection.id, Collection.parent_id).filter(Collection.user_id == user_id).all()
        return {row.id: row.parent_id for row in rows}

    def document_counts(self, user_id: UUID) -> Dict[UUID, int]:
        """Non-deleted document count per collection id"""
        rows = self.db.query(
            Document.collection_id,
            func.count(Document.id)
        ).filter(
            Document.user_id == user_id,
            Document.is_deleted.is_(False),
            Document.collection_id.isnot(None)
        ).group_by(Document.collection_id).all()
        return {collection_id: count for collection_id, count in rows}

    def _document_count(self, user_id: UUID, collection_id: UUID) -> int:
        return self.db.query(func.count(Document.id)).filter(
            Document.user_id == user_id,
            Document.collection_id == collection_id,
            Document.is_deleted.is_(False)
        ).scalar() or 0

    def _next_order(self, user_id: UUID, parent_id: Optional[UUID]) -> int:
        query = self.db.query(func.max(Collection.order)).filter(Collection.user_id == user_id)
        if parent_id is None:
            query = query.filter(Collection.parent_id.is_(None))
        else:
            query = query.filter(Collection.parent_id == parent_id)
        current_max = query.scalar()
        return 0 if current_max is None else current_max + 1

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create(self, user_id: UUID, data: CollectionCreate) -> Collection:
        """
        Create a collection at the end of its sibling list

        Raises:
            NotFoundError: parent_id given but not an owned collection
        """
        if data.parent_id is not None:
            self.get_owned(user_id, data.parent_id)

        collection = Collection(
            user_id=user_id,
            name=data.name,
            description=data.description,
            color=data.color or DEFAULT_COLLECTION_COLOR,
            icon=data.icon or DEFAULT_COLLECTION_ICON,
            parent_id=data.parent_id,
            order=self._next_order(user_id, data.parent_id),
        )
        self.db.add(collection)
        self.db.commit()
        self.db.refresh(collection)

        logger.info(f"Created collection {collection.id} for user {user_id}")
        return collection

    def list(self, user_id: UUID, include_document_count: bool = True):
        """
        All collections of the owner

        Returns:
            (nodes, tree): flat CollectionNode list ordered by (order, created_at)
            and the forest of root nodes built from it
        """
        collections = self._owned(user_id).order_by(Collection.order, Collection.created_at).all()
        counts = self.document_counts(user_id) if include_document_count else {}

        nodes = [
            CollectionNode.from_record(c, counts.get(c.id, 0) if include_document_count else None)
            for c in collections
        ]
        flat = list(nodes)
        tree = build_collection_tree(nodes)
        return flat, tree

    def get(self, user_id: UUID, collection_id: UUID):
        """
        Single collection with document count and breadcrumb

        Returns:
            (collection, document_count, path) where path is root-first
        """
        collection = self.get_owned(user_id, collection_id)
        by_id = {c.id: c for c in self._owned(user_id).all()}
        path = breadcrumb_path(collection.id, by_id)
        return collection, self._document_count(user_id, collection.id), path

    def update(self, user_id: UUID, collection_id: UUID, data: CollectionUpdate) -> Collection:
        """
        Apply the fields present in `data`

        Raises:
            NotFoundError: collection or new parent not owned
            ValidationError: collection made its own parent
            ConflictError: new parent lies inside the collection's subtree
        """
        collection = self.get_owned(user_id, collection_id)
        changes = data.model_dump(exclude_unset=True)

        if "name" in changes and changes["name"] is None:
            raise ValidationError("Collection name cannot be empty")
        if "order" in changes and changes["order"] is None:
            raise ValidationError("Collection order cannot be null")

        if "parent_id" in changes:
            new_parent_id = changes["parent_id"]
            if new_parent_id is not None:
                if new_parent_id == collection.id:
                    raise ValidationError("A collection cannot be its own parent")
                self.get_owned(user_id, new_parent_id)
                if would_create_cycle(collection.id, new_parent_id, self._parent_map(user_id)):
                    raise ConflictError("Cannot move a collection into one of its descendants")

        for field in ("name", "description", "color", "icon", "parent_id", "order"):
            if field in changes:
                value = changes[field]
                if field in ("color", "icon") and value is None:
                    continue
                setattr(collection, field, value)

        self.db.commit()
        self.db.refresh(collection)
        logger.info(f"Updated collection {collection.id}: {sorted(changes)}")
        return collection

    def delete(
        self,
        user_id: UUID,
        collection_id: UUID,
        move_documents: Optional[Union[str, UUID]] = None
    ) -> int:
        """
        Delete an empty-of-children collection

        Args:
            move_documents: "root" to uncategorize its documents, a collection id
                to reassign them, or None to require the collection be empty

        Returns:
            Number of non-deleted documents reassigned

        Raises:
            ConflictError: collection has children, or has documents and no target
            NotFoundError: collection or target not owned
            ValidationError: target is the collection being deleted or malformed
        """
        collection = self.get_owned(user_id, collection_id)

        child_count = self._owned(user_id).filter(Collection.parent_id == collection.id).count()
        if child_count:
            raise ConflictError(
                "Cannot delete a collection that has sub-collections",
                details={"child_count": child_count},
            )

        target_id = None
        if move_documents is not None and move_documents != MOVE_TO_ROOT:
            target_id = self._parse_target(move_documents)
            if target_id == collection.id:
                raise ValidationError("Cannot move documents into the collection being deleted")
            self.get_owned(user_id, target_id)

        documents = self.db.query(Document).filter(
            Document.user_id == user_id,
            Document.collection_id == collection.id
        ).all()
        live = [d for d in documents if not d.is_deleted]

        if live and move_documents is None:
            raise ConflictError(
                "Collection contains documents; move them first",
                details={"document_count": len(live)},
            )

        for document in documents:
            # Soft-deleted records are detached rather than carried along
            document.collection_id = None if document.is_deleted else target_id

        self.db.delete(collection)
        self.db.commit()

        logger.info(f"Deleted collection {collection_id}, moved {len(live)} documents to {target_id or 'root'}")
        return len(live)

    @staticmethod
    def _parse_target(move_documents) -> UUID:
        if isinstance(move_documents, UUID):
            return move_documents
        try:
            return UUID(str(move_documents))
        except ValueError:
            raise ValidationError("move_documents must be 'root' or a collection id")

    def reorder(self, user_id: UUID, items: List[CollectionOrderItem]) -> int:
        """
        Set `order` for each listed collection; unknown or foreign ids are skipped

        Returns:
            Number of collections whose order changed
        """
        if not items:
            raise ValidationError("No collections to reorder")

        wanted = {item.id: item.order for item in items}
        collections = self._owned(user_id).filter(Collection.id.in_(list(wanted))).all()

        modified = 0
        for collection in collections:
            if collection.order != wanted[collection.id]:
                collection.order = wanted[collection.id]
                modified += 1

        self.db.commit()
        skipped = len(wanted) - len(collections)
        if skipped:
            logger.info(f"Reorder skipped {skipped} unknown collections for user {user_id}")
        return modified
