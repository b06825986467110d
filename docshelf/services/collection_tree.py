"""
Collection Tree Builder

Turns a user's flat list of collections into a forest and walks parent
references for breadcrumbs and circular-reference checks.

The tree is built over an arena (dict keyed by collection id): one pass
indexes children by parent id, a second pass assembles the nested
structure. Nodes never point back at their parents, so a corrupt parent
cycle cannot make assembly loop; nodes the roots never reach are promoted
to roots so every collection is rendered exactly once.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Hashable, Iterable, Iterator, List, Mapping, Optional
import logging

from docshelf.core.exceptions import ConflictError

logger = logging.getLogger(__name__)


@dataclass
class CollectionNode:
    """A collection plus its ordered children"""

    id: Hashable
    parent_id: Optional[Hashable]
    name: str
    order: int = 0
    created_at: Any = None
    document_count: Optional[int] = None
    record: Any = None
    children: List["CollectionNode"] = field(default_factory=list)

    @classmethod
    def from_record(cls, record, document_count: Optional[int] = None) -> "CollectionNode":
        return cls(
            id=record.id,
            parent_id=record.parent_id,
            name=record.name,
            order=record.order or 0,
            created_at=record.created_at,
            document_count=document_count,
            record=record,
        )


def _sibling_key(node: CollectionNode):
    # (order, created_at); missing timestamps sort last without comparing None to datetime
    return (node.order, node.created_at is None, node.created_at or 0)


def build_collection_tree(nodes: Iterable[CollectionNode]) -> List[CollectionNode]:
    """
    Assemble a forest from flat nodes

    Roots are nodes with no parent, or whose parent is not in the input.
    Siblings are ordered by (order, created_at).

    Args:
        nodes: Flat collection nodes of one owner

    Returns:
        List of root nodes with `children` populated recursively
    """
    arena: Dict[Hashable, CollectionNode] = {}
    for node in nodes:
        node.children = []
        arena[node.id] = node

    children_of: Dict[Hashable, List[Hashable]] = {}
    roots: List[CollectionNode] = []
    for node in arena.values():
        if node.parent_id is None or node.parent_id not in arena:
            if node.parent_id is not None:
                logger.warning(f"Collection {node.id} references missing parent {node.parent_id}; treating as root")
            roots.append(node)
        else:
            children_of.setdefault(node.parent_id, []).append(node.id)

    placed = set()

    def attach(root: CollectionNode):
        placed.add(root.id)
        stack = [root]
        while stack:
            parent = stack.pop()
            kids = [arena[child_id] for child_id in children_of.get(parent.id, ()) if child_id not in placed]
            kids.sort(key=_sibling_key)
            for kid in kids:
                placed.add(kid.id)
                parent.children.append(kid)
                stack.append(kid)

    roots.sort(key=_sibling_key)
    for root in roots:
        attach(root)

    # Anything left is on (or below) a parent cycle
    orphans = sorted((n for n in arena.values() if n.id not in placed), key=_sibling_key)
    for node in orphans:
        if node.id in placed:
            continue
        logger.warning(f"Collection {node.id} is part of a parent cycle; treating as root")
        roots.append(node)
        attach(node)

    return roots


def walk_ancestors(
    start_id: Hashable,
    parent_of: Mapping[Hashable, Optional[Hashable]],
    strict: bool = False
) -> Iterator[Hashable]:
    """
    Yield `start_id` and then each ancestor id up to a root

    The walk never takes more steps than there are known collections. When
    it revisits an id (a cycle) it raises ConflictError in strict mode and
    stops quietly otherwise. A parent id that is not a known collection ends
    the walk.

    Args:
        start_id: Collection to start from
        parent_of: Mapping of collection id -> parent id (None for roots)
        strict: Raise on cycles instead of stopping
    """
    seen = set()
    max_steps = len(parent_of) + 1
    current = start_id

    while current is not None:
        if current in seen or len(seen) >= max_steps:
            if strict:
                raise ConflictError("Collection hierarchy contains a circular reference")
            logger.warning(f"Stopped ancestor walk at {current}: circular parent reference")
            return
        seen.add(current)
        yield current
        if current not in parent_of:
            return
        current = parent_of[current]


def breadcrumb_path(target_id: Hashable, nodes_by_id: Mapping[Hashable, Any]) -> List[Any]:
    """
    Root-to-target sequence of nodes for a collection

    Args:
        target_id: Collection the breadcrumb ends at
        nodes_by_id: Collection records (anything with a parent_id) keyed by id

    Returns:
        List of records, root first; empty if target is unknown
    """
    if target_id not in nodes_by_id:
        return []
    parent_of = {node_id: node.parent_id for node_id, node in nodes_by_id.items()}
    chain = [nodes_by_id[node_id] for node_id in walk_ancestors(target_id, parent_of) if node_id in nodes_by_id]
    chain.reverse()
    return chain


def would_create_cycle(
    collection_id: Hashable,
    new_parent_id: Hashable,
    parent_of: Mapping[Hashable, Optional[Hashable]]
) -> bool:
    """
    True if making `new_parent_id` the parent of `collection_id` closes a loop

    Walks the new parent's ancestor chain in strict mode, so an already
    corrupt hierarchy is rejected rather than trusted.
    """
    for ancestor_id in walk_ancestors(new_parent_id, parent_of, strict=True):
        if ancestor_id == collection_id:
            return True
    return False
