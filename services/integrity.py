"""Integrity guard for the category tree.

Pure decision logic: nothing here touches the database directly. The
caller passes a ``parent_of`` lookup bound to its open transaction, so the
guard reads exactly the ancestor rows it needs and nothing else.

A lookup returns the parent ID of a category (None for a root) and raises
KeyError when the category does not exist.
"""

from typing import Callable, List, Optional

from services.errors import (
    CircularReferenceError,
    HasChildrenError,
    InUseError,
    StructuralCorruptionError,
)

ParentLookup = Callable[[int], Optional[int]]


def _walk(
    start_id: int,
    parent_of: ParentLookup,
    node_count: int,
    moving_id: Optional[int] = None,
) -> List[int]:
    chain: List[int] = []
    visited = set()
    current: Optional[int] = start_id

    while current is not None:
        if current == moving_id:
            raise CircularReferenceError(
                f"Category {start_id} is a descendant of category {moving_id}; "
                "moving would create a circular reference",
                category_id=moving_id,
            )
        if current in visited:
            raise StructuralCorruptionError(
                f"Stored tree contains a cycle through category {current}",
                category_id=current,
            )
        # A walk over more distinct ids than there are rows means the count and
        # the rows disagree; either way the tree cannot be trusted.
        if len(visited) >= node_count:
            raise StructuralCorruptionError(
                f"Ancestor walk from category {start_id} exceeded {node_count} steps",
                category_id=start_id,
            )

        visited.add(current)
        chain.append(current)
        try:
            current = parent_of(current)
        except KeyError:
            raise StructuralCorruptionError(
                f"Ancestor chain of category {start_id} reaches missing "
                f"category {chain[-1]}",
                category_id=start_id,
            ) from None

    return chain


def check_reparent(
    node_id: int,
    proposed_parent_id: Optional[int],
    parent_of: ParentLookup,
    node_count: int,
) -> None:
    """Decide whether moving a category under a new parent keeps the forest.

    Args:
        node_id: The category being moved.
        proposed_parent_id: The new parent, or None to move to root.
        parent_of: Parent lookup bound to the current transaction.
        node_count: Total number of categories, bounding the walk.

    Raises:
        CircularReferenceError: If the proposed parent is the node itself or
            one of its descendants.
        StructuralCorruptionError: If the existing ancestor chain of the
            proposed parent is already broken (cycle, dangling parent, or
            longer than the number of categories).
    """
    if proposed_parent_id is None:
        return

    if proposed_parent_id == node_id:
        raise CircularReferenceError(
            f"Category {node_id} cannot be its own parent", category_id=node_id
        )

    _walk(proposed_parent_id, parent_of, node_count, moving_id=node_id)


def check_delete(node_id: int, child_count: int, reference_count: int) -> None:
    """Decide whether a category may be removed.

    Raises:
        HasChildrenError: If any category still has this one as parent.
        InUseError: If any classified item still references it.
    """
    if child_count > 0:
        raise HasChildrenError(
            f"Cannot delete category {node_id}: it has {child_count} child "
            "categories",
            category_id=node_id,
        )
    if reference_count > 0:
        raise InUseError(
            f"Cannot delete category {node_id}: it is used by {reference_count} "
            "items",
            category_id=node_id,
        )


def walk_ancestors(node_id: int, parent_of: ParentLookup, node_count: int) -> List[int]:
    """Return the chain from a category up to its root, inclusive.

    Raises:
        StructuralCorruptionError: If the walk revisits a category, hits a
            missing parent, or runs longer than node_count steps.
    """
    return _walk(node_id, parent_of, node_count)
