"""Taxonomy error kinds.

Every rejection raised by the taxonomy services is a subclass of
TaxonomyError carrying a stable ``kind`` tag, so callers can tell e.g.
"delete blocked by children" apart from "delete blocked by in-use" without
parsing messages.
"""

from typing import Optional


class TaxonomyError(Exception):
    """Base class for all taxonomy errors.

    Args:
        message: Human-readable description.
        category_id: The category the error is about, if any.
    """

    kind = "taxonomy_error"
    retryable = False

    def __init__(self, message: str, category_id: Optional[int] = None):
        super().__init__(message)
        self.category_id = category_id


class ValidationError(TaxonomyError):
    """Input failed validation (e.g., blank name)."""

    kind = "validation"


class NotFoundError(TaxonomyError):
    """The addressed category (or part) does not exist."""

    kind = "not_found"


class ParentNotFoundError(TaxonomyError):
    """The requested parent category does not exist."""

    kind = "parent_not_found"


class CircularReferenceError(TaxonomyError):
    """The proposed parent is the node itself or one of its descendants."""

    kind = "circular_reference"


class HasChildrenError(TaxonomyError):
    """The category still has child categories."""

    kind = "has_children"


class InUseError(TaxonomyError):
    """The category is still referenced by classified items."""

    kind = "in_use"


class StructuralCorruptionError(TaxonomyError):
    """The stored tree already violates the forest invariant.

    Structural mutations stay halted until the tree is repaired and the
    halt is cleared.
    """

    kind = "structural_corruption"


class TaxonomyHaltedError(StructuralCorruptionError):
    """A structural mutation was refused because corruption was recorded earlier."""


class ConcurrentModificationError(TaxonomyError):
    """The write lock could not be acquired or the commit was refused.

    The only retryable kind: repeat the whole operation from scratch.
    """

    kind = "concurrent_modification"
    retryable = True
