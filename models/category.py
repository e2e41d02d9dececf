"""Category models for the catalog taxonomy."""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class Category:
    """Represents one taxonomy node.

    Attributes:
        id: Unique identifier (auto-generated, never reused).
        name: Display name. Non-blank; duplicates are allowed.
        parent_id: Optional parent category ID; None for a root.
    """

    id: int
    name: str
    parent_id: Optional[int] = None

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


@dataclass
class CategoryListing(Category):
    """A category enriched with its parent's name for admin listings."""

    parent_name: Optional[str] = None


@dataclass
class CategoryNode(Category):
    """A category with its subcategories attached, for tree views."""

    children: List["CategoryNode"] = field(default_factory=list)


@dataclass
class CategoryPage:
    """One page of a category listing.

    Attributes:
        items: Categories on this page.
        next_cursor: ID of the first category of the next page, or None if
            this is the last page.
    """

    items: List[CategoryListing]
    next_cursor: Optional[int] = None


@dataclass
class IntegrityHalt:
    """Record of detected structural corruption that halts structural edits."""

    reason: str
    node_id: Optional[int]
    halted_at: str
