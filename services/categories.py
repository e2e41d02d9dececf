"""Category taxonomy service.

Owns every write to the category tree. Structural mutations (create,
reparent, update, delete, seed) read what they need, run the integrity
guard and write inside one transaction that holds the database write lock,
so two edits that are each valid on their own can never jointly form a
cycle. No tree state is cached between calls.
"""

from contextlib import contextmanager
from typing import Dict, List, Optional, Tuple

from logger import get_logger
from models.category import (
    Category,
    CategoryListing,
    CategoryNode,
    CategoryPage,
    IntegrityHalt,
)
from services.errors import (
    ConcurrentModificationError,
    NotFoundError,
    ParentNotFoundError,
    StructuralCorruptionError,
    TaxonomyHaltedError,
    ValidationError,
)
from services.integrity import check_delete, check_reparent, walk_ancestors

logger = get_logger()

MAX_PAGE_SIZE = 1000

# Sort keys accepted by list(); parent_name sorts roots first
_SORT_COLUMNS = {
    "name": "c.name",
    "parent_name": "COALESCE(p.name, '')",
    "id": "c.id",
    "created_at": "c.created_at",
}

_LISTING_FROM = """FROM categories c
    LEFT JOIN categories p ON p.id = c.parent_id"""

_UNSET = object()


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _validate_name(name: Optional[str]) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name is required")
    return name


class CategoryService:
    """Service for managing the category taxonomy."""

    def __init__(self, db_manager, reference_counters=None, list_page_size: int = 100):
        """Initialize the category service.

        Args:
            db_manager: Database manager instance for database operations.
            reference_counters: Consumers holding category tags. Each exposes
                reference_count(conn, category_id) -> int.
            list_page_size: Default page size for list().
        """
        self.db_manager = db_manager
        self.reference_counters = list(reference_counters or [])
        self.list_page_size = list_page_size

    # -- reads ---------------------------------------------------------------

    def find(self, category_id: int) -> Optional[Category]:
        """Get a single category by ID.

        Returns:
            Category object if found, None otherwise.
        """
        with self.db_manager.connect() as conn:
            return self._fetch(conn, category_id)

    def find_by_name(self, name: str) -> Optional[Category]:
        """Get the oldest category with exactly this name.

        Names are not unique; callers that need a specific node should use IDs.
        """
        with self.db_manager.connect() as conn:
            row = conn.execute(
                "SELECT id, name, parent_id FROM categories WHERE name = ? "
                "ORDER BY id LIMIT 1",
                (name,),
            ).fetchone()
            return Category(id=row[0], name=row[1], parent_id=row[2]) if row else None

    def list(
        self,
        search: Optional[str] = None,
        parent_id=_UNSET,
        sort_by: str = "name",
        sort_order: str = "asc",
        limit: Optional[int] = None,
        cursor: Optional[int] = None,
    ) -> CategoryPage:
        """List categories with their parent's name, one page at a time.

        Args:
            search: Case-insensitive substring to match against names.
            parent_id: Only return children of this category. Pass None for
                roots only; omit for no filter.
            sort_by: One of "name", "parent_name", "id", "created_at".
            sort_order: "asc" or "desc". Ties are broken by ID.
            limit: Page size (1..1000). Defaults to the configured size.
            cursor: ID of the first category of the page to return, as given
                by a previous page's next_cursor.

        Returns:
            CategoryPage with the items and the cursor of the next page.

        Raises:
            ValidationError: On an unknown sort key or order, a limit out of
                range, or a cursor that no longer exists.
        """
        if sort_by not in _SORT_COLUMNS:
            raise ValidationError(f"Cannot sort categories by '{sort_by}'")
        if sort_order not in ("asc", "desc"):
            raise ValidationError(f"Sort order must be 'asc' or 'desc', got '{sort_order}'")
        if limit is None:
            limit = self.list_page_size
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"Limit must be between 1 and {MAX_PAGE_SIZE}")

        sort_expr = _SORT_COLUMNS[sort_by]
        direction = sort_order.upper()
        clauses: List[str] = []
        params: list = []

        if search:
            clauses.append("c.name LIKE ? ESCAPE '\\'")
            params.append(f"%{_escape_like(search)}%")
        if parent_id is None:
            clauses.append("c.parent_id IS NULL")
        elif parent_id is not _UNSET:
            clauses.append("c.parent_id = ?")
            params.append(parent_id)

        with self.db_manager.connect() as conn:
            if cursor is not None:
                row = conn.execute(
                    f"SELECT {sort_expr} {_LISTING_FROM} WHERE c.id = ?", (cursor,)
                ).fetchone()
                if row is None:
                    raise ValidationError(f"Unknown cursor {cursor}")
                comparison = ">=" if sort_order == "asc" else "<="
                clauses.append(f"({sort_expr}, c.id) {comparison} (?, ?)")
                params.extend([row[0], cursor])

            where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
            rows = conn.execute(
                f"""
                SELECT c.id, c.name, c.parent_id, p.name
                {_LISTING_FROM}
                {where}
                ORDER BY {sort_expr} {direction}, c.id {direction}
                LIMIT ?
                """,
                (*params, limit + 1),
            ).fetchall()

        items = [
            CategoryListing(id=row[0], name=row[1], parent_id=row[2], parent_name=row[3])
            for row in rows
        ]
        next_cursor = None
        if len(items) > limit:
            next_cursor = items.pop().id

        return CategoryPage(items=items, next_cursor=next_cursor)

    def list_parents_only(self) -> List[Category]:
        """Get categories that currently have at least one child, by name.

        This feeds the "filter by parent" dropdown; any category can become a
        parent through create or reparent.
        """
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                SELECT c.id, c.name, c.parent_id
                FROM categories c
                WHERE EXISTS (SELECT 1 FROM categories ch WHERE ch.parent_id = c.id)
                ORDER BY c.name, c.id
                """
            )
            return [
                Category(id=row[0], name=row[1], parent_id=row[2])
                for row in cursor.fetchall()
            ]

    def roots(self) -> List[Category]:
        """Get top-level categories, ordered by name."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "SELECT id, name, parent_id FROM categories WHERE parent_id IS NULL "
                "ORDER BY name, id"
            )
            return [
                Category(id=row[0], name=row[1], parent_id=row[2])
                for row in cursor.fetchall()
            ]

    def children(self, parent_id: int) -> List[Category]:
        """Get the immediate subcategories of a category, ordered by name."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "SELECT id, name, parent_id FROM categories WHERE parent_id = ? "
                "ORDER BY name, id",
                (parent_id,),
            )
            return [
                Category(id=row[0], name=row[1], parent_id=row[2])
                for row in cursor.fetchall()
            ]

    def tree(self) -> List[CategoryNode]:
        """Get the whole taxonomy as nested nodes, built from one snapshot.

        Returns:
            Root nodes ordered by name, each with children ordered by name.
        """
        with self.db_manager.connect() as conn:
            rows = conn.execute(
                "SELECT id, name, parent_id FROM categories ORDER BY name, id"
            ).fetchall()

        nodes = {row[0]: CategoryNode(id=row[0], name=row[1], parent_id=row[2]) for row in rows}
        roots = []
        for node in nodes.values():
            if node.parent_id is None:
                roots.append(node)
            elif node.parent_id in nodes:
                nodes[node.parent_id].children.append(node)
        return roots

    def verify(self) -> List[int]:
        """Walk every category up to its root and report the ones that fail.

        Returns:
            Sorted IDs of categories whose ancestor chain is broken (cycle or
            dangling parent). Empty when the tree is a valid forest.
        """
        with self.db_manager.connect() as conn:
            corrupt = self._find_corrupt(conn)

        for category_id in corrupt:
            logger.critical(f"Category {category_id} has a broken ancestor chain")
        return corrupt

    def halted(self) -> Optional[IntegrityHalt]:
        """Get the recorded integrity halt, if structural edits are halted."""
        with self.db_manager.connect() as conn:
            return self._fetch_halt(conn)

    # -- writes --------------------------------------------------------------

    def create(self, name: str, parent_id: Optional[int] = None) -> Category:
        """Create a new leaf category.

        Args:
            name: Category name (non-blank; surrounding whitespace is dropped).
            parent_id: Optional parent category ID; None creates a root.

        Returns:
            The created Category object with id populated.

        Raises:
            ValidationError: If name is blank.
            ParentNotFoundError: If parent_id does not reference a category.
        """
        name = _validate_name(name)

        with self._structural_transaction() as conn:
            if parent_id is not None and self._fetch(conn, parent_id) is None:
                raise ParentNotFoundError(
                    f"Parent category with ID {parent_id} not found",
                    category_id=parent_id,
                )
            cursor = conn.execute(
                "INSERT INTO categories (name, parent_id) VALUES (?, ?)",
                (name, parent_id),
            )
            category = Category(id=cursor.lastrowid, name=name, parent_id=parent_id)

        logger.debug(f"Created category {category.id} '{category.name}'")
        return category

    def rename(self, category_id: int, name: str) -> Category:
        """Rename a category. Not a structural change, so allowed while halted.

        Raises:
            ValidationError: If name is blank.
            NotFoundError: If the category does not exist.
        """
        name = _validate_name(name)

        with self.db_manager.transaction() as conn:
            cursor = conn.execute(
                "UPDATE categories SET name = ?, updated_at = CURRENT_TIMESTAMP "
                "WHERE id = ?",
                (name, category_id),
            )
            if cursor.rowcount == 0:
                raise NotFoundError(
                    f"Category with ID {category_id} not found", category_id=category_id
                )
            return self._fetch(conn, category_id)

    def reparent(self, category_id: int, new_parent_id: Optional[int] = None) -> Category:
        """Move a category (with its subtree) under a new parent.

        Moving to root (new_parent_id=None) is always accepted and stays
        available while the taxonomy is halted, since it is how a stored
        cycle gets broken.

        Raises:
            NotFoundError: If the category does not exist.
            ParentNotFoundError: If the new parent does not exist.
            CircularReferenceError: If the new parent is the category itself
                or one of its descendants.
            StructuralCorruptionError: If the stored tree is already broken.
        """
        with self._structural_transaction(check_halt=new_parent_id is not None) as conn:
            category = self._require(conn, category_id)
            self._move(conn, category, new_parent_id)

        logger.debug(f"Moved category {category_id} under {new_parent_id}")
        return category

    def update(self, category_id: int, name: str, parent_id=_UNSET) -> Category:
        """Rename a category and optionally reparent it, in one transaction.

        Args:
            category_id: The category to edit.
            name: New name.
            parent_id: New parent ID, or None to move to root. Omit to keep
                the current parent.

        Rejects exactly as rename() and reparent() do; on any reject nothing
        is written.
        """
        name = _validate_name(name)

        with self._structural_transaction(check_halt=False) as conn:
            category = self._require(conn, category_id)
            if parent_id is not _UNSET:
                if parent_id is not None and parent_id != category.parent_id:
                    self._ensure_not_halted(conn)
                self._move(conn, category, parent_id)
            conn.execute(
                "UPDATE categories SET name = ?, updated_at = CURRENT_TIMESTAMP "
                "WHERE id = ?",
                (name, category_id),
            )
            category.name = name

        return category

    def delete(self, category_id: int) -> None:
        """Delete a category that has no children and no classified items.

        Raises:
            NotFoundError: If the category does not exist.
            HasChildrenError: If any category has it as parent.
            InUseError: If any consumer still references it.
        """
        with self._structural_transaction() as conn:
            self._require(conn, category_id)
            check_delete(
                category_id,
                self._child_count(conn, category_id),
                self._reference_count(conn, category_id),
            )
            conn.execute("DELETE FROM categories WHERE id = ?", (category_id,))

        logger.debug(f"Deleted category {category_id}")

    def seed(self, entries: List[dict]) -> Tuple[int, int]:
        """Create a nested tree of categories, reusing ones that already exist.

        A category counts as existing when a category with the same name sits
        under the same parent. The whole seed is one transaction.

        Args:
            entries: Dicts with "name" and optional "children" (same shape).

        Returns:
            Tuple of (created, skipped) counts.
        """
        counts = {"created": 0, "skipped": 0}

        def _seed_level(conn, level: List[dict], parent_id: Optional[int]) -> None:
            for entry in level:
                name = (entry.get("name") or "").strip()
                if not name:
                    logger.warning(f"Skipping category with no name under parent {parent_id}")
                    continue

                row = conn.execute(
                    "SELECT id FROM categories WHERE name = ? AND parent_id IS ? "
                    "ORDER BY id LIMIT 1",
                    (name, parent_id),
                ).fetchone()
                if row:
                    category_id = row[0]
                    counts["skipped"] += 1
                else:
                    category_id = conn.execute(
                        "INSERT INTO categories (name, parent_id) VALUES (?, ?)",
                        (name, parent_id),
                    ).lastrowid
                    counts["created"] += 1

                _seed_level(conn, entry.get("children") or [], category_id)

        with self._structural_transaction() as conn:
            _seed_level(conn, entries, None)

        return counts["created"], counts["skipped"]

    def resume(self) -> None:
        """Lift an integrity halt once the stored tree is a valid forest again.

        Raises:
            StructuralCorruptionError: If any category still has a broken
                ancestor chain; the halt stays in place.
        """
        with self.db_manager.transaction() as conn:
            if self._fetch_halt(conn) is None:
                return
            corrupt = self._find_corrupt(conn)
            if corrupt:
                raise StructuralCorruptionError(
                    f"Taxonomy still corrupt; broken categories: {corrupt}",
                    category_id=corrupt[0],
                )
            conn.execute("DELETE FROM taxonomy_halt")

        logger.warning("Taxonomy integrity halt lifted; structural edits resumed")

    # -- internals -----------------------------------------------------------

    @contextmanager
    def _structural_transaction(self, check_halt: bool = True):
        """Write transaction for structural edits.

        Refuses to start while halted, and records a halt when the guard
        finds the stored tree already broken.
        """
        try:
            with self.db_manager.transaction() as conn:
                if check_halt:
                    self._ensure_not_halted(conn)
                yield conn
        except TaxonomyHaltedError:
            raise
        except StructuralCorruptionError as e:
            self._halt(e)
            raise

    def _move(self, conn, category: Category, new_parent_id: Optional[int]) -> None:
        if new_parent_id is not None and self._fetch(conn, new_parent_id) is None:
            raise ParentNotFoundError(
                f"Parent category with ID {new_parent_id} not found",
                category_id=new_parent_id,
            )

        check_reparent(
            category.id, new_parent_id, self._parent_lookup(conn), self._node_count(conn)
        )
        conn.execute(
            "UPDATE categories SET parent_id = ?, updated_at = CURRENT_TIMESTAMP "
            "WHERE id = ?",
            (new_parent_id, category.id),
        )
        category.parent_id = new_parent_id

    def _halt(self, error: StructuralCorruptionError) -> None:
        logger.critical(
            f"STRUCTURAL CORRUPTION: {error}. Structural edits are halted until the "
            "tree is repaired and resumed."
        )
        try:
            with self.db_manager.transaction() as conn:
                conn.execute(
                    "INSERT OR IGNORE INTO taxonomy_halt (id, reason, node_id) "
                    "VALUES (1, ?, ?)",
                    (str(error), error.category_id),
                )
        except ConcurrentModificationError as e:
            logger.error(f"Could not record integrity halt: {e}")

    def _ensure_not_halted(self, conn) -> None:
        halt = self._fetch_halt(conn)
        if halt is not None:
            raise TaxonomyHaltedError(
                f"Structural edits halted since {halt.halted_at}: {halt.reason}",
                category_id=halt.node_id,
            )

    def _fetch_halt(self, conn) -> Optional[IntegrityHalt]:
        row = conn.execute(
            "SELECT reason, node_id, halted_at FROM taxonomy_halt WHERE id = 1"
        ).fetchone()
        if row:
            return IntegrityHalt(reason=row[0], node_id=row[1], halted_at=row[2])
        return None

    def _find_corrupt(self, conn) -> List[int]:
        parents: Dict[int, Optional[int]] = dict(
            conn.execute("SELECT id, parent_id FROM categories").fetchall()
        )
        corrupt = []
        for category_id in parents:
            try:
                walk_ancestors(category_id, parents.__getitem__, len(parents))
            except StructuralCorruptionError:
                corrupt.append(category_id)
        return sorted(corrupt)

    def _fetch(self, conn, category_id: int) -> Optional[Category]:
        row = conn.execute(
            "SELECT id, name, parent_id FROM categories WHERE id = ?", (category_id,)
        ).fetchone()
        if row:
            return Category(id=row[0], name=row[1], parent_id=row[2])
        return None

    def _require(self, conn, category_id: int) -> Category:
        category = self._fetch(conn, category_id)
        if category is None:
            raise NotFoundError(
                f"Category with ID {category_id} not found", category_id=category_id
            )
        return category

    def _parent_lookup(self, conn):
        def parent_of(category_id: int) -> Optional[int]:
            row = conn.execute(
                "SELECT parent_id FROM categories WHERE id = ?", (category_id,)
            ).fetchone()
            if row is None:
                raise KeyError(category_id)
            return row[0]

        return parent_of

    def _node_count(self, conn) -> int:
        return conn.execute("SELECT COUNT(*) FROM categories").fetchone()[0]

    def _child_count(self, conn, category_id: int) -> int:
        return conn.execute(
            "SELECT COUNT(*) FROM categories WHERE parent_id = ?", (category_id,)
        ).fetchone()[0]

    def _reference_count(self, conn, category_id: int) -> int:
        return sum(
            counter.reference_count(conn, category_id)
            for counter in self.reference_counters
        )
