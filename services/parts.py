"""Part service: the classified items that reference categories."""

import sqlite3
from typing import List, Optional

from models.category import Category
from models.part import Part
from services.errors import NotFoundError, ValidationError


class PartService:
    """Service for managing parts and their category tags.

    Parts own their classification references. The taxonomy only reads
    them through reference_count().
    """

    def __init__(self, db_manager):
        """Initialize the part service.

        Args:
            db_manager: Database manager instance for database operations.
        """
        self.db_manager = db_manager

    def find_all(self) -> List[Part]:
        """Get all parts, ordered by name."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                "SELECT id, name, part_number FROM parts ORDER BY name, id"
            )
            return [
                Part(id=row[0], name=row[1], part_number=row[2])
                for row in cursor.fetchall()
            ]

    def find(self, part_id: int) -> Optional[Part]:
        """Get a single part by ID, or None."""
        with self.db_manager.connect() as conn:
            row = conn.execute(
                "SELECT id, name, part_number FROM parts WHERE id = ?", (part_id,)
            ).fetchone()

            if row:
                return Part(id=row[0], name=row[1], part_number=row[2])
            return None

    def create(self, name: str, part_number: Optional[str] = None) -> Part:
        """Create a new part.

        Raises:
            ValidationError: If name is blank.
        """
        name = (name or "").strip()
        if not name:
            raise ValidationError("Part name is required")

        with self.db_manager.transaction() as conn:
            cursor = conn.execute(
                "INSERT INTO parts (name, part_number) VALUES (?, ?)",
                (name, part_number),
            )
            return Part(id=cursor.lastrowid, name=name, part_number=part_number)

    def delete(self, part_id: int) -> bool:
        """Delete a part and its category tags.

        Returns:
            True if the part was deleted, False if not found.
        """
        with self.db_manager.transaction() as conn:
            cursor = conn.execute("DELETE FROM parts WHERE id = ?", (part_id,))
            return cursor.rowcount > 0

    def tag(self, part_id: int, category_id: int) -> None:
        """Classify a part under a category. Tagging twice is a no-op.

        Runs under the taxonomy write lock so it cannot interleave with a
        category delete deciding the category is unused.

        Raises:
            NotFoundError: If the part or the category does not exist.
        """
        with self.db_manager.transaction() as conn:
            if not conn.execute(
                "SELECT 1 FROM parts WHERE id = ?", (part_id,)
            ).fetchone():
                raise NotFoundError(f"Part with ID {part_id} not found")
            if not conn.execute(
                "SELECT 1 FROM categories WHERE id = ?", (category_id,)
            ).fetchone():
                raise NotFoundError(
                    f"Category with ID {category_id} not found",
                    category_id=category_id,
                )

            conn.execute(
                "INSERT OR IGNORE INTO part_categories (part_id, category_id) VALUES (?, ?)",
                (part_id, category_id),
            )

    def untag(self, part_id: int, category_id: int) -> bool:
        """Remove a category tag from a part.

        Returns:
            True if the tag existed and was removed.
        """
        with self.db_manager.transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM part_categories WHERE part_id = ? AND category_id = ?",
                (part_id, category_id),
            )
            return cursor.rowcount > 0

    def categories_for(self, part_id: int) -> List[Category]:
        """Get the categories a part is tagged with, ordered by name."""
        with self.db_manager.connect() as conn:
            cursor = conn.execute(
                """
                SELECT c.id, c.name, c.parent_id
                FROM categories c
                JOIN part_categories pc ON pc.category_id = c.id
                WHERE pc.part_id = ?
                ORDER BY c.name, c.id
                """,
                (part_id,),
            )
            return [
                Category(id=row[0], name=row[1], parent_id=row[2])
                for row in cursor.fetchall()
            ]

    def reference_count(self, conn: sqlite3.Connection, category_id: int) -> int:
        """Count parts tagged with a category.

        Takes the caller's connection so the count is read inside the same
        transaction that acts on it.
        """
        row = conn.execute(
            "SELECT COUNT(*) FROM part_categories WHERE category_id = ?",
            (category_id,),
        ).fetchone()
        return row[0]
