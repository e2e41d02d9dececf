"""Helper utilities for tests."""

from pathlib import Path
import sqlite3


def run_migrations(conn: sqlite3.Connection, migrations_dir: Path) -> None:
    """Run all SQL migrations in order.

    Args:
        conn: SQLite connection to run migrations against.
        migrations_dir: Path to directory containing .sql migration files.
    """
    for migration_file in sorted(migrations_dir.glob("*.sql")):
        with open(migration_file, "r") as f:
            conn.executescript(f.read())


def build_tree(categories, layout, parent_id=None):
    """Create a nested tree of categories from a dict of name -> children.

    Args:
        categories: CategoryService to create through.
        layout: Mapping of name to a (possibly empty) mapping of children.
        parent_id: Parent for the top level.

    Returns:
        dict: name -> created Category, for every node in the tree.
    """
    created = {}
    for name, children in layout.items():
        category = categories.create(name, parent_id)
        created[name] = category
        created.update(build_tree(categories, children, category.id))
    return created


def force_parent(conn: sqlite3.Connection, category_id: int, parent_id) -> None:
    """Write a parent_id directly, bypassing every check, to simulate corruption."""
    conn.execute("PRAGMA foreign_keys = OFF")
    conn.execute(
        "UPDATE categories SET parent_id = ? WHERE id = ?", (parent_id, category_id)
    )
    conn.execute("PRAGMA foreign_keys = ON")


def assert_forest(conn: sqlite3.Connection) -> None:
    """Assert every category's parent chain reaches a root without repeats."""
    parents = dict(conn.execute("SELECT id, parent_id FROM categories").fetchall())
    for start in parents:
        seen = set()
        current = start
        while current is not None:
            assert current not in seen, f"cycle through category {current}"
            assert current in parents, f"dangling parent {current}"
            seen.add(current)
            current = parents[current]
